"""
SSID impersonation checks against allow-listed network names.

An SSID imitates a trusted one when it folds to the same name once
character swaps, homoglyphs, separators and invisible characters are
undone, or when it is within a small edit distance of it.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import Iterable

from utils.constants import SSID_LOOKALIKE_MIN_LENGTH, SSID_LOOKALIKE_MIN_SIMILARITY
from utils.validation import normalize_ssid

TECHNIQUE_HOMOGLYPH = 'homoglyph'
TECHNIQUE_INVISIBLE = 'invisible_characters'
TECHNIQUE_SUBSTITUTION = 'substitution'
TECHNIQUE_EDIT_DISTANCE = 'edit_distance'

# Cyrillic and Greek letters that render like Latin ones (lower case)
HOMOGLYPHS = {
    'а': 'a', 'е': 'e', 'о': 'o', 'р': 'p', 'с': 'c', 'х': 'x',
    'у': 'y', 'і': 'i', 'ј': 'j', 'ѕ': 's', 'һ': 'h', 'ԁ': 'd',
    'α': 'a', 'ο': 'o', 'ι': 'i', 'κ': 'k', 'ν': 'v', 'ρ': 'p', 'τ': 't',
}

# Digits and symbols swapped in for letters
CHARACTER_SUBSTITUTIONS = {
    '0': 'o', '1': 'i', 'l': 'i', '!': 'i', '3': 'e',
    '4': 'a', '@': 'a', '5': 's', '$': 's', '7': 't',
}

SEPARATORS = frozenset(' _-.')


@dataclass(frozen=True)
class LookalikeMatch:
    """An SSID found imitating an allow-listed SSID."""
    trusted_ssid: str
    technique: str
    similarity: float
    mixed_scripts: bool = False

    @property
    def is_exact_fold(self) -> bool:
        return self.technique != TECHNIQUE_EDIT_DISTANCE


def fold(ssid: str | None) -> str:
    """Reduce an SSID to the form an attacker is trying to imitate."""
    text = unicodedata.normalize('NFKC', ssid or '').casefold()
    chars = []
    for ch in text:
        if unicodedata.category(ch) == 'Cf' or ch.isspace() or ch in SEPARATORS:
            continue
        ch = HOMOGLYPHS.get(ch, ch)
        chars.append(CHARACTER_SUBSTITUTIONS.get(ch, ch))
    return ''.join(chars)


def levenshtein_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein distance between two strings."""
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)
    if not s2:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row
    return previous_row[-1]


def similarity(ssid1: str, ssid2: str) -> float:
    """Edit-distance similarity of two normalized SSIDs, 0.0 to 1.0."""
    max_len = max(len(ssid1), len(ssid2))
    if max_len == 0:
        return 0.0
    return 1.0 - levenshtein_distance(ssid1, ssid2) / max_len


def has_mixed_scripts(ssid: str) -> bool:
    """True if the SSID mixes Latin letters with Cyrillic or Greek ones."""
    scripts = set()
    for ch in ssid:
        if ch.isalpha():
            scripts.add(unicodedata.name(ch, 'UNKNOWN').split(' ')[0])
    return 'LATIN' in scripts and bool(scripts & {'CYRILLIC', 'GREEK'})


def _technique(ssid: str) -> str:
    if any(unicodedata.category(ch) == 'Cf' or (ch.isspace() and ch != ' ') for ch in ssid):
        return TECHNIQUE_INVISIBLE
    if any(ch in HOMOGLYPHS for ch in unicodedata.normalize('NFKC', ssid).casefold()):
        return TECHNIQUE_HOMOGLYPH
    return TECHNIQUE_SUBSTITUTION


def find_lookalike(
    ssid: str | None,
    trusted_ssids: Iterable[str],
    min_similarity: float = SSID_LOOKALIKE_MIN_SIMILARITY,
) -> LookalikeMatch | None:
    """
    Find the allow-listed SSID that this SSID most closely imitates.

    Args:
        ssid: Observed SSID, as broadcast
        trusted_ssids: Allow-listed SSIDs
        min_similarity: Edit-distance similarity threshold

    Returns:
        LookalikeMatch, or None if the SSID is trusted itself or imitates
        nothing. A folded match wins over an edit-distance match.
    """
    normalized = normalize_ssid(ssid)
    if not normalized:
        return None
    folded = fold(ssid)

    best: LookalikeMatch | None = None
    for trusted in trusted_ssids:
        trusted_normalized = normalize_ssid(trusted)
        if normalized == trusted_normalized:
            return None

        if folded and folded == fold(trusted):
            return LookalikeMatch(
                trusted_ssid=trusted,
                technique=_technique(ssid),
                similarity=1.0,
                mixed_scripts=has_mixed_scripts(ssid),
            )

        if len(trusted_normalized) < SSID_LOOKALIKE_MIN_LENGTH:
            continue
        score = similarity(normalized, trusted_normalized)
        if score >= min_similarity and (best is None or score > best.similarity):
            best = LookalikeMatch(
                trusted_ssid=trusted,
                technique=TECHNIQUE_EDIT_DISTANCE,
                similarity=round(score, 2),
                mixed_scripts=has_mixed_scripts(ssid),
            )
    return best
