"""
Evil twin detection across a scan batch.

Observations are grouped by normalized SSID. Every group with two or more
distinct BSSIDs is checked for:
- BSSIDs other than the single allow-listed BSSID of an SSID
- duplicate SSIDs with no allow-list match at all
- security downgrades within the group
- OUI siblings of a single trusted BSSID (weak, corroborating only)

Every named network, grouped or not, is also checked for an SSID that
imitates an allow-listed SSID without matching it.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from itertools import groupby
from typing import Iterable

from utils.constants import TWIN_SIGNAL_HIGH_MIN, TWIN_SIGNAL_MEDIUM_MIN
from .allowlist import AllowListSnapshot
from .lookalike import find_lookalike
from .models import Indicator, IndicatorKind, Observation, Severity

logger = logging.getLogger('twinguard.evil_twin')


def proximity_severity(signal: int) -> Severity:
    """Severity of an untrusted duplicate; a closer signal is more dangerous."""
    if signal >= TWIN_SIGNAL_HIGH_MIN:
        return Severity.HIGH
    if signal >= TWIN_SIGNAL_MEDIUM_MIN:
        return Severity.MEDIUM
    return Severity.LOW


class EvilTwinDetector:
    """Cross-BSSID heuristics over one scan batch."""

    def detect(
        self,
        batch: Iterable[Observation],
        allowlist: AllowListSnapshot,
    ) -> dict[str, list[Indicator]]:
        """
        Detect duplicate-SSID threats in a batch.

        Args:
            batch: Observations with canonical BSSIDs
            allowlist: Allow-list snapshot for this cycle

        Returns:
            Dict of BSSID -> indicators, only for BSSIDs with findings
        """
        findings: dict[str, list[Indicator]] = defaultdict(list)

        candidates = sorted(
            (o for o in batch if o.bssid and not o.is_hidden),
            key=lambda o: (o.normalized_ssid, o.bssid),
        )

        for ssid_key, group in groupby(candidates, key=lambda o: o.normalized_ssid):
            members = _strongest_per_bssid(group)
            if len(members) >= 2:
                self._analyze_group(ssid_key, members, allowlist, findings)
            self._check_lookalikes(members, allowlist, findings)

        if findings:
            logger.debug(f"Evil twin findings for {len(findings)} BSSIDs")
        return dict(findings)

    def _analyze_group(
        self,
        ssid_key: str,
        members: list[Observation],
        allowlist: AllowListSnapshot,
        findings: dict[str, list[Indicator]],
    ) -> None:
        trusted = allowlist.bssids_for_ssid(ssid_key)
        group_bssids = [m.bssid for m in members]
        trusted_in_group = sorted(trusted.intersection(group_bssids))

        # 1. Untrusted BSSIDs broadcasting an SSID with exactly one allow-listed BSSID
        if len(trusted) == 1:
            for m in members:
                if m.bssid in trusted:
                    continue
                findings[m.bssid].append(Indicator(
                    kind=IndicatorKind.DUPLICATE_SSID_UNTRUSTED_BSSID,
                    severity=proximity_severity(m.normalized_signal),
                    evidence={
                        'ssid': m.ssid,
                        'trusted_bssids': sorted(trusted),
                        'signal': m.normalized_signal,
                    },
                ))

        # 2. Duplicates with no allow-list anchor (may be a multi-AP deployment)
        if not trusted_in_group:
            for m in members:
                findings[m.bssid].append(Indicator(
                    kind=IndicatorKind.DUPLICATE_SSID_NO_WHITELIST_MATCH,
                    severity=Severity.MEDIUM,
                    evidence={
                        'ssid': m.ssid,
                        'group_bssids': group_bssids,
                    },
                ))

        # 3. Security downgrade against the strongest member
        strongest = max(members, key=lambda m: m.security_protocol.rank)
        for m in members:
            if m.security_protocol.rank < strongest.security_protocol.rank:
                findings[m.bssid].append(Indicator(
                    kind=IndicatorKind.SECURITY_DOWNGRADE,
                    severity=Severity.HIGH,
                    evidence={
                        'ssid': m.ssid,
                        'protocol': m.security_protocol.value,
                        'stronger_protocol': strongest.security_protocol.value,
                        'stronger_bssid': strongest.bssid,
                    },
                ))

        # 4. Same vendor OUI as the only trusted BSSID of that OUI
        by_oui: dict[str, list[Observation]] = defaultdict(list)
        for m in members:
            by_oui[m.oui].append(m)
        for oui, siblings in by_oui.items():
            if len(siblings) < 2:
                continue
            trusted_siblings = [s.bssid for s in siblings if s.bssid in trusted]
            if len(trusted_siblings) != 1:
                continue
            for s in siblings:
                if s.bssid in trusted:
                    continue
                findings[s.bssid].append(Indicator(
                    kind=IndicatorKind.SHARED_VENDOR_OUI,
                    severity=Severity.LOW,
                    evidence={
                        'oui': oui,
                        'trusted_bssid': trusted_siblings[0],
                    },
                ))

    def _check_lookalikes(
        self,
        members: list[Observation],
        allowlist: AllowListSnapshot,
        findings: dict[str, list[Indicator]],
    ) -> None:
        # 5. SSID imitating an allow-listed SSID it does not match
        if allowlist.is_empty or allowlist.is_trusted_ssid(members[0].ssid):
            return
        match = find_lookalike(members[0].ssid, allowlist.trusted_ssids)
        if match is None:
            return
        for m in members:
            findings[m.bssid].append(Indicator(
                kind=IndicatorKind.SSID_LOOKALIKE,
                severity=Severity.HIGH if match.is_exact_fold else Severity.MEDIUM,
                evidence={
                    'ssid': m.ssid,
                    'imitates': match.trusted_ssid,
                    'technique': match.technique,
                    'similarity': match.similarity,
                    'mixed_scripts': match.mixed_scripts,
                },
            ))


def _strongest_per_bssid(group: Iterable[Observation]) -> list[Observation]:
    """Collapse repeated sightings of a BSSID to the strongest one."""
    best: dict[str, Observation] = {}
    for obs in group:
        current = best.get(obs.bssid)
        if current is None or obs.normalized_signal > current.normalized_signal:
            best[obs.bssid] = obs
    return list(best.values())
