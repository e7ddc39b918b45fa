"""Tests for SSID impersonation matching."""

import pytest

from utils.wifi_guard.lookalike import (
    TECHNIQUE_EDIT_DISTANCE,
    TECHNIQUE_HOMOGLYPH,
    TECHNIQUE_INVISIBLE,
    TECHNIQUE_SUBSTITUTION,
    find_lookalike,
    fold,
    has_mixed_scripts,
    levenshtein_distance,
    similarity,
)

TRUSTED = ['GovWifi', 'CityLibrary', 'TfL']


class TestFold:
    @pytest.mark.parametrize('raw', [
        'GovWifi',
        'G0VW1F1',
        'Gov-Wifi',
        'Gov Wifi',
        'GovW\u0456fi',
        'Gov\u200bWifi',
        '\uff27\uff4f\uff56Wifi',
    ])
    def test_variants_fold_together(self, raw):
        assert fold(raw) == 'govwifi'

    def test_empty(self):
        assert fold(None) == ''
        assert fold('') == ''


class TestDistance:
    def test_levenshtein(self):
        assert levenshtein_distance('kitten', 'sitting') == 3
        assert levenshtein_distance('', 'abc') == 3
        assert levenshtein_distance('same', 'same') == 0

    def test_similarity(self):
        assert similarity('govwifi', 'govwifi') == 1.0
        assert similarity('govwifi2', 'govwifi') == 0.875
        assert similarity('', '') == 0.0

    def test_mixed_scripts(self):
        assert has_mixed_scripts('GovW\u0456fi')
        assert not has_mixed_scripts('GovWifi')
        assert not has_mixed_scripts('\u0413\u043e\u0432')


class TestFindLookalike:
    """Tests for find_lookalike."""

    def test_exact_trusted_match_is_not_a_lookalike(self):
        assert find_lookalike('govwifi', TRUSTED) is None

    @pytest.mark.parametrize('ssid,technique', [
        ('G0vWifi', TECHNIQUE_SUBSTITUTION),
        ('GovW\u0456fi', TECHNIQUE_HOMOGLYPH),
        ('GovWifi\u200b', TECHNIQUE_INVISIBLE),
    ])
    def test_technique(self, ssid, technique):
        match = find_lookalike(ssid, TRUSTED)
        assert match.trusted_ssid == 'GovWifi'
        assert match.technique == technique
        assert match.is_exact_fold

    def test_edit_distance(self):
        match = find_lookalike('CityLibrarv', TRUSTED)
        assert match.trusted_ssid == 'CityLibrary'
        assert match.technique == TECHNIQUE_EDIT_DISTANCE
        assert match.similarity == 0.91
        assert not match.is_exact_fold

    def test_below_threshold(self):
        assert find_lookalike('GovNet', TRUSTED) is None
        assert find_lookalike('CityLibrarv', TRUSTED, min_similarity=0.95) is None

    def test_short_names_need_folding(self):
        """Three-letter names are too short for edit distance alone."""
        assert find_lookalike('TfX', TRUSTED) is None
        assert find_lookalike('Tf1', TRUSTED).trusted_ssid == 'TfL'

    def test_empty_inputs(self):
        assert find_lookalike('', TRUSTED) is None
        assert find_lookalike('G0vWifi', []) is None
