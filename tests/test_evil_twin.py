"""Tests for cross-BSSID evil twin detection."""

import pytest

from utils.wifi_guard.allowlist import AllowListSnapshot, parse_document
from utils.wifi_guard.evil_twin import EvilTwinDetector, proximity_severity
from utils.wifi_guard.models import IndicatorKind, Severity

TRUSTED = 'AA:BB:CC:00:00:01'
ROGUE = 'AA:BB:CC:00:00:02'
OTHER_VENDOR = '11:22:33:00:00:03'


@pytest.fixture
def detector():
    return EvilTwinDetector()


def kinds(indicators):
    return [i.kind for i in indicators]


class TestUntrustedDuplicate:
    """Tests for allow-listed SSIDs seen at other BSSIDs."""

    def test_symmetry(self, detector, make_observation, allowlist_snapshot):
        """The non-allow-listed duplicate is tagged and the allow-listed one is not."""
        batch = [
            make_observation(bssid=TRUSTED, ssid='GovWifi'),
            make_observation(bssid=ROGUE, ssid='GovWifi'),
        ]
        findings = detector.detect(batch, allowlist_snapshot)

        assert IndicatorKind.DUPLICATE_SSID_UNTRUSTED_BSSID in kinds(findings[ROGUE])
        assert TRUSTED not in findings

    def test_severity_follows_signal(self, detector, make_observation, allowlist_snapshot):
        for signal, expected in ((90, Severity.HIGH), (50, Severity.MEDIUM), (20, Severity.LOW)):
            batch = [
                make_observation(bssid=TRUSTED),
                make_observation(bssid=OTHER_VENDOR, signal=signal),
            ]
            findings = detector.detect(batch, allowlist_snapshot)
            untrusted = [i for i in findings[OTHER_VENDOR]
                         if i.kind is IndicatorKind.DUPLICATE_SSID_UNTRUSTED_BSSID]
            assert untrusted[0].severity is expected

    def test_dbm_signal_severity(self):
        assert proximity_severity(70) is Severity.HIGH
        assert proximity_severity(69) is Severity.MEDIUM
        assert proximity_severity(39) is Severity.LOW

    def test_grouping_ignores_case_and_whitespace(self, detector, make_observation, allowlist_snapshot):
        batch = [
            make_observation(bssid=TRUSTED, ssid='GovWifi'),
            make_observation(bssid=OTHER_VENDOR, ssid=' GOVWIFI '),
        ]
        findings = detector.detect(batch, allowlist_snapshot)
        assert IndicatorKind.DUPLICATE_SSID_UNTRUSTED_BSSID in kinds(findings[OTHER_VENDOR])

    def test_trusted_absent_from_batch(self, detector, make_observation, allowlist_snapshot):
        """Two unknown BSSIDs of an allow-listed SSID are both untrusted and unanchored."""
        batch = [
            make_observation(bssid=ROGUE),
            make_observation(bssid=OTHER_VENDOR),
        ]
        findings = detector.detect(batch, allowlist_snapshot)
        for bssid in (ROGUE, OTHER_VENDOR):
            assert IndicatorKind.DUPLICATE_SSID_UNTRUSTED_BSSID in kinds(findings[bssid])
            assert IndicatorKind.DUPLICATE_SSID_NO_WHITELIST_MATCH in kinds(findings[bssid])

    def test_ssid_with_several_trusted_bssids(self, detector, make_observation, make_document):
        """Multi-AP deployments are not second-guessed by the single-BSSID rule."""
        snapshot = parse_document(make_document([
            {'bssid': '10:00:00:00:00:01', 'ssid': 'Mall'},
            {'bssid': '20:00:00:00:00:02', 'ssid': 'Mall'},
        ]))
        batch = [
            make_observation(ssid='Mall', bssid='10:00:00:00:00:01'),
            make_observation(ssid='Mall', bssid='20:00:00:00:00:02'),
            make_observation(ssid='Mall', bssid='30:00:00:00:00:03', signal=90),
        ]
        findings = detector.detect(batch, snapshot)
        assert findings == {}

    def test_single_trusted_bssid_present_of_several(self, detector, make_observation, make_document):
        snapshot = parse_document(make_document([
            {'bssid': '10:00:00:00:00:01', 'ssid': 'Mall'},
            {'bssid': '20:00:00:00:00:02', 'ssid': 'Mall'},
        ]))
        batch = [
            make_observation(ssid='Mall', bssid='10:00:00:00:00:01'),
            make_observation(ssid='Mall', bssid='30:00:00:00:00:03', signal=90),
        ]
        findings = detector.detect(batch, snapshot)
        assert '30:00:00:00:00:03' not in findings


class TestNoWhitelistMatch:
    """Tests for duplicate SSIDs with no allow-list anchor."""

    def test_all_members_medium(self, detector, make_observation):
        batch = [
            make_observation(ssid='CoffeeShop', bssid='10:00:00:00:00:01'),
            make_observation(ssid='CoffeeShop', bssid='20:00:00:00:00:02'),
        ]
        findings = detector.detect(batch, AllowListSnapshot())

        assert set(findings) == {'10:00:00:00:00:01', '20:00:00:00:00:02'}
        for indicators in findings.values():
            assert kinds(indicators) == [IndicatorKind.DUPLICATE_SSID_NO_WHITELIST_MATCH]
            assert indicators[0].severity is Severity.MEDIUM

    def test_single_bssid_not_a_group(self, detector, make_observation):
        batch = [make_observation(ssid='Solo', bssid='10:00:00:00:00:01')]
        assert detector.detect(batch, AllowListSnapshot()) == {}

    def test_repeated_sighting_not_a_duplicate(self, detector, make_observation):
        batch = [
            make_observation(ssid='Solo', bssid='10:00:00:00:00:01', signal=40),
            make_observation(ssid='Solo', bssid='10:00:00:00:00:01', signal=60),
        ]
        assert detector.detect(batch, AllowListSnapshot()) == {}

    def test_hidden_ssids_ignored(self, detector, make_observation):
        batch = [
            make_observation(ssid='', bssid='10:00:00:00:00:01', protocol='WPA2'),
            make_observation(ssid='  ', bssid='20:00:00:00:00:02', protocol='open'),
        ]
        assert detector.detect(batch, AllowListSnapshot()) == {}


class TestDowngrade:
    """Tests for the security downgrade check."""

    def test_weaker_member_tagged(self, detector, make_observation):
        batch = [
            make_observation(ssid='Library', bssid='10:00:00:00:00:01', protocol='WPA2'),
            make_observation(ssid='Library', bssid='20:00:00:00:00:02', protocol='open'),
        ]
        findings = detector.detect(batch, AllowListSnapshot())

        downgrade = [i for i in findings['20:00:00:00:00:02'] if i.kind is IndicatorKind.SECURITY_DOWNGRADE]
        assert downgrade[0].severity is Severity.HIGH
        assert downgrade[0].evidence['stronger_protocol'] == 'WPA2'
        assert IndicatorKind.SECURITY_DOWNGRADE not in kinds(findings['10:00:00:00:00:01'])

    def test_equal_protocols_not_downgrade(self, detector, make_observation):
        batch = [
            make_observation(ssid='Library', bssid='10:00:00:00:00:01', protocol='WPA2'),
            make_observation(ssid='Library', bssid='20:00:00:00:00:02', protocol='WPA2'),
        ]
        findings = detector.detect(batch, AllowListSnapshot())
        for indicators in findings.values():
            assert IndicatorKind.SECURITY_DOWNGRADE not in kinds(indicators)

    def test_every_weaker_member_tagged(self, detector, make_observation):
        batch = [
            make_observation(ssid='Mall', bssid='10:00:00:00:00:01', protocol='WPA3'),
            make_observation(ssid='Mall', bssid='20:00:00:00:00:02', protocol='WPA2'),
            make_observation(ssid='Mall', bssid='30:00:00:00:00:03', protocol='WEP'),
        ]
        findings = detector.detect(batch, AllowListSnapshot())
        assert IndicatorKind.SECURITY_DOWNGRADE in kinds(findings['20:00:00:00:00:02'])
        assert IndicatorKind.SECURITY_DOWNGRADE in kinds(findings['30:00:00:00:00:03'])
        assert IndicatorKind.SECURITY_DOWNGRADE not in kinds(findings['10:00:00:00:00:01'])


class TestSharedVendor:
    """Tests for the OUI heuristic."""

    def test_oui_sibling_of_trusted_bssid(self, detector, make_observation, allowlist_snapshot):
        batch = [
            make_observation(bssid=TRUSTED),
            make_observation(bssid=ROGUE, signal=20),
        ]
        findings = detector.detect(batch, allowlist_snapshot)

        shared = [i for i in findings[ROGUE] if i.kind is IndicatorKind.SHARED_VENDOR_OUI]
        assert shared[0].severity is Severity.LOW
        assert shared[0].evidence == {'oui': 'AA:BB:CC', 'trusted_bssid': TRUSTED}

    def test_oui_alone_never_above_medium(self, detector, make_observation, allowlist_snapshot):
        batch = [
            make_observation(bssid=TRUSTED),
            make_observation(bssid=ROGUE, signal=10),
        ]
        findings = detector.detect(batch, allowlist_snapshot)
        shared = [i for i in findings[ROGUE] if i.kind is IndicatorKind.SHARED_VENDOR_OUI]
        assert shared[0].severity.rank <= Severity.MEDIUM.rank

    def test_different_vendor_no_oui_finding(self, detector, make_observation, allowlist_snapshot):
        batch = [
            make_observation(bssid=TRUSTED),
            make_observation(bssid=OTHER_VENDOR),
        ]
        findings = detector.detect(batch, allowlist_snapshot)
        assert IndicatorKind.SHARED_VENDOR_OUI not in kinds(findings[OTHER_VENDOR])


class TestMultipleIndicators:
    """All indicators retained; severity is the maximum."""

    def test_govwifi_rogue(self, detector, make_observation, allowlist_snapshot):
        batch = [
            make_observation(bssid=TRUSTED, protocol='WPA2', signal=70),
            make_observation(bssid=ROGUE, protocol='open', signal=95),
        ]
        findings = detector.detect(batch, allowlist_snapshot)

        rogue = findings[ROGUE]
        assert kinds(rogue) == [
            IndicatorKind.DUPLICATE_SSID_UNTRUSTED_BSSID,
            IndicatorKind.SECURITY_DOWNGRADE,
            IndicatorKind.SHARED_VENDOR_OUI,
        ]
        assert max(i.severity.rank for i in rogue) == Severity.HIGH.rank
        assert TRUSTED not in findings

    def test_large_batch(self, detector, make_observation):
        batch = [
            make_observation(ssid=f'Net{i % 50}', bssid=f'10:00:00:00:{i // 256:02X}:{i % 256:02X}')
            for i in range(300)
        ]
        findings = detector.detect(batch, AllowListSnapshot())
        assert len(findings) == 300


class TestLookalike:
    """Tests for SSIDs imitating an allow-listed SSID."""

    def lookalike(self, findings, bssid):
        return [i for i in findings.get(bssid, []) if i.kind is IndicatorKind.SSID_LOOKALIKE]

    @pytest.mark.parametrize('ssid,technique', [
        ('G0vWifi', 'substitution'),
        ('Gov_Wifi', 'substitution'),
        ('GovW\u0456fi', 'homoglyph'),
        ('GovWifi\u200b', 'invisible_characters'),
    ])
    def test_folded_imitation_is_high(self, detector, make_observation, allowlist_snapshot, ssid, technique):
        findings = detector.detect([make_observation(ssid=ssid, bssid=OTHER_VENDOR)], allowlist_snapshot)
        found = self.lookalike(findings, OTHER_VENDOR)
        assert found[0].severity is Severity.HIGH
        assert found[0].evidence['imitates'] == 'GovWifi'
        assert found[0].evidence['technique'] == technique
        assert found[0].evidence['similarity'] == 1.0

    def test_homoglyph_reports_mixed_scripts(self, detector, make_observation, allowlist_snapshot):
        findings = detector.detect([make_observation(ssid='GovW\u0456fi', bssid=OTHER_VENDOR)], allowlist_snapshot)
        assert self.lookalike(findings, OTHER_VENDOR)[0].evidence['mixed_scripts'] is True

    def test_near_miss_is_medium(self, detector, make_observation, allowlist_snapshot):
        findings = detector.detect([make_observation(ssid='GovWifi2', bssid=OTHER_VENDOR)], allowlist_snapshot)
        found = self.lookalike(findings, OTHER_VENDOR)
        assert found[0].severity is Severity.MEDIUM
        assert found[0].evidence['technique'] == 'edit_distance'

    def test_every_broadcaster_tagged(self, detector, make_observation, allowlist_snapshot):
        batch = [
            make_observation(ssid='G0vWifi', bssid=ROGUE),
            make_observation(ssid='G0vWifi', bssid=OTHER_VENDOR),
        ]
        findings = detector.detect(batch, allowlist_snapshot)
        assert self.lookalike(findings, ROGUE)
        assert self.lookalike(findings, OTHER_VENDOR)

    def test_trusted_ssid_not_a_lookalike(self, detector, make_observation, allowlist_snapshot):
        findings = detector.detect([make_observation(ssid=' govwifi ', bssid=OTHER_VENDOR)], allowlist_snapshot)
        assert findings == {}

    def test_unrelated_ssid(self, detector, make_observation, allowlist_snapshot):
        findings = detector.detect([make_observation(ssid='CoffeeShop', bssid=OTHER_VENDOR)], allowlist_snapshot)
        assert findings == {}

    def test_empty_allowlist(self, detector, make_observation):
        findings = detector.detect([make_observation(ssid='G0vWifi', bssid=OTHER_VENDOR)], AllowListSnapshot())
        assert findings == {}
