"""Tests for input validation and protocol/band reference data."""

import pytest

from data.wifi_security import band_from_frequency, parse_band, parse_protocol
from utils.validation import (
    normalize_bssid,
    normalize_ssid,
    validate_latitude,
    validate_longitude,
    validate_positive_int,
    validate_signal_strength,
)


class TestBssid:
    @pytest.mark.parametrize('raw', [
        'aa:bb:cc:dd:ee:ff',
        'AA-BB-CC-DD-EE-FF',
        'aabb.ccdd.eeff',
        'aabbccddeeff',
        ' AA:BB:CC:DD:EE:FF ',
    ])
    def test_repairable_forms(self, raw):
        assert normalize_bssid(raw) == 'AA:BB:CC:DD:EE:FF'

    @pytest.mark.parametrize('raw', [None, '', 'zz:zz', 'AA:BB:CC:DD:EE', 'AA:BB:CC:DD:EE:FF:00', 42])
    def test_unrepairable(self, raw):
        assert normalize_bssid(raw) is None


class TestSsid:
    def test_normalize(self):
        assert normalize_ssid('  GovWifi ') == 'govwifi'
        assert normalize_ssid('GOVWIFI') == normalize_ssid('govwifi')
        assert normalize_ssid(None) == ''

    def test_whitespace_only(self):
        assert normalize_ssid('   ') == ''


class TestNumbers:
    """Tests for numeric validators."""

    @pytest.mark.parametrize('raw,expected', [(70, 70), ('-55', -55), (-54.6, -55), (0, 0), (100, 100)])
    def test_signal_strength(self, raw, expected):
        assert validate_signal_strength(raw) == expected

    @pytest.mark.parametrize('raw', [None, 'loud', True, 101, -121])
    def test_bad_signal_strength(self, raw):
        with pytest.raises(ValueError):
            validate_signal_strength(raw)

    def test_coordinates(self):
        assert validate_latitude('51.5') == 51.5
        assert validate_longitude(-0.12) == -0.12
        with pytest.raises(ValueError):
            validate_latitude(91)
        with pytest.raises(ValueError):
            validate_longitude('east')

    def test_positive_int(self):
        assert validate_positive_int('10', 'limit', max_val=100) == 10
        with pytest.raises(ValueError):
            validate_positive_int(-1)
        with pytest.raises(ValueError):
            validate_positive_int(101, max_val=100)


class TestProtocols:
    """Tests for scanner security string parsing."""

    @pytest.mark.parametrize('raw,expected', [
        ('WPA2', 'WPA2'),
        ('wpa3', 'WPA3'),
        ('[WPA2-PSK-CCMP][ESS]', 'WPA2'),
        ('[WPA2-PSK-CCMP][RSN-SAE-CCMP][ESS]', 'WPA3'),
        ('WPA2/WPA3', 'WPA3'),
        ('[WPA-PSK-TKIP][ESS]', 'WPA'),
        ('[WEP][ESS]', 'WEP'),
        ('[ESS]', 'OPEN'),
        ('', 'OPEN'),
        (None, 'OPEN'),
        ('open', 'OPEN'),
    ])
    def test_parse(self, raw, expected):
        assert parse_protocol(raw) == expected

    def test_unrecognized(self):
        assert parse_protocol('[IBSS]') is None


class TestBands:
    @pytest.mark.parametrize('raw,expected', [
        ('2.4GHz', '2.4GHz'),
        ('5 GHz', '5GHz'),
        ('6', '6GHz'),
        (2437, '2.4GHz'),
        (5180, '5GHz'),
        ('5955', '6GHz'),
        (None, 'unknown'),
        ('60GHz', 'unknown'),
    ])
    def test_parse(self, raw, expected):
        assert parse_band(raw) == expected

    def test_frequency_gap(self):
        assert band_from_frequency(3000) == 'unknown'
