"""
WiFi security protocol and frequency band reference data.

Protocol rank orders protocols from weakest to strongest and is what the
downgrade check compares.
"""

from __future__ import annotations

import re

PROTOCOL_TYPES = {
    'OPEN': {'name': 'Open (no encryption)', 'rank': 0, 'strength': 'NONE', 'warning': True},
    'WEP': {'name': 'WEP (Broken)', 'rank': 1, 'strength': 'BROKEN', 'warning': True},
    'WPA': {'name': 'WPA (TKIP)', 'rank': 2, 'strength': 'WEAK', 'warning': True},
    'WPA2': {'name': 'WPA2 (CCMP)', 'rank': 3, 'strength': 'STRONG', 'warning': False},
    'WPA3': {'name': 'WPA3 (SAE)', 'rank': 4, 'strength': 'STRONG', 'warning': False},
}

# Scanner capability strings look like "[WPA2-PSK-CCMP][ESS]" or "WPA2/WPA3".
# The strongest advertised protocol wins.
_PROTOCOL_PATTERNS = [
    ('WPA3', re.compile(r'WPA3|SAE|OWE', re.IGNORECASE)),
    ('WPA2', re.compile(r'WPA2|RSN', re.IGNORECASE)),
    ('WPA', re.compile(r'WPA', re.IGNORECASE)),
    ('WEP', re.compile(r'WEP', re.IGNORECASE)),
]

_OPEN_ALIASES = {'', 'OPEN', 'NONE', 'ESS', '[ESS]', 'NO ENCRYPTION'}

BAND_FREQUENCY_RANGES_MHZ = {
    '2.4GHz': (2400, 2500),
    '5GHz': (4900, 5900),
    '6GHz': (5925, 7125),
}


def get_protocol_info(protocol: str) -> dict | None:
    """Get protocol information by canonical name."""
    return PROTOCOL_TYPES.get(protocol.upper())


def parse_protocol(value: str | None) -> str | None:
    """
    Resolve a scanner security string to a canonical protocol name.

    Returns:
        One of the PROTOCOL_TYPES keys, or None if the string is unrecognized
    """
    if value is None:
        return 'OPEN'
    text = str(value).strip()
    if text.upper() in _OPEN_ALIASES:
        return 'OPEN'
    if text.upper() in PROTOCOL_TYPES:
        return text.upper()
    for name, pattern in _PROTOCOL_PATTERNS:
        if pattern.search(text):
            return name
    return None


def band_from_frequency(freq_mhz: float) -> str:
    """Get band label from a channel center frequency."""
    for band, (low, high) in BAND_FREQUENCY_RANGES_MHZ.items():
        if low <= freq_mhz <= high:
            return band
    return 'unknown'


def parse_band(value: str | int | float | None) -> str:
    """
    Resolve a scanner band value to a band label.

    Accepts labels such as "5GHz", "5 GHz", "5", "2.4" or a frequency in MHz.
    """
    if value is None:
        return 'unknown'
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value > 1000:
            return band_from_frequency(float(value))
        value = str(value)

    text = str(value).strip().upper().replace(' ', '').replace('GHZ', '')
    if text in ('2.4', '2'):
        return '2.4GHz'
    if text == '5':
        return '5GHz'
    if text == '6':
        return '6GHz'
    try:
        freq = float(text)
    except ValueError:
        return 'unknown'
    return band_from_frequency(freq) if freq > 1000 else 'unknown'
