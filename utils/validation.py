"""Input validation utilities for observations and API endpoints."""

from __future__ import annotations

import re
from typing import Any

_HEX_DIGITS = re.compile(r'^[0-9A-F]{12}$')
_BSSID_SEPARATORS = re.compile(r'[:\-.\s]')


def validate_latitude(lat: Any) -> float:
    """Validate and return latitude value."""
    try:
        lat_float = float(lat)
        if not -90 <= lat_float <= 90:
            raise ValueError(f"Latitude must be between -90 and 90, got {lat_float}")
        return lat_float
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid latitude: {lat}") from e


def validate_longitude(lon: Any) -> float:
    """Validate and return longitude value."""
    try:
        lon_float = float(lon)
        if not -180 <= lon_float <= 180:
            raise ValueError(f"Longitude must be between -180 and 180, got {lon_float}")
        return lon_float
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid longitude: {lon}") from e


def normalize_bssid(bssid: Any) -> str | None:
    """
    Normalize a BSSID to canonical upper-case colon-hex form.

    Accepts colon, dash, dot (Cisco) or unseparated notation.

    Returns:
        Canonical BSSID (e.g. 'AA:BB:CC:DD:EE:FF') or None if it can't be
        repaired
    """
    if not bssid or not isinstance(bssid, str):
        return None
    digits = _BSSID_SEPARATORS.sub('', bssid.strip()).upper()
    if not _HEX_DIGITS.match(digits):
        return None
    return ':'.join(digits[i:i + 2] for i in range(0, 12, 2))


def normalize_ssid(ssid: str | None) -> str:
    """Case-fold and trim an SSID for grouping and lookups."""
    if not ssid:
        return ''
    return str(ssid).strip().casefold()


def validate_signal_strength(signal: Any) -> int:
    """Validate a raw signal reading (0-100 percent or negative dBm)."""
    if isinstance(signal, bool):
        raise ValueError(f"Invalid signal strength: {signal}")
    try:
        signal_int = int(round(float(signal)))
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid signal strength: {signal}") from e
    if not -120 <= signal_int <= 100:
        raise ValueError(f"Signal strength must be between -120 dBm and 100%, got {signal_int}")
    return signal_int


def validate_positive_int(value: Any, name: str = 'value', max_val: int | None = None) -> int:
    """Validate and return a positive integer."""
    try:
        val_int = int(value)
        if val_int < 0:
            raise ValueError(f"{name} must be positive, got {val_int}")
        if max_val is not None and val_int > max_val:
            raise ValueError(f"{name} must be <= {max_val}, got {val_int}")
        return val_int
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid {name}: {value}") from e
