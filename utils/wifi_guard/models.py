"""
Data models for the network assessment engine.

Observations come from the scanner, assessments are recomputed every scan
cycle, and NetworkRecord is the persisted per-network state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from data.wifi_security import get_protocol_info, parse_band, parse_protocol
from utils.constants import (
    SIGNAL_DBM_CEILING,
    SIGNAL_DBM_FLOOR,
    SIGNAL_EXCELLENT_MIN,
    SIGNAL_FAIR_MIN,
    SIGNAL_GOOD_MIN,
    SIGNAL_PERCENT_MAX,
    SIGNAL_PERCENT_MIN,
)
from utils.validation import (
    normalize_ssid,
    validate_latitude,
    validate_longitude,
    validate_signal_strength,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    if value is None or value == '':
        return utc_now()
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, (int, float)):
        ts = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        ts = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class SecurityProtocol(Enum):
    """Advertised security protocol, weakest first."""
    OPEN = 'open'
    WEP = 'WEP'
    WPA = 'WPA'
    WPA2 = 'WPA2'
    WPA3 = 'WPA3'

    @property
    def rank(self) -> int:
        return get_protocol_info(self.name)['rank']

    @classmethod
    def parse(cls, value: Any) -> SecurityProtocol:
        if isinstance(value, cls):
            return value
        name = parse_protocol(value)
        if name is None:
            raise ValueError(f"Unknown security protocol: {value}")
        return cls[name]


class FrequencyBand(Enum):
    BAND_2_4_GHZ = '2.4GHz'
    BAND_5_GHZ = '5GHz'
    BAND_6_GHZ = '6GHz'
    UNKNOWN = 'unknown'

    @classmethod
    def parse(cls, value: Any) -> FrequencyBand:
        if isinstance(value, cls):
            return value
        return cls(parse_band(value))


class SignalQuality(Enum):
    EXCELLENT = 'excellent'
    GOOD = 'good'
    FAIR = 'fair'
    POOR = 'poor'


class NetworkStatus(Enum):
    """Per-network trust classification."""
    UNKNOWN = 'unknown'
    VERIFIED = 'verified'
    TRUSTED = 'trusted'
    SUSPICIOUS = 'suspicious'
    FLAGGED = 'flagged'
    BLOCKED = 'blocked'


class ThreatLevel(Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    CRITICAL = 'critical'


class Severity(Enum):
    """Indicator severity levels."""
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    CRITICAL = 'critical'

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


class IndicatorKind(Enum):
    """Named findings attached to an assessment."""
    DUPLICATE_SSID_UNTRUSTED_BSSID = 'duplicate_ssid_untrusted_bssid'
    DUPLICATE_SSID_NO_WHITELIST_MATCH = 'duplicate_ssid_no_whitelist_match'
    SECURITY_DOWNGRADE = 'security_downgrade'
    SHARED_VENDOR_OUI = 'shared_vendor_oui'
    SIGNAL_ANOMALY = 'signal_anomaly'
    SSID_LOOKALIKE = 'ssid_lookalike'
    SUSPICIOUS_VENDOR = 'suspicious_vendor'


@dataclass(frozen=True)
class Indicator:
    """A single finding with its severity and supporting evidence."""
    kind: IndicatorKind
    severity: Severity
    evidence: dict = field(default_factory=dict, compare=False, hash=False)

    @property
    def name(self) -> str:
        return self.kind.value

    def to_dict(self) -> dict:
        return {
            'kind': self.kind.value,
            'severity': self.severity.value,
            'evidence': self.evidence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Indicator:
        return cls(
            kind=IndicatorKind(data['kind']),
            severity=Severity(data['severity']),
            evidence=dict(data.get('evidence') or {}),
        )


def normalize_signal(raw: int) -> int:
    """
    Normalize a signal reading to 0-100.

    Negative readings are dBm and mapped linearly between SIGNAL_DBM_FLOOR
    and SIGNAL_DBM_CEILING; anything else is already a percentage.
    """
    if raw < 0:
        span = SIGNAL_DBM_CEILING - SIGNAL_DBM_FLOOR
        percent = round((raw - SIGNAL_DBM_FLOOR) * 100 / span)
    else:
        percent = raw
    return max(SIGNAL_PERCENT_MIN, min(SIGNAL_PERCENT_MAX, percent))


def classify_signal(percent: int) -> SignalQuality:
    if percent >= SIGNAL_EXCELLENT_MIN:
        return SignalQuality.EXCELLENT
    if percent >= SIGNAL_GOOD_MIN:
        return SignalQuality.GOOD
    if percent >= SIGNAL_FAIR_MIN:
        return SignalQuality.FAIR
    return SignalQuality.POOR


@dataclass(frozen=True)
class Observation:
    """One scan sighting of one access point."""

    ssid: str
    bssid: Optional[str]
    signal_strength: int
    security_protocol: SecurityProtocol
    frequency_band: FrequencyBand = FrequencyBand.UNKNOWN
    timestamp: datetime = field(default_factory=utc_now)
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def is_hidden(self) -> bool:
        return not self.ssid or self.ssid.strip() == ''

    @property
    def normalized_ssid(self) -> str:
        return normalize_ssid(self.ssid)

    @property
    def record_key(self) -> str:
        """Store key: BSSID, or normalized SSID when the BSSID is unavailable."""
        if self.bssid:
            return self.bssid
        return f"ssid:{self.normalized_ssid}"

    @property
    def normalized_signal(self) -> int:
        return normalize_signal(self.signal_strength)

    @property
    def signal_quality(self) -> SignalQuality:
        return classify_signal(self.normalized_signal)

    @property
    def oui(self) -> Optional[str]:
        """First three octets of the BSSID."""
        if not self.bssid:
            return None
        return self.bssid[:8]

    def to_dict(self) -> dict:
        return {
            'ssid': self.ssid,
            'bssid': self.bssid,
            'signal_strength': self.signal_strength,
            'security_protocol': self.security_protocol.value,
            'frequency_band': self.frequency_band.value,
            'timestamp': self.timestamp.isoformat(),
            'latitude': self.latitude,
            'longitude': self.longitude,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Observation:
        """
        Build an observation from a scanner record.

        The BSSID is kept as supplied; scoring normalizes or rejects it.

        Raises:
            ValueError: If signal, protocol, timestamp or location are invalid
        """
        if not isinstance(data, dict):
            raise ValueError("Observation must be an object")

        lat = data.get('latitude')
        lon = data.get('longitude')
        try:
            timestamp = _parse_timestamp(data.get('timestamp'))
        except (TypeError, ValueError, OverflowError, OSError) as e:
            raise ValueError(f"Invalid timestamp: {data.get('timestamp')}") from e

        bssid = data.get('bssid')
        return cls(
            ssid=str(data.get('ssid') or ''),
            bssid=str(bssid) if bssid else None,
            signal_strength=validate_signal_strength(data.get('signal_strength', 0)),
            security_protocol=SecurityProtocol.parse(data.get('security_protocol')),
            frequency_band=FrequencyBand.parse(data.get('frequency_band')),
            timestamp=timestamp,
            latitude=validate_latitude(lat) if lat is not None else None,
            longitude=validate_longitude(lon) if lon is not None else None,
        )


@dataclass
class ScoringResult:
    """Output of the scoring engine for one observation."""
    score: int
    indicators: list[Indicator] = field(default_factory=list)
    allowlist_hit: bool = False
    allowlist_available: bool = True
    signal_quality: Optional[SignalQuality] = None
    observation: Optional[Observation] = None


@dataclass
class SecurityAssessment:
    """Per-cycle security verdict for one observed network."""

    score: int
    grade: str
    threat_level: ThreatLevel
    confidence: float
    indicators: list[Indicator] = field(default_factory=list)
    allowlist_hit: bool = False
    assessed_at: datetime = field(default_factory=utc_now)

    @property
    def indicator_names(self) -> list[str]:
        return [i.name for i in self.indicators]

    def to_dict(self) -> dict:
        return {
            'score': self.score,
            'grade': self.grade,
            'threat_level': self.threat_level.value,
            'confidence': round(self.confidence, 2),
            'indicators': [i.to_dict() for i in self.indicators],
            'allowlist_hit': self.allowlist_hit,
            'assessed_at': self.assessed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> SecurityAssessment:
        return cls(
            score=int(data['score']),
            grade=str(data['grade']),
            threat_level=ThreatLevel(data['threat_level']),
            confidence=float(data['confidence']),
            indicators=[Indicator.from_dict(i) for i in data.get('indicators', [])],
            allowlist_hit=bool(data.get('allowlist_hit', False)),
            assessed_at=_parse_timestamp(data.get('assessed_at')),
        )


@dataclass
class NetworkRecord:
    """Authoritative, persisted state of one network."""

    key: str
    bssid: Optional[str] = None
    ssid: str = ''
    current_status: NetworkStatus = NetworkStatus.UNKNOWN
    original_status: Optional[NetworkStatus] = None
    is_user_managed: bool = False
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    last_assessment: Optional[SecurityAssessment] = None
    action_timestamp: Optional[datetime] = None

    @property
    def is_blocked(self) -> bool:
        return self.current_status is NetworkStatus.BLOCKED

    def to_export_dict(self) -> dict:
        """Status snapshot for presentation layers and alert sinks."""
        assessment = self.last_assessment
        return {
            'bssid': self.bssid,
            'ssid': self.ssid,
            'current_status': self.current_status.value,
            'grade': assessment.grade if assessment else None,
            'threat_level': assessment.threat_level.value if assessment else None,
            'indicators': assessment.indicator_names if assessment else [],
            'last_seen': _format_timestamp(self.last_seen),
        }

    def to_dict(self) -> dict:
        return {
            'key': self.key,
            'bssid': self.bssid,
            'ssid': self.ssid,
            'current_status': self.current_status.value,
            'original_status': self.original_status.value if self.original_status else None,
            'is_user_managed': self.is_user_managed,
            'first_seen': _format_timestamp(self.first_seen),
            'last_seen': _format_timestamp(self.last_seen),
            'last_assessment': self.last_assessment.to_dict() if self.last_assessment else None,
            'action_timestamp': _format_timestamp(self.action_timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict) -> NetworkRecord:
        """
        Rebuild a record from to_dict() output.

        Raises:
            ValueError: On unknown statuses or unparseable timestamps
            KeyError: If the key is missing
        """
        original = data.get('original_status')
        assessment = data.get('last_assessment')
        return cls(
            key=str(data['key']),
            bssid=data.get('bssid'),
            ssid=str(data.get('ssid') or ''),
            current_status=NetworkStatus(data.get('current_status', 'unknown')),
            original_status=NetworkStatus(original) if original else None,
            is_user_managed=bool(data.get('is_user_managed', False)),
            first_seen=_parse_timestamp(data['first_seen']) if data.get('first_seen') else None,
            last_seen=_parse_timestamp(data['last_seen']) if data.get('last_seen') else None,
            last_assessment=SecurityAssessment.from_dict(assessment) if assessment else None,
            action_timestamp=(
                _parse_timestamp(data['action_timestamp']) if data.get('action_timestamp') else None
            ),
        )
