"""
Allow-list of government-attested access points.

The registry is replaced wholesale on every successful sync. Each version is
an immutable AllowListSnapshot; the store swaps the reference under a lock so
readers always see a complete list.
"""

from __future__ import annotations

import hashlib
import json
import logging
import math
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from utils.validation import (
    normalize_bssid,
    normalize_ssid,
    validate_latitude,
    validate_longitude,
)
from .models import utc_now

logger = logging.getLogger('twinguard.allowlist')


class AllowListError(ValueError):
    """Raised when an allow-list document is malformed or fails verification."""


class ChecksumMismatchError(AllowListError):
    """Raised when the document checksum does not match its entries."""


@dataclass(frozen=True)
class Geofence:
    """Circular area in which an access point is expected to be seen."""
    latitude: float
    longitude: float
    radius_m: float

    def contains(self, lat: float, lon: float) -> bool:
        return _haversine_distance(self.latitude, self.longitude, lat, lon) * 1000 <= self.radius_m

    def to_dict(self) -> dict:
        return {
            'latitude': self.latitude,
            'longitude': self.longitude,
            'radius_m': self.radius_m,
        }


@dataclass(frozen=True)
class AllowListEntry:
    """One government-attested access point."""
    bssid: str
    ssid: str
    version: str
    checksum: str
    geofence: Optional[Geofence] = None

    @property
    def normalized_ssid(self) -> str:
        return normalize_ssid(self.ssid)

    def to_dict(self) -> dict:
        return {
            'bssid': self.bssid,
            'ssid': self.ssid,
            'geofence': self.geofence.to_dict() if self.geofence else None,
        }


@dataclass(frozen=True)
class AllowListSnapshot:
    """An immutable, fully-indexed version of the allow-list."""

    version: str = ''
    checksum: str = ''
    entries: tuple[AllowListEntry, ...] = ()
    synced_at: Optional[datetime] = None
    _by_bssid: dict = field(default_factory=dict, repr=False, compare=False)
    _by_ssid: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def build(
        cls,
        version: str,
        checksum: str,
        entries: list[AllowListEntry],
        synced_at: datetime | None = None,
    ) -> AllowListSnapshot:
        by_bssid: dict[str, AllowListEntry] = {}
        by_ssid: dict[str, list[AllowListEntry]] = {}
        for entry in entries:
            by_bssid[entry.bssid] = entry
            by_ssid.setdefault(entry.normalized_ssid, []).append(entry)
        return cls(
            version=version,
            checksum=checksum,
            entries=tuple(entries),
            synced_at=synced_at,
            _by_bssid=by_bssid,
            _by_ssid=by_ssid,
        )

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def lookup(self, bssid: str | None, ssid: str | None) -> AllowListEntry | None:
        """Entry whose BSSID and SSID both match, else None."""
        if not bssid:
            return None
        entry = self._by_bssid.get(bssid)
        if entry and entry.normalized_ssid == normalize_ssid(ssid):
            return entry
        return None

    def bssids_for_ssid(self, ssid: str | None) -> set[str]:
        return {e.bssid for e in self._by_ssid.get(normalize_ssid(ssid), [])}

    def is_trusted_ssid(self, ssid: str | None) -> bool:
        return normalize_ssid(ssid) in self._by_ssid

    @property
    def trusted_ssids(self) -> list[str]:
        """One display name per allow-listed SSID."""
        return [entries[0].ssid for entries in self._by_ssid.values()]

    def geofence_match(
        self,
        ssid: str | None,
        lat: float | None,
        lon: float | None,
    ) -> bool:
        """True if an entry for this SSID has a geofence containing the location."""
        if lat is None or lon is None:
            return False
        return any(
            e.geofence is not None and e.geofence.contains(lat, lon)
            for e in self._by_ssid.get(normalize_ssid(ssid), [])
        )

    def to_document(self) -> dict:
        """Serialize back to the sync document format."""
        return {
            'version': self.version,
            'checksum': self.checksum,
            'entries': [e.to_dict() for e in self.entries],
        }


def compute_checksum(entries: list[dict]) -> str:
    """SHA-256 of the canonical JSON encoding of the raw entries."""
    canonical = json.dumps(entries, sort_keys=True, separators=(',', ':'), ensure_ascii=False)
    return hashlib.sha256(canonical.encode('utf-8')).hexdigest()


def _parse_geofence(raw: Any) -> Geofence | None:
    if not raw:
        return None
    if not isinstance(raw, dict):
        raise ValueError("geofence must be an object")
    radius = float(raw.get('radius_m', 0))
    if radius <= 0:
        raise ValueError(f"Invalid geofence radius: {raw.get('radius_m')}")
    return Geofence(
        latitude=validate_latitude(raw.get('latitude')),
        longitude=validate_longitude(raw.get('longitude')),
        radius_m=radius,
    )


def parse_document(document: Any, verify: bool = True) -> AllowListSnapshot:
    """
    Parse and verify an allow-list sync document.

    Entries with unusable BSSIDs or geofences are skipped individually.

    Args:
        document: Dict with version, checksum and entries
        verify: Verify the checksum against the entries

    Returns:
        A snapshot ready to be swapped in

    Raises:
        AllowListError: If the document structure is invalid
        ChecksumMismatchError: If the checksum does not match
    """
    if not isinstance(document, dict):
        raise AllowListError("Allow-list document must be an object")

    version = document.get('version')
    checksum = document.get('checksum')
    raw_entries = document.get('entries')
    if not isinstance(version, str) or not version:
        raise AllowListError("Allow-list document has no version")
    if not isinstance(checksum, str) or not checksum:
        raise AllowListError("Allow-list document has no checksum")
    if not isinstance(raw_entries, list):
        raise AllowListError("Allow-list entries must be a list")

    if verify:
        expected = compute_checksum(raw_entries)
        if expected.lower() != checksum.lower():
            raise ChecksumMismatchError(
                f"Checksum mismatch for allow-list {version}: expected {expected}, got {checksum}"
            )

    entries = []
    skipped = 0
    for raw in raw_entries:
        try:
            if not isinstance(raw, dict):
                raise ValueError("entry must be an object")
            bssid = normalize_bssid(raw.get('bssid'))
            if bssid is None:
                raise ValueError(f"invalid bssid {raw.get('bssid')!r}")
            ssid = str(raw.get('ssid') or '').strip()
            if not ssid:
                raise ValueError("missing ssid")
            entries.append(AllowListEntry(
                bssid=bssid,
                ssid=ssid,
                version=version,
                checksum=checksum,
                geofence=_parse_geofence(raw.get('geofence')),
            ))
        except (TypeError, ValueError) as e:
            skipped += 1
            logger.warning(f"Skipping allow-list entry {raw!r}: {e}")

    if skipped:
        logger.info(f"Allow-list {version}: {len(entries)} entries, {skipped} skipped")

    return AllowListSnapshot.build(version, checksum, entries, synced_at=utc_now())


class AllowListStore:
    """Holds the current allow-list snapshot and swaps it atomically."""

    def __init__(self, snapshot: AllowListSnapshot | None = None):
        self._snapshot = snapshot or AllowListSnapshot()
        self._lock = threading.Lock()
        self._available = snapshot is not None and not snapshot.is_empty

    def snapshot(self) -> AllowListSnapshot:
        """Current snapshot; callers keep this reference for a whole cycle."""
        with self._lock:
            return self._snapshot

    @property
    def is_available(self) -> bool:
        """True once any verified list has been loaded."""
        with self._lock:
            return self._available

    @property
    def version(self) -> str:
        return self.snapshot().version

    def replace(self, snapshot: AllowListSnapshot) -> None:
        """Swap in a new, already verified snapshot."""
        with self._lock:
            self._snapshot = snapshot
            self._available = True
        logger.info(f"Allow-list swapped to version {snapshot.version} ({len(snapshot.entries)} entries)")

    def load_document(self, document: dict, synced_at: datetime | None = None) -> AllowListSnapshot:
        """
        Verify a document and swap it in.

        Raises:
            AllowListError: If the document is malformed or fails verification
        """
        snapshot = parse_document(document)
        if synced_at is not None:
            snapshot = AllowListSnapshot.build(
                snapshot.version, snapshot.checksum, list(snapshot.entries), synced_at=synced_at
            )
        self.replace(snapshot)
        return snapshot

    def lookup(self, bssid: str | None, ssid: str | None) -> AllowListEntry | None:
        return self.snapshot().lookup(bssid, ssid)

    def is_stale(self, max_age: timedelta, now: datetime | None = None) -> bool:
        """True if never synced or the last sync is older than max_age."""
        snapshot = self.snapshot()
        if snapshot.synced_at is None:
            return True
        now = now or utc_now()
        return now - snapshot.synced_at > max_age

    def status(self, max_age: timedelta) -> dict:
        snapshot = self.snapshot()
        return {
            'available': self.is_available,
            'version': snapshot.version or None,
            'checksum': snapshot.checksum or None,
            'entry_count': len(snapshot.entries),
            'synced_at': snapshot.synced_at.isoformat() if snapshot.synced_at else None,
            'stale': self.is_stale(max_age),
        }


def _haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two coordinates using Haversine formula.

    Returns:
        Distance in kilometers
    """
    R = 6371  # Earth radius in km

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c
