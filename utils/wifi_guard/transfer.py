"""
Bulk export/import of user-managed records for backup and device transfer.

Document format:
    {
        "format_version": 1,
        "exported_at": "<iso timestamp>",
        "trusted": [{"bssid", "ssid", "original_status", "action_timestamp"}],
        "flagged": [...],
        "blocked": [...]
    }
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from utils.validation import normalize_bssid, normalize_ssid
from .models import NetworkRecord, NetworkStatus, _parse_timestamp, utc_now
from .status import StatusStateMachine, apply_override

logger = logging.getLogger('twinguard.transfer')

FORMAT_VERSION = 1

CATEGORIES = {
    'trusted': NetworkStatus.TRUSTED,
    'flagged': NetworkStatus.FLAGGED,
    'blocked': NetworkStatus.BLOCKED,
}


@dataclass
class ImportResult:
    imported: int = 0
    unchanged: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def rejected(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict:
        return {
            'imported': self.imported,
            'unchanged': self.unchanged,
            'rejected': self.rejected,
            'errors': self.errors,
        }


def export_user_managed(machine: StatusStateMachine) -> dict:
    """Snapshot of every user-managed record, grouped by override."""
    document = {
        'format_version': FORMAT_VERSION,
        'exported_at': utc_now().isoformat(),
    }
    for category in CATEGORIES:
        document[category] = []

    for record in sorted(machine.user_managed(), key=lambda r: r.key):
        for category, status in CATEGORIES.items():
            if record.current_status is status:
                document[category].append({
                    'bssid': record.bssid,
                    'ssid': record.ssid,
                    'original_status': record.original_status.value if record.original_status else None,
                    'action_timestamp': (
                        record.action_timestamp.isoformat() if record.action_timestamp else None
                    ),
                })
    return document


def _parse_entry(raw: object, status: NetworkStatus) -> tuple[str, NetworkRecord]:
    """
    Validate one exported entry.

    Returns:
        Tuple of (record key, record template seeded from the entry)

    Raises:
        ValueError: If the entry is unusable
    """
    if not isinstance(raw, dict):
        raise ValueError("entry must be an object")

    raw_bssid = raw.get('bssid')
    ssid = str(raw.get('ssid') or '').strip()
    bssid = None
    if raw_bssid:
        bssid = normalize_bssid(str(raw_bssid))
        if bssid is None:
            raise ValueError(f"invalid bssid {raw_bssid!r}")
    if bssid:
        key = bssid
    elif ssid:
        key = f"ssid:{normalize_ssid(ssid)}"
    else:
        raise ValueError("entry needs a bssid or an ssid")

    original = raw.get('original_status')
    try:
        original_status = NetworkStatus(original) if original else None
    except ValueError:
        raise ValueError(f"invalid original_status {original!r}")

    action_timestamp = None
    if raw.get('action_timestamp'):
        try:
            action_timestamp = _parse_timestamp(raw['action_timestamp'])
        except (TypeError, ValueError, OverflowError, OSError):
            raise ValueError(f"invalid action_timestamp {raw['action_timestamp']!r}")

    template = NetworkRecord(
        key=key,
        bssid=bssid,
        ssid=ssid,
        current_status=status,
        original_status=original_status,
        is_user_managed=True,
        action_timestamp=action_timestamp,
    )
    return key, template


def import_user_managed(machine: StatusStateMachine, document: dict) -> ImportResult:
    """
    Apply exported overrides to the store.

    Malformed entries are rejected one by one; the rest of the batch is
    committed together.

    Raises:
        ValueError: If the document itself is not an export document
    """
    if not isinstance(document, dict):
        raise ValueError("Import document must be an object")
    if not any(isinstance(document.get(c), list) for c in CATEGORIES):
        raise ValueError("Import document has no trusted, flagged or blocked lists")

    result = ImportResult()
    store = machine.store

    with store.acquire():
        changed: dict[str, NetworkRecord] = {}
        for category, status in CATEGORIES.items():
            entries = document.get(category) or []
            if not isinstance(entries, list):
                result.errors.append(f"{category}: expected a list")
                continue
            for index, raw in enumerate(entries):
                try:
                    key, template = _parse_entry(raw, status)
                except ValueError as e:
                    result.errors.append(f"{category}[{index}]: {e}")
                    continue

                record = changed.get(key) or store.get(key)
                if record is None:
                    # New on this device: keep the exported pre-override status
                    changed[key] = template
                    result.imported += 1
                    continue

                if not record.ssid and template.ssid:
                    record.ssid = template.ssid
                if apply_override(record, status):
                    if template.action_timestamp:
                        record.action_timestamp = template.action_timestamp
                    changed[key] = record
                    result.imported += 1
                else:
                    result.unchanged += 1

        if changed:
            store.commit(changed.values())

    if result.errors:
        logger.warning(f"Import rejected {result.rejected} entries: {result.errors}")
    logger.info(f"Imported {result.imported} user-managed records")
    return result
