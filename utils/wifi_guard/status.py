"""
Authoritative per-network status.

NetworkStore holds every NetworkRecord in memory and mirrors it to sqlite.
Database writes are write-behind: a locked database delays persistence
but never fails a commit.
StatusStateMachine merges per-cycle assessments with user overrides while
preserving the pre-override status for restoration.
"""

from __future__ import annotations

import dataclasses
import logging
import sqlite3
import threading
import time
from contextlib import contextmanager
from typing import Iterable, Iterator

from config import STORE_COMMIT_RETRIES, STORE_LOCK_TIMEOUT
from utils import database
from utils.constants import STORE_COMMIT_BACKOFF
from utils.validation import normalize_bssid, normalize_ssid
from .assessment import computed_status
from .models import (
    NetworkRecord,
    NetworkStatus,
    Observation,
    SecurityAssessment,
    utc_now,
)

logger = logging.getLogger('twinguard.status')


class NetworkStore:
    """
    Process-wide record set with a defined lifecycle.

    Populated from the database at startup, mutated only through commit(),
    torn down only by clear(). Scan cycles hold `lock` for their whole
    batch update; user actions take it per action.
    """

    def __init__(
        self,
        persistent: bool = True,
        lock_timeout: float = STORE_LOCK_TIMEOUT,
        commit_retries: int = STORE_COMMIT_RETRIES,
    ):
        self.persistent = persistent
        self.lock_timeout = lock_timeout
        self.commit_retries = max(1, commit_retries)
        self.lock = threading.RLock()
        self._records: dict[str, NetworkRecord] = {}
        self._last_cycle_keys: set[str] = set()
        self._unsaved: dict[str, dict] = {}

    @contextmanager
    def acquire(self, cancel_event: threading.Event | None = None) -> Iterator[NetworkStore]:
        """
        Hold the store, retrying on contention.

        Raises:
            InterruptedError: If cancel_event is set while waiting
        """
        attempts = 0
        while not self.lock.acquire(timeout=self.lock_timeout):
            attempts += 1
            if cancel_event is not None and cancel_event.is_set():
                raise InterruptedError("Cancelled while waiting for the network store")
            logger.warning(f"Network store busy, retrying (attempt {attempts})")
        try:
            yield self
        finally:
            self.lock.release()

    def load(self) -> int:
        """Populate from the database. Returns number of records loaded."""
        if not self.persistent:
            return 0
        loaded = {}
        for row in database.load_network_records():
            try:
                record = NetworkRecord.from_dict(row)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable network record {row.get('key')!r}: {e}")
                continue
            loaded[record.key] = record
        with self.lock:
            self._records = loaded
        logger.info(f"Loaded {len(loaded)} network records")
        return len(loaded)

    def get(self, key: str) -> NetworkRecord | None:
        """Copy of a record; mutate and commit() to change it."""
        with self.lock:
            record = self._records.get(key)
            return dataclasses.replace(record) if record else None

    def records(self) -> list[NetworkRecord]:
        with self.lock:
            return [dataclasses.replace(r) for r in self._records.values()]

    @property
    def last_cycle_keys(self) -> set[str]:
        with self.lock:
            return set(self._last_cycle_keys)

    def __len__(self) -> int:
        with self.lock:
            return len(self._records)

    def __contains__(self, key: str) -> bool:
        with self.lock:
            return key in self._records

    @property
    def pending_writes(self) -> int:
        """Records published in memory but not yet on disk."""
        with self.lock:
            return len(self._unsaved)

    def commit(
        self,
        records: Iterable[NetworkRecord],
        cycle_keys: set[str] | None = None,
    ) -> int:
        """
        Publish records and write them through to the database.

        Memory is updated first. Rows the database refuses after all retries
        stay queued and go out with the next commit() or flush().

        Args:
            records: Changed records
            cycle_keys: Keys observed by the committing scan cycle
        """
        records = list(records)
        with self.lock:
            for record in records:
                self._records[record.key] = record
                if self.persistent:
                    self._unsaved[record.key] = record.to_dict()
            if cycle_keys is not None:
                self._last_cycle_keys = set(cycle_keys)
            if self._unsaved:
                self._flush_unsaved()
        return len(records)

    def flush(self) -> bool:
        """Retry queued writes. Returns True once nothing is pending."""
        with self.lock:
            if self._unsaved:
                self._flush_unsaved()
            return not self._unsaved

    def _flush_unsaved(self) -> None:
        rows = list(self._unsaved.values())
        for attempt in range(1, self.commit_retries + 1):
            try:
                database.save_network_records(rows)
            except sqlite3.OperationalError as e:
                if attempt == self.commit_retries:
                    logger.error(f"Could not persist {len(rows)} records ({e}), keeping them queued")
                    return
                logger.warning(f"Commit attempt {attempt} failed ({e}), retrying")
                time.sleep(STORE_COMMIT_BACKOFF * attempt)
            else:
                self._unsaved.clear()
                return

    def clear(self) -> int:
        """Remove every record, in memory and on disk."""
        with self.lock:
            count = len(self._records)
            if self.persistent:
                database.delete_all_network_records()
            self._records.clear()
            self._last_cycle_keys.clear()
            self._unsaved.clear()
        logger.info(f"Cleared {count} network records")
        return count


# Action name -> (status, is_inverse)
ACTIONS = {
    'trust': (NetworkStatus.TRUSTED, False),
    'untrust': (NetworkStatus.TRUSTED, True),
    'flag': (NetworkStatus.FLAGGED, False),
    'unflag': (NetworkStatus.FLAGGED, True),
    'block': (NetworkStatus.BLOCKED, False),
    'unblock': (NetworkStatus.BLOCKED, True),
}


def record_key_for(identifier: str) -> str:
    """
    Store key for a user-supplied identifier.

    Raises:
        ValueError: If the identifier is empty
    """
    identifier = (identifier or '').strip()
    if not identifier:
        raise ValueError("Network identifier is required")
    bssid = normalize_bssid(identifier)
    if bssid:
        return bssid
    if identifier.startswith('ssid:'):
        identifier = identifier[len('ssid:'):]
    ssid = normalize_ssid(identifier)
    if not ssid:
        raise ValueError("Network identifier is required")
    return f"ssid:{ssid}"


def apply_override(record: NetworkRecord, status: NetworkStatus) -> bool:
    """
    Apply a user override in place. Returns False if it was already applied.

    original_status is captured only on the first override.
    """
    if record.is_user_managed and record.current_status is status:
        return False
    if not record.is_user_managed:
        record.original_status = record.current_status
        record.is_user_managed = True
    record.current_status = status
    record.action_timestamp = utc_now()
    return True


def remove_override(record: NetworkRecord, status: NetworkStatus) -> bool:
    """
    Remove a user override in place. Returns False if there was nothing to remove.

    Restores original_status, or recomputes from the cached assessment when
    there is nothing meaningful to restore.
    """
    if not record.is_user_managed or record.current_status is not status:
        return False

    restored = record.original_status
    if restored is None or (restored is NetworkStatus.UNKNOWN and record.last_assessment):
        restored = computed_status(record.last_assessment)

    record.current_status = restored
    record.original_status = None
    record.is_user_managed = False
    record.action_timestamp = utc_now()
    return True


class StatusStateMachine:
    """Merges assessments and user actions into a stable per-network status."""

    def __init__(self, store: NetworkStore):
        self.store = store

    def apply_assessment(
        self,
        record: NetworkRecord | None,
        observation: Observation,
        assessment: SecurityAssessment,
    ) -> NetworkRecord:
        """
        Fold one cycle's assessment into a record.

        Pure with respect to the store: returns a new record for the caller
        to commit.
        """
        if record is None:
            record = NetworkRecord(
                key=observation.record_key,
                bssid=observation.bssid,
                ssid=observation.ssid,
                first_seen=observation.timestamp,
            )
        else:
            record = dataclasses.replace(record)
            if record.first_seen is None:
                record.first_seen = observation.timestamp

        if not observation.is_hidden:
            record.ssid = observation.ssid
        if observation.bssid:
            record.bssid = observation.bssid
        record.last_seen = observation.timestamp
        record.last_assessment = assessment

        if not record.is_user_managed:
            record.current_status = computed_status(assessment)

        return record

    def apply_action(self, identifier: str, action: str) -> tuple[NetworkRecord, bool]:
        """
        Apply a user action.

        Unknown networks get a record seeded as unknown first. Repeating an
        applied action is a no-op.

        Returns:
            Tuple of (record, changed)

        Raises:
            ValueError: On an unknown action or empty identifier
        """
        if action not in ACTIONS:
            raise ValueError(f"Unknown action: {action}")
        status, inverse = ACTIONS[action]
        with self.store.acquire():
            key = self.resolve_key(identifier)
            record = self.store.get(key)
            seeded = record is None
            if seeded:
                record = NetworkRecord(
                    key=key,
                    bssid=None if key.startswith('ssid:') else key,
                    ssid=key[len('ssid:'):] if key.startswith('ssid:') else '',
                )
                logger.info(f"Seeded unknown record {key} for {action}")

            if inverse:
                changed = remove_override(record, status)
            else:
                changed = apply_override(record, status)

            if changed or seeded:
                self.store.commit([record])

        if changed:
            logger.info(f"{action} {key}: now {record.current_status.value}")
        return dataclasses.replace(record), changed

    def trust(self, identifier: str) -> NetworkRecord:
        return self.apply_action(identifier, 'trust')[0]

    def untrust(self, identifier: str) -> NetworkRecord:
        return self.apply_action(identifier, 'untrust')[0]

    def flag(self, identifier: str) -> NetworkRecord:
        return self.apply_action(identifier, 'flag')[0]

    def unflag(self, identifier: str) -> NetworkRecord:
        return self.apply_action(identifier, 'unflag')[0]

    def block(self, identifier: str) -> NetworkRecord:
        return self.apply_action(identifier, 'block')[0]

    def unblock(self, identifier: str) -> NetworkRecord:
        return self.apply_action(identifier, 'unblock')[0]

    def resolve_key(self, identifier: str) -> str:
        """
        Store key for an identifier, preferring records that already exist.

        A bare SSID that also parses as a BSSID (twelve hex digits) maps to
        the SSID record when there is one and no BSSID record.

        Raises:
            ValueError: If the identifier is empty
        """
        key = record_key_for(identifier)
        if key.startswith('ssid:') or key in self.store:
            return key
        ssid_key = f"ssid:{normalize_ssid(identifier.strip())}"
        if ssid_key in self.store:
            return ssid_key
        return key

    def get(self, identifier: str) -> NetworkRecord | None:
        return self.store.get(self.resolve_key(identifier))

    def nearby(self) -> list[NetworkRecord]:
        """Networks seen in the latest scan cycle, blocked ones excluded."""
        keys = self.store.last_cycle_keys
        return sorted(
            (r for r in self.store.records() if r.key in keys and not r.is_blocked),
            key=_score_sort_key,
        )

    def export_snapshot(self, nearby_only: bool = False) -> list[dict]:
        """Status export for presentation layers and alert sinks."""
        records = self.nearby() if nearby_only else sorted(self.store.records(), key=lambda r: r.key)
        return [r.to_export_dict() for r in records]

    def user_managed(self) -> list[NetworkRecord]:
        return [r for r in self.store.records() if r.is_user_managed]

    def clear_all(self) -> int:
        with self.store.acquire():
            return self.store.clear()

    def stats(self) -> dict:
        counts = {status.value: 0 for status in NetworkStatus}
        user_managed = 0
        records = self.store.records()
        for record in records:
            counts[record.current_status.value] += 1
            if record.is_user_managed:
                user_managed += 1
        return {
            'total': len(records),
            'by_status': counts,
            'user_managed': user_managed,
            'nearby': len(self.nearby()),
        }


def _score_sort_key(record: NetworkRecord) -> tuple:
    assessment = record.last_assessment
    return (-(assessment.score if assessment else 0), record.key)
