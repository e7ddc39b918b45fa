"""
Scan cycle coordination.

One cycle takes a complete observation batch through scoring, evil twin
detection, aggregation and the status state machine, then reports summary
counts and raises alerts. Cycles hold the network store for their whole
run and commit all-or-nothing; a cancelled cycle writes nothing.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable

from config import ALLOWLIST_MAX_AGE_HOURS, SCAN_INTERVAL
from .alerts import Alert, AlertSink, AlertType, advisory, alerts_for_assessment, summary_alert
from .allowlist import AllowListStore
from .assessment import AssessmentAggregator
from .evil_twin import EvilTwinDetector
from .models import NetworkRecord, NetworkStatus, Observation, ScoringResult, ThreatLevel, utc_now
from .scoring import ScoringEngine
from .status import StatusStateMachine

logger = logging.getLogger('twinguard.coordinator')

THREAT_LEVELS = (ThreatLevel.HIGH, ThreatLevel.CRITICAL)


class CycleCancelled(Exception):
    """Raised when a cycle is cancelled before committing."""


@dataclass
class CycleSummary:
    """Cycle-level counts and the alerts a cycle raised."""
    cycle_number: int
    is_manual_scan: bool
    is_first_scan: bool
    total_found: int = 0
    skipped: int = 0
    newly_suspicious: int = 0
    threats_detected: int = 0
    allowlist_version: str | None = None
    allowlist_stale: bool = False
    summary_alert: Alert | None = None
    alerts: list[Alert] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    finished_at: datetime | None = None

    @property
    def incomplete(self) -> bool:
        return self.skipped > 0

    def to_dict(self) -> dict:
        return {
            'cycle_number': self.cycle_number,
            'is_manual_scan': self.is_manual_scan,
            'is_first_scan': self.is_first_scan,
            'total_found': self.total_found,
            'skipped': self.skipped,
            'newly_suspicious': self.newly_suspicious,
            'threats_detected': self.threats_detected,
            'allowlist_version': self.allowlist_version,
            'allowlist_stale': self.allowlist_stale,
            'summary_alert': self.summary_alert.to_dict() if self.summary_alert else None,
            'alerts': [a.to_dict() for a in self.alerts],
            'started_at': self.started_at.isoformat(),
            'finished_at': self.finished_at.isoformat() if self.finished_at else None,
        }


class ScanCycleCoordinator:
    """Drives scan-to-status cycles for manual and background scans."""

    def __init__(
        self,
        machine: StatusStateMachine,
        allowlist: AllowListStore,
        alert_sink: AlertSink | None = None,
        scoring: ScoringEngine | None = None,
        detector: EvilTwinDetector | None = None,
        aggregator: AssessmentAggregator | None = None,
        allowlist_max_age: timedelta | None = None,
    ):
        self.machine = machine
        self.allowlist = allowlist
        self.alert_sink = alert_sink or AlertSink()
        self.scoring = scoring or ScoringEngine()
        self.detector = detector or EvilTwinDetector()
        self.aggregator = aggregator or AssessmentAggregator()
        self.allowlist_max_age = allowlist_max_age or timedelta(hours=ALLOWLIST_MAX_AGE_HOURS)

        self._completed_cycles = 0
        self._state_lock = threading.Lock()
        self._current_cancel: threading.Event | None = None
        self._stale_reported = False

        self._background_thread: threading.Thread | None = None
        self._background_stop = threading.Event()

    @property
    def completed_cycles(self) -> int:
        with self._state_lock:
            return self._completed_cycles

    def cancel(self) -> bool:
        """Cancel the in-flight cycle, if any. Returns True if one was running."""
        with self._state_lock:
            event = self._current_cancel
        if event is None:
            return False
        event.set()
        return True

    def run_cycle(
        self,
        observations: Iterable[Observation | dict],
        is_manual_scan: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> CycleSummary:
        """
        Run one scan cycle.

        Args:
            observations: Observation objects or raw scanner records
            is_manual_scan: True for user-initiated scans
            cancel_event: Optional external cancellation signal

        Returns:
            CycleSummary for the committed cycle

        Raises:
            CycleCancelled: If cancelled before commit (nothing is written)
        """
        cancel = cancel_event or threading.Event()
        store = self.machine.store

        with self._state_lock:
            self._current_cancel = cancel

        try:
            with store.acquire(cancel):
                with self._state_lock:
                    cycle_number = self._completed_cycles + 1
                summary = CycleSummary(
                    cycle_number=cycle_number,
                    is_manual_scan=is_manual_scan,
                    is_first_scan=cycle_number == 1,
                )
                records, previous = self._evaluate(observations, summary, cancel)
                _check_cancelled(cancel)
                store.commit(records.values(), cycle_keys=set(records))
                with self._state_lock:
                    self._completed_cycles += 1
        except InterruptedError as e:
            raise CycleCancelled(str(e)) from e
        except CycleCancelled:
            logger.info("Scan cycle cancelled; partial assessments discarded")
            raise
        finally:
            with self._state_lock:
                if self._current_cancel is cancel:
                    self._current_cancel = None

        self._report(summary, records, previous)
        summary.finished_at = utc_now()
        logger.info(
            f"Cycle {summary.cycle_number} ({'manual' if is_manual_scan else 'background'}): "
            f"{summary.total_found} found, {summary.newly_suspicious} newly suspicious, "
            f"{summary.threats_detected} threats, {summary.skipped} skipped"
        )
        return summary

    def _evaluate(
        self,
        observations: Iterable[Observation | dict],
        summary: CycleSummary,
        cancel: threading.Event,
    ) -> tuple[dict[str, NetworkRecord], dict[str, NetworkStatus | None]]:
        """Phase 1: compute new records on copies. Nothing is published here."""
        snapshot = self.allowlist.snapshot()
        available = self.allowlist.is_available
        summary.allowlist_version = snapshot.version or None
        summary.allowlist_stale = self.allowlist.is_stale(self.allowlist_max_age)

        # Strongest sighting per record key
        scored: dict[str, ScoringResult] = {}
        for raw in observations:
            _check_cancelled(cancel)
            observation = _coerce(raw)
            result = self.scoring.evaluate(observation, snapshot, available) if observation else None
            if result is None:
                summary.skipped += 1
                continue
            key = result.observation.record_key
            current = scored.get(key)
            if current is None or (
                result.observation.normalized_signal > current.observation.normalized_signal
            ):
                scored[key] = result

        _check_cancelled(cancel)
        findings = self.detector.detect([r.observation for r in scored.values()], snapshot)

        records: dict[str, NetworkRecord] = {}
        previous: dict[str, NetworkStatus | None] = {}
        for key, result in scored.items():
            _check_cancelled(cancel)
            observation = result.observation
            detector_indicators = findings.get(observation.bssid, []) if observation.bssid else []
            assessment = self.aggregator.assess(observation, result, detector_indicators, available)
            existing = self.machine.store.get(key)
            previous[key] = existing.current_status if existing else None
            records[key] = self.machine.apply_assessment(existing, observation, assessment)

        summary.total_found = len(records)
        return records, previous

    def _report(
        self,
        summary: CycleSummary,
        records: dict[str, NetworkRecord],
        previous: dict[str, NetworkStatus | None],
    ) -> None:
        """Phase 2: counts and alerts for a committed cycle."""
        for key, record in records.items():
            assessment = record.last_assessment
            if record.current_status is NetworkStatus.SUSPICIOUS and previous[key] is not NetworkStatus.SUSPICIOUS:
                summary.newly_suspicious += 1
            if record.current_status is NetworkStatus.TRUSTED:
                continue
            if assessment.threat_level in THREAT_LEVELS:
                summary.threats_detected += 1
            for alert in alerts_for_assessment(record, assessment):
                if self.alert_sink.emit_for_record(key, alert):
                    summary.alerts.append(alert)

        if summary.is_manual_scan and not summary.is_first_scan:
            summary.summary_alert = summary_alert(
                summary.total_found, summary.newly_suspicious, summary.threats_detected
            )
            self.alert_sink.emit(summary.summary_alert)

        if summary.incomplete:
            alert = advisory(
                AlertType.SCAN_INCOMPLETE,
                f"{summary.skipped} observations could not be assessed",
                skipped=summary.skipped,
            )
            self.alert_sink.emit(alert)
            summary.alerts.append(alert)

        if summary.allowlist_stale and not self._stale_reported:
            alert = advisory(
                AlertType.ALLOWLIST_STALE,
                'The allow-list has not been refreshed recently; trust decisions may be out of date',
                version=summary.allowlist_version,
            )
            self.alert_sink.emit(alert)
            summary.alerts.append(alert)
        self._stale_reported = summary.allowlist_stale

    # =========================================================================
    # Background mode
    # =========================================================================

    @property
    def background_running(self) -> bool:
        return self._background_thread is not None and self._background_thread.is_alive()

    def start_background(
        self,
        scan_source: Callable[[], Iterable[Any]],
        interval: float = SCAN_INTERVAL,
    ) -> bool:
        """
        Run background cycles from scan_source every interval seconds.

        Returns:
            False if background scanning is already running
        """
        if self.background_running:
            return False
        self._background_stop.clear()
        self._background_thread = threading.Thread(
            target=self._background_loop,
            args=(scan_source, interval),
            name='twinguard-scan',
            daemon=True,
        )
        self._background_thread.start()
        logger.info(f"Background scanning started (every {interval}s)")
        return True

    def stop_background(self, timeout: float | None = 5.0) -> None:
        """Stop background scanning, cancelling any in-flight cycle."""
        self._background_stop.set()
        self.cancel()
        thread = self._background_thread
        if thread is not None:
            thread.join(timeout=timeout)
        self._background_thread = None
        if not self.machine.store.flush():
            logger.warning(f"{self.machine.store.pending_writes} records still waiting for the database")
        logger.info("Background scanning stopped")

    def _background_loop(self, scan_source: Callable[[], Iterable[Any]], interval: float) -> None:
        while not self._background_stop.is_set():
            try:
                observations = list(scan_source())
                if not self._background_stop.is_set():
                    self.run_cycle(observations, is_manual_scan=False)
            except CycleCancelled:
                pass
            except Exception as e:
                logger.exception(f"Background scan cycle failed: {e}")
            self._background_stop.wait(interval)


def _check_cancelled(cancel: threading.Event) -> None:
    if cancel.is_set():
        raise CycleCancelled("Scan cycle cancelled")


def _coerce(raw: Observation | dict) -> Observation | None:
    if isinstance(raw, Observation):
        return raw
    try:
        return Observation.from_dict(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"malformed_observation: {raw!r}: {e}")
        return None
