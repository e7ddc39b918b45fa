"""
Alerts raised by scan cycles.

Immediate alerts cover individual high-severity findings; summary alerts
report on manual scans; advisories cover a stale allow-list and incomplete
scans.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from utils.constants import ALERT_HISTORY_SIZE, ALERT_QUEUE_SIZE
from .models import IndicatorKind, NetworkRecord, SecurityAssessment, Severity, utc_now

logger = logging.getLogger('twinguard.alerts')


class AlertType(Enum):
    """Types of alerts."""
    EVIL_TWIN = 'EVIL_TWIN'
    SECURITY_DOWNGRADE = 'SECURITY_DOWNGRADE'
    SIGNAL_ANOMALY = 'SIGNAL_ANOMALY'
    SSID_IMPERSONATION = 'SSID_IMPERSONATION'
    ROGUE_HARDWARE = 'ROGUE_HARDWARE'
    SCAN_SUMMARY = 'SCAN_SUMMARY'
    ALLOWLIST_STALE = 'ALLOWLIST_STALE'
    SCAN_INCOMPLETE = 'SCAN_INCOMPLETE'


# Indicator kinds that raise an immediate alert, and the alert they raise
INDICATOR_ALERTS = {
    IndicatorKind.DUPLICATE_SSID_UNTRUSTED_BSSID: AlertType.EVIL_TWIN,
    IndicatorKind.DUPLICATE_SSID_NO_WHITELIST_MATCH: AlertType.EVIL_TWIN,
    IndicatorKind.SECURITY_DOWNGRADE: AlertType.SECURITY_DOWNGRADE,
    IndicatorKind.SIGNAL_ANOMALY: AlertType.SIGNAL_ANOMALY,
    IndicatorKind.SSID_LOOKALIKE: AlertType.SSID_IMPERSONATION,
    IndicatorKind.SUSPICIOUS_VENDOR: AlertType.ROGUE_HARDWARE,
}

_TITLES = {
    AlertType.EVIL_TWIN: 'Possible Evil Twin',
    AlertType.SECURITY_DOWNGRADE: 'Security Downgrade',
    AlertType.SIGNAL_ANOMALY: 'Signal Anomaly',
    AlertType.SSID_IMPERSONATION: 'SSID Impersonation',
    AlertType.ROGUE_HARDWARE: 'Rogue AP Hardware',
}


@dataclass
class Alert:
    """A network security alert."""
    alert_type: AlertType
    severity: Severity
    title: str
    description: str
    bssid: str | None = None
    ssid: str | None = None
    evidence: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'alert_type': self.alert_type.value,
            'severity': self.severity.value,
            'title': self.title,
            'description': self.description,
            'bssid': self.bssid,
            'ssid': self.ssid,
            'evidence': self.evidence,
            'timestamp': self.timestamp.isoformat(),
        }


def alerts_for_assessment(record: NetworkRecord, assessment: SecurityAssessment) -> list[Alert]:
    """Immediate alerts for the high-severity findings of one assessment."""
    alerts = []
    seen_types = set()
    for indicator in assessment.indicators:
        if indicator.severity.rank < Severity.HIGH.rank:
            continue
        alert_type = INDICATOR_ALERTS.get(indicator.kind)
        if alert_type is None or alert_type in seen_types:
            continue
        seen_types.add(alert_type)
        name = record.ssid or record.key
        alerts.append(Alert(
            alert_type=alert_type,
            severity=indicator.severity,
            title=_TITLES[alert_type],
            description=f"{name} ({record.bssid or 'no BSSID'}): {indicator.name.replace('_', ' ')}",
            bssid=record.bssid,
            ssid=record.ssid,
            evidence={
                'indicator': indicator.to_dict(),
                'threat_level': assessment.threat_level.value,
                'score': assessment.score,
            },
        ))
    return alerts


def summary_alert(total_found: int, newly_suspicious: int, threats_detected: int) -> Alert:
    if threats_detected:
        severity = Severity.HIGH if newly_suspicious else Severity.MEDIUM
        description = (
            f"Found {total_found} networks; {threats_detected} potential threats "
            f"({newly_suspicious} new)"
        )
    else:
        severity = Severity.LOW
        description = f"Found {total_found} networks; no threats detected"
    return Alert(
        alert_type=AlertType.SCAN_SUMMARY,
        severity=severity,
        title='Scan Complete',
        description=description,
        evidence={
            'total_found': total_found,
            'newly_suspicious': newly_suspicious,
            'threats_detected': threats_detected,
        },
    )


def advisory(alert_type: AlertType, description: str, **evidence) -> Alert:
    """Informational alert (stale allow-list, incomplete scan)."""
    titles = {
        AlertType.ALLOWLIST_STALE: 'Allow-list Stale',
        AlertType.SCAN_INCOMPLETE: 'Scan Incomplete',
    }
    return Alert(
        alert_type=alert_type,
        severity=Severity.LOW,
        title=titles.get(alert_type, alert_type.value),
        description=description,
        evidence=evidence,
    )


class AlertSink:
    """
    Bounded alert history plus a queue for consumers.

    Immediate alerts are de-duplicated per (record key, alert type) for the
    lifetime of the sink.
    """

    def __init__(self, history_size: int = ALERT_HISTORY_SIZE, queue_size: int = ALERT_QUEUE_SIZE):
        self._history: deque[Alert] = deque(maxlen=history_size)
        self.queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._alerted: set[tuple[str, AlertType]] = set()
        self._lock = threading.Lock()

    def emit_for_record(self, key: str, alert: Alert) -> bool:
        """Emit a per-record alert once per session. Returns True if emitted."""
        with self._lock:
            marker = (key, alert.alert_type)
            if marker in self._alerted:
                return False
            self._alerted.add(marker)
        self.emit(alert)
        return True

    def emit(self, alert: Alert) -> None:
        # Producers hold the lock, so only consumers can change the queue
        # between making room and putting
        with self._lock:
            self._history.append(alert)
            try:
                self.queue.put_nowait(alert)
            except queue.Full:
                # Drop the oldest queued alert to make room
                try:
                    self.queue.get_nowait()
                except queue.Empty:
                    pass
                self.queue.put_nowait(alert)
        logger.info(f"[{alert.severity.value}] {alert.title}: {alert.description}")

    def get_alerts(
        self,
        severity: Severity | None = None,
        alert_type: AlertType | None = None,
        limit: int | None = None,
    ) -> list[Alert]:
        """Get alerts with optional filtering, newest last."""
        with self._lock:
            alerts = list(self._history)

        if severity:
            alerts = [a for a in alerts if a.severity == severity]
        if alert_type:
            alerts = [a for a in alerts if a.alert_type == alert_type]
        if limit is not None:
            alerts = alerts[-limit:] if limit > 0 else []

        return alerts

    def clear_alerts(self) -> None:
        """Clear history and the per-session de-duplication set."""
        with self._lock:
            self._history.clear()
            self._alerted.clear()
