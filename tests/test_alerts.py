"""Tests for alert construction and the alert sink."""

import threading

from utils.wifi_guard.alerts import (
    Alert,
    AlertSink,
    AlertType,
    advisory,
    alerts_for_assessment,
)
from utils.wifi_guard.assessment import grade_for, threat_level_for
from utils.wifi_guard.models import (
    Indicator,
    IndicatorKind,
    NetworkRecord,
    SecurityAssessment,
    Severity,
)

BSSID = '10:00:00:00:00:07'


def make_alert(n=0, alert_type=AlertType.EVIL_TWIN):
    return Alert(
        alert_type=alert_type,
        severity=Severity.HIGH,
        title='Evil Twin Detected',
        description=f'alert {n}',
        evidence={'n': n},
    )


def assessment_with(*indicators):
    return SecurityAssessment(
        score=0,
        grade=grade_for(0),
        threat_level=threat_level_for(0),
        confidence=0.9,
        indicators=list(indicators),
    )


class TestAlertsForAssessment:
    """Tests for mapping indicators to immediate alerts."""

    def test_impersonation_and_hardware(self):
        record = NetworkRecord(key=BSSID, bssid=BSSID, ssid='G0vWifi')
        alerts = alerts_for_assessment(record, assessment_with(
            Indicator(IndicatorKind.SUSPICIOUS_VENDOR, Severity.HIGH, {'vendor': 'Hak5 WiFi Pineapple'}),
            Indicator(IndicatorKind.SSID_LOOKALIKE, Severity.HIGH, {'imitates': 'GovWifi'}),
        ))

        assert [a.alert_type for a in alerts] == [AlertType.ROGUE_HARDWARE, AlertType.SSID_IMPERSONATION]
        assert [a.title for a in alerts] == ['Rogue AP Hardware', 'SSID Impersonation']
        assert alerts[1].evidence['indicator']['evidence'] == {'imitates': 'GovWifi'}
        assert alerts[1].description == 'G0vWifi (10:00:00:00:00:07): ssid lookalike'

    def test_medium_findings_skipped(self):
        record = NetworkRecord(key=BSSID, bssid=BSSID, ssid='GovWifi2')
        alerts = alerts_for_assessment(record, assessment_with(
            Indicator(IndicatorKind.SSID_LOOKALIKE, Severity.MEDIUM),
            Indicator(IndicatorKind.SUSPICIOUS_VENDOR, Severity.MEDIUM),
        ))
        assert alerts == []


class TestAlertSink:
    """Tests for history, de-duplication and the bounded queue."""

    def test_emit_once_per_record(self):
        sink = AlertSink()
        assert sink.emit_for_record(BSSID, make_alert()) is True
        assert sink.emit_for_record(BSSID, make_alert()) is False
        assert sink.emit_for_record(BSSID, make_alert(alert_type=AlertType.SECURITY_DOWNGRADE)) is True
        assert len(sink.get_alerts()) == 2

    def test_full_queue_drops_oldest(self):
        sink = AlertSink(queue_size=2)
        for n in range(3):
            sink.emit(make_alert(n))

        assert [sink.queue.get_nowait().evidence['n'] for _ in range(2)] == [1, 2]
        assert len(sink.get_alerts()) == 3

    def test_concurrent_emit_on_full_queue(self):
        """Producers racing on a full queue never raise and never overfill it."""
        sink = AlertSink(history_size=2000, queue_size=1)
        errors = []
        start = threading.Barrier(8)

        def produce(worker):
            start.wait()
            for n in range(200):
                try:
                    sink.emit(make_alert(worker * 1000 + n))
                except Exception as e:
                    errors.append(e)

        threads = [threading.Thread(target=produce, args=(w,)) for w in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert sink.queue.qsize() == 1
        assert len(sink.get_alerts(limit=2000)) == 1600

    def test_clear(self):
        sink = AlertSink()
        sink.emit_for_record(BSSID, make_alert())
        sink.emit(advisory(AlertType.ALLOWLIST_STALE, 'stale'))
        sink.clear_alerts()

        assert sink.get_alerts() == []
        assert sink.emit_for_record(BSSID, make_alert()) is True
