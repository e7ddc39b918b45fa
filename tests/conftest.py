"""Shared fixtures for TWINGUARD tests."""

import os
import sys
from datetime import datetime, timezone

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


TRUSTED_BSSID = 'AA:BB:CC:00:00:01'
ROGUE_BSSID = 'AA:BB:CC:00:00:02'


@pytest.fixture
def setup_db(tmp_path):
    """Set up a temporary database."""
    import utils.database as db_module
    from utils.database import close_db, init_db

    test_db_path = tmp_path / 'test.db'
    original_db_path = db_module.DB_PATH
    original_db_dir = db_module.DB_DIR
    db_module.DB_PATH = test_db_path
    db_module.DB_DIR = tmp_path

    close_db()
    init_db()

    yield test_db_path

    close_db()
    db_module.DB_PATH = original_db_path
    db_module.DB_DIR = original_db_dir


@pytest.fixture
def make_observation():
    """Factory for observations with sensible defaults."""
    from utils.wifi_guard.models import FrequencyBand, Observation, SecurityProtocol

    def _make(
        ssid='GovWifi',
        bssid=TRUSTED_BSSID,
        signal=70,
        protocol='WPA2',
        band='2.4GHz',
        latitude=None,
        longitude=None,
    ):
        return Observation(
            ssid=ssid,
            bssid=bssid,
            signal_strength=signal,
            security_protocol=SecurityProtocol.parse(protocol),
            frequency_band=FrequencyBand.parse(band),
            timestamp=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
            latitude=latitude,
            longitude=longitude,
        )

    return _make


@pytest.fixture
def make_document():
    """Factory for signed allow-list documents."""
    from utils.wifi_guard.allowlist import compute_checksum

    def _make(entries=None, version='2026.03'):
        if entries is None:
            entries = [{'bssid': TRUSTED_BSSID, 'ssid': 'GovWifi'}]
        return {
            'version': version,
            'checksum': compute_checksum(entries),
            'entries': entries,
        }

    return _make


@pytest.fixture
def allowlist_snapshot(make_document):
    """Snapshot trusting GovWifi at TRUSTED_BSSID."""
    from utils.wifi_guard.allowlist import parse_document
    return parse_document(make_document())


@pytest.fixture
def allowlist_store(allowlist_snapshot):
    from utils.wifi_guard.allowlist import AllowListStore
    return AllowListStore(allowlist_snapshot)


@pytest.fixture
def memory_engine(allowlist_store):
    """Non-persistent store, state machine and coordinator."""
    from utils.wifi_guard.alerts import AlertSink
    from utils.wifi_guard.coordinator import ScanCycleCoordinator
    from utils.wifi_guard.status import NetworkStore, StatusStateMachine

    store = NetworkStore(persistent=False)
    machine = StatusStateMachine(store)
    coordinator = ScanCycleCoordinator(machine, allowlist_store, alert_sink=AlertSink())
    return coordinator
