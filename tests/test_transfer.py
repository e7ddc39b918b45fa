"""Tests for export/import of user-managed records."""

import pytest

from utils.wifi_guard.models import NetworkStatus
from utils.wifi_guard.status import NetworkStore, StatusStateMachine
from utils.wifi_guard.transfer import FORMAT_VERSION, export_user_managed, import_user_managed

TRUSTED = 'AA:BB:CC:00:00:01'
ROGUE = 'AA:BB:CC:00:00:02'


@pytest.fixture
def machine():
    return StatusStateMachine(NetworkStore(persistent=False))


@pytest.fixture
def scanned(memory_engine, make_observation):
    """A state machine after one GovWifi scan with user overrides."""
    memory_engine.run_cycle([
        make_observation(bssid=TRUSTED, protocol='WPA2', signal=70),
        make_observation(bssid=ROGUE, protocol='open', signal=95),
        make_observation(ssid='Cafe', bssid='10:00:00:00:00:03', signal=50),
    ])
    machine = memory_engine.machine
    machine.flag(ROGUE)
    machine.block('10:00:00:00:00:03')
    machine.trust('ssid:Home Net')
    return machine


class TestExport:
    def test_document_shape(self, scanned):
        document = export_user_managed(scanned)

        assert document['format_version'] == FORMAT_VERSION
        assert 'exported_at' in document
        assert [e['bssid'] for e in document['flagged']] == [ROGUE]
        assert [e['bssid'] for e in document['blocked']] == ['10:00:00:00:00:03']
        assert document['trusted'] == [{
            'bssid': None,
            'ssid': 'home net',
            'original_status': 'unknown',
            'action_timestamp': document['trusted'][0]['action_timestamp'],
        }]

    def test_original_status_exported(self, scanned):
        document = export_user_managed(scanned)
        assert document['flagged'][0]['original_status'] == 'suspicious'
        assert document['flagged'][0]['ssid'] == 'GovWifi'

    def test_automatic_records_not_exported(self, scanned):
        document = export_user_managed(scanned)
        exported = [e['bssid'] for c in ('trusted', 'flagged', 'blocked') for e in document[c]]
        assert TRUSTED not in exported

    def test_empty(self, machine):
        document = export_user_managed(machine)
        assert document['trusted'] == []
        assert document['flagged'] == []
        assert document['blocked'] == []


class TestImport:
    """Tests for applying an export on another device."""

    def test_transfer_between_devices(self, scanned, machine):
        result = import_user_managed(machine, export_user_managed(scanned))

        assert result.imported == 3
        assert result.rejected == 0

        rogue = machine.get(ROGUE)
        assert rogue.current_status is NetworkStatus.FLAGGED
        assert rogue.is_user_managed is True
        assert rogue.original_status is NetworkStatus.SUSPICIOUS
        assert machine.get('ssid:home net').current_status is NetworkStatus.TRUSTED

    def test_unflag_after_import_restores_exported_status(self, scanned, machine):
        import_user_managed(machine, export_user_managed(scanned))
        record = machine.unflag(ROGUE)
        assert record.current_status is NetworkStatus.SUSPICIOUS

    def test_import_over_existing_record(self, memory_engine, make_observation):
        memory_engine.run_cycle([make_observation(bssid=TRUSTED)])
        machine = memory_engine.machine

        result = import_user_managed(machine, {'blocked': [{'bssid': TRUSTED, 'ssid': 'GovWifi'}]})

        assert result.imported == 1
        record = machine.get(TRUSTED)
        assert record.current_status is NetworkStatus.BLOCKED
        assert record.original_status is NetworkStatus.VERIFIED

    def test_reimport_is_unchanged(self, scanned, machine):
        document = export_user_managed(scanned)
        import_user_managed(machine, document)
        result = import_user_managed(machine, document)

        assert result.imported == 0
        assert result.unchanged == 3

    def test_bad_entries_rejected_individually(self, machine):
        result = import_user_managed(machine, {
            'trusted': [
                {'bssid': 'aa-bb-cc-00-00-01', 'ssid': 'GovWifi'},
                {'bssid': 'not-a-mac', 'ssid': 'GovWifi'},
                {'ssid': ''},
                'junk',
                {'bssid': '10:00:00:00:00:05', 'original_status': 'sideways'},
                {'bssid': '10:00:00:00:00:06', 'action_timestamp': 'yesterday'},
            ],
            'flagged': 'not a list',
        })

        assert result.imported == 1
        assert result.rejected == 6
        assert machine.get(TRUSTED).current_status is NetworkStatus.TRUSTED
        assert len(machine.store) == 1

    @pytest.mark.parametrize('document', [None, [], 'text', {}, {'trusted': 'x'}])
    def test_not_an_export_document(self, machine, document):
        with pytest.raises(ValueError):
            import_user_managed(machine, document)

    def test_import_persists(self, setup_db):
        machine = StatusStateMachine(NetworkStore())
        import_user_managed(machine, {'trusted': [{'bssid': TRUSTED, 'ssid': 'GovWifi'}]})

        reloaded = NetworkStore()
        reloaded.load()
        assert reloaded.get(TRUSTED).current_status is NetworkStatus.TRUSTED
