"""
Network assessment routes.

This blueprint provides:
- Status export and the nearby-networks projection
- Scan submission (manual cycles)
- User trust actions
- Bulk export/import of user decisions
- Allow-list status and sync
- Recent alerts
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from utils.logging import get_logger
from utils.validation import validate_positive_int
from utils.wifi_guard.alerts import AlertType
from utils.wifi_guard.coordinator import CycleCancelled
from utils.wifi_guard.engine import EXTENSION_KEY, Engine
from utils.wifi_guard.models import Severity
from utils.wifi_guard.status import ACTIONS
from utils.wifi_guard.transfer import export_user_managed, import_user_managed

logger = get_logger('networks')

networks_bp = Blueprint('networks', __name__, url_prefix='/networks')


def get_engine() -> Engine:
    return current_app.extensions[EXTENSION_KEY]


def _error(message: str, status_code: int = 400):
    return jsonify({'status': 'error', 'message': message}), status_code


def _is_true(value: str | None) -> bool:
    return (value or '').lower() in ('1', 'true', 'yes')


# =============================================================================
# Status export
# =============================================================================

@networks_bp.route('', methods=['GET'])
def list_networks():
    """Status export of all records, or only nearby ones with ?nearby=1."""
    nearby = _is_true(request.args.get('nearby'))
    networks = get_engine().machine.export_snapshot(nearby_only=nearby)
    return jsonify({
        'status': 'success',
        'networks': networks,
        'count': len(networks),
    })


@networks_bp.route('/<identifier>', methods=['GET'])
def get_network(identifier: str):
    """Full record for one network (BSSID or ssid:<name>)."""
    try:
        record = get_engine().machine.get(identifier)
    except ValueError as e:
        return _error(str(e))
    if record is None:
        return _error('Network not found', 404)
    return jsonify({'status': 'success', 'network': record.to_dict()})


@networks_bp.route('/stats', methods=['GET'])
def get_stats():
    engine = get_engine()
    stats = engine.machine.stats()
    stats['completed_cycles'] = engine.coordinator.completed_cycles
    return jsonify({'status': 'success', 'stats': stats})


# =============================================================================
# Scanning
# =============================================================================

@networks_bp.route('/scan', methods=['POST'])
def submit_scan():
    """
    Run a scan cycle over a submitted batch.

    Expected JSON body:
    {
        "observations": [{"ssid": "...", "bssid": "...", "signal_strength": -55,
                          "security_protocol": "WPA2", "frequency_band": "5GHz"}],
        "manual": true
    }
    """
    data = request.get_json(silent=True) or {}
    observations = data.get('observations')
    if not isinstance(observations, list):
        return _error('observations must be a list')

    manual = data.get('manual', True)
    if not isinstance(manual, bool):
        return _error('manual must be a boolean')

    try:
        summary = get_engine().coordinator.run_cycle(observations, is_manual_scan=manual)
    except CycleCancelled as e:
        logger.info(f"Manual scan cycle cancelled: {e}")
        return _error(str(e), 409)

    return jsonify({'status': 'success', 'summary': summary.to_dict()})


@networks_bp.route('/scan/cancel', methods=['POST'])
def cancel_scan():
    cancelled = get_engine().coordinator.cancel()
    return jsonify({'status': 'success', 'cancelled': cancelled})


# =============================================================================
# User actions
# =============================================================================

@networks_bp.route('/<identifier>/<action>', methods=['POST'])
def network_action(identifier: str, action: str):
    """Apply trust, untrust, flag, unflag, block or unblock."""
    if action not in ACTIONS:
        return _error(f'Unknown action: {action}', 404)
    try:
        record, changed = get_engine().machine.apply_action(identifier, action)
    except ValueError as e:
        return _error(str(e))

    return jsonify({
        'status': 'success',
        'changed': changed,
        'network': record.to_dict(),
    })


# =============================================================================
# Bulk transfer
# =============================================================================

@networks_bp.route('/export', methods=['GET'])
def export_networks():
    return jsonify(export_user_managed(get_engine().machine))


@networks_bp.route('/import', methods=['POST'])
def import_networks():
    data = request.get_json(silent=True)
    try:
        result = import_user_managed(get_engine().machine, data)
    except ValueError as e:
        logger.warning(f"Rejected network import: {e}")
        return _error(str(e))
    return jsonify({'status': 'success', **result.to_dict()})


@networks_bp.route('/clear', methods=['POST'])
def clear_networks():
    """Delete every record. Requires {"confirm": true}."""
    data = request.get_json(silent=True) or {}
    if data.get('confirm') is not True:
        return _error('Clearing all networks requires confirm=true')
    engine = get_engine()
    cleared = engine.machine.clear_all()
    engine.alerts.clear_alerts()
    logger.info(f"Cleared {cleared} networks and alert history on request")
    return jsonify({'status': 'success', 'cleared': cleared})


# =============================================================================
# Allow-list
# =============================================================================

@networks_bp.route('/allowlist', methods=['GET'])
def allowlist_status():
    engine = get_engine()
    response = {
        'status': 'success',
        'allowlist': engine.allowlist.status(engine.allowlist_max_age),
    }
    if _is_true(request.args.get('entries')):
        response['entries'] = engine.allowlist.snapshot().to_document()['entries']
    return jsonify(response)


@networks_bp.route('/allowlist/sync', methods=['POST'])
def sync_allowlist():
    result = get_engine().syncer.sync()
    return jsonify({
        'status': 'success' if result.status == 'synced' else 'error',
        'sync': result.to_dict(),
    })


# =============================================================================
# Alerts
# =============================================================================

@networks_bp.route('/alerts', methods=['GET'])
def get_alerts():
    """Recent alerts, optionally filtered by severity and type."""
    severity = request.args.get('severity')
    alert_type = request.args.get('type')
    try:
        limit = validate_positive_int(request.args.get('limit', 100), 'limit', max_val=1000)
        severity_filter = Severity(severity.lower()) if severity else None
        type_filter = AlertType(alert_type.upper()) if alert_type else None
    except ValueError as e:
        return _error(str(e))

    alerts = get_engine().alerts.get_alerts(
        severity=severity_filter,
        alert_type=type_filter,
        limit=limit,
    )
    return jsonify({
        'status': 'success',
        'alerts': [a.to_dict() for a in alerts],
        'count': len(alerts),
    })
