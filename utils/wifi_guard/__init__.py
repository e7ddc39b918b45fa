"""
TWINGUARD - Network Security Assessment

Evil twin and downgrade detection for nearby access points, reconciled with
a government allow-list and user trust decisions.
"""

from __future__ import annotations

from .models import (
    FrequencyBand,
    Indicator,
    IndicatorKind,
    NetworkRecord,
    NetworkStatus,
    Observation,
    ScoringResult,
    SecurityAssessment,
    SecurityProtocol,
    Severity,
    SignalQuality,
    ThreatLevel,
)

from .allowlist import (
    AllowListEntry,
    AllowListError,
    AllowListSnapshot,
    AllowListStore,
    ChecksumMismatchError,
    Geofence,
    compute_checksum,
    parse_document,
)

from .scoring import ScoringEngine

from .evil_twin import EvilTwinDetector

from .lookalike import LookalikeMatch, find_lookalike

from .assessment import (
    AssessmentAggregator,
    computed_status,
    grade_for,
    threat_level_for,
)

from .status import (
    NetworkStore,
    StatusStateMachine,
)

from .alerts import (
    Alert,
    AlertSink,
    AlertType,
)

from .allowlist_sync import (
    AllowListClient,
    AllowListConnectionError,
    AllowListSyncError,
    AllowListSyncer,
    SyncResult,
)

from .transfer import (
    ImportResult,
    export_user_managed,
    import_user_managed,
)

from .coordinator import (
    CycleCancelled,
    CycleSummary,
    ScanCycleCoordinator,
)

from .engine import (
    Engine,
    create_engine,
)

__all__ = [
    # Models
    'FrequencyBand',
    'Indicator',
    'IndicatorKind',
    'NetworkRecord',
    'NetworkStatus',
    'Observation',
    'ScoringResult',
    'SecurityAssessment',
    'SecurityProtocol',
    'Severity',
    'SignalQuality',
    'ThreatLevel',
    # Allow-list
    'AllowListEntry',
    'AllowListError',
    'AllowListSnapshot',
    'AllowListStore',
    'ChecksumMismatchError',
    'Geofence',
    'compute_checksum',
    'parse_document',
    'AllowListClient',
    'AllowListConnectionError',
    'AllowListSyncError',
    'AllowListSyncer',
    'SyncResult',
    # Assessment pipeline
    'ScoringEngine',
    'EvilTwinDetector',
    'LookalikeMatch',
    'find_lookalike',
    'AssessmentAggregator',
    'computed_status',
    'grade_for',
    'threat_level_for',
    # Status
    'NetworkStore',
    'StatusStateMachine',
    'ImportResult',
    'export_user_managed',
    'import_user_managed',
    # Alerts
    'Alert',
    'AlertSink',
    'AlertType',
    # Cycles
    'CycleCancelled',
    'CycleSummary',
    'ScanCycleCoordinator',
    'Engine',
    'create_engine',
]
