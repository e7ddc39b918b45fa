"""
Wiring for the shared engine objects.

Every component receives its collaborators explicitly; the Flask app keeps
one Engine in app.extensions['twinguard'].
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from config import ALLOWLIST_MAX_AGE_HOURS
from .alerts import AlertSink
from .allowlist import AllowListStore
from .allowlist_sync import AllowListClient, AllowListSyncer, create_client_from_config
from .coordinator import ScanCycleCoordinator
from .status import NetworkStore, StatusStateMachine

logger = logging.getLogger('twinguard.engine')

EXTENSION_KEY = 'twinguard'


@dataclass
class Engine:
    store: NetworkStore
    machine: StatusStateMachine
    allowlist: AllowListStore
    syncer: AllowListSyncer
    alerts: AlertSink
    coordinator: ScanCycleCoordinator

    @property
    def allowlist_max_age(self) -> timedelta:
        return self.coordinator.allowlist_max_age


def create_engine(
    persistent: bool = True,
    client: AllowListClient | None = None,
    load: bool = True,
) -> Engine:
    """
    Build the engine objects and restore persisted state.

    Args:
        persistent: Mirror records and the allow-list cache to sqlite
        client: Allow-list client; defaults to the configured URL
        load: Load persisted records and the cached allow-list now
    """
    store = NetworkStore(persistent=persistent)
    machine = StatusStateMachine(store)
    allowlist = AllowListStore()
    syncer = AllowListSyncer(
        allowlist,
        client=client if client is not None else create_client_from_config(),
        cache=persistent,
    )
    alerts = AlertSink()
    coordinator = ScanCycleCoordinator(
        machine,
        allowlist,
        alert_sink=alerts,
        allowlist_max_age=timedelta(hours=ALLOWLIST_MAX_AGE_HOURS),
    )

    if persistent and load:
        store.load()
        syncer.load_cached()

    return Engine(
        store=store,
        machine=machine,
        allowlist=allowlist,
        syncer=syncer,
        alerts=alerts,
        coordinator=coordinator,
    )
