"""
Remote allow-list sync with a last-good cache.

The document is fetched over HTTP, verified, swapped into the AllowListStore
and written to the settings table. Any failure leaves the current list in
place, falling back to the cached copy when nothing is loaded yet.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

import requests

from config import ALLOWLIST_API_KEY, ALLOWLIST_TIMEOUT, ALLOWLIST_URL
from utils import database
from .allowlist import AllowListError, AllowListSnapshot, AllowListStore
from .models import _parse_timestamp, utc_now

logger = logging.getLogger('twinguard.allowlist_sync')

CACHE_DOCUMENT_KEY = 'allowlist.document'
CACHE_SYNCED_AT_KEY = 'allowlist.synced_at'


class AllowListSyncError(RuntimeError):
    """Exception raised when the allow-list cannot be fetched."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AllowListConnectionError(AllowListSyncError):
    """Exception raised when the allow-list server is unreachable."""
    pass


class AllowListClient:
    """HTTP client for the allow-list distribution endpoint."""

    def __init__(
        self,
        url: str,
        api_key: str | None = None,
        timeout: float = 15.0
    ):
        """
        Initialize allow-list client.

        Args:
            url: Full URL of the allow-list document
            api_key: Optional API key for authentication
            timeout: Request timeout in seconds
        """
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {'Accept': 'application/json'}
        if self.api_key:
            headers['X-API-Key'] = self.api_key
        return headers

    def fetch(self) -> dict:
        """
        Fetch the allow-list document.

        Returns:
            Parsed JSON document

        Raises:
            AllowListSyncError: On HTTP errors or an unreadable body
            AllowListConnectionError: If the server is unreachable
        """
        try:
            response = requests.get(
                self.url,
                headers=self._headers(),
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except requests.ConnectionError as e:
            raise AllowListConnectionError(f"Cannot connect to allow-list server at {self.url}: {e}")
        except requests.Timeout:
            raise AllowListConnectionError(f"Allow-list request timed out after {self.timeout}s")
        except requests.HTTPError as e:
            raise AllowListSyncError(
                f"Allow-list server returned error: {e.response.status_code}",
                status_code=e.response.status_code
            )
        except requests.RequestException as e:
            raise AllowListSyncError(f"Request failed: {e}")
        except ValueError as e:
            raise AllowListSyncError(f"Allow-list response is not JSON: {e}")

    def __repr__(self) -> str:
        return f"AllowListClient(url={self.url!r})"


def create_client_from_config() -> AllowListClient | None:
    """Client for the configured URL, or None when remote sync is disabled."""
    if not ALLOWLIST_URL:
        return None
    return AllowListClient(ALLOWLIST_URL, api_key=ALLOWLIST_API_KEY or None, timeout=ALLOWLIST_TIMEOUT)


@dataclass
class SyncResult:
    """Outcome of one sync attempt."""
    status: str  # 'synced', 'fallback', 'unchanged' or 'failed'
    version: str | None = None
    entry_count: int = 0
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            'status': self.status,
            'version': self.version,
            'entry_count': self.entry_count,
            'error': self.error,
        }


class AllowListSyncer:
    """Keeps an AllowListStore current from a remote source and a local cache."""

    def __init__(self, store: AllowListStore, client: AllowListClient | None = None, cache: bool = True):
        self.store = store
        self.client = client
        self.cache = cache

    def load_cached(self) -> AllowListSnapshot | None:
        """Swap in the last-good cached document, if there is one."""
        if not self.cache:
            return None
        document = database.get_setting(CACHE_DOCUMENT_KEY)
        if not document:
            return None
        synced_at = None
        raw_synced_at = database.get_setting(CACHE_SYNCED_AT_KEY)
        if raw_synced_at:
            try:
                synced_at = _parse_timestamp(raw_synced_at)
            except ValueError:
                logger.warning(f"Ignoring unreadable allow-list sync time {raw_synced_at!r}")
        try:
            snapshot = self.store.load_document(document, synced_at=synced_at)
        except AllowListError as e:
            logger.warning(f"Cached allow-list rejected: {e}")
            return None
        logger.info(f"Loaded cached allow-list {snapshot.version}")
        return snapshot

    def sync(self) -> SyncResult:
        """
        Fetch, verify and swap in the remote allow-list.

        Never raises; failures fall back to the last-good list.
        """
        if self.client is None:
            return self._fallback("Remote allow-list sync is not configured")

        try:
            document = self.client.fetch()
            snapshot = self.store.load_document(document, synced_at=utc_now())
        except (AllowListSyncError, AllowListError) as e:
            logger.warning(f"Allow-list sync failed: {e}")
            return self._fallback(str(e))

        if self.cache:
            self._write_cache(document, snapshot)

        return SyncResult(
            status='synced',
            version=snapshot.version,
            entry_count=len(snapshot.entries),
        )

    def _write_cache(self, document: dict, snapshot: AllowListSnapshot) -> None:
        """Cache the document as received so its checksum still verifies."""
        synced_at: datetime = snapshot.synced_at or utc_now()
        database.set_setting(CACHE_DOCUMENT_KEY, document)
        database.set_setting(CACHE_SYNCED_AT_KEY, synced_at.isoformat())

    def _fallback(self, error: str) -> SyncResult:
        if not self.store.is_available:
            snapshot = self.load_cached()
            if snapshot is not None:
                return SyncResult(
                    status='fallback',
                    version=snapshot.version,
                    entry_count=len(snapshot.entries),
                    error=error,
                )
            return SyncResult(status='failed', error=error)

        current = self.store.snapshot()
        return SyncResult(
            status='unchanged',
            version=current.version,
            entry_count=len(current.entries),
            error=error,
        )
