"""
SQLite database utilities for network records and cached settings.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from config import DATABASE_PATH

logger = logging.getLogger('twinguard.database')

# Database file location
if DATABASE_PATH:
    DB_PATH = Path(DATABASE_PATH)
    DB_DIR = DB_PATH.parent
else:
    DB_DIR = Path(__file__).parent.parent / 'instance'
    DB_PATH = DB_DIR / 'twinguard.db'

# Thread-local storage for connections
_local = threading.local()


def get_db_path() -> Path:
    """Get the database file path, creating directory if needed."""
    DB_DIR.mkdir(parents=True, exist_ok=True)
    return DB_PATH


def get_connection() -> sqlite3.Connection:
    """Get a thread-local database connection."""
    db_path = get_db_path()
    conn = getattr(_local, 'connection', None)
    if conn is not None and getattr(_local, 'connection_path', None) != db_path:
        # DB_PATH was switched (tests, reconfiguration)
        conn.close()
        conn = None
    if conn is None:
        conn = sqlite3.connect(str(db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        _local.connection = conn
        _local.connection_path = db_path
    return conn


@contextmanager
def get_db():
    """Context manager for database operations."""
    conn = get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def init_db() -> None:
    """Initialize the database schema."""
    db_path = get_db_path()
    logger.info(f"Initializing database at {db_path}")

    with get_db() as conn:
        # Settings table for key-value storage
        conn.execute('''
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                value_type TEXT DEFAULT 'string',
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        # Authoritative per-network status records
        conn.execute('''
            CREATE TABLE IF NOT EXISTS network_records (
                record_key TEXT PRIMARY KEY,
                bssid TEXT,
                ssid TEXT,
                current_status TEXT NOT NULL DEFAULT 'unknown',
                original_status TEXT,
                is_user_managed BOOLEAN DEFAULT 0,
                first_seen TEXT,
                last_seen TEXT,
                last_assessment TEXT,
                action_timestamp TEXT,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        conn.execute('''
            CREATE INDEX IF NOT EXISTS idx_network_records_status
            ON network_records(current_status)
        ''')

        conn.execute('''
            CREATE INDEX IF NOT EXISTS idx_network_records_ssid
            ON network_records(ssid)
        ''')

        logger.info("Database initialized successfully")


def close_db() -> None:
    """Close the thread-local database connection."""
    if getattr(_local, 'connection', None) is not None:
        _local.connection.close()
        _local.connection = None
        _local.connection_path = None


# =============================================================================
# Settings Functions
# =============================================================================

def get_setting(key: str, default: Any = None) -> Any:
    """
    Get a setting value by key.

    Args:
        key: Setting key
        default: Default value if not found

    Returns:
        Setting value (auto-converted from JSON for complex types)
    """
    with get_db() as conn:
        cursor = conn.execute(
            'SELECT value, value_type FROM settings WHERE key = ?',
            (key,)
        )
        row = cursor.fetchone()

        if row is None:
            return default

        value, value_type = row['value'], row['value_type']

        # Convert based on type
        if value_type == 'json':
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return default
        elif value_type == 'int':
            return int(value)
        elif value_type == 'float':
            return float(value)
        elif value_type == 'bool':
            return value.lower() in ('true', '1', 'yes')
        else:
            return value


def set_setting(key: str, value: Any) -> None:
    """
    Set a setting value.

    Args:
        key: Setting key
        value: Setting value (will be JSON-encoded for complex types)
    """
    # Determine value type and string representation
    if isinstance(value, bool):
        value_type = 'bool'
        str_value = 'true' if value else 'false'
    elif isinstance(value, int):
        value_type = 'int'
        str_value = str(value)
    elif isinstance(value, float):
        value_type = 'float'
        str_value = str(value)
    elif isinstance(value, (dict, list)):
        value_type = 'json'
        str_value = json.dumps(value)
    else:
        value_type = 'string'
        str_value = str(value)

    with get_db() as conn:
        conn.execute('''
            INSERT INTO settings (key, value, value_type, updated_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                value_type = excluded.value_type,
                updated_at = CURRENT_TIMESTAMP
        ''', (key, str_value, value_type))


# =============================================================================
# Network Record Functions
# =============================================================================

def save_network_records(records: list[dict]) -> int:
    """
    Upsert network records in a single transaction.

    Args:
        records: Record dictionaries as produced by NetworkRecord.to_dict()

    Returns:
        Number of records written
    """
    rows = [
        (
            r['key'],
            r.get('bssid'),
            r.get('ssid'),
            r.get('current_status', 'unknown'),
            r.get('original_status'),
            1 if r.get('is_user_managed') else 0,
            r.get('first_seen'),
            r.get('last_seen'),
            json.dumps(r['last_assessment']) if r.get('last_assessment') else None,
            r.get('action_timestamp'),
        )
        for r in records
    ]
    if not rows:
        return 0

    with get_db() as conn:
        conn.executemany('''
            INSERT INTO network_records
            (record_key, bssid, ssid, current_status, original_status, is_user_managed,
             first_seen, last_seen, last_assessment, action_timestamp, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(record_key) DO UPDATE SET
                bssid = excluded.bssid,
                ssid = excluded.ssid,
                current_status = excluded.current_status,
                original_status = excluded.original_status,
                is_user_managed = excluded.is_user_managed,
                first_seen = excluded.first_seen,
                last_seen = excluded.last_seen,
                last_assessment = excluded.last_assessment,
                action_timestamp = excluded.action_timestamp,
                updated_at = CURRENT_TIMESTAMP
        ''', rows)
    return len(rows)


def load_network_records() -> list[dict]:
    """Load all persisted network records."""
    with get_db() as conn:
        cursor = conn.execute('''
            SELECT * FROM network_records
            ORDER BY record_key ASC
        ''')

        results = []
        for row in cursor:
            assessment = None
            if row['last_assessment']:
                try:
                    assessment = json.loads(row['last_assessment'])
                except json.JSONDecodeError:
                    logger.warning(f"Dropping unreadable assessment for {row['record_key']}")
            results.append({
                'key': row['record_key'],
                'bssid': row['bssid'],
                'ssid': row['ssid'],
                'current_status': row['current_status'],
                'original_status': row['original_status'],
                'is_user_managed': bool(row['is_user_managed']),
                'first_seen': row['first_seen'],
                'last_seen': row['last_seen'],
                'last_assessment': assessment,
                'action_timestamp': row['action_timestamp'],
            })
        return results


def delete_all_network_records() -> int:
    """Remove every network record. Returns number of rows deleted."""
    with get_db() as conn:
        cursor = conn.execute('DELETE FROM network_records')
        return cursor.rowcount
