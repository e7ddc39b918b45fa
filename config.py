"""Configuration settings for twinguard application."""

from __future__ import annotations

import logging
import os
import sys

# Application version
VERSION = "1.0.0"


def _get_env(key: str, default: str) -> str:
    """Get environment variable with default."""
    return os.environ.get(f'TWINGUARD_{key}', default)


def _get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer with default."""
    try:
        return int(os.environ.get(f'TWINGUARD_{key}', str(default)))
    except ValueError:
        return default


def _get_env_float(key: str, default: float) -> float:
    """Get environment variable as float with default."""
    try:
        return float(os.environ.get(f'TWINGUARD_{key}', str(default)))
    except ValueError:
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean with default."""
    val = os.environ.get(f'TWINGUARD_{key}', '').lower()
    if val in ('true', '1', 'yes', 'on'):
        return True
    if val in ('false', '0', 'no', 'off'):
        return False
    return default


# Logging configuration
_log_level_str = _get_env('LOG_LEVEL', 'WARNING').upper()
LOG_LEVEL = getattr(logging, _log_level_str, logging.WARNING)
LOG_FORMAT = _get_env('LOG_FORMAT', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')

# Server settings
HOST = _get_env('HOST', '0.0.0.0')
PORT = _get_env_int('PORT', 5060)
DEBUG = _get_env_bool('DEBUG', False)
THREADED = _get_env_bool('THREADED', True)

# Persistence
DATABASE_PATH = _get_env('DATABASE_PATH', '')

# Allow-list sync
ALLOWLIST_URL = _get_env('ALLOWLIST_URL', '')
ALLOWLIST_API_KEY = _get_env('ALLOWLIST_API_KEY', '')
ALLOWLIST_TIMEOUT = _get_env_float('ALLOWLIST_TIMEOUT', 15.0)
ALLOWLIST_MAX_AGE_HOURS = _get_env_int('ALLOWLIST_MAX_AGE_HOURS', 24)

# Scan cycles
SCAN_INTERVAL = _get_env_float('SCAN_INTERVAL', 30.0)
STORE_LOCK_TIMEOUT = _get_env_float('STORE_LOCK_TIMEOUT', 5.0)
STORE_COMMIT_RETRIES = _get_env_int('STORE_COMMIT_RETRIES', 3)


def configure_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format=LOG_FORMAT,
        stream=sys.stderr
    )
    # Suppress Flask development server warning
    logging.getLogger('werkzeug').setLevel(LOG_LEVEL)
