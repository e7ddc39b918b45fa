"""Logger helpers shared by twinguard modules."""

from __future__ import annotations

import logging


def get_logger(name: str) -> logging.Logger:
    """Get a logger in the twinguard hierarchy."""
    if not name.startswith('twinguard'):
        name = f'twinguard.{name}'
    return logging.getLogger(name)


app_logger = get_logger('twinguard')
