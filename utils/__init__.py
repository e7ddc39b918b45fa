# Utility modules for TWINGUARD
from .logging import (
    get_logger,
    app_logger,
)
from .validation import (
    validate_latitude,
    validate_longitude,
    validate_signal_strength,
    validate_positive_int,
    normalize_bssid,
    normalize_ssid,
)
