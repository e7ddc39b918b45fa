"""
TWINGUARD - Constants and Magic Numbers

Centralized location for the tunable values used by the assessment engine.
"""

from __future__ import annotations

# =============================================================================
# SIGNAL STRENGTH
# =============================================================================

# Vendor-normalized signal range (percent)
SIGNAL_PERCENT_MIN = 0
SIGNAL_PERCENT_MAX = 100

# dBm range mapped linearly onto 0-100 (-100 dBm -> 0, -30 dBm -> 100)
SIGNAL_DBM_FLOOR = -100
SIGNAL_DBM_CEILING = -30

# Quality band lower bounds (normalized percent)
SIGNAL_EXCELLENT_MIN = 80
SIGNAL_GOOD_MIN = 60
SIGNAL_FAIR_MIN = 40

# Normalized strength at or above which a signal is implausibly close
SIGNAL_IMPLAUSIBLE_MIN = 90


# =============================================================================
# SCORING CONTRIBUTIONS
# =============================================================================

# Neutral starting score; a clean network with no allow-list entry stays
# in the low or medium threat band
SCORE_BASE = 50

SCORE_PROTOCOL_WPA3 = 30
SCORE_PROTOCOL_WPA2 = 25
SCORE_PROTOCOL_WPA = 15
SCORE_PROTOCOL_WEP = 5
SCORE_PROTOCOL_OPEN = -20

# Bonus for 5GHz/6GHz over 2.4GHz
SCORE_MODERN_BAND_BONUS = 10

SCORE_SIGNAL_EXCELLENT = 10
SCORE_SIGNAL_POOR = -5

# Hardware reputation of the BSSID vendor prefix
SCORE_VENDOR_ATTACK_TOOL = -40
SCORE_VENDOR_SUSPICIOUS = -15

# Score floor for an authoritative allow-list hit
SCORE_ALLOWLIST_FLOOR = 90

SCORE_MIN = 0
SCORE_MAX = 100


# =============================================================================
# EVIL TWIN DETECTION
# =============================================================================

# Normalized signal thresholds for untrusted duplicate severity
TWIN_SIGNAL_HIGH_MIN = 70
TWIN_SIGNAL_MEDIUM_MIN = 40

# Edit-distance similarity at or above which an SSID imitates an allow-listed one
SSID_LOOKALIKE_MIN_SIMILARITY = 0.8

# Allow-listed SSIDs shorter than this are only matched after folding
SSID_LOOKALIKE_MIN_LENGTH = 4


# =============================================================================
# ASSESSMENT
# =============================================================================

# Score penalty per detector indicator, by severity
PENALTY_LOW = 5
PENALTY_MEDIUM = 15
PENALTY_HIGH = 30
PENALTY_CRITICAL = 45

# Threat level lower bounds
THREAT_LOW_MIN = 80
THREAT_MEDIUM_MIN = 60
THREAT_HIGH_MIN = 30

# Grade lower bounds
GRADE_A_MIN = 90
GRADE_B_MIN = 80
GRADE_C_MIN = 70
GRADE_D_MIN = 50

CONFIDENCE_BASE = 0.5
CONFIDENCE_STEP = 0.2
CONFIDENCE_MAX = 1.0

# Confidence reduction while no usable allow-list is loaded
CONFIDENCE_ALLOWLIST_UNAVAILABLE_PENALTY = 0.2


# =============================================================================
# ALERTS
# =============================================================================

# Maximum alerts kept in memory
ALERT_HISTORY_SIZE = 500

# Maximum queued alerts for consumers
ALERT_QUEUE_SIZE = 1000


# =============================================================================
# STORE
# =============================================================================

# Back-off between commit retries (seconds)
STORE_COMMIT_BACKOFF = 0.05
