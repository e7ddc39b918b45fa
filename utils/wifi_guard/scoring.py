"""
Per-observation security scoring.

Scoring factors (added to a neutral base of 50, clamped to 0-100):
- Security protocol: WPA3 +30, WPA2 +25, WPA +15, WEP +5, open -20
- 5GHz/6GHz band: +10
- Signal quality: excellent +10, poor -5. An implausibly strong signal with
  no allow-list geofence match becomes a signal_anomaly indicator instead
  of a bonus.
- BSSID vendor: rogue access point hardware -40 (high), pentest or
  placeholder prefixes -15 (medium), as a suspicious_vendor indicator
- Allow-list hit (BSSID and SSID match): floor of 90, no further indicators
"""

from __future__ import annotations

import dataclasses
import logging

from data.oui import VENDOR_ATTACK_TOOL, get_vendor_info, is_suspicious_vendor
from utils.constants import (
    SCORE_ALLOWLIST_FLOOR,
    SCORE_BASE,
    SCORE_MAX,
    SCORE_MIN,
    SCORE_MODERN_BAND_BONUS,
    SCORE_PROTOCOL_OPEN,
    SCORE_PROTOCOL_WEP,
    SCORE_PROTOCOL_WPA,
    SCORE_PROTOCOL_WPA2,
    SCORE_PROTOCOL_WPA3,
    SCORE_SIGNAL_EXCELLENT,
    SCORE_SIGNAL_POOR,
    SCORE_VENDOR_ATTACK_TOOL,
    SCORE_VENDOR_SUSPICIOUS,
    SIGNAL_IMPLAUSIBLE_MIN,
)
from utils.validation import normalize_bssid
from .allowlist import AllowListEntry, AllowListSnapshot
from .models import (
    FrequencyBand,
    Indicator,
    IndicatorKind,
    Observation,
    ScoringResult,
    SecurityProtocol,
    Severity,
    SignalQuality,
)

logger = logging.getLogger('twinguard.scoring')

PROTOCOL_SCORES = {
    SecurityProtocol.WPA3: SCORE_PROTOCOL_WPA3,
    SecurityProtocol.WPA2: SCORE_PROTOCOL_WPA2,
    SecurityProtocol.WPA: SCORE_PROTOCOL_WPA,
    SecurityProtocol.WEP: SCORE_PROTOCOL_WEP,
    SecurityProtocol.OPEN: SCORE_PROTOCOL_OPEN,
}

MODERN_BANDS = (FrequencyBand.BAND_5_GHZ, FrequencyBand.BAND_6_GHZ)


class ScoringEngine:
    """Deterministic, side-effect-free scoring of single observations."""

    def prepare(self, observation: Observation) -> Observation | None:
        """
        Canonicalize the BSSID of an observation.

        Returns:
            The observation with a canonical BSSID, or None if it can't be
            scored (a malformed_observation diagnostic is logged)
        """
        if observation.bssid is None:
            if observation.is_hidden:
                logger.warning("malformed_observation: hidden network without BSSID")
                return None
            return observation

        bssid = normalize_bssid(observation.bssid)
        if bssid is None:
            logger.warning(
                f"malformed_observation: bssid={observation.bssid!r} ssid={observation.ssid!r}"
            )
            return None
        if bssid != observation.bssid:
            return dataclasses.replace(observation, bssid=bssid)
        return observation

    def score(
        self,
        observation: Observation,
        allowlist_hit: AllowListEntry | None,
        geofence_match: bool = False,
    ) -> tuple[int, list[Indicator]]:
        """
        Score one observation.

        Args:
            observation: Observation with a canonical BSSID
            allowlist_hit: Matching allow-list entry (BSSID and SSID), if any
            geofence_match: Whether the observation location falls inside an
                allow-list geofence for its SSID

        Returns:
            Tuple of (score, indicators)
        """
        score = SCORE_BASE + PROTOCOL_SCORES[observation.security_protocol]

        if observation.frequency_band in MODERN_BANDS:
            score += SCORE_MODERN_BAND_BONUS

        indicators: list[Indicator] = []
        quality = observation.signal_quality
        signal = observation.normalized_signal

        if allowlist_hit is not None:
            if quality is SignalQuality.EXCELLENT:
                score += SCORE_SIGNAL_EXCELLENT
            elif quality is SignalQuality.POOR:
                score += SCORE_SIGNAL_POOR
            return max(SCORE_ALLOWLIST_FLOOR, _clamp(score)), []

        if quality is SignalQuality.EXCELLENT:
            if signal >= SIGNAL_IMPLAUSIBLE_MIN and not geofence_match:
                indicators.append(Indicator(
                    kind=IndicatorKind.SIGNAL_ANOMALY,
                    severity=Severity.MEDIUM,
                    evidence={
                        'signal': signal,
                        'raw_signal': observation.signal_strength,
                        'threshold': SIGNAL_IMPLAUSIBLE_MIN,
                    },
                ))
            else:
                score += SCORE_SIGNAL_EXCELLENT
        elif quality is SignalQuality.POOR:
            score += SCORE_SIGNAL_POOR

        if is_suspicious_vendor(observation.bssid):
            vendor = get_vendor_info(observation.bssid)
            attack_tool = vendor['type'] == VENDOR_ATTACK_TOOL
            score += SCORE_VENDOR_ATTACK_TOOL if attack_tool else SCORE_VENDOR_SUSPICIOUS
            indicators.append(Indicator(
                kind=IndicatorKind.SUSPICIOUS_VENDOR,
                severity=Severity.HIGH if attack_tool else Severity.MEDIUM,
                evidence=vendor,
            ))

        return _clamp(score), indicators

    def evaluate(
        self,
        observation: Observation,
        snapshot: AllowListSnapshot,
        allowlist_available: bool = True,
    ) -> ScoringResult | None:
        """
        Prepare and score an observation against an allow-list snapshot.

        Never raises; unscoreable observations return None.
        """
        try:
            prepared = self.prepare(observation)
            if prepared is None:
                return None
            hit = snapshot.lookup(prepared.bssid, prepared.ssid)
            geofence = snapshot.geofence_match(prepared.ssid, prepared.latitude, prepared.longitude)
            score, indicators = self.score(prepared, hit, geofence)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"malformed_observation: {observation!r}: {e}")
            return None

        return ScoringResult(
            score=score,
            indicators=indicators,
            allowlist_hit=hit is not None,
            allowlist_available=allowlist_available,
            signal_quality=prepared.signal_quality,
            observation=prepared,
        )


def _clamp(score: int) -> int:
    return max(SCORE_MIN, min(SCORE_MAX, score))
