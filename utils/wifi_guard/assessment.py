"""
Combines per-observation scores with evil twin findings into one
SecurityAssessment per network, and maps assessments to automatic statuses.
"""

from __future__ import annotations

from utils.constants import (
    CONFIDENCE_ALLOWLIST_UNAVAILABLE_PENALTY,
    CONFIDENCE_BASE,
    CONFIDENCE_MAX,
    CONFIDENCE_STEP,
    GRADE_A_MIN,
    GRADE_B_MIN,
    GRADE_C_MIN,
    GRADE_D_MIN,
    PENALTY_CRITICAL,
    PENALTY_HIGH,
    PENALTY_LOW,
    PENALTY_MEDIUM,
    SCORE_MIN,
    THREAT_HIGH_MIN,
    THREAT_LOW_MIN,
    THREAT_MEDIUM_MIN,
)
from .models import (
    Indicator,
    IndicatorKind,
    NetworkStatus,
    Observation,
    ScoringResult,
    SecurityAssessment,
    Severity,
    ThreatLevel,
    utc_now,
)

SEVERITY_PENALTIES = {
    Severity.LOW: PENALTY_LOW,
    Severity.MEDIUM: PENALTY_MEDIUM,
    Severity.HIGH: PENALTY_HIGH,
    Severity.CRITICAL: PENALTY_CRITICAL,
}


def threat_level_for(score: int) -> ThreatLevel:
    if score >= THREAT_LOW_MIN:
        return ThreatLevel.LOW
    if score >= THREAT_MEDIUM_MIN:
        return ThreatLevel.MEDIUM
    if score >= THREAT_HIGH_MIN:
        return ThreatLevel.HIGH
    return ThreatLevel.CRITICAL


def grade_for(score: int) -> str:
    if score >= GRADE_A_MIN:
        return 'A'
    if score >= GRADE_B_MIN:
        return 'B'
    if score >= GRADE_C_MIN:
        return 'C'
    if score >= GRADE_D_MIN:
        return 'D'
    return 'F'


def computed_status(assessment: SecurityAssessment | None) -> NetworkStatus:
    """
    Automatic status for an assessment.

    verified: allow-list hit with no indicators
    suspicious: threat level high or critical
    Allow-listed networks with minor findings stay verified; anything else
    without evidence against it stays unknown.
    """
    if assessment is None:
        return NetworkStatus.UNKNOWN
    if assessment.allowlist_hit and not assessment.indicators:
        return NetworkStatus.VERIFIED
    if assessment.threat_level in (ThreatLevel.HIGH, ThreatLevel.CRITICAL):
        return NetworkStatus.SUSPICIOUS
    if assessment.allowlist_hit:
        return NetworkStatus.VERIFIED
    return NetworkStatus.UNKNOWN


class AssessmentAggregator:
    """Builds SecurityAssessments from scoring output and detector evidence."""

    def assess(
        self,
        observation: Observation,
        scoring_result: ScoringResult,
        detector_indicators: list[Indicator] | None = None,
        allowlist_available: bool | None = None,
    ) -> SecurityAssessment:
        """
        Combine one observation's score with its detector findings.

        Args:
            observation: The scored observation
            scoring_result: ScoringEngine output for the observation
            detector_indicators: EvilTwinDetector findings for its BSSID
            allowlist_available: Overrides scoring_result.allowlist_available

        Returns:
            SecurityAssessment with scoring indicators first, then detector
            indicators, each kind listed once
        """
        detector_indicators = list(detector_indicators or [])
        if allowlist_available is None:
            allowlist_available = scoring_result.allowlist_available

        score = scoring_result.score
        for indicator in detector_indicators:
            score -= SEVERITY_PENALTIES[indicator.severity]
        score = max(SCORE_MIN, score)

        indicators = _ordered_unique(scoring_result.indicators + detector_indicators)

        return SecurityAssessment(
            score=score,
            grade=grade_for(score),
            threat_level=threat_level_for(score),
            confidence=_confidence(scoring_result, detector_indicators, allowlist_available),
            indicators=indicators,
            allowlist_hit=scoring_result.allowlist_hit,
            assessed_at=observation.timestamp or utc_now(),
        )


def _confidence(
    scoring_result: ScoringResult,
    detector_indicators: list[Indicator],
    allowlist_available: bool,
) -> float:
    """0.5 plus 0.2 per independent line of evidence, capped at 1.0."""
    corroborating = 0
    if scoring_result.allowlist_hit:
        corroborating += 1
    corroborating += len({i.kind for i in detector_indicators})
    corroborating += len({i.kind for i in scoring_result.indicators})

    confidence = min(CONFIDENCE_MAX, CONFIDENCE_BASE + CONFIDENCE_STEP * corroborating)
    if not allowlist_available:
        confidence = max(0.0, confidence - CONFIDENCE_ALLOWLIST_UNAVAILABLE_PENALTY)
    return round(confidence, 2)


def _ordered_unique(indicators: list[Indicator]) -> list[Indicator]:
    """Keep the first indicator of each kind, upgrading to the highest severity seen."""
    by_kind: dict[IndicatorKind, Indicator] = {}
    for indicator in indicators:
        current = by_kind.get(indicator.kind)
        if current is None or indicator.severity.rank > current.severity.rank:
            by_kind[indicator.kind] = indicator
    return list(by_kind.values())
