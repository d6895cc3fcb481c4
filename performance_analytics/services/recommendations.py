"""
Improvement Recommendation Service

Scores underperforming categories and explains each recommendation with a
sentence picked from a fixed decision table.

Scoring (per underperforming category):
    expected      = volume * department_rate / 100
    potentialGain = max(0, expected - actual)
    impactScore   = potentialGain * 10 + volume * |deviation| / 100

    T>P recommendations use trips as volume and passthroughs as actual.
    P>Q recommendations use passthroughs as volume and quotes as actual.

Priority:
    PRIORITY_RULES lists, per kind, the (min_gain, min_volume) corners that
    qualify for each tier. A recommendation takes the first tier where its
    gain AND volume reach one corner. Because every tier is an upward-closed
    region, raising gain or volume can only keep or raise the tier.

Reason text:
    recommendation_reason is a pure lookup: volume band x gap band selects a
    template, and the gain band selects an optional closing sentence.
"""

import logging
from typing import Dict, List, Optional, Tuple

from performance_analytics.models.enums import Priority, RecommendationKind
from performance_analytics.models.schemas import (
    CategoryPerformance,
    ImprovementRecommendation,
    SegmentPerformance,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Priority Rules
# =============================================================================

# tier -> corners (min_potential_gain, min_volume); tiers checked in order
PRIORITY_RULES: Dict[RecommendationKind, Tuple[Tuple[Priority, Tuple[Tuple[float, float], ...]], ...]] = {
    RecommendationKind.TP: (
        (Priority.HIGH, ((10, 0), (5, 100))),
        (Priority.MEDIUM, ((3, 0), (1, 50))),
    ),
    RecommendationKind.PQ: (
        (Priority.HIGH, ((5, 0), (3, 50))),
        (Priority.MEDIUM, ((2, 0), (1, 25))),
    ),
}


def classify_priority(kind: RecommendationKind, potential_gain: float, volume: float) -> Priority:
    """Priority tier for a gain/volume pair; LOW when no corner is reached."""
    for tier, corners in PRIORITY_RULES[kind]:
        if any(potential_gain >= min_gain and volume >= min_volume for min_gain, min_volume in corners):
            return tier
    return Priority.LOW


# =============================================================================
# Reason Decision Table
# =============================================================================

# Deviation (rate points) bands
LARGE_GAP_POINTS: float = 15.0
MODERATE_GAP_POINTS: float = 7.0

# volume bands per kind: (high_at_least, medium_at_least)
VOLUME_BANDS: Dict[RecommendationKind, Tuple[int, int]] = {
    RecommendationKind.TP: (100, 30),
    RecommendationKind.PQ: (50, 15),
}

# potentialGain bands
MAJOR_GAIN: float = 10.0
MEANINGFUL_GAIN: float = 3.0

_METRIC_LABELS: Dict[RecommendationKind, Tuple[str, str, str]] = {
    # (rate label, volume unit, gain unit)
    RecommendationKind.TP: ('T>P', 'trips', 'passthroughs'),
    RecommendationKind.PQ: ('P>Q', 'passthroughs', 'quotes'),
}

REASON_TEMPLATES: Dict[Tuple[str, str], str] = {
    ('high', 'large'): (
        "{category} is a high-volume category ({volume} {unit}) running {gap:.1f} points "
        "below the department {label} rate; this is the biggest structural gap."
    ),
    ('high', 'moderate'): (
        "{category} carries {volume} {unit} and sits {gap:.1f} points below the department "
        "{label} rate; a modest lift here moves the overall number."
    ),
    ('high', 'small'): (
        "{category} is only {gap:.1f} points below the department {label} rate, but with "
        "{volume} {unit} even a small improvement adds up."
    ),
    ('medium', 'large'): (
        "{category} ({volume} {unit}) trails the department {label} rate by {gap:.1f} points; "
        "review how these enquiries are handled."
    ),
    ('medium', 'moderate'): (
        "{category} ({volume} {unit}) is {gap:.1f} points below the department {label} rate."
    ),
    ('medium', 'small'): (
        "{category} ({volume} {unit}) is slightly below the department {label} rate "
        "({gap:.1f} points)."
    ),
    ('low', 'large'): (
        "{category} has low volume ({volume} {unit}) but a {gap:.1f}-point {label} gap; "
        "worth a spot check."
    ),
    ('low', 'moderate'): (
        "{category} has low volume ({volume} {unit}) and a {gap:.1f}-point {label} gap."
    ),
    ('low', 'small'): (
        "{category} is close to the department {label} rate ({gap:.1f} points below) "
        "on low volume ({volume} {unit})."
    ),
}

GAIN_SUFFIXES: Dict[str, str] = {
    'major': " Matching the department rate would add about {gain:.0f} {gain_unit}.",
    'meaningful': " Matching the department rate would add roughly {gain:.0f} {gain_unit}.",
    'minor': "",
}


def volume_band(kind: RecommendationKind, volume: float) -> str:
    high, medium = VOLUME_BANDS[kind]
    if volume >= high:
        return 'high'
    if volume >= medium:
        return 'medium'
    return 'low'


def gap_band(gap: float) -> str:
    magnitude = abs(gap)
    if magnitude >= LARGE_GAP_POINTS:
        return 'large'
    if magnitude >= MODERATE_GAP_POINTS:
        return 'moderate'
    return 'small'


def gain_band(potential_gain: float) -> str:
    if potential_gain >= MAJOR_GAIN:
        return 'major'
    if potential_gain >= MEANINGFUL_GAIN:
        return 'meaningful'
    return 'minor'


def recommendation_reason(
    kind: RecommendationKind,
    category: str,
    volume: int,
    deviation: float,
    potential_gain: float,
) -> str:
    """
    Deterministic justification for a recommendation.

    Example:
        >>> recommendation_reason(RecommendationKind.TP, 'Peru', 120, -16.0, 19.2)
        'Peru is a high-volume category (120 trips) running 16.0 points below the department T>P rate; this is the biggest structural gap. Matching the department rate would add about 19 passthroughs.'
    """
    label, unit, gain_unit = _METRIC_LABELS[kind]
    template = REASON_TEMPLATES[(volume_band(kind, volume), gap_band(deviation))]
    suffix = GAIN_SUFFIXES[gain_band(potential_gain)]
    return (template + suffix).format(
        category=category,
        volume=volume,
        unit=unit,
        gap=abs(deviation),
        label=label,
        gain=potential_gain,
        gain_unit=gain_unit,
    )


# =============================================================================
# Scoring
# =============================================================================


def potential_gain(volume: int, actual: int, department_rate: float) -> float:
    """Shortfall against the department rate, floored at zero."""
    return max(0.0, volume * department_rate / 100.0 - actual)


def impact_score(gain: float, volume: int, deviation: float) -> float:
    return gain * 10.0 + volume * abs(deviation) / 100.0


def _recommendation_inputs(
    kind: RecommendationKind,
    category: CategoryPerformance,
    performance: SegmentPerformance,
) -> Optional[Tuple[float, float, int, int]]:
    """(rate, department_rate, volume, actual) for an underperforming category."""
    if kind == RecommendationKind.TP:
        rate, department_rate = category.tpRate, performance.overallTpRate
        volume, actual = category.trips, category.passthroughs
    else:
        if category.passthroughs <= 0:
            return None
        rate, department_rate = category.pqRate, performance.overallPqRate
        volume, actual = category.passthroughs, category.quotes

    if rate >= department_rate:
        return None
    return rate, department_rate, volume, actual


def generate_department_recommendations(
    performance: SegmentPerformance,
    kind: RecommendationKind = RecommendationKind.TP,
    limit: Optional[int] = None,
) -> List[ImprovementRecommendation]:
    """
    Rank underperforming categories of a segment analysis by impact.

    Only categories already in performance.allCategories (i.e. above the
    volume threshold and not excluded) are considered.

    Args:
        performance: Output of analyze_segment_performance.
        kind: T>P or P>Q recommendations.
        limit: Maximum recommendations to return; None for all.

    Returns:
        Recommendations sorted by impactScore descending, then category.
    """
    if limit is not None and limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")

    recommendations: List[ImprovementRecommendation] = []
    for category in performance.allCategories:
        inputs = _recommendation_inputs(kind, category, performance)
        if inputs is None:
            continue
        rate, department_rate, volume, actual = inputs

        deviation = rate - department_rate
        gain = potential_gain(volume, actual, department_rate)
        recommendations.append(ImprovementRecommendation(
            kind=kind,
            category=category.category,
            priority=classify_priority(kind, gain, volume),
            rate=rate,
            departmentAvgRate=department_rate,
            deviation=deviation,
            volume=volume,
            actual=actual,
            potentialGain=gain,
            impactScore=impact_score(gain, volume, deviation),
            reason=recommendation_reason(kind, category.category, volume, deviation, gain),
        ))

    recommendations.sort(key=lambda r: (-r.impactScore, r.category))
    logger.debug(
        f"Generated {len(recommendations)} {kind.value} recommendations for {performance.dimension.value}"
    )
    return recommendations if limit is None else recommendations[:limit]
