"""Performance classification: ROI tiers, leaders and reallocation candidates."""

import logging
from collections.abc import Sequence
from typing import Literal

from ..models.records import StrategicEngagementMatrix
from .models import (
    AttendeeSegment,
    CampaignPerformance,
    CampaignTypePerformance,
    EngagementRecommendation,
    InfluenceTiers,
    OptimalAttendeeRange,
    PerformanceLeaders,
    PerformanceTiers,
    RankedGroup,
    ReallocationAnalysis,
    ScalabilityPoint,
    TrendAnalysis,
)
from .stats import pearson_correlation, safe_ratio, weighted_roi

logger = logging.getLogger(__name__)

Tier = Literal["excellent", "good", "moderate", "poor"]

# ROI tier lower bounds (percent)
EXCELLENT_ROI = 500.0
GOOD_ROI = 200.0
MODERATE_ROI = 100.0

# Campaign influence lower bounds (percent)
HIGH_INFLUENCE_ROI = 300.0
MEDIUM_INFLUENCE_ROI = 100.0

# Groups above this share of total cost are reallocation candidates
REALLOCATION_COST_SHARE = 0.10

RISING_STAR_EFFICIENCY = 10.0
RISING_STAR_ROI = 100.0


# =============================================================================
# TIERS
# =============================================================================


def tier_for_roi(roi: float) -> Tier:
    """Map an ROI percentage to its performance tier."""
    if roi >= EXCELLENT_ROI:
        return "excellent"
    if roi >= GOOD_ROI:
        return "good"
    if roi >= MODERATE_ROI:
        return "moderate"
    return "poor"


def classify_performance_tiers(groups: Sequence[RankedGroup]) -> PerformanceTiers:
    """Bucket groups into ROI tiers, keeping input order inside each tier."""
    buckets: dict[Tier, list[RankedGroup]] = {
        "excellent": [],
        "good": [],
        "moderate": [],
        "poor": [],
    }
    for group in groups:
        buckets[tier_for_roi(group.roi)].append(group)
    return PerformanceTiers(**buckets)


def categorize_influence(campaigns: Sequence[CampaignPerformance]) -> InfluenceTiers:
    """Bucket campaigns into high (>= 300), medium (100-300) and low (< 100) influence."""
    return InfluenceTiers(
        high=[c for c in campaigns if c.roi >= HIGH_INFLUENCE_ROI],
        medium=[c for c in campaigns if MEDIUM_INFLUENCE_ROI <= c.roi < HIGH_INFLUENCE_ROI],
        low=[c for c in campaigns if c.roi < MEDIUM_INFLUENCE_ROI],
    )


# =============================================================================
# LEADERS
# =============================================================================


def select_leaders(groups: Sequence[RankedGroup]) -> PerformanceLeaders:
    """Best, worst and most efficient groups.

    Each is an independent scan. ``max`` and ``min`` return the first
    element among equals, so ties go to the earliest group in input order.
    """
    if not groups:
        return PerformanceLeaders()
    return PerformanceLeaders(
        best=max(groups, key=lambda g: g.roi),
        worst=min(groups, key=lambda g: g.roi),
        most_efficient=max(groups, key=lambda g: g.cost_efficiency),
    )


# =============================================================================
# REALLOCATION
# =============================================================================


def analyze_reallocation(
    groups: Sequence[RankedGroup],
    average_roi: float | None = None,
    best: RankedGroup | None = None,
) -> ReallocationAnalysis:
    """Find groups that take a large budget share but return below average.

    A group is inefficient when its cost share exceeds 10% and its ROI is
    below the weighted average ROI. The potential gain assumes the freed
    budget would earn the best performer's ROI. It is an estimate only.

    Args:
        groups: Campaigns or campaign types
        average_roi: Weighted average ROI; recomputed from groups when None
        best: Best performer; the max-ROI group when None

    Returns:
        ReallocationAnalysis, zero-valued when there is no budget.
    """
    total_cost = sum(g.cost for g in groups)
    if average_roi is None:
        average_roi = weighted_roi(sum(g.roi * g.cost / 100 for g in groups), total_cost)
    if best is None:
        best = select_leaders(groups).best

    inefficient = [
        g
        for g in groups
        if safe_ratio(g.cost, total_cost) > REALLOCATION_COST_SHARE and g.roi < average_roi
    ]
    amount = sum(g.cost for g in inefficient)
    potential_gain = amount * (best.roi / 100) if best is not None else 0.0

    if inefficient:
        logger.debug(
            "Flagged %d of %d groups for reallocation (%.0f of %.0f budget)",
            len(inefficient),
            len(groups),
            amount,
            total_cost,
        )

    return ReallocationAnalysis(
        inefficient=inefficient,
        reallocation_amount=amount,
        potential_gain=potential_gain,
        reallocation_percentage=safe_ratio(amount, total_cost) * 100,
        recommended_target=best.name if best is not None else "N/A",
    )


# =============================================================================
# SCALABILITY
# =============================================================================


def scalability_for(campaign_count: int) -> Literal["High", "Medium", "Low"]:
    if campaign_count > 3:
        return "High"
    if campaign_count > 1:
        return "Medium"
    return "Low"


def analyze_scalability(types: Sequence[CampaignTypePerformance]) -> TrendAnalysis:
    """ROI vs efficiency positions and rising stars.

    Scalability is High above 3 campaigns, Medium above 1, else Low. Rising
    stars have efficiency > 10, ROI > 100 and are not Low.
    """
    points = [
        ScalabilityPoint(
            name=g.name,
            roi=g.roi,
            efficiency=g.cost_efficiency,
            scalability=scalability_for(g.total_campaigns),
        )
        for g in types
    ]
    rising_stars = [
        p
        for p in points
        if p.efficiency > RISING_STAR_EFFICIENCY
        and p.roi > RISING_STAR_ROI
        and p.scalability != "Low"
    ]
    correlation = pearson_correlation([p.roi for p in points], [p.efficiency for p in points])
    return TrendAnalysis(
        points=points,
        rising_stars=rising_stars,
        roi_efficiency_correlation=correlation,
        total_types=len(points),
    )


# =============================================================================
# ENGAGEMENT
# =============================================================================


def recommend_engagement(matrix: StrategicEngagementMatrix) -> list[EngagementRecommendation]:
    """Best-ROI attendee range for target and for non-target accounts.

    Ties go to the first range in matrix order. Empty matrix, no recommendations.
    """
    rows = matrix.matrix
    if not rows:
        return []

    target_best = max(rows, key=lambda r: r.target_accounts.roi)
    non_target_best = max(rows, key=lambda r: r.non_target_accounts.roi)
    return [
        EngagementRecommendation(
            account_type="target",
            optimal_attendee_range=target_best.attendee_range,
            expected_roi=target_best.target_accounts.roi,
            reasoning=(
                f"Target accounts show highest ROI "
                f"({target_best.target_accounts.roi:.1f}%) with "
                f"{target_best.attendee_range} attendees"
            ),
        ),
        EngagementRecommendation(
            account_type="non-target",
            optimal_attendee_range=non_target_best.attendee_range,
            expected_roi=non_target_best.non_target_accounts.roi,
            reasoning=(
                f"Non-target accounts show highest ROI "
                f"({non_target_best.non_target_accounts.roi:.1f}%) with "
                f"{non_target_best.attendee_range} attendees"
            ),
        ),
    ]


def optimal_attendee_range(segments: Sequence[AttendeeSegment]) -> OptimalAttendeeRange:
    """Attendee range with the highest pipeline per attendee; first range wins ties."""
    if not segments:
        return OptimalAttendeeRange()
    best = max(segments, key=lambda s: s.pipeline_per_attendee)
    return OptimalAttendeeRange(
        attendee_range=best.attendee_range,
        efficiency=best.pipeline_per_attendee,
        recommendation=(
            f"Optimal attendee count is {best.attendee_range} with "
            f"${round(best.pipeline_per_attendee):,} pipeline per attendee"
        ),
    )
