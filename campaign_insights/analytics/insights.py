"""Journey insight synthesis and rule-based insight generation."""

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..formatting import format_currency, format_percentage
from ..models.records import TargetAccountComparison
from .models import (
    CampaignPerformance,
    CampaignTraits,
    CampaignTypeSummary,
    EngagementRecommendation,
    JourneyInsights,
    JourneyMetrics,
    JourneyPattern,
    MultiTouchImpact,
    OptimalTouchCount,
    PatternStats,
    Recommendation,
    ReallocationAnalysis,
    StageBottleneck,
    StageStats,
    TargetAccountInsights,
    TouchCountStats,
)
from .stats import safe_ratio

# A stage with more customers than this is a high-impact bottleneck
HIGH_IMPACT_STAGE_SIZE = 5

# Campaign trait cut-offs
LOW_COST_CAMPAIGN = 20_000
TARGET_FOCUS_SHARE = 0.5

# Target account significance cut-offs
SIGNIFICANT_DEAL_SIZE_MULTIPLIER = 1.5
SIGNIFICANT_WIN_RATE_ADVANTAGE = 10.0
SIGNIFICANT_ATTENDEE_EFFICIENCY = 1.2


# =============================================================================
# JOURNEY FINDINGS
# =============================================================================


def multi_touch_impact(metrics: JourneyMetrics) -> MultiTouchImpact:
    """Share of customers with more than one touch, and their share of value.

    Journey value is pipeline + closed-won, summed per customer.
    """
    return MultiTouchImpact(
        percentage=metrics.multi_touch_percentage,
        customers=metrics.multi_touch_customers,
        value=metrics.multi_touch_value,
        value_share=safe_ratio(metrics.multi_touch_value, metrics.total_journey_value) * 100,
    )


def optimal_touch_count(touch_counts: Sequence[TouchCountStats]) -> OptimalTouchCount:
    """Touch count with the highest conversion rate.

    Every distinct touch count is a candidate, including 0. Ties go to the
    lowest touch count.
    """
    candidates = sorted(touch_counts, key=lambda t: t.touches)
    if not candidates:
        return OptimalTouchCount()

    best = max(candidates, key=lambda t: t.conversion_rate)
    return OptimalTouchCount(
        touches=best.touches,
        conversion_rate=best.conversion_rate,
        efficiency=safe_ratio(best.total_value, best.total_cac),
        customers=best.customers,
        reasoning=(
            f"{best.touches} touch{'es' if best.touches != 1 else ''} show "
            f"{format_percentage(best.conversion_rate)} conversion rate across "
            f"{best.customers} customers"
        ),
    )


def journey_bottlenecks(stages: Sequence[StageStats], limit: int = 3) -> list[StageBottleneck]:
    """Stages that lose the most customers.

    Drop-off = (customers - converted) / customers * 100. Sorted by drop-off
    descending, then by customers descending, then by stage name.
    """
    bottlenecks = [
        StageBottleneck(
            stage=s.stage,
            customers=s.customers,
            converted=s.converted,
            drop_off_rate=safe_ratio(s.customers - s.converted, s.customers) * 100,
            impact="high" if s.customers > HIGH_IMPACT_STAGE_SIZE else "low",
        )
        for s in stages
    ]
    bottlenecks.sort(key=lambda b: (-b.drop_off_rate, -b.customers, b.stage))
    return bottlenecks[:limit]


def top_journey_patterns(patterns: Sequence[PatternStats], limit: int = 5) -> list[JourneyPattern]:
    """Most frequent journey patterns, ties broken by pattern key."""
    ranked = sorted(patterns, key=lambda p: (-p.frequency, p.pattern))
    return [
        JourneyPattern(
            pattern=p.pattern,
            frequency=p.frequency,
            conversion_rate=p.conversion_rate,
            average_value=p.average_value,
        )
        for p in ranked[:limit]
    ]


def synthesize_journey_insights(
    metrics: JourneyMetrics,
    touch_counts: Sequence[TouchCountStats],
    stages: Sequence[StageStats],
    patterns: Sequence[PatternStats],
) -> JourneyInsights:
    """Bundle the four journey findings."""
    return JourneyInsights(
        multi_touch_impact=multi_touch_impact(metrics),
        journey_bottlenecks=journey_bottlenecks(stages),
        optimal_touch_count=optimal_touch_count(touch_counts),
        top_journey_patterns=top_journey_patterns(patterns),
    )


# =============================================================================
# CAMPAIGN FINDINGS
# =============================================================================


def campaign_traits(campaigns: Sequence[CampaignPerformance], top_n: int = 5) -> CampaignTraits:
    """Traits shared by the top campaigns.

    Args:
        campaigns: Campaigns already sorted by ROI descending
        top_n: How many leading campaigns to inspect

    Returns:
        CampaignTraits. The dominant type is the most common one; count ties
        go to the alphabetically first type.
    """
    top = list(campaigns[:top_n])
    if not top:
        return CampaignTraits()

    distribution = Counter(c.campaign_type for c in top)
    dominant_type = min(distribution, key=lambda t: (-distribution[t], t))
    low_cost = sum(1 for c in top if c.cost < LOW_COST_CAMPAIGN)
    target_focused = sum(
        1
        for c in top
        if safe_ratio(c.target_account_customers, c.total_customers) > TARGET_FOCUS_SHARE
    )
    return CampaignTraits(
        dominant_type=dominant_type,
        type_distribution=dict(distribution),
        low_cost_percentage=low_cost / len(top) * 100,
        target_account_percentage=target_focused / len(top) * 100,
        sample_size=len(top),
    )


def target_account_insights(
    comparison: TargetAccountComparison,
    engagement: Sequence[EngagementRecommendation] = (),
) -> TargetAccountInsights:
    """Significance flags and recommendations from the target account comparison."""
    advantage = comparison.advantage
    is_significant = advantage.deal_size_multiplier >= SIGNIFICANT_DEAL_SIZE_MULTIPLIER
    win_rate_improvement = advantage.win_rate_advantage > SIGNIFICANT_WIN_RATE_ADVANTAGE
    optimal_strategy = next((r for r in engagement if r.account_type == "target"), None)

    recommendations: list[Recommendation] = []
    if is_significant:
        recommendations.append(
            Recommendation(
                type="focus-shift",
                title="Increase Target Account Focus",
                description=(
                    f"Target accounts show {advantage.deal_size_multiplier:.1f}x higher "
                    f"deal sizes. Consider allocating more budget to target account "
                    f"campaigns."
                ),
                impact="high",
                metric="deal_size",
            )
        )
    if win_rate_improvement:
        recommendations.append(
            Recommendation(
                type="strategy-optimization",
                title="Optimize Target Account Strategy",
                description=(
                    f"Target accounts have {advantage.win_rate_advantage:.1f}% higher win "
                    f"rates. Apply target account strategies to broader campaigns."
                ),
                impact="medium",
                metric="win_rate",
            )
        )
    if advantage.attendee_efficiency > SIGNIFICANT_ATTENDEE_EFFICIENCY:
        recommendations.append(
            Recommendation(
                type="resource-allocation",
                title="Optimize Attendee Allocation",
                description=(
                    f"Target accounts show {advantage.attendee_efficiency:.1f}x better "
                    f"attendee efficiency. Focus high-value attendees on target accounts."
                ),
                impact="medium",
                metric="efficiency",
            )
        )
    if optimal_strategy is not None:
        recommendations.append(
            Recommendation(
                type="attendee-strategy",
                title="Optimal Attendee Strategy",
                description=optimal_strategy.reasoning,
                impact="high",
                metric="roi",
            )
        )

    return TargetAccountInsights(
        deal_size_multiplier=advantage.deal_size_multiplier,
        win_rate_advantage=advantage.win_rate_advantage,
        attendee_efficiency=advantage.attendee_efficiency,
        is_significant=is_significant,
        win_rate_improvement=win_rate_improvement,
        optimal_strategy=optimal_strategy,
        recommendations=recommendations,
    )


# =============================================================================
# RULE-BASED INSIGHTS
# =============================================================================


class Severity(str, Enum):
    """Insight severity levels."""

    GREEN = "green"  # Good / On track
    AMBER = "amber"  # Warning / Needs attention
    RED = "red"  # Critical / Action required


@dataclass(frozen=True)
class Insight:
    """Single insight with description, severity, and recommendation."""

    rule_id: str
    description: str
    severity: Severity
    recommendation: str
    metrics: dict[str, Any] | None = None


@dataclass
class InsightThresholds:
    """Configurable thresholds for insight rules.

    All percentage values are expressed as decimals (0.5 = 50%).
    """

    # Multi-touch value: multi-touch customers hold >= X% of journey value
    multi_touch_value_share_pct: float = 0.50  # 50%

    # Bottleneck: top stage drop-off >= X% is critical when high impact
    bottleneck_critical_pct: float = 0.70  # 70%

    # Bottleneck: top stage drop-off >= X% needs attention
    bottleneck_warning_pct: float = 0.50  # 50%

    # Reallocation: inefficient groups hold >= X% of budget
    reallocation_critical_pct: float = 0.25  # 25%

    # Underperforming types: poor-tier types hold >= X% of budget
    poor_tier_budget_pct: float = 0.10  # 10%


class InsightEngine:
    """Rule-based insight generator.

    Applies business rules to the synthesized findings to produce actionable,
    severity-tagged insights. Every input is optional; rules without their
    input are skipped.

    Usage:
        engine = InsightEngine(journey=journey_insights, thresholds=InsightThresholds())
        insights = engine.generate_all_insights()
    """

    def __init__(
        self,
        journey: JourneyInsights | None = None,
        type_summary: CampaignTypeSummary | None = None,
        reallocation: ReallocationAnalysis | None = None,
        target_accounts: TargetAccountInsights | None = None,
        thresholds: InsightThresholds | None = None,
    ):
        self.journey = journey
        self.type_summary = type_summary
        self.reallocation = reallocation
        self.target_accounts = target_accounts
        self.thresholds = thresholds or InsightThresholds()

    def generate_all_insights(self) -> list[Insight]:
        """Run all insight rules and return detected insights."""
        insights: list[Insight] = []

        insights.extend(self._check_multi_touch_value())
        insights.extend(self._check_journey_bottleneck())
        insights.extend(self._check_budget_reallocation())
        insights.extend(self._check_underperforming_types())
        insights.extend(self._check_target_account_focus())
        insights.extend(self._check_target_win_rate())
        insights.extend(self._check_attendee_allocation())
        insights.extend(self._check_engagement_strategy())

        return insights

    def _check_multi_touch_value(self) -> list[Insight]:
        """Check whether multi-touch customers hold most of the journey value."""
        if self.journey is None:
            return []
        impact = self.journey.multi_touch_impact
        if impact.customers == 0:
            return []

        share = impact.value_share / 100
        if share >= self.thresholds.multi_touch_value_share_pct:
            severity = Severity.GREEN
            recommendation = (
                "Multi-touch nurturing is paying off. Keep sequencing campaigns so "
                "prospects meet the brand several times before sales engagement."
            )
        else:
            severity = Severity.AMBER
            recommendation = (
                "Most value comes from single-touch customers. Review follow-up "
                "campaigns and check whether extra touches add cost without value."
            )

        return [
            Insight(
                rule_id="multi_touch_value",
                description=(
                    f"{format_percentage(impact.percentage)} of customers are multi-touch "
                    f"and account for {format_currency(impact.value)} "
                    f"({format_percentage(impact.value_share)}) of journey value"
                ),
                severity=severity,
                recommendation=recommendation,
                metrics={
                    "multi_touch_percentage": round(impact.percentage, 1),
                    "multi_touch_value": round(impact.value, 2),
                    "value_share": round(impact.value_share, 1),
                },
            )
        ]

    def _check_journey_bottleneck(self) -> list[Insight]:
        """Check the worst stage drop-off."""
        if self.journey is None or not self.journey.journey_bottlenecks:
            return []
        worst = self.journey.journey_bottlenecks[0]
        drop_off = worst.drop_off_rate / 100

        if drop_off >= self.thresholds.bottleneck_critical_pct and worst.impact == "high":
            severity = Severity.RED
        elif drop_off >= self.thresholds.bottleneck_warning_pct:
            severity = Severity.AMBER
        else:
            return []

        return [
            Insight(
                rule_id="journey_bottleneck",
                description=(
                    f"{worst.stage}: {format_percentage(worst.drop_off_rate)} drop-off "
                    f"across {worst.customers} customers ({worst.impact} impact)"
                ),
                severity=severity,
                recommendation=(
                    f"Add targeted campaigns for customers sitting in {worst.stage}. "
                    "Review qualification criteria and sales follow-up at this stage."
                ),
                metrics={
                    "stage": worst.stage,
                    "drop_off_rate": round(worst.drop_off_rate, 1),
                    "customers": worst.customers,
                    "impact": worst.impact,
                },
            )
        ]

    def _check_budget_reallocation(self) -> list[Insight]:
        """Check for budget held by below-average groups."""
        if self.reallocation is None or not self.reallocation.inefficient:
            return []
        analysis = self.reallocation
        share = analysis.reallocation_percentage / 100
        severity = (
            Severity.RED
            if share >= self.thresholds.reallocation_critical_pct
            else Severity.AMBER
        )
        names = [g.name for g in analysis.inefficient]

        return [
            Insight(
                rule_id="budget_reallocation",
                description=(
                    f"{format_currency(analysis.reallocation_amount)} "
                    f"({format_percentage(analysis.reallocation_percentage)} of budget) sits "
                    f"in below-average ROI groups: {', '.join(names)}"
                ),
                severity=severity,
                recommendation=(
                    f"Consider shifting budget toward {analysis.recommended_target}. "
                    f"Estimated gain of {format_currency(analysis.potential_gain)} assumes "
                    "the same ROI at higher spend and is not a forecast."
                ),
                metrics={
                    "inefficient": names,
                    "reallocation_amount": round(analysis.reallocation_amount, 2),
                    "potential_gain": round(analysis.potential_gain, 2),
                    "recommended_target": analysis.recommended_target,
                },
            )
        ]

    def _check_underperforming_types(self) -> list[Insight]:
        """Check for poor-tier campaign types with a meaningful budget share."""
        if self.type_summary is None:
            return []
        insights: list[Insight] = []
        total_cost = self.type_summary.metrics.total_cost

        for item in self.type_summary.types:
            share = safe_ratio(item.total_cost, total_cost)
            if item.average_roi < 100 and share >= self.thresholds.poor_tier_budget_pct:
                insights.append(
                    Insight(
                        rule_id="underperforming_type",
                        description=(
                            f"{item.campaign_type} returns "
                            f"{format_percentage(item.average_roi)} ROI on "
                            f"{format_percentage(share * 100)} of total spend"
                        ),
                        severity=Severity.AMBER,
                        recommendation=(
                            "Review targeting and format for this campaign type, or cap "
                            "its budget until ROI recovers above 100%."
                        ),
                        metrics={
                            "campaign_type": item.campaign_type,
                            "roi": round(item.average_roi, 1),
                            "cost_share": round(share * 100, 1),
                        },
                    )
                )

        return insights

    def _check_target_account_focus(self) -> list[Insight]:
        """Check for a significant target-account deal size advantage."""
        target = self.target_accounts
        if target is None or not target.is_significant:
            return []
        return [
            Insight(
                rule_id="target_account_focus",
                description=(
                    f"Target accounts close {target.deal_size_multiplier:.1f}x larger deals "
                    "than non-target accounts"
                ),
                severity=Severity.GREEN,
                recommendation=(
                    "Allocate more campaign budget to target account programs."
                ),
                metrics={"deal_size_multiplier": round(target.deal_size_multiplier, 2)},
            )
        ]

    def _check_target_win_rate(self) -> list[Insight]:
        """Check the target vs non-target win-rate gap."""
        target = self.target_accounts
        if target is None:
            return []
        if target.win_rate_improvement:
            severity = Severity.GREEN
            recommendation = (
                "Apply target account strategies to broader campaigns."
            )
        elif target.win_rate_advantage < 0:
            severity = Severity.AMBER
            recommendation = (
                "Target accounts win less often than non-target accounts. Review "
                "account selection and engagement plans."
            )
        else:
            return []
        return [
            Insight(
                rule_id="target_win_rate",
                description=(
                    f"Target account win rate differs by "
                    f"{target.win_rate_advantage:+.1f} points from non-target accounts"
                ),
                severity=severity,
                recommendation=recommendation,
                metrics={"win_rate_advantage": round(target.win_rate_advantage, 1)},
            )
        ]

    def _check_attendee_allocation(self) -> list[Insight]:
        """Check whether attendees generate more pipeline on target accounts."""
        target = self.target_accounts
        if target is None or target.attendee_efficiency <= SIGNIFICANT_ATTENDEE_EFFICIENCY:
            return []
        return [
            Insight(
                rule_id="attendee_allocation",
                description=(
                    f"Target accounts show {target.attendee_efficiency:.1f}x better "
                    "attendee efficiency"
                ),
                severity=Severity.GREEN,
                recommendation="Focus high-value attendees on target accounts.",
                metrics={"attendee_efficiency": round(target.attendee_efficiency, 2)},
            )
        ]

    def _check_engagement_strategy(self) -> list[Insight]:
        """Surface the best attendee range for target accounts."""
        target = self.target_accounts
        if target is None or target.optimal_strategy is None:
            return []
        strategy = target.optimal_strategy
        return [
            Insight(
                rule_id="engagement_strategy",
                description=strategy.reasoning,
                severity=Severity.GREEN,
                recommendation=(
                    f"Plan target account events around {strategy.optimal_attendee_range} "
                    "attendees."
                ),
                metrics={
                    "attendee_range": strategy.optimal_attendee_range,
                    "expected_roi": round(strategy.expected_roi, 1),
                },
            )
        ]
