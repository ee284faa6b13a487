"""Output models for analytics calculations."""

from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Protocol


class RankedGroup(Protocol):
    """Anything the classifier can rank: a campaign or a campaign type."""

    @property
    def name(self) -> str: ...

    @property
    def roi(self) -> float: ...

    @property
    def cost(self) -> float: ...

    @property
    def cost_efficiency(self) -> float: ...


# =============================================================================
# CAMPAIGNS
# =============================================================================


@dataclass(frozen=True)
class CampaignPerformance:
    """One campaign with ratios recomputed from its totals."""

    campaign_id: str
    campaign_name: str
    campaign_type: str
    status: str
    start_date: date | None
    cost: float
    total_customers: int
    target_account_customers: int
    total_attendees: int
    pipeline_value: float
    closed_won_value: float
    win_rate: float
    cac: float
    target_account_win_rate: float
    roi: float  # closed_won / cost * 100
    pipeline_efficiency: float  # pipeline / cost
    attendee_efficiency: float  # pipeline / attendees

    @property
    def name(self) -> str:
        return self.campaign_name or self.campaign_id

    @property
    def cost_efficiency(self) -> float:
        return self.pipeline_efficiency


@dataclass(frozen=True)
class CampaignInfluenceMetrics:
    """Totals across all campaigns."""

    total_campaigns: int = 0
    total_cost: float = 0.0
    total_customers: int = 0
    total_target_customers: int = 0
    total_attendees: int = 0
    total_pipeline_value: float = 0.0
    total_closed_won_value: float = 0.0
    average_roi: float = 0.0  # Cost-weighted
    average_pipeline_efficiency: float = 0.0
    average_win_rate: float = 0.0  # Customer-weighted


@dataclass(frozen=True)
class CampaignInfluenceSummary:
    """Campaigns sorted by ROI descending, plus their totals."""

    campaigns: list[CampaignPerformance] = field(default_factory=list)
    metrics: CampaignInfluenceMetrics = field(default_factory=CampaignInfluenceMetrics)


# =============================================================================
# CAMPAIGN TYPES
# =============================================================================


@dataclass(frozen=True)
class CampaignTypePerformance:
    """One campaign type. Every ratio is derived from the totals."""

    campaign_type: str
    total_campaigns: int
    total_cost: float
    total_customers: int
    total_target_customers: int
    total_pipeline_value: float
    total_closed_won_value: float
    total_open_opportunities: int
    total_attendees: int
    average_win_rate: float
    average_target_account_win_rate: float
    average_roi: float  # closed_won / cost * 100
    cost_efficiency: float  # pipeline / cost
    attendee_efficiency: float  # pipeline / attendees
    target_account_percentage: float
    average_cost_per_campaign: float
    average_pipeline_per_campaign: float
    average_customers_per_campaign: float

    @property
    def name(self) -> str:
        return self.campaign_type

    @property
    def roi(self) -> float:
        return self.average_roi

    @property
    def cost(self) -> float:
        return self.total_cost


@dataclass(frozen=True)
class CampaignTypeMetrics:
    """Totals across campaign types.

    When the backend supplied unique totals, customer, pipeline and closed-won
    totals come from them rather than from summing per-type values.
    """

    total_types: int = 0
    total_campaigns: int = 0
    total_cost: float = 0.0
    total_customers: int = 0
    total_pipeline_value: float = 0.0
    total_closed_won_value: float = 0.0
    open_pipeline_value: float = 0.0
    open_pipeline_customers: int = 0
    closed_won_customers: int = 0
    closed_lost_customers: int = 0
    average_roi: float = 0.0
    average_cost_efficiency: float = 0.0
    win_rate: float = 0.0
    close_rate: float = 0.0
    uses_unique_totals: bool = False


@dataclass(frozen=True)
class CampaignTypeSummary:
    """Campaign types sorted by ROI descending, plus their totals."""

    types: list[CampaignTypePerformance] = field(default_factory=list)
    metrics: CampaignTypeMetrics = field(default_factory=CampaignTypeMetrics)


# =============================================================================
# CLASSIFICATION
# =============================================================================


@dataclass(frozen=True)
class PerformanceTiers:
    """ROI tier buckets, each keeping input order."""

    excellent: list[RankedGroup] = field(default_factory=list)  # ROI >= 500
    good: list[RankedGroup] = field(default_factory=list)  # 200 <= ROI < 500
    moderate: list[RankedGroup] = field(default_factory=list)  # 100 <= ROI < 200
    poor: list[RankedGroup] = field(default_factory=list)  # ROI < 100

    @property
    def total(self) -> int:
        return len(self.excellent) + len(self.good) + len(self.moderate) + len(self.poor)


@dataclass(frozen=True)
class PerformanceLeaders:
    """Extremes found by independent single-pass scans."""

    best: RankedGroup | None = None  # Max ROI
    worst: RankedGroup | None = None  # Min ROI
    most_efficient: RankedGroup | None = None  # Max cost efficiency


@dataclass(frozen=True)
class ReallocationAnalysis:
    """Budget reallocation candidates.

    ``potential_gain`` is an estimate (amount x best ROI / 100), not a forecast.
    """

    inefficient: list[RankedGroup] = field(default_factory=list)
    reallocation_amount: float = 0.0
    potential_gain: float = 0.0
    reallocation_percentage: float = 0.0
    recommended_target: str = "N/A"


@dataclass(frozen=True)
class InfluenceTiers:
    """Campaign influence buckets."""

    high: list[CampaignPerformance] = field(default_factory=list)  # ROI >= 300
    medium: list[CampaignPerformance] = field(default_factory=list)  # 100 <= ROI < 300
    low: list[CampaignPerformance] = field(default_factory=list)  # ROI < 100


@dataclass(frozen=True)
class ScalabilityPoint:
    """ROI vs efficiency position of one group."""

    name: str
    roi: float
    efficiency: float
    scalability: Literal["High", "Medium", "Low"]


@dataclass(frozen=True)
class TrendAnalysis:
    """Scalability view of campaign types."""

    points: list[ScalabilityPoint] = field(default_factory=list)
    rising_stars: list[ScalabilityPoint] = field(default_factory=list)
    roi_efficiency_correlation: float | None = None  # None if insufficient data
    total_types: int = 0


# =============================================================================
# CUSTOMER JOURNEYS
# =============================================================================


@dataclass(frozen=True)
class TouchCountStats:
    """Customers grouped by number of touches."""

    touches: int
    customers: int
    percentage: float  # Share of all customers
    converted: int
    conversion_rate: float
    pipeline_value: float
    closed_won_value: float
    total_value: float
    total_cac: float
    average_cac: float


@dataclass(frozen=True)
class StageStats:
    """Customers grouped by current pipeline stage."""

    stage: str
    customers: int
    converted: int
    pipeline_value: float
    closed_won_value: float


@dataclass(frozen=True)
class PatternStats:
    """Customers grouped by journey pattern key."""

    pattern: str
    frequency: int
    converted: int
    conversion_rate: float
    total_value: float
    average_value: float


@dataclass(frozen=True)
class JourneyMetrics:
    """Journey totals and the single/multi-touch partition."""

    total_customers: int = 0
    single_touch_customers: int = 0
    multi_touch_customers: int = 0
    multi_touch_percentage: float = 0.0
    total_touches: int = 0
    average_touches: float = 0.0
    total_pipeline_value: float = 0.0
    total_closed_won_value: float = 0.0
    total_journey_value: float = 0.0  # pipeline + closed_won
    single_touch_value: float = 0.0
    multi_touch_value: float = 0.0
    total_cac: float = 0.0
    average_journey_cac: float = 0.0
    average_journey_period: float = 0.0  # Days
    converted_customers: int = 0
    conversion_rate: float = 0.0


@dataclass(frozen=True)
class FunnelStage:
    """One step of the journey funnel."""

    name: str
    customers: int
    value: float
    percentage: float  # Share of all customers


# =============================================================================
# SYNTHESIZED FINDINGS
# =============================================================================


@dataclass(frozen=True)
class MultiTouchImpact:
    """Weight of multi-touch customers in the customer base and in value."""

    percentage: float = 0.0  # Share of customers with > 1 touch
    customers: int = 0
    value: float = 0.0  # pipeline + closed_won of the multi-touch partition
    value_share: float = 0.0  # value / total journey value * 100


@dataclass(frozen=True)
class OptimalTouchCount:
    """Touch count with the highest conversion rate."""

    touches: int = 0
    conversion_rate: float = 0.0
    efficiency: float = 0.0  # Journey value per dollar of CAC
    customers: int = 0
    reasoning: str = "Not enough journey data"


@dataclass(frozen=True)
class StageBottleneck:
    """Drop-off at one pipeline stage."""

    stage: str
    customers: int
    converted: int
    drop_off_rate: float  # (customers - converted) / customers * 100
    impact: Literal["high", "low"]  # high when customers > 5


@dataclass(frozen=True)
class JourneyPattern:
    """A frequent combination of campaign types."""

    pattern: str  # Sorted types joined by " + "
    frequency: int
    conversion_rate: float
    average_value: float


@dataclass(frozen=True)
class JourneyInsights:
    """Higher-order journey findings."""

    multi_touch_impact: MultiTouchImpact = field(default_factory=MultiTouchImpact)
    journey_bottlenecks: list[StageBottleneck] = field(default_factory=list)
    optimal_touch_count: OptimalTouchCount = field(default_factory=OptimalTouchCount)
    top_journey_patterns: list[JourneyPattern] = field(default_factory=list)


@dataclass(frozen=True)
class CampaignTraits:
    """Shared traits of the top campaigns by ROI."""

    dominant_type: str = ""
    type_distribution: dict[str, int] = field(default_factory=dict)
    low_cost_percentage: float = 0.0  # cost < 20,000
    target_account_percentage: float = 0.0  # > 50% target customers
    sample_size: int = 0


# =============================================================================
# TARGET ACCOUNTS
# =============================================================================


@dataclass(frozen=True)
class AttendeeSegment:
    """Account performance within one attendee range."""

    attendee_range: str
    customer_count: int
    total_pipeline_value: float
    average_deal_size: float
    win_rate: float
    cost_per_attendee: float
    pipeline_per_attendee: float


@dataclass(frozen=True)
class OptimalAttendeeRange:
    """Attendee range with the highest pipeline per attendee."""

    attendee_range: str = "N/A"
    efficiency: float = 0.0
    recommendation: str = "Not enough attendee data"


@dataclass(frozen=True)
class EngagementRecommendation:
    """Best attendee range for one account type."""

    account_type: Literal["target", "non-target"]
    optimal_attendee_range: str
    expected_roi: float
    reasoning: str


@dataclass(frozen=True)
class Recommendation:
    """Actionable target-account recommendation."""

    type: str
    title: str
    description: str
    impact: Literal["high", "medium", "low"]
    metric: str


@dataclass(frozen=True)
class TargetAccountInsights:
    """Significance flags and recommendations for target accounts."""

    deal_size_multiplier: float = 0.0
    win_rate_advantage: float = 0.0
    attendee_efficiency: float = 0.0
    is_significant: bool = False  # deal size multiplier >= 1.5
    win_rate_improvement: bool = False  # win rate advantage > 10 points
    optimal_strategy: EngagementRecommendation | None = None
    recommendations: list[Recommendation] = field(default_factory=list)
