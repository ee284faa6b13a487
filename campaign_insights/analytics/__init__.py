"""Analytics module for campaign and customer journey data."""

from .calculator import (
    AccountAnalyticsEngine,
    CampaignInfluenceEngine,
    CampaignTypeEngine,
    JourneyAnalyticsEngine,
    compare_segments,
    group_by,
    sum_by,
)
from .classifier import (
    analyze_reallocation,
    analyze_scalability,
    categorize_influence,
    classify_performance_tiers,
    optimal_attendee_range,
    recommend_engagement,
    select_leaders,
    tier_for_roi,
)
from .insights import (
    Insight,
    InsightEngine,
    InsightThresholds,
    Severity,
    campaign_traits,
    journey_bottlenecks,
    multi_touch_impact,
    optimal_touch_count,
    synthesize_journey_insights,
    target_account_insights,
    top_journey_patterns,
)
from .models import (
    AttendeeSegment,
    CampaignInfluenceMetrics,
    CampaignInfluenceSummary,
    CampaignPerformance,
    CampaignTraits,
    CampaignTypeMetrics,
    CampaignTypePerformance,
    CampaignTypeSummary,
    EngagementRecommendation,
    FunnelStage,
    InfluenceTiers,
    JourneyInsights,
    JourneyMetrics,
    JourneyPattern,
    MultiTouchImpact,
    OptimalAttendeeRange,
    OptimalTouchCount,
    PatternStats,
    PerformanceLeaders,
    PerformanceTiers,
    ReallocationAnalysis,
    Recommendation,
    StageBottleneck,
    StageStats,
    TargetAccountInsights,
    TouchCountStats,
    TrendAnalysis,
)
from .stats import close_rate, weighted_roi, win_rate

__all__ = [
    "AccountAnalyticsEngine",
    "AttendeeSegment",
    "CampaignInfluenceEngine",
    "CampaignInfluenceMetrics",
    "CampaignInfluenceSummary",
    "CampaignPerformance",
    "CampaignTraits",
    "CampaignTypeEngine",
    "CampaignTypeMetrics",
    "CampaignTypePerformance",
    "CampaignTypeSummary",
    "EngagementRecommendation",
    "FunnelStage",
    "InfluenceTiers",
    "Insight",
    "InsightEngine",
    "InsightThresholds",
    "JourneyAnalyticsEngine",
    "JourneyInsights",
    "JourneyMetrics",
    "JourneyPattern",
    "MultiTouchImpact",
    "OptimalAttendeeRange",
    "OptimalTouchCount",
    "PatternStats",
    "PerformanceLeaders",
    "PerformanceTiers",
    "ReallocationAnalysis",
    "Recommendation",
    "Severity",
    "StageBottleneck",
    "StageStats",
    "TargetAccountInsights",
    "TouchCountStats",
    "TrendAnalysis",
    "analyze_reallocation",
    "analyze_scalability",
    "campaign_traits",
    "categorize_influence",
    "classify_performance_tiers",
    "close_rate",
    "compare_segments",
    "group_by",
    "journey_bottlenecks",
    "multi_touch_impact",
    "optimal_attendee_range",
    "optimal_touch_count",
    "recommend_engagement",
    "select_leaders",
    "sum_by",
    "synthesize_journey_insights",
    "target_account_insights",
    "tier_for_roi",
    "top_journey_patterns",
    "weighted_roi",
    "win_rate",
]
