"""InsightPack - consolidated dashboard output for export and downstream consumers."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class InsightPack:
    """Consolidated analytics output.

    All data is pre-computed and JSON-serializable.
    """

    # Metadata
    generated_at: datetime
    record_counts: dict[str, int]
    uses_unique_totals: bool

    # Campaign and campaign type aggregates
    campaign_metrics: dict[str, Any]
    campaign_type_metrics: dict[str, Any]
    performance_tiers: dict[str, list[str]]
    leaders: dict[str, str | None]
    reallocation: dict[str, Any]
    campaign_traits: dict[str, Any]
    rising_stars: list[str]
    roi_efficiency_correlation: float | None

    # Customer journeys
    journey_metrics: dict[str, Any]
    touch_distribution: list[dict[str, Any]]
    journey_funnel: list[dict[str, Any]]
    journey_insights: dict[str, Any]

    # Target accounts
    target_accounts: dict[str, Any]
    engagement_recommendations: list[dict[str, Any]]

    # Rule-based insights
    insights: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "meta": {
                "generated_at": self.generated_at.isoformat(),
                "record_counts": self.record_counts,
                "uses_unique_totals": self.uses_unique_totals,
            },
            "campaigns": {
                "metrics": self.campaign_metrics,
                "leaders": self.leaders,
                "traits": self.campaign_traits,
            },
            "campaign_types": {
                "metrics": self.campaign_type_metrics,
                "tiers": self.performance_tiers,
                "reallocation": self.reallocation,
                "rising_stars": self.rising_stars,
                "roi_efficiency_correlation": (
                    round(self.roi_efficiency_correlation, 4)
                    if self.roi_efficiency_correlation is not None
                    else None
                ),
            },
            "journeys": {
                "metrics": self.journey_metrics,
                "touch_distribution": self.touch_distribution,
                "funnel": self.journey_funnel,
                "insights": self.journey_insights,
            },
            "target_accounts": {
                **self.target_accounts,
                "engagement_recommendations": self.engagement_recommendations,
            },
            "insights": self.insights,
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def get_executive_summary(self) -> dict[str, Any]:
        """Get condensed summary for executive overview.

        Returns key metrics only, suitable for report headers.
        """
        bottlenecks = self.journey_insights.get("journey_bottlenecks") or []
        return {
            "total_investment": self.campaign_type_metrics.get("total_cost", 0.0),
            "total_pipeline_value": self.campaign_type_metrics.get("total_pipeline_value", 0.0),
            "total_closed_won_value": self.campaign_type_metrics.get(
                "total_closed_won_value", 0.0
            ),
            "average_roi": self.campaign_type_metrics.get("average_roi", 0.0),
            "win_rate": self.campaign_type_metrics.get("win_rate", 0.0),
            "best_type": self.leaders.get("best_type"),
            "multi_touch_percentage": self.journey_metrics.get("multi_touch_percentage", 0.0),
            "top_bottleneck": bottlenecks[0] if bottlenecks else None,
            "reallocation_amount": self.reallocation.get("reallocation_amount", 0.0),
            "insight_count": len(self.insights),
        }
