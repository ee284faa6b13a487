"""Dashboard service - orchestrates ingestion, aggregation and insight synthesis."""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import polars as pl

from ..analytics import (
    AccountAnalyticsEngine,
    AttendeeSegment,
    CampaignInfluenceEngine,
    CampaignInfluenceSummary,
    CampaignTraits,
    CampaignTypeEngine,
    CampaignTypeSummary,
    EngagementRecommendation,
    FunnelStage,
    InfluenceTiers,
    Insight,
    InsightEngine,
    InsightThresholds,
    JourneyAnalyticsEngine,
    JourneyInsights,
    JourneyMetrics,
    OptimalAttendeeRange,
    PerformanceLeaders,
    PerformanceTiers,
    ReallocationAnalysis,
    TargetAccountInsights,
    TouchCountStats,
    TrendAnalysis,
    analyze_reallocation,
    analyze_scalability,
    campaign_traits,
    categorize_influence,
    classify_performance_tiers,
    compare_segments,
    optimal_attendee_range,
    recommend_engagement,
    select_leaders,
    synthesize_journey_insights,
    target_account_insights,
)
from ..ingestion import (
    DataIngestionPipeline,
    normalize_accounts,
    normalize_campaign_types,
    normalize_campaigns,
    normalize_customer_journeys,
    normalize_engagement_matrix,
    normalize_metadata,
    normalize_target_comparison,
)
from ..ingestion.enricher import (
    build_account_frame,
    build_campaign_frame,
    build_campaign_type_frame,
    build_journey_frame,
)
from ..ingestion.loader import RECORD_DATASETS
from ..models.insight_pack import InsightPack
from ..models.records import (
    CampaignTypeMetadata,
    StrategicEngagementMatrix,
    TargetAccountComparison,
)

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_PATH = Path(__file__).parent.parent / "config" / "dataset_registry.yaml"


@dataclass
class DashboardOutput:
    """Consolidated output from one dashboard pass."""

    # Campaigns
    campaign_summary: CampaignInfluenceSummary
    influence_tiers: InfluenceTiers
    campaign_leaders: PerformanceLeaders
    campaign_traits: CampaignTraits

    # Campaign types
    campaign_type_summary: CampaignTypeSummary
    performance_tiers: PerformanceTiers
    type_leaders: PerformanceLeaders
    reallocation: ReallocationAnalysis
    trend_analysis: TrendAnalysis

    # Customer journeys
    journey_metrics: JourneyMetrics
    touch_distribution: list[TouchCountStats]
    journey_funnel: list[FunnelStage]
    journey_insights: JourneyInsights

    # Target accounts
    target_comparison: TargetAccountComparison
    engagement_matrix: StrategicEngagementMatrix
    engagement_recommendations: list[EngagementRecommendation]
    attendee_segments: list[AttendeeSegment]
    optimal_attendee_range: OptimalAttendeeRange
    target_insights: TargetAccountInsights

    insights: list[Insight] = field(default_factory=list)
    insight_pack: InsightPack | None = None


class DashboardService:
    """Service for building the marketing dashboard from API payloads or exports.

    Orchestrates:
    1. Normalization of each dataset
    2. Frame building and enrichment
    3. Aggregation, classification and insight synthesis
    4. Rule-based insights and the insight pack

    Usage:
        service = DashboardService()
        output = service.generate_dashboard(
            campaign_types_path=Path("exports/campaign-types.json"),
            journeys_path=Path("exports/customer-journey.json"),
        )
    """

    def __init__(
        self,
        registry_path: Path | None = None,
        thresholds: InsightThresholds | None = None,
    ):
        """Initialize service with registry configuration.

        Args:
            registry_path: Path to dataset_registry.yaml. Defaults to bundled config.
            thresholds: Insight rule thresholds. Defaults to InsightThresholds().
        """
        self.registry_path = registry_path or DEFAULT_REGISTRY_PATH
        self.pipeline = DataIngestionPipeline(self.registry_path)
        self.thresholds = thresholds or InsightThresholds()

    def generate_dashboard(
        self,
        campaigns_path: Path | None = None,
        journeys_path: Path | None = None,
        campaign_types_path: Path | None = None,
        accounts_path: Path | None = None,
        target_accounts_path: Path | None = None,
        strategic_matrix_path: Path | None = None,
        strict: bool = False,
    ) -> DashboardOutput:
        """Generate the dashboard from saved API exports.

        Every export is optional; a missing one yields zero-valued sections.

        Args:
            campaigns_path: Campaign comparison export
            journeys_path: Customer journey export
            campaign_types_path: Campaign type export (JSON with metadata, or CSV)
            accounts_path: Per-customer account participation export
            target_accounts_path: Precomputed target account comparison
            strategic_matrix_path: Precomputed strategic engagement matrix
            strict: Raise on incomplete records instead of defaulting them

        Returns:
            DashboardOutput with all aggregations and insights
        """
        campaign_df = self._ingest(campaigns_path, "campaigns", strict)
        journey_df = self._ingest(journeys_path, "customer_journeys", strict)
        type_df = self._ingest(campaign_types_path, "campaign_types", strict)
        account_df = self._ingest(accounts_path, "accounts", strict)

        metadata = (
            self.pipeline.load_metadata(campaign_types_path)
            if campaign_types_path is not None
            else None
        )
        comparison = (
            self.pipeline.load_target_comparison(target_accounts_path)
            if target_accounts_path is not None
            else None
        )
        matrix = (
            self.pipeline.load_engagement_matrix(strategic_matrix_path)
            if strategic_matrix_path is not None
            else None
        )

        return self._run(
            campaign_df, journey_df, type_df, account_df, metadata, comparison, matrix
        )

    def analyze(
        self,
        campaigns: list[Any] | None = None,
        customer_journeys: list[Any] | None = None,
        campaign_types: list[Any] | None = None,
        metadata: dict[str, Any] | None = None,
        accounts: list[Any] | None = None,
        target_comparison: dict[str, Any] | None = None,
        engagement_matrix: Any = None,
        strict: bool = False,
    ) -> DashboardOutput:
        """Generate the dashboard from in-memory API payloads.

        Accepts the raw, loosely-typed records returned by the analytics API.
        """
        return self._run(
            build_campaign_frame(normalize_campaigns(campaigns, strict=strict)),
            build_journey_frame(normalize_customer_journeys(customer_journeys, strict=strict)),
            build_campaign_type_frame(normalize_campaign_types(campaign_types, strict=strict)),
            build_account_frame(normalize_accounts(accounts, strict=strict)),
            normalize_metadata(metadata),
            normalize_target_comparison(target_comparison)
            if target_comparison is not None
            else None,
            normalize_engagement_matrix(engagement_matrix)
            if engagement_matrix is not None
            else None,
        )

    def _ingest(self, path: Path | None, dataset: str, strict: bool) -> pl.DataFrame:
        if path is None:
            _, _, build_frame = RECORD_DATASETS[dataset]
            return build_frame([])
        return self.pipeline.ingest(path, dataset, strict=strict)

    def _run(
        self,
        campaign_df: pl.DataFrame,
        journey_df: pl.DataFrame,
        type_df: pl.DataFrame,
        account_df: pl.DataFrame,
        metadata: CampaignTypeMetadata | None,
        comparison: TargetAccountComparison | None,
        matrix: StrategicEngagementMatrix | None,
    ) -> DashboardOutput:
        """Run every engine over the enriched frames."""
        # Campaigns
        campaign_engine = CampaignInfluenceEngine(df=campaign_df)
        campaign_summary = campaign_engine.summarize()

        # Campaign types, rolled up from campaigns when no type export was given
        if type_df.is_empty() and not campaign_df.is_empty():
            rolled = campaign_engine.roll_up_types()
            if rolled:
                logger.info("Deriving %d campaign types from campaigns", len(rolled))
                type_df = pl.DataFrame([asdict(t) for t in rolled])
        type_summary = CampaignTypeEngine(df=type_df, metadata=metadata).summarize()
        type_leaders = select_leaders(type_summary.types)
        # Cut-off is folded over per-type ROI x cost, not the de-duplicated headline ROI
        reallocation = analyze_reallocation(type_summary.types, best=type_leaders.best)

        # Customer journeys
        journey_engine = JourneyAnalyticsEngine(df=journey_df)
        journey_metrics = journey_engine.journey_metrics()
        touch_distribution = journey_engine.touch_count_rollup()
        journey_insights = synthesize_journey_insights(
            journey_metrics,
            touch_distribution,
            journey_engine.stage_rollup(),
            journey_engine.pattern_rollup(),
        )

        # Target accounts: precomputed blocks first, then per-account records
        account_engine = AccountAnalyticsEngine(df=account_df)
        if comparison is not None:
            if {"target_accounts", "non_target_accounts"} & comparison.model_fields_set:
                comparison = compare_segments(
                    comparison.target_accounts, comparison.non_target_accounts
                )
        else:
            comparison = account_engine.segment_metrics()
        if matrix is None:
            matrix = account_engine.engagement_matrix()
        recommendations = recommend_engagement(matrix)
        attendee_segments = account_engine.attendee_effectiveness()
        target_insights = target_account_insights(comparison, recommendations)

        insights = InsightEngine(
            journey=journey_insights,
            type_summary=type_summary,
            reallocation=reallocation,
            target_accounts=target_insights,
            thresholds=self.thresholds,
        ).generate_all_insights()

        output = DashboardOutput(
            campaign_summary=campaign_summary,
            influence_tiers=categorize_influence(campaign_summary.campaigns),
            campaign_leaders=select_leaders(campaign_summary.campaigns),
            campaign_traits=campaign_traits(campaign_summary.campaigns),
            campaign_type_summary=type_summary,
            performance_tiers=classify_performance_tiers(type_summary.types),
            type_leaders=type_leaders,
            reallocation=reallocation,
            trend_analysis=analyze_scalability(type_summary.types),
            journey_metrics=journey_metrics,
            touch_distribution=touch_distribution,
            journey_funnel=journey_engine.journey_funnel(),
            journey_insights=journey_insights,
            target_comparison=comparison,
            engagement_matrix=matrix,
            engagement_recommendations=recommendations,
            attendee_segments=attendee_segments,
            optimal_attendee_range=optimal_attendee_range(attendee_segments),
            target_insights=target_insights,
            insights=insights,
        )
        output.insight_pack = self._build_insight_pack(
            output,
            record_counts={
                "campaigns": len(campaign_df),
                "customer_journeys": len(journey_df),
                "campaign_types": len(type_df),
                "accounts": len(account_df),
            },
        )
        logger.info(
            "Dashboard built: %d campaigns, %d types, %d journeys, %d insights",
            len(campaign_df),
            len(type_summary.types),
            len(journey_df),
            len(insights),
        )
        return output

    def _build_insight_pack(
        self, output: DashboardOutput, record_counts: dict[str, int]
    ) -> InsightPack:
        tiers = output.performance_tiers
        leaders = output.type_leaders
        reallocation = output.reallocation
        return InsightPack(
            generated_at=datetime.now(),
            record_counts=record_counts,
            uses_unique_totals=output.campaign_type_summary.metrics.uses_unique_totals,
            campaign_metrics=asdict(output.campaign_summary.metrics),
            campaign_type_metrics=asdict(output.campaign_type_summary.metrics),
            performance_tiers={
                "excellent": [g.name for g in tiers.excellent],
                "good": [g.name for g in tiers.good],
                "moderate": [g.name for g in tiers.moderate],
                "poor": [g.name for g in tiers.poor],
            },
            leaders={
                "best_type": leaders.best.name if leaders.best else None,
                "worst_type": leaders.worst.name if leaders.worst else None,
                "most_efficient_type": (
                    leaders.most_efficient.name if leaders.most_efficient else None
                ),
                "best_campaign": (
                    output.campaign_leaders.best.name if output.campaign_leaders.best else None
                ),
            },
            reallocation={
                "inefficient_types": [g.name for g in reallocation.inefficient],
                "reallocation_amount": round(reallocation.reallocation_amount, 2),
                "potential_gain": round(reallocation.potential_gain, 2),
                "reallocation_percentage": round(reallocation.reallocation_percentage, 2),
                "recommended_target": reallocation.recommended_target,
            },
            campaign_traits=asdict(output.campaign_traits),
            rising_stars=[p.name for p in output.trend_analysis.rising_stars],
            roi_efficiency_correlation=output.trend_analysis.roi_efficiency_correlation,
            journey_metrics=asdict(output.journey_metrics),
            touch_distribution=[asdict(t) for t in output.touch_distribution],
            journey_funnel=[asdict(f) for f in output.journey_funnel],
            journey_insights=asdict(output.journey_insights),
            target_accounts={
                "comparison": output.target_comparison.model_dump(),
                "is_significant": output.target_insights.is_significant,
                "win_rate_improvement": output.target_insights.win_rate_improvement,
                "optimal_attendee_range": asdict(output.optimal_attendee_range),
            },
            engagement_recommendations=[asdict(r) for r in output.engagement_recommendations],
            insights=[self._insight_dict(i) for i in output.insights],
        )

    @staticmethod
    def _insight_dict(insight: Insight) -> dict[str, Any]:
        return {
            "rule_id": insight.rule_id,
            "description": insight.description,
            "severity": insight.severity.value,
            "recommendation": insight.recommendation,
            "metrics": insight.metrics,
        }

    def generate_summary_dict(self, output: DashboardOutput) -> dict[str, Any]:
        """Convert DashboardOutput to JSON-serializable dictionary of display tables.

        Args:
            output: DashboardOutput from generate_dashboard() or analyze()

        Returns:
            Dictionary suitable for JSON serialization or table rendering
        """
        return {
            "campaigns": [
                {
                    "campaign": c.name,
                    "type": c.campaign_type,
                    "cost": round(c.cost, 2),
                    "pipeline_value": round(c.pipeline_value, 2),
                    "closed_won_value": round(c.closed_won_value, 2),
                    "roi_pct": round(c.roi, 1),
                    "pipeline_efficiency": round(c.pipeline_efficiency, 2),
                    "win_rate_pct": round(c.win_rate, 1),
                }
                for c in output.campaign_summary.campaigns
            ],
            "campaign_types": [
                {
                    "campaign_type": t.campaign_type,
                    "campaigns": t.total_campaigns,
                    "cost": round(t.total_cost, 2),
                    "customers": t.total_customers,
                    "pipeline_value": round(t.total_pipeline_value, 2),
                    "closed_won_value": round(t.total_closed_won_value, 2),
                    "roi_pct": round(t.average_roi, 1),
                    "cost_efficiency": round(t.cost_efficiency, 2),
                    "win_rate_pct": round(t.average_win_rate, 1),
                    "target_account_pct": round(t.target_account_percentage, 1),
                }
                for t in output.campaign_type_summary.types
            ],
            "touch_distribution": [
                {
                    "touches": t.touches,
                    "customers": t.customers,
                    "percentage": round(t.percentage, 1),
                    "conversion_rate_pct": round(t.conversion_rate, 1),
                    "average_cac": round(t.average_cac, 2),
                }
                for t in output.touch_distribution
            ],
            "engagement_matrix": [
                {
                    "attendee_range": row.attendee_range,
                    "target_roi_pct": round(row.target_accounts.roi, 1),
                    "target_win_rate_pct": round(row.target_accounts.win_rate, 1),
                    "non_target_roi_pct": round(row.non_target_accounts.roi, 1),
                    "non_target_win_rate_pct": round(row.non_target_accounts.win_rate, 1),
                }
                for row in output.engagement_matrix.matrix
            ],
            "insights": [self._insight_dict(i) for i in output.insights],
        }
