"""Aggregation engines for campaign, campaign type, journey and account data."""

import logging
from dataclasses import dataclass, fields
from typing import Any, TypeVar

import polars as pl

from ..models.records import (
    AccountSegmentMetrics,
    AdvantageRatios,
    CampaignTypeMetadata,
    EngagementCell,
    EngagementRow,
    StrategicEngagementMatrix,
    TargetAccountComparison,
)
from .expressions import (
    account_segment_expr,
    attendee_range_expr,
    campaign_totals_expr,
    campaign_type_derived_expr,
    campaign_type_rollup_expr,
    conversion_rate_expr,
    journey_group_expr,
    safe_ratio_expr,
    weighted_win_rate_expr,
)
from .models import (
    AttendeeSegment,
    CampaignInfluenceMetrics,
    CampaignInfluenceSummary,
    CampaignPerformance,
    CampaignTypeMetrics,
    CampaignTypePerformance,
    CampaignTypeSummary,
    FunnelStage,
    JourneyMetrics,
    PatternStats,
    StageStats,
    TouchCountStats,
)
from .stats import close_rate, safe_ratio, weighted_roi, win_rate

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXCLUDED_TYPES = ["", "Unknown"]

# (label, min attendees, max attendees or None for unbounded)
MATRIX_RANGES: list[tuple[str, int, int | None]] = [
    ("1-2", 1, 2),
    ("3-5", 3, 5),
    ("6+", 6, None),
]
EFFECTIVENESS_RANGES: list[tuple[str, int, int | None]] = [
    ("1-2", 1, 2),
    ("3-5", 3, 5),
    ("6-10", 6, 10),
    ("11+", 11, None),
]


def _build(cls: type[T], row: dict[str, Any]) -> T:
    """Build an output dataclass from a frame row, ignoring extra columns."""
    names = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    return cls(**{k: v for k, v in row.items() if k in names})


def _require(df: pl.DataFrame, required: set[str]) -> None:
    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {missing}")


# =============================================================================
# PRIMITIVES
# =============================================================================


def sum_by(df: pl.DataFrame, selector: str | pl.Expr) -> float:
    """Sum a column or expression over the frame. 0 on empty input."""
    expr = pl.col(selector) if isinstance(selector, str) else selector
    value = df.select(expr.sum()).item()
    return float(value or 0)


def group_by(
    df: pl.DataFrame,
    key: str,
    aggregations: list[pl.Expr],
) -> dict[Any, dict[str, Any]]:
    """Keyed sub-aggregates in first-occurrence order. Empty mapping on empty input."""
    grouped = df.group_by(key, maintain_order=True).agg(aggregations)
    return {row.pop(key): row for row in grouped.to_dicts()}


def compare_segments(
    target: AccountSegmentMetrics,
    non_target: AccountSegmentMetrics,
) -> TargetAccountComparison:
    """Pair target and non-target segments with recomputed advantage ratios.

    Deal size multiplier = target / non-target average deal size
    Win rate advantage = target - non-target win rate (percentage points)
    Attendee efficiency = target / non-target pipeline per average attendee
    """
    target_per_attendee = safe_ratio(target.total_pipeline_value, target.average_attendees)
    non_target_per_attendee = safe_ratio(
        non_target.total_pipeline_value, non_target.average_attendees
    )
    advantage = AdvantageRatios(
        deal_size_multiplier=safe_ratio(
            target.average_deal_size, non_target.average_deal_size
        ),
        win_rate_advantage=target.win_rate - non_target.win_rate,
        attendee_efficiency=safe_ratio(target_per_attendee, non_target_per_attendee),
    )
    return TargetAccountComparison(
        target_accounts=target,
        non_target_accounts=non_target,
        advantage=advantage,
    )


# =============================================================================
# CAMPAIGNS
# =============================================================================


@dataclass
class CampaignInfluenceEngine:
    """Campaign-level aggregation.

    All methods are pure functions - they do not mutate the input DataFrame.

    Attributes:
        df: Campaign frame from ``build_campaign_frame``
    """

    df: pl.DataFrame

    def __post_init__(self) -> None:
        """Validate input DataFrame has required columns."""
        _require(
            self.df,
            {"campaign_type", "cost", "pipeline_value", "closed_won_value", "roi"},
        )

    def summarize(self) -> CampaignInfluenceSummary:
        """Campaigns sorted by ROI descending, with cost-weighted totals.

        The sort is stable, so campaigns with equal ROI keep input order.
        """
        ranked = self.df.sort("roi", descending=True, maintain_order=True)
        campaigns = [_build(CampaignPerformance, row) for row in ranked.to_dicts()]

        totals = self.df.select(campaign_totals_expr()).to_dicts()[0]
        metrics = _build(CampaignInfluenceMetrics, totals)

        return CampaignInfluenceSummary(campaigns=campaigns, metrics=metrics)

    def roll_up_types(self) -> list[CampaignTypePerformance]:
        """Group campaigns by type, sorted by recomputed ROI descending.

        Win rates are customer-weighted. Open opportunities count campaigns
        with any pipeline.
        """
        rolled = (
            self.df.filter(~pl.col("campaign_type").is_in(EXCLUDED_TYPES))
            .group_by("campaign_type", maintain_order=True)
            .agg(campaign_type_rollup_expr())
            .with_columns(campaign_type_derived_expr())
            .sort("average_roi", descending=True, maintain_order=True)
        )
        return [_build(CampaignTypePerformance, row) for row in rolled.to_dicts()]


# =============================================================================
# CAMPAIGN TYPES
# =============================================================================


@dataclass
class CampaignTypeEngine:
    """Campaign-type aggregation with unique-total de-duplication.

    Attributes:
        df: Campaign type frame from ``build_campaign_type_frame``
        metadata: Backend unique totals, or None when not supplied
    """

    df: pl.DataFrame
    metadata: CampaignTypeMetadata | None = None

    def __post_init__(self) -> None:
        """Validate input DataFrame has required columns."""
        _require(
            self.df,
            {"campaign_type", "total_cost", "total_customers", "average_roi", "cost_efficiency"},
        )

    def summarize(self) -> CampaignTypeSummary:
        """Types sorted by ROI descending, plus totals.

        A customer touched by several campaigns of one type appears once per
        touch in the per-type totals. When metadata carries unique totals,
        those replace the summed customer, pipeline and closed-won values.

        Returns:
            CampaignTypeSummary with sorted types and de-duplicated metrics.
        """
        ranked = self.df.sort("average_roi", descending=True, maintain_order=True)
        types = [_build(CampaignTypePerformance, row) for row in ranked.to_dicts()]

        total_cost = sum_by(self.df, "total_cost")
        total_campaigns = int(sum_by(self.df, "total_campaigns"))
        summed_customers = int(sum_by(self.df, "total_customers"))
        summed_pipeline = sum_by(self.df, "total_pipeline_value")
        summed_closed_won = sum_by(self.df, "total_closed_won_value")

        meta = self.metadata
        if meta is not None:
            total_customers = self._prefer(meta, "total_unique_customers", summed_customers)
            total_pipeline = self._prefer(meta, "total_pipeline_value", summed_pipeline)
            total_closed_won = self._prefer(meta, "total_closed_won_value", summed_closed_won)
            won = meta.closed_won_customers
            lost = meta.closed_lost_customers
            open_customers = meta.open_pipeline_customers
            overall_win_rate = win_rate(won, lost)
            overall_close_rate = close_rate(won, lost, open_customers)
            open_pipeline = meta.open_pipeline_value
        else:
            logger.debug(
                "No unique-total metadata; summing %d campaign types", len(types)
            )
            total_customers = summed_customers
            total_pipeline = summed_pipeline
            total_closed_won = summed_closed_won
            won = lost = open_customers = 0
            overall_win_rate = float(
                self.df.select(
                    weighted_win_rate_expr("average_win_rate", "total_customers")
                ).item()
            )
            overall_close_rate = 0.0
            open_pipeline = 0.0

        metrics = CampaignTypeMetrics(
            total_types=len(types),
            total_campaigns=total_campaigns,
            total_cost=total_cost,
            total_customers=total_customers,
            total_pipeline_value=total_pipeline,
            total_closed_won_value=total_closed_won,
            open_pipeline_value=open_pipeline,
            open_pipeline_customers=open_customers,
            closed_won_customers=won,
            closed_lost_customers=lost,
            average_roi=weighted_roi(total_closed_won, total_cost),
            average_cost_efficiency=safe_ratio(total_pipeline, total_cost),
            win_rate=overall_win_rate,
            close_rate=overall_close_rate,
            uses_unique_totals=meta is not None,
        )
        return CampaignTypeSummary(types=types, metrics=metrics)

    @staticmethod
    def _prefer(meta: CampaignTypeMetadata, name: str, fallback: Any) -> Any:
        """Metadata value when the backend supplied it, else the summed fallback."""
        if name in meta.model_fields_set:
            return getattr(meta, name)
        return fallback


# =============================================================================
# CUSTOMER JOURNEYS
# =============================================================================


@dataclass
class JourneyAnalyticsEngine:
    """Customer journey aggregation.

    Attributes:
        df: Journey frame from ``build_journey_frame``
    """

    df: pl.DataFrame

    def __post_init__(self) -> None:
        """Validate input DataFrame has required columns."""
        _require(
            self.df,
            {
                "touches",
                "current_stage",
                "journey_value",
                "journey_pattern",
                "is_converted",
                "is_multi_touch",
            },
        )

    def journey_metrics(self) -> JourneyMetrics:
        """Journey totals and the single-touch vs multi-touch partition."""
        row = self.df.select(
            pl.len().alias("total_customers"),
            pl.col("is_multi_touch").sum().alias("multi_touch_customers"),
            pl.col("touches").sum().alias("total_touches"),
            pl.col("pipeline_value").sum().alias("total_pipeline_value"),
            pl.col("closed_won_value").sum().alias("total_closed_won_value"),
            pl.col("journey_value").sum().alias("total_journey_value"),
            pl.col("journey_value")
            .filter(pl.col("is_multi_touch"))
            .sum()
            .alias("multi_touch_value"),
            pl.col("total_cac").sum().alias("total_cac"),
            pl.col("journey_period").mean().fill_null(0.0).alias("average_journey_period"),
            pl.col("is_converted").sum().alias("converted_customers"),
        ).to_dicts()[0]

        total = row["total_customers"]
        multi = row["multi_touch_customers"]
        return JourneyMetrics(
            total_customers=total,
            single_touch_customers=total - multi,
            multi_touch_customers=multi,
            multi_touch_percentage=safe_ratio(multi, total) * 100,
            total_touches=row["total_touches"],
            average_touches=safe_ratio(row["total_touches"], total),
            total_pipeline_value=row["total_pipeline_value"],
            total_closed_won_value=row["total_closed_won_value"],
            total_journey_value=row["total_journey_value"],
            single_touch_value=row["total_journey_value"] - row["multi_touch_value"],
            multi_touch_value=row["multi_touch_value"],
            total_cac=row["total_cac"],
            average_journey_cac=safe_ratio(row["total_cac"], total),
            average_journey_period=float(row["average_journey_period"]),
            converted_customers=row["converted_customers"],
            conversion_rate=safe_ratio(row["converted_customers"], total) * 100,
        )

    def touch_count_rollup(self) -> list[TouchCountStats]:
        """Customers grouped by touch count, ascending."""
        grouped = (
            self.df.group_by("touches")
            .agg(journey_group_expr())
            .with_columns(
                conversion_rate_expr(),
                (
                    safe_ratio_expr(pl.col("customers"), pl.col("customers").sum()) * 100
                ).alias("percentage"),
                safe_ratio_expr(pl.col("total_cac"), pl.col("customers")).alias(
                    "average_cac"
                ),
            )
            .sort("touches")
        )
        return [_build(TouchCountStats, row) for row in grouped.to_dicts()]

    def stage_rollup(self) -> list[StageStats]:
        """Customers grouped by current stage, in first-occurrence order.

        Customers without a stage are left out.
        """
        grouped = (
            self.df.filter(pl.col("current_stage") != "")
            .group_by("current_stage", maintain_order=True)
            .agg(journey_group_expr())
            .rename({"current_stage": "stage"})
        )
        return [_build(StageStats, row) for row in grouped.to_dicts()]

    def pattern_rollup(self) -> list[PatternStats]:
        """Customers grouped by journey pattern, in first-occurrence order.

        Customers without campaign types are left out.
        """
        grouped = (
            self.df.filter(pl.col("journey_pattern") != "")
            .group_by("journey_pattern", maintain_order=True)
            .agg(journey_group_expr())
            .with_columns(
                conversion_rate_expr(),
                safe_ratio_expr(pl.col("total_value"), pl.col("customers")).alias(
                    "average_value"
                ),
            )
            .rename({"journey_pattern": "pattern", "customers": "frequency"})
        )
        return [_build(PatternStats, row) for row in grouped.to_dicts()]

    def journey_funnel(self) -> list[FunnelStage]:
        """All customers -> multi-touch -> entered pipeline -> closed won."""
        row = self.df.select(
            pl.len().alias("all"),
            pl.col("journey_value").sum().alias("all_value"),
            pl.col("is_multi_touch").sum().alias("multi"),
            pl.col("journey_value").filter(pl.col("is_multi_touch")).sum().alias("multi_value"),
            pl.col("entered_pipeline").sum().alias("pipeline"),
            pl.col("pipeline_value").sum().alias("pipeline_value"),
            pl.col("is_converted").sum().alias("won"),
            pl.col("closed_won_value").sum().alias("won_value"),
        ).to_dicts()[0]

        total = row["all"]
        steps = [
            ("All Customers", row["all"], row["all_value"]),
            ("Multi-Touch", row["multi"], row["multi_value"]),
            ("Entered Pipeline", row["pipeline"], row["pipeline_value"]),
            ("Closed Won", row["won"], row["won_value"]),
        ]
        return [
            FunnelStage(
                name=name,
                customers=count,
                value=float(value),
                percentage=safe_ratio(count, total) * 100,
            )
            for name, count, value in steps
        ]


# =============================================================================
# TARGET ACCOUNTS
# =============================================================================


@dataclass
class AccountAnalyticsEngine:
    """Target vs non-target account aggregation from per-customer records.

    Attributes:
        df: Account frame from ``build_account_frame``
    """

    df: pl.DataFrame

    def __post_init__(self) -> None:
        """Validate input DataFrame has required columns."""
        _require(
            self.df,
            {"is_target_account", "attendees", "pipeline_value", "is_closed_won"},
        )

    @staticmethod
    def _segment(df: pl.DataFrame) -> AccountSegmentMetrics:
        row = df.select(account_segment_expr()).to_dicts()[0]
        count = row["customer_count"]
        return AccountSegmentMetrics(
            customer_count=count,
            total_pipeline_value=row["total_pipeline_value"],
            closed_won_value=row["closed_won_value"],
            average_deal_size=safe_ratio(row["total_pipeline_value"], count),
            win_rate=win_rate(row["closed_won_customers"], row["closed_lost_customers"]),
            total_attendees=row["total_attendees"],
            average_attendees=safe_ratio(row["total_attendees"], count),
            cac=safe_ratio(row["total_cost"], row["closed_won_customers"]),
            roi=weighted_roi(row["closed_won_value"], row["total_cost"]),
            pipeline_efficiency=safe_ratio(row["total_pipeline_value"], row["total_cost"]),
        )

    @staticmethod
    def _cell(df: pl.DataFrame) -> EngagementCell:
        row = df.select(account_segment_expr()).to_dicts()[0]
        return EngagementCell(
            customer_count=row["customer_count"],
            win_rate=win_rate(row["closed_won_customers"], row["closed_lost_customers"]),
            average_deal_size=safe_ratio(row["total_pipeline_value"], row["customer_count"]),
            roi=weighted_roi(row["closed_won_value"], row["total_cost"]),
        )

    def segment_metrics(self) -> TargetAccountComparison:
        """Target vs non-target segment metrics with advantage ratios."""
        target = self._segment(self.df.filter(pl.col("is_target_account")))
        non_target = self._segment(self.df.filter(~pl.col("is_target_account")))
        return compare_segments(target, non_target)

    def engagement_matrix(self) -> StrategicEngagementMatrix:
        """Attendee range x account type grid (ranges 1-2, 3-5, 6+)."""
        if self.df.is_empty():
            return StrategicEngagementMatrix()
        labelled = self.df.with_columns(attendee_range_expr(MATRIX_RANGES))
        rows = []
        for label, _, _ in MATRIX_RANGES:
            in_range = labelled.filter(pl.col("attendee_range") == label)
            rows.append(
                EngagementRow(
                    attendee_range=label,
                    target_accounts=self._cell(in_range.filter(pl.col("is_target_account"))),
                    non_target_accounts=self._cell(
                        in_range.filter(~pl.col("is_target_account"))
                    ),
                )
            )
        return StrategicEngagementMatrix(matrix=rows)

    def attendee_effectiveness(self) -> list[AttendeeSegment]:
        """Per attendee range (1-2, 3-5, 6-10, 11+) pipeline and cost per attendee."""
        if self.df.is_empty():
            return []
        labelled = self.df.with_columns(attendee_range_expr(EFFECTIVENESS_RANGES))
        segments: list[AttendeeSegment] = []
        for label, _, _ in EFFECTIVENESS_RANGES:
            row = (
                labelled.filter(pl.col("attendee_range") == label)
                .select(account_segment_expr())
                .to_dicts()[0]
            )
            segments.append(
                AttendeeSegment(
                    attendee_range=label,
                    customer_count=row["customer_count"],
                    total_pipeline_value=row["total_pipeline_value"],
                    average_deal_size=safe_ratio(
                        row["total_pipeline_value"], row["customer_count"]
                    ),
                    win_rate=win_rate(
                        row["closed_won_customers"], row["closed_lost_customers"]
                    ),
                    cost_per_attendee=safe_ratio(row["total_cost"], row["total_attendees"]),
                    pipeline_per_attendee=safe_ratio(
                        row["total_pipeline_value"], row["total_attendees"]
                    ),
                )
            )
        return segments
