"""Frame building and enrichment - turn normalized records into Polars frames with derived columns."""

from collections.abc import Sequence

import polars as pl

from ..analytics.expressions import (
    campaign_type_derived_expr,
    journey_pattern_expr,
    safe_ratio_expr,
)
from ..models.records import (
    AccountRecord,
    CampaignRecord,
    CampaignTypeRecord,
    CustomerJourneyRecord,
)

CAMPAIGN_SCHEMA: dict[str, pl.DataType] = {
    "campaign_id": pl.String,
    "campaign_name": pl.String,
    "campaign_type": pl.String,
    "status": pl.String,
    "start_date": pl.Date,
    "cost": pl.Float64,
    "total_customers": pl.Int64,
    "target_account_customers": pl.Int64,
    "total_attendees": pl.Int64,
    "pipeline_value": pl.Float64,
    "closed_won_value": pl.Float64,
    "win_rate": pl.Float64,
    "cac": pl.Float64,
    "target_account_win_rate": pl.Float64,
}

JOURNEY_SCHEMA: dict[str, pl.DataType] = {
    "customer_id": pl.String,
    "customer_name": pl.String,
    "touches": pl.Int64,
    "total_cac": pl.Float64,
    "pipeline_value": pl.Float64,
    "closed_won_value": pl.Float64,
    "current_stage": pl.String,
    "campaign_types": pl.List(pl.String),
    "journey_period": pl.Int64,
}

CAMPAIGN_TYPE_SCHEMA: dict[str, pl.DataType] = {
    "campaign_type": pl.String,
    "total_campaigns": pl.Int64,
    "total_cost": pl.Float64,
    "total_customers": pl.Int64,
    "total_target_customers": pl.Int64,
    "total_pipeline_value": pl.Float64,
    "total_closed_won_value": pl.Float64,
    "total_open_opportunities": pl.Int64,
    "total_attendees": pl.Int64,
    "average_win_rate": pl.Float64,
    "average_target_account_win_rate": pl.Float64,
}

ACCOUNT_SCHEMA: dict[str, pl.DataType] = {
    "customer_id": pl.String,
    "is_target_account": pl.Boolean,
    "current_stage": pl.String,
    "pipeline_value": pl.Float64,
    "attendees": pl.Int64,
    "campaign_cost": pl.Float64,
}

_METRIC_COLUMNS = {
    "total_customers",
    "target_account_customers",
    "total_attendees",
    "pipeline_value",
    "closed_won_value",
    "win_rate",
    "cac",
    "target_account_win_rate",
}


def add_campaign_ratios(df: pl.DataFrame) -> pl.DataFrame:
    """Recompute ROI and efficiency from campaign totals.

    ROI = closed_won / cost * 100
    Pipeline efficiency = pipeline / cost
    Attendee efficiency = pipeline / attendees
    """
    return df.with_columns(
        (safe_ratio_expr(pl.col("closed_won_value"), pl.col("cost")) * 100).alias("roi"),
        safe_ratio_expr(pl.col("pipeline_value"), pl.col("cost")).alias(
            "pipeline_efficiency"
        ),
        safe_ratio_expr(pl.col("pipeline_value"), pl.col("total_attendees")).alias(
            "attendee_efficiency"
        ),
    )


def add_journey_flags(df: pl.DataFrame) -> pl.DataFrame:
    """Add journey value, conversion flags and the journey pattern key."""
    return df.with_columns(
        (pl.col("pipeline_value") + pl.col("closed_won_value")).alias("journey_value"),
        (pl.col("closed_won_value") > 0).alias("is_converted"),
        (pl.col("pipeline_value") > 0).alias("entered_pipeline"),
        (pl.col("touches") > 1).alias("is_multi_touch"),
        journey_pattern_expr(),
    )


def add_stage_flags(df: pl.DataFrame, stage_col: str = "current_stage") -> pl.DataFrame:
    """Flag closed-won and closed-lost stages (case-insensitive substring match)."""
    stage = pl.col(stage_col).str.to_lowercase()
    return df.with_columns(
        stage.str.contains("closed won", literal=True).alias("is_closed_won"),
        stage.str.contains("closed lost", literal=True).alias("is_closed_lost"),
    )


def build_campaign_frame(records: Sequence[CampaignRecord]) -> pl.DataFrame:
    """Flatten campaigns and their metrics block into one row per campaign."""
    rows = [
        {
            **record.model_dump(
                include={
                    "campaign_id",
                    "campaign_name",
                    "campaign_type",
                    "status",
                    "start_date",
                    "cost",
                }
            ),
            **record.metrics.model_dump(include=_METRIC_COLUMNS),
        }
        for record in records
    ]
    return add_campaign_ratios(pl.DataFrame(rows, schema=CAMPAIGN_SCHEMA))


def build_journey_frame(records: Sequence[CustomerJourneyRecord]) -> pl.DataFrame:
    """One row per customer journey. Touch details are summarized, not exploded."""
    rows = [record.model_dump(include=set(JOURNEY_SCHEMA)) for record in records]
    return add_journey_flags(pl.DataFrame(rows, schema=JOURNEY_SCHEMA))


def build_campaign_type_frame(records: Sequence[CampaignTypeRecord]) -> pl.DataFrame:
    """One row per campaign type. Derived ratios are recomputed from totals."""
    rows = [record.model_dump(include=set(CAMPAIGN_TYPE_SCHEMA)) for record in records]
    return pl.DataFrame(rows, schema=CAMPAIGN_TYPE_SCHEMA).with_columns(
        campaign_type_derived_expr()
    )


def build_account_frame(records: Sequence[AccountRecord]) -> pl.DataFrame:
    rows = [record.model_dump(include=set(ACCOUNT_SCHEMA)) for record in records]
    return add_stage_flags(pl.DataFrame(rows, schema=ACCOUNT_SCHEMA))
