"""Reusable Polars expressions for campaign and journey calculations."""

import polars as pl


def safe_ratio_expr(numerator: pl.Expr, denominator: pl.Expr) -> pl.Expr:
    """numerator / denominator, or 0.0 when the denominator is not positive."""
    return (
        pl.when(denominator > 0)
        .then(numerator.cast(pl.Float64) / denominator)
        .otherwise(pl.lit(0.0))
    )


# =============================================================================
# CAMPAIGN AGGREGATIONS
# =============================================================================


def campaign_totals_expr() -> list[pl.Expr]:
    """Expressions for totals across a set of campaigns.

    Ratios are recomputed from summed numerators and denominators.
    ROI = sum(closed_won) / sum(cost) * 100
    Win rate = sum(win_rate * customers) / sum(customers)
    """
    return [
        pl.len().alias("total_campaigns"),
        pl.col("cost").sum().alias("total_cost"),
        pl.col("total_customers").sum().alias("total_customers"),
        pl.col("target_account_customers").sum().alias("total_target_customers"),
        pl.col("total_attendees").sum().alias("total_attendees"),
        pl.col("pipeline_value").sum().alias("total_pipeline_value"),
        pl.col("closed_won_value").sum().alias("total_closed_won_value"),
        # Weighted ROI: closed_won / cost
        (
            safe_ratio_expr(pl.col("closed_won_value").sum(), pl.col("cost").sum()) * 100
        ).alias("average_roi"),
        # Pipeline efficiency: pipeline / cost
        safe_ratio_expr(pl.col("pipeline_value").sum(), pl.col("cost").sum()).alias(
            "average_pipeline_efficiency"
        ),
        weighted_win_rate_expr("win_rate", "total_customers").alias("average_win_rate"),
    ]


def campaign_type_rollup_expr() -> list[pl.Expr]:
    """Expressions for rolling campaigns up into campaign types."""
    return [
        pl.len().alias("total_campaigns"),
        pl.col("cost").sum().alias("total_cost"),
        pl.col("total_customers").sum().alias("total_customers"),
        pl.col("target_account_customers").sum().alias("total_target_customers"),
        pl.col("pipeline_value").sum().alias("total_pipeline_value"),
        pl.col("closed_won_value").sum().alias("total_closed_won_value"),
        # Campaigns with any open pipeline
        (pl.col("pipeline_value") > 0).sum().alias("total_open_opportunities"),
        pl.col("total_attendees").sum().alias("total_attendees"),
        weighted_win_rate_expr("win_rate", "total_customers").alias("average_win_rate"),
        weighted_win_rate_expr("target_account_win_rate", "target_account_customers").alias(
            "average_target_account_win_rate"
        ),
    ]


def weighted_win_rate_expr(rate_col: str, weight_col: str) -> pl.Expr:
    """Customer-weighted rate: sum(rate * weight) / sum(weight)."""
    return safe_ratio_expr(
        (pl.col(rate_col) * pl.col(weight_col)).sum(), pl.col(weight_col).sum()
    )


# =============================================================================
# CAMPAIGN TYPE DERIVED COLUMNS
# =============================================================================


def campaign_type_derived_expr() -> list[pl.Expr]:
    """Derived per-type ratios, always recomputed from the type's totals."""
    return [
        (safe_ratio_expr(pl.col("total_closed_won_value"), pl.col("total_cost")) * 100).alias(
            "average_roi"
        ),
        safe_ratio_expr(pl.col("total_pipeline_value"), pl.col("total_cost")).alias(
            "cost_efficiency"
        ),
        safe_ratio_expr(pl.col("total_pipeline_value"), pl.col("total_attendees")).alias(
            "attendee_efficiency"
        ),
        (
            safe_ratio_expr(pl.col("total_target_customers"), pl.col("total_customers"))
            * 100
        ).alias("target_account_percentage"),
        safe_ratio_expr(pl.col("total_cost"), pl.col("total_campaigns")).alias(
            "average_cost_per_campaign"
        ),
        safe_ratio_expr(pl.col("total_pipeline_value"), pl.col("total_campaigns")).alias(
            "average_pipeline_per_campaign"
        ),
        safe_ratio_expr(pl.col("total_customers"), pl.col("total_campaigns")).alias(
            "average_customers_per_campaign"
        ),
    ]


# =============================================================================
# JOURNEY AGGREGATIONS
# =============================================================================


def journey_group_expr() -> list[pl.Expr]:
    """Expressions shared by touch-count, stage and pattern rollups."""
    return [
        pl.len().alias("customers"),
        pl.col("is_converted").sum().alias("converted"),
        pl.col("entered_pipeline").sum().alias("entered_pipeline"),
        pl.col("pipeline_value").sum().alias("pipeline_value"),
        pl.col("closed_won_value").sum().alias("closed_won_value"),
        pl.col("journey_value").sum().alias("total_value"),
        pl.col("total_cac").sum().alias("total_cac"),
    ]


def conversion_rate_expr() -> pl.Expr:
    """Share of customers in a group with closed-won value, as a percentage."""
    return (safe_ratio_expr(pl.col("converted"), pl.col("customers")) * 100).alias(
        "conversion_rate"
    )


def journey_pattern_expr() -> pl.Expr:
    """Order-independent pattern key: sorted, de-duplicated types joined by " + "."""
    return (
        pl.col("campaign_types")
        .list.unique()
        .list.sort()
        .list.join(" + ")
        .alias("journey_pattern")
    )


# =============================================================================
# ACCOUNT AGGREGATIONS
# =============================================================================


def account_segment_expr() -> list[pl.Expr]:
    """Per-segment account totals.

    Closed-won value is the pipeline value of accounts in a closed-won stage.
    """
    return [
        pl.len().alias("customer_count"),
        pl.col("pipeline_value").sum().alias("total_pipeline_value"),
        pl.col("pipeline_value")
        .filter(pl.col("is_closed_won"))
        .sum()
        .alias("closed_won_value"),
        pl.col("is_closed_won").sum().alias("closed_won_customers"),
        pl.col("is_closed_lost").sum().alias("closed_lost_customers"),
        pl.col("attendees").sum().alias("total_attendees"),
        pl.col("campaign_cost").sum().alias("total_cost"),
    ]


def attendee_range_expr(ranges: list[tuple[str, int, int | None]]) -> pl.Expr:
    """Label each row with the attendee range it falls into, or null.

    Args:
        ranges: (label, min, max) tuples; ``max`` of None means unbounded.
    """
    expr = pl.lit(None, dtype=pl.String)
    for label, low, high in reversed(ranges):
        condition = pl.col("attendees") >= low
        if high is not None:
            condition = condition & (pl.col("attendees") <= high)
        expr = pl.when(condition).then(pl.lit(label)).otherwise(expr)
    return expr.alias("attendee_range")
