"""Pydantic models for records exported by the marketing analytics API.

Numeric fields are lenient: absent, null or malformed values coerce to 0 so
downstream code never re-checks for absence. When a validation context dict
is supplied, every coerced field name is appended to ``context["coerced"]``.
"""

import math
from datetime import date, datetime
from typing import Annotated, Any

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationInfo,
)
from pydantic.alias_generators import to_camel

COERCED_KEY = "coerced"


def _record_coercion(info: ValidationInfo) -> None:
    if info.context is not None:
        info.context.setdefault(COERCED_KEY, []).append(info.field_name)


def _coerce_amount(value: Any, info: ValidationInfo) -> float:
    """Coerce numbers and numeric strings ("$1,200", "26.9%") to float.

    Anything unusable (None, NaN, garbage text) becomes 0.0.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        if math.isfinite(value):
            return float(value)
    elif isinstance(value, str):
        cleaned = value.replace(",", "").replace("$", "").replace("%", "").strip()
        try:
            parsed = float(cleaned)
        except ValueError:
            parsed = math.nan
        if math.isfinite(parsed):
            return parsed
    _record_coercion(info)
    return 0.0


def _coerce_count(value: Any, info: ValidationInfo) -> int:
    """Coerce to a non-negative int. Negative counts become 0."""
    count = int(round(_coerce_amount(value, info)))
    if count < 0:
        _record_coercion(info)
        return 0
    return count


def _coerce_label(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _coerce_labels(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def _coerce_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _coerce_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return bool(value)


def _none_to_dict(value: Any) -> Any:
    return {} if value is None else value


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


Amount = Annotated[float, BeforeValidator(_coerce_amount)]
Count = Annotated[int, BeforeValidator(_coerce_count)]
Label = Annotated[str, BeforeValidator(_coerce_label)]
LabelList = Annotated[list[str], BeforeValidator(_coerce_labels)]
OptionalDate = Annotated[date | None, BeforeValidator(_coerce_date)]
Flag = Annotated[bool, BeforeValidator(_coerce_flag)]


class ApiRecord(BaseModel):
    """Base for API records: camelCase keys in, immutable values out."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


# =============================================================================
# CAMPAIGNS
# =============================================================================


class MetricsBlock(ApiRecord):
    """Per-campaign performance block nested under ``metrics``."""

    total_customers: Count = 0
    target_account_customers: Count = 0
    total_attendees: Count = 0
    pipeline_value: Amount = 0.0
    closed_won_value: Amount = 0.0
    win_rate: Amount = 0.0
    cac: Amount = 0.0
    roi: Amount = 0.0
    pipeline_efficiency: Amount = 0.0
    target_account_win_rate: Amount = 0.0
    attendee_efficiency: Amount = 0.0


class CampaignRecord(ApiRecord):
    """One marketing campaign with its metrics block."""

    campaign_id: Label = Field(
        default="", validation_alias=AliasChoices("campaignId", "campaign_id", "id")
    )
    campaign_name: Label = Field(
        default="", validation_alias=AliasChoices("campaignName", "campaign_name", "name")
    )
    campaign_type: Label = Field(
        default="", validation_alias=AliasChoices("campaignType", "campaign_type", "type")
    )
    start_date: OptionalDate = None
    status: Label = ""
    cost: Amount = 0.0
    metrics: Annotated[MetricsBlock, BeforeValidator(_none_to_dict)] = Field(
        default_factory=MetricsBlock
    )


# =============================================================================
# CUSTOMER JOURNEYS
# =============================================================================


class TouchRecord(ApiRecord):
    """One exposure of a customer to a campaign."""

    campaign_id: Label = ""
    campaign_name: Label = ""
    campaign_type: Label = ""
    touch_date: OptionalDate = Field(
        default=None,
        validation_alias=AliasChoices("touchDate", "touch_date", "startDate", "eventDate"),
    )
    cost: Amount = 0.0


class CustomerJourneyRecord(ApiRecord):
    """A customer's full touch history and current pipeline position."""

    customer_id: Label = Field(
        default="",
        validation_alias=AliasChoices("customerId", "customer_id", "opportunityId"),
    )
    customer_name: Label = Field(
        default="", validation_alias=AliasChoices("customerName", "customer_name", "name")
    )
    touches: Count = Field(
        default=0, validation_alias=AliasChoices("touches", "totalTouches")
    )
    total_cac: Amount = Field(
        default=0.0, validation_alias=AliasChoices("totalCAC", "totalCac", "total_cac")
    )
    pipeline_value: Amount = 0.0
    closed_won_value: Amount = 0.0
    current_stage: Label = ""
    campaign_types: LabelList = Field(default_factory=list)
    journey_period: Count = 0
    campaign_details: Annotated[list[TouchRecord], BeforeValidator(_none_to_list)] = Field(
        default_factory=list,
        validation_alias=AliasChoices("campaignDetails", "campaign_details", "campaigns"),
    )


# =============================================================================
# CAMPAIGN TYPES
# =============================================================================


class CampaignTypeRecord(ApiRecord):
    """Rolled-up totals for one campaign type.

    Only totals are read. Ratios are recomputed downstream from these totals.
    """

    campaign_type: Label = ""
    total_campaigns: Count = 0
    total_cost: Amount = 0.0
    total_customers: Count = 0
    total_target_customers: Count = 0
    total_pipeline_value: Amount = 0.0
    total_closed_won_value: Amount = 0.0
    total_open_opportunities: Count = 0
    total_attendees: Count = 0
    average_win_rate: Amount = 0.0
    average_target_account_win_rate: Amount = 0.0


class CampaignTypeMetadata(ApiRecord):
    """Unique totals computed by the backend across all campaign types."""

    total_unique_customers: Count = 0
    total_pipeline_value: Amount = 0.0
    total_closed_won_value: Amount = 0.0
    open_pipeline_value: Amount = 0.0
    open_pipeline_customers: Count = 0
    closed_won_customers: Count = 0
    closed_lost_customers: Count = 0
    time_period: Label = ""
    calculated_at: Label = ""


# =============================================================================
# TARGET ACCOUNTS
# =============================================================================


class AccountSegmentMetrics(ApiRecord):
    """Performance block for either target or non-target accounts."""

    customer_count: Count = Field(
        default=0,
        validation_alias=AliasChoices("customerCount", "customer_count", "totalCustomers"),
    )
    total_pipeline_value: Amount = 0.0
    closed_won_value: Amount = 0.0
    average_deal_size: Amount = 0.0
    win_rate: Amount = 0.0
    total_attendees: Count = 0
    average_attendees: Amount = 0.0
    cac: Amount = 0.0
    roi: Amount = 0.0
    pipeline_efficiency: Amount = 0.0


class AdvantageRatios(ApiRecord):
    """Target-over-non-target advantage ratios."""

    deal_size_multiplier: Amount = 0.0
    win_rate_advantage: Amount = 0.0
    attendee_efficiency: Amount = 0.0


class TargetAccountComparison(ApiRecord):
    """Target vs non-target segment blocks plus their advantage ratios."""

    target_accounts: Annotated[AccountSegmentMetrics, BeforeValidator(_none_to_dict)] = (
        Field(default_factory=AccountSegmentMetrics)
    )
    non_target_accounts: Annotated[
        AccountSegmentMetrics, BeforeValidator(_none_to_dict)
    ] = Field(default_factory=AccountSegmentMetrics)
    advantage: Annotated[AdvantageRatios, BeforeValidator(_none_to_dict)] = Field(
        default_factory=AdvantageRatios,
        validation_alias=AliasChoices(
            AliasPath("comparison", "targetAccountAdvantage"), "advantage"
        ),
    )


class EngagementCell(ApiRecord):
    """One account type within one attendee range."""

    customer_count: Count = 0
    win_rate: Amount = 0.0
    average_deal_size: Amount = 0.0
    roi: Amount = 0.0


class EngagementRow(ApiRecord):
    """Attendee range row of the strategic engagement matrix."""

    attendee_range: Label = ""
    target_accounts: Annotated[EngagementCell, BeforeValidator(_none_to_dict)] = Field(
        default_factory=EngagementCell
    )
    non_target_accounts: Annotated[EngagementCell, BeforeValidator(_none_to_dict)] = (
        Field(default_factory=EngagementCell)
    )


class StrategicEngagementMatrix(ApiRecord):
    """Attendee range x account type grid."""

    matrix: Annotated[list[EngagementRow], BeforeValidator(_none_to_list)] = Field(
        default_factory=list
    )


class AccountRecord(ApiRecord):
    """One customer's participation in a campaign, flagged by account type."""

    customer_id: Label = Field(
        default="",
        validation_alias=AliasChoices("customerId", "customer_id", "opportunityId"),
    )
    is_target_account: Flag = Field(
        default=False,
        validation_alias=AliasChoices("targetAccount", "isTargetAccount", "is_target_account"),
    )
    current_stage: Label = Field(
        default="",
        validation_alias=AliasChoices("currentStage", "current_stage", "stage"),
    )
    pipeline_value: Amount = Field(
        default=0.0,
        validation_alias=AliasChoices(
            "pipelineValue", "pipeline_value", "currentYear1Value", "year1Value"
        ),
    )
    attendees: Count = 0
    campaign_cost: Amount = Field(
        default=0.0,
        validation_alias=AliasChoices("campaignCost", "campaign_cost", "cost"),
    )
