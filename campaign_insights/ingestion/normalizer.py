"""Record normalization: default missing fields and drop invalid records.

Normalization is the only place that deals with absent or malformed input.
Everything downstream receives fully-populated, immutable records.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, ValidationError

from ..exceptions import IncompleteRecordError
from ..models.records import (
    COERCED_KEY,
    AccountRecord,
    ApiRecord,
    CampaignRecord,
    CampaignTypeMetadata,
    CampaignTypeRecord,
    CustomerJourneyRecord,
    StrategicEngagementMatrix,
    TargetAccountComparison,
)

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=ApiRecord)


@dataclass(frozen=True)
class FilterRule:
    """Validity filter applied before aggregation.

    A record is dropped when ``key_field`` is empty or one of
    ``excluded_values``, or when ``count_field`` is set and its value is <= 0.
    """

    key_field: str
    count_field: str | None = None
    excluded_values: tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None, default: "FilterRule") -> "FilterRule":
        """Build a rule from a registry ``filter`` block, falling back to ``default``."""
        if not config:
            return default
        return cls(
            key_field=config.get("key_field") or default.key_field,
            count_field=config.get("count_field"),
            excluded_values=tuple(config.get("excluded_values") or ()),
        )

    def accepts(self, record: ApiRecord) -> bool:
        key = getattr(record, self.key_field, "")
        if not key or key in self.excluded_values:
            return False
        if self.count_field and getattr(record, self.count_field, 0) <= 0:
            return False
        return True


CAMPAIGN_FILTER = FilterRule(key_field="campaign_id")
JOURNEY_FILTER = FilterRule(key_field="customer_id")
CAMPAIGN_TYPE_FILTER = FilterRule(
    key_field="campaign_type",
    count_field="total_customers",
    excluded_values=("Unknown",),
)
ACCOUNT_FILTER = FilterRule(key_field="customer_id")


def _numeric_fields(model: type[BaseModel]) -> list[str]:
    return [
        name
        for name, field in model.model_fields.items()
        if field.annotation in (int, float)
    ]


def missing_numeric_fields(record: BaseModel, prefix: str = "") -> list[str]:
    """List numeric fields that were absent from the raw input, recursively."""
    missing = [
        f"{prefix}{name}"
        for name in _numeric_fields(type(record))
        if name not in record.model_fields_set
    ]
    for name in type(record).model_fields:
        value = getattr(record, name)
        if isinstance(value, BaseModel):
            missing.extend(missing_numeric_fields(value, prefix=f"{prefix}{name}."))
    return missing


def _normalize(
    raw_records: Iterable[Any] | None,
    model: type[RecordT],
    rule: FilterRule,
    dataset: str,
    strict: bool = False,
    reconcile: Callable[[RecordT], RecordT] | None = None,
) -> list[RecordT]:
    """Validate, reconcile and filter raw records of one dataset.

    Lenient mode never raises: unparseable records are dropped and counted.
    Strict mode collects every incomplete record and raises once at the end.
    """
    normalized: list[RecordT] = []
    incomplete: list[dict[str, Any]] = []
    dropped = 0
    coerced = 0
    total = 0

    for index, raw in enumerate(raw_records or []):
        total += 1
        if isinstance(raw, model):
            record = raw
        elif isinstance(raw, Mapping):
            context: dict[str, list[str]] = {}
            try:
                record = model.model_validate(raw, context=context)
            except ValidationError as e:
                incomplete.append({"row": index, "errors": e.errors()})
                dropped += 1
                continue
            fields = context.get(COERCED_KEY, []) + missing_numeric_fields(record)
            if fields:
                coerced += len(fields)
                incomplete.append({"row": index, "fields": sorted(set(fields))})
        else:
            incomplete.append({"row": index, "errors": f"not a mapping: {type(raw).__name__}"})
            dropped += 1
            continue

        if reconcile is not None:
            record = reconcile(record)

        if not rule.accepts(record):
            dropped += 1
            continue
        normalized.append(record)

    if strict and incomplete:
        raise IncompleteRecordError(incomplete, total)

    if coerced:
        logger.warning(
            "Defaulted %d missing or malformed numeric fields across %s records",
            coerced,
            dataset,
        )
    if dropped:
        logger.warning(
            "Dropped %d of %d %s records failing the validity filter",
            dropped,
            total,
            dataset,
        )
    logger.debug("Normalized %d %s records", len(normalized), dataset)
    return normalized


def _reconcile_journey(record: CustomerJourneyRecord) -> CustomerJourneyRecord:
    """Derive touch count, types, CAC and period from touch details."""
    details = record.campaign_details
    update: dict[str, Any] = {}

    if details:
        update["touches"] = len(details)
        if not record.campaign_types:
            update["campaign_types"] = [d.campaign_type for d in details if d.campaign_type]
        if not record.total_cac:
            update["total_cac"] = sum(d.cost for d in details)
        dates = [d.touch_date for d in details if d.touch_date is not None]
        if record.journey_period <= 0 and dates:
            update["journey_period"] = (max(dates) - min(dates)).days

    types = update.get("campaign_types", record.campaign_types)
    update["campaign_types"] = list(dict.fromkeys(types))
    update["touches"] = max(update.get("touches", record.touches), 0)
    update["journey_period"] = max(update.get("journey_period", record.journey_period), 0)
    return record.model_copy(update=update)


def normalize_campaigns(
    raw_records: Iterable[Any] | None,
    rule: FilterRule = CAMPAIGN_FILTER,
    strict: bool = False,
) -> list[CampaignRecord]:
    """Normalize campaign comparison records."""
    return _normalize(raw_records, CampaignRecord, rule, "campaign", strict)


def normalize_customer_journeys(
    raw_records: Iterable[Any] | None,
    rule: FilterRule = JOURNEY_FILTER,
    strict: bool = False,
) -> list[CustomerJourneyRecord]:
    """Normalize customer journey records.

    Touch details, when present, are authoritative: ``touches`` becomes their
    count, and missing types, CAC and journey period are derived from them.
    """
    return _normalize(
        raw_records,
        CustomerJourneyRecord,
        rule,
        "customer journey",
        strict,
        reconcile=_reconcile_journey,
    )


def normalize_campaign_types(
    raw_records: Iterable[Any] | None,
    rule: FilterRule = CAMPAIGN_TYPE_FILTER,
    strict: bool = False,
) -> list[CampaignTypeRecord]:
    """Normalize campaign type rollups, dropping empty, Unknown and customer-less types."""
    return _normalize(raw_records, CampaignTypeRecord, rule, "campaign type", strict)


def normalize_accounts(
    raw_records: Iterable[Any] | None,
    rule: FilterRule = ACCOUNT_FILTER,
    strict: bool = False,
) -> list[AccountRecord]:
    return _normalize(raw_records, AccountRecord, rule, "account", strict)


def normalize_metadata(raw: Mapping[str, Any] | None) -> CampaignTypeMetadata | None:
    """Normalize the unique-totals block. ``None`` means the backend sent none."""
    if raw is None:
        return None
    if isinstance(raw, CampaignTypeMetadata):
        return raw
    try:
        return CampaignTypeMetadata.model_validate(raw)
    except ValidationError:
        logger.warning("Ignoring malformed campaign type metadata block")
        return None


def normalize_target_comparison(raw: Mapping[str, Any] | None) -> TargetAccountComparison:
    if isinstance(raw, TargetAccountComparison):
        return raw
    try:
        return TargetAccountComparison.model_validate(raw or {})
    except ValidationError:
        logger.warning("Malformed target account comparison; using zeroed segments")
        return TargetAccountComparison()


def normalize_engagement_matrix(raw: Any) -> StrategicEngagementMatrix:
    """Normalize the engagement matrix. A bare list is read as the matrix rows."""
    if isinstance(raw, StrategicEngagementMatrix):
        return raw
    if isinstance(raw, list):
        raw = {"matrix": raw}
    try:
        return StrategicEngagementMatrix.model_validate(raw or {})
    except ValidationError:
        logger.warning("Malformed strategic engagement matrix; using an empty matrix")
        return StrategicEngagementMatrix()
