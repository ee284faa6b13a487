"""Data ingestion module."""

from .loader import DataIngestionPipeline
from .normalizer import (
    FilterRule,
    normalize_accounts,
    normalize_campaign_types,
    normalize_campaigns,
    normalize_customer_journeys,
    normalize_engagement_matrix,
    normalize_metadata,
    normalize_target_comparison,
)

__all__ = [
    "DataIngestionPipeline",
    "FilterRule",
    "normalize_accounts",
    "normalize_campaign_types",
    "normalize_campaigns",
    "normalize_customer_journeys",
    "normalize_engagement_matrix",
    "normalize_metadata",
    "normalize_target_comparison",
]
