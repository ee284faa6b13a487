"""Main data ingestion pipeline for saved analytics API exports."""

import json
import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import polars as pl
import yaml

from ..exceptions import DatasetNotFoundError, IngestionError, SchemaLoadError
from ..models.records import (
    ApiRecord,
    CampaignTypeMetadata,
    StrategicEngagementMatrix,
    TargetAccountComparison,
)
from .enricher import (
    build_account_frame,
    build_campaign_frame,
    build_campaign_type_frame,
    build_journey_frame,
)
from .normalizer import (
    ACCOUNT_FILTER,
    CAMPAIGN_FILTER,
    CAMPAIGN_TYPE_FILTER,
    JOURNEY_FILTER,
    FilterRule,
    normalize_accounts,
    normalize_campaign_types,
    normalize_campaigns,
    normalize_customer_journeys,
    normalize_engagement_matrix,
    normalize_metadata,
    normalize_target_comparison,
)

logger = logging.getLogger(__name__)

Normalizer = Callable[..., list[Any]]
FrameBuilder = Callable[[Sequence[Any]], pl.DataFrame]

# Map record datasets to (normalizer, default filter, frame builder)
RECORD_DATASETS: dict[str, tuple[Normalizer, FilterRule, FrameBuilder]] = {
    "campaigns": (normalize_campaigns, CAMPAIGN_FILTER, build_campaign_frame),
    "customer_journeys": (normalize_customer_journeys, JOURNEY_FILTER, build_journey_frame),
    "campaign_types": (normalize_campaign_types, CAMPAIGN_TYPE_FILTER, build_campaign_type_frame),
    "accounts": (normalize_accounts, ACCOUNT_FILTER, build_account_frame),
}


class DataIngestionPipeline:
    """Pipeline for loading, normalizing and enriching API exports.

    Usage:
        pipeline = DataIngestionPipeline(Path("campaign_insights/config/dataset_registry.yaml"))
        df = pipeline.ingest(Path("exports/campaign-types.json"), "campaign_types")
    """

    def __init__(self, registry_path: Path):
        self.registry = self._load_registry(registry_path)

    def _load_registry(self, path: Path) -> dict[str, Any]:
        """Load dataset registry from YAML."""
        try:
            with open(path) as f:
                registry = yaml.safe_load(f)
        except Exception as e:
            raise SchemaLoadError(f"Failed to load registry from {path}: {e}") from e
        if not isinstance(registry, dict):
            raise SchemaLoadError(f"Registry at {path} is not a mapping")
        return registry

    def _config(self, dataset: str) -> dict[str, Any]:
        if dataset not in self.registry:
            raise DatasetNotFoundError(dataset, sorted(self.registry))
        return self.registry[dataset] or {}

    def ingest(
        self,
        file_path: Path,
        dataset: str = "campaign_types",
        strict: bool = False,
    ) -> pl.DataFrame:
        """Full pipeline: Load -> Normalize -> Enrich.

        Args:
            file_path: Path to a JSON or CSV export
            dataset: Key in the dataset registry (default: campaign_types)
            strict: Raise on incomplete records instead of defaulting them

        Returns:
            Enriched Polars DataFrame, one row per valid record

        Raises:
            DatasetNotFoundError: If the dataset is not a record dataset
            IncompleteRecordError: In strict mode, if any record was incomplete
        """
        if dataset not in RECORD_DATASETS:
            raise DatasetNotFoundError(dataset, sorted(RECORD_DATASETS))
        _, _, build_frame = RECORD_DATASETS[dataset]

        records = self.load_records(file_path, dataset, strict=strict)
        df = build_frame(records)
        logger.info("Ingested %d %s rows from %s", len(df), dataset, file_path.name)
        return df

    def load_records(
        self,
        file_path: Path,
        dataset: str,
        strict: bool = False,
    ) -> list[ApiRecord]:
        """Load and normalize the records of one dataset, without building a frame."""
        if dataset not in RECORD_DATASETS:
            raise DatasetNotFoundError(dataset, sorted(RECORD_DATASETS))
        config = self._config(dataset)
        normalize, default_rule, _ = RECORD_DATASETS[dataset]
        rule = FilterRule.from_config(config.get("filter"), default_rule)

        raw = self._extract(self._load(file_path, config), config.get("records_key"), file_path)
        if not isinstance(raw, list):
            raise IngestionError(f"Expected a list of {dataset} records in {file_path}")
        return normalize(raw, rule=rule, strict=strict)

    def load_metadata(self, file_path: Path, dataset: str = "campaign_types") -> CampaignTypeMetadata | None:
        """Unique-total metadata block from an export, or None if it has none."""
        config = self._config(dataset)
        key = config.get("metadata_key")
        if key is None:
            return None
        data = self._load(file_path, config)
        if not isinstance(data, dict) or key not in data:
            logger.debug("No %s block in %s", key, file_path.name)
            return None
        return normalize_metadata(data[key])

    def load_target_comparison(self, file_path: Path) -> TargetAccountComparison:
        config = self._config("target_accounts")
        data = self._extract(self._load(file_path, config), config.get("records_key"), file_path)
        return normalize_target_comparison(data)

    def load_engagement_matrix(self, file_path: Path) -> StrategicEngagementMatrix:
        config = self._config("strategic_matrix")
        data = self._extract(self._load(file_path, config), config.get("records_key"), file_path)
        return normalize_engagement_matrix(data)

    def _load(self, path: Path, config: dict[str, Any]) -> Any:
        """Load raw data from JSON or CSV."""
        suffix = path.suffix.lower()
        allowed = config.get("file_types") or [".json"]
        if suffix not in allowed:
            raise ValueError(f"Unsupported file type: {suffix}")
        if suffix == ".json":
            with open(path) as f:
                return json.load(f)
        elif suffix == ".csv":
            return pl.read_csv(path).to_dicts()
        else:
            raise ValueError(f"Unsupported file type: {suffix}")

    @staticmethod
    def _extract(data: Any, records_key: str | None, path: Path) -> Any:
        """Pull the record payload out of an export envelope."""
        if records_key is None or isinstance(data, list):
            return data
        if isinstance(data, dict) and records_key in data:
            return data[records_key]
        raise IngestionError(f"Export {path} has no '{records_key}' key")
