"""Custom exceptions for the ingestion pipeline."""

from typing import Any


class IngestionError(Exception):
    """Base exception for ingestion errors."""

    pass


class SchemaLoadError(IngestionError):
    """Failed to load the dataset registry."""

    pass


class DatasetNotFoundError(IngestionError):
    """Requested dataset is not declared in the registry or missing from an export."""

    def __init__(self, dataset: str, available: list[str]):
        self.dataset = dataset
        self.available = available
        super().__init__(f"Unknown dataset '{dataset}'. Available: {available}")


class DataValidationError(IngestionError):
    """Records failed validation against their Pydantic model."""

    def __init__(self, errors: list[dict[str, Any]], row_count: int):
        self.errors = errors
        self.row_count = row_count
        super().__init__(
            f"Validation failed for {len(errors)} of {row_count} rows. "
            f"First error: {errors[0] if errors else 'N/A'}"
        )


class IncompleteRecordError(DataValidationError):
    """Strict normalization found records with missing or malformed numbers."""

    pass
