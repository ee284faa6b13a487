"""Tests for the file-based ingestion pipeline."""

import json
from pathlib import Path

import polars as pl
import pytest

from campaign_insights.exceptions import (
    DatasetNotFoundError,
    IngestionError,
    SchemaLoadError,
)
from campaign_insights.ingestion import DataIngestionPipeline
from campaign_insights.services.dashboard_service import DEFAULT_REGISTRY_PATH


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def pipeline() -> DataIngestionPipeline:
    """Pipeline using the bundled registry."""
    return DataIngestionPipeline(DEFAULT_REGISTRY_PATH)


@pytest.fixture
def campaign_types_json(tmp_path: Path) -> Path:
    """Campaign type export with a metadata block."""
    path = tmp_path / "campaign-types.json"
    path.write_text(
        json.dumps(
            {
                "campaignTypes": [
                    {
                        "campaignType": "Event",
                        "totalCampaigns": 2,
                        "totalCost": 10000,
                        "totalCustomers": 10,
                        "totalPipelineValue": 200000,
                        "totalClosedWonValue": 50000,
                        "averageRoi": 99999,
                    },
                    {"campaignType": "Unknown", "totalCustomers": 4, "totalCost": 100},
                    {
                        "campaignType": "Webinar",
                        "totalCampaigns": 1,
                        "totalCost": "$2,500",
                        "totalCustomers": 5,
                        "totalPipelineValue": 20000,
                        "totalClosedWonValue": 1000,
                    },
                ],
                "metadata": {
                    "totalUniqueCustomers": 12,
                    "closedWonCustomers": 3,
                    "closedLostCustomers": 1,
                },
            }
        )
    )
    return path


@pytest.fixture
def campaign_types_csv(tmp_path: Path) -> Path:
    """Flat campaign type export."""
    path = tmp_path / "campaign-types.csv"
    pl.DataFrame(
        {
            "campaign_type": ["Email", "Event"],
            "total_campaigns": [3, 1],
            "total_cost": [3000.0, 9000.0],
            "total_customers": [12, 0],
            "total_pipeline_value": [60000.0, 10000.0],
            "total_closed_won_value": [15000.0, 0.0],
        }
    ).write_csv(path)
    return path


# =============================================================================
# TESTS
# =============================================================================


class TestRegistry:
    """Tests for dataset registry loading."""

    def test_bundled_registry_loads(self, pipeline: DataIngestionPipeline) -> None:
        """The bundled registry declares every dataset."""
        for dataset in (
            "campaigns",
            "customer_journeys",
            "campaign_types",
            "accounts",
            "target_accounts",
            "strategic_matrix",
        ):
            assert dataset in pipeline.registry

    def test_missing_registry_raises(self, tmp_path: Path) -> None:
        """A missing registry file raises SchemaLoadError."""
        with pytest.raises(SchemaLoadError):
            DataIngestionPipeline(tmp_path / "missing.yaml")

    def test_non_mapping_registry_raises(self, tmp_path: Path) -> None:
        """A registry that is not a mapping raises SchemaLoadError."""
        path = tmp_path / "registry.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(SchemaLoadError):
            DataIngestionPipeline(path)

    def test_unknown_dataset_raises(
        self, pipeline: DataIngestionPipeline, campaign_types_json: Path
    ) -> None:
        """Unknown datasets raise DatasetNotFoundError."""
        with pytest.raises(DatasetNotFoundError) as exc_info:
            pipeline.ingest(campaign_types_json, "nonexistent")
        assert exc_info.value.dataset == "nonexistent"


class TestIngest:
    """Tests for loading, normalizing and enriching exports."""

    def test_json_campaign_types(
        self, pipeline: DataIngestionPipeline, campaign_types_json: Path
    ) -> None:
        """Unknown types are filtered and ratios recomputed from totals."""
        df = pipeline.ingest(campaign_types_json, "campaign_types")
        assert df["campaign_type"].to_list() == ["Event", "Webinar"]

        event = df.filter(pl.col("campaign_type") == "Event").row(0, named=True)
        assert event["average_roi"] == pytest.approx(500.0)
        assert event["cost_efficiency"] == pytest.approx(20.0)

        webinar = df.filter(pl.col("campaign_type") == "Webinar").row(0, named=True)
        assert webinar["total_cost"] == pytest.approx(2500.0)

    def test_csv_campaign_types(
        self, pipeline: DataIngestionPipeline, campaign_types_csv: Path
    ) -> None:
        """CSV exports with snake_case headers are accepted."""
        df = pipeline.ingest(campaign_types_csv, "campaign_types")
        assert df["campaign_type"].to_list() == ["Email"]
        assert df["average_roi"][0] == pytest.approx(500.0)

    def test_metadata_loaded(
        self, pipeline: DataIngestionPipeline, campaign_types_json: Path
    ) -> None:
        """The metadata block is read from the JSON export."""
        meta = pipeline.load_metadata(campaign_types_json)
        assert meta is not None
        assert meta.total_unique_customers == 12
        assert meta.closed_won_customers == 3

    def test_metadata_absent_from_csv(
        self, pipeline: DataIngestionPipeline, campaign_types_csv: Path
    ) -> None:
        """A flat export carries no metadata."""
        assert pipeline.load_metadata(campaign_types_csv) is None

    def test_journey_export(self, pipeline: DataIngestionPipeline, tmp_path: Path) -> None:
        """Journey exports are unwrapped from the customers key."""
        path = tmp_path / "journeys.json"
        path.write_text(
            json.dumps(
                {
                    "customers": [
                        {
                            "customerId": "a",
                            "touches": 2,
                            "pipelineValue": 100,
                            "campaignTypes": ["Event", "Email"],
                        },
                        {"customerId": "", "touches": 1},
                    ]
                }
            )
        )
        df = pipeline.ingest(path, "customer_journeys")
        assert len(df) == 1
        assert df["journey_pattern"][0] == "Email + Event"
        assert df["is_multi_touch"][0] is True

    def test_missing_records_key_raises(
        self, pipeline: DataIngestionPipeline, tmp_path: Path
    ) -> None:
        """An export without its records key raises IngestionError."""
        path = tmp_path / "journeys.json"
        path.write_text(json.dumps({"data": []}))
        with pytest.raises(IngestionError):
            pipeline.ingest(path, "customer_journeys")

    def test_unsupported_file_type(
        self, pipeline: DataIngestionPipeline, tmp_path: Path
    ) -> None:
        """Suffixes outside the registry's file types raise ValueError."""
        path = tmp_path / "journeys.csv"
        path.write_text("customer_id\na\n")
        with pytest.raises(ValueError, match="Unsupported file type"):
            pipeline.ingest(path, "customer_journeys")

    def test_engagement_matrix_export(
        self, pipeline: DataIngestionPipeline, tmp_path: Path
    ) -> None:
        """Matrix exports may wrap the rows or be a bare list."""
        path = tmp_path / "matrix.json"
        path.write_text(
            json.dumps([{"attendeeRange": "3-5", "targetAccounts": {"roi": 420}}])
        )
        matrix = pipeline.load_engagement_matrix(path)
        assert matrix.matrix[0].attendee_range == "3-5"
        assert matrix.matrix[0].target_accounts.roi == pytest.approx(420.0)
