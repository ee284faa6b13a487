"""Tests for record normalization."""

import logging
from datetime import date

import pytest

from campaign_insights.exceptions import DataValidationError, IncompleteRecordError
from campaign_insights.ingestion import (
    FilterRule,
    normalize_accounts,
    normalize_campaign_types,
    normalize_campaigns,
    normalize_customer_journeys,
    normalize_engagement_matrix,
    normalize_metadata,
    normalize_target_comparison,
)
from campaign_insights.ingestion.normalizer import CAMPAIGN_TYPE_FILTER


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def complete_type_record() -> dict:
    """Campaign type record with every numeric field present."""
    return {
        "campaignType": "Event",
        "totalCampaigns": 4,
        "totalCost": 40000,
        "totalCustomers": 20,
        "totalTargetCustomers": 8,
        "totalPipelineValue": 400000,
        "totalClosedWonValue": 120000,
        "totalOpenOpportunities": 6,
        "totalAttendees": 35,
        "averageWinRate": 45.0,
        "averageTargetAccountWinRate": 60.0,
    }


# =============================================================================
# TESTS
# =============================================================================


class TestCoercion:
    """Tests for lenient numeric coercion."""

    def test_parses_currency_strings(self) -> None:
        """Currency symbols and thousands separators are stripped."""
        records = normalize_campaign_types(
            [{"campaignType": "Event", "totalCost": "$1,200", "totalCustomers": "3"}]
        )
        assert records[0].total_cost == pytest.approx(1200.0)
        assert records[0].total_customers == 3

    def test_null_and_garbage_become_zero(self) -> None:
        """Null and unparseable numbers default to 0."""
        records = normalize_campaign_types(
            [
                {
                    "campaignType": "Webinar",
                    "totalCost": None,
                    "totalPipelineValue": "n/a",
                    "totalCustomers": 2,
                }
            ]
        )
        assert records[0].total_cost == 0.0
        assert records[0].total_pipeline_value == 0.0

    def test_negative_counts_become_zero(self) -> None:
        """Counts below zero are coerced to 0 and reported in strict mode."""
        meta = normalize_metadata({"closedWonCustomers": 5, "closedLostCustomers": "-3"})
        assert meta is not None
        assert meta.closed_won_customers == 5
        assert meta.closed_lost_customers == 0

        with pytest.raises(IncompleteRecordError) as exc_info:
            normalize_customer_journeys(
                [
                    {
                        "customerId": "a",
                        "touches": -2,
                        "totalCAC": 0,
                        "pipelineValue": 0,
                        "closedWonValue": 0,
                        "journeyPeriod": 0,
                    }
                ],
                strict=True,
            )
        assert "touches" in exc_info.value.errors[0]["fields"]

    def test_missing_fields_default(self) -> None:
        """Absent fields take their documented defaults."""
        records = normalize_campaigns([{"campaignId": "c1"}])
        record = records[0]
        assert record.campaign_name == ""
        assert record.start_date is None
        assert record.cost == 0.0
        assert record.metrics.pipeline_value == 0.0

    def test_accepts_snake_case_keys(self) -> None:
        """Snake_case keys are accepted alongside camelCase."""
        records = normalize_campaigns(
            [{"campaign_id": "c1", "campaign_type": "Email", "start_date": "2024-03-01"}]
        )
        assert records[0].campaign_type == "Email"
        assert records[0].start_date == date(2024, 3, 1)

    def test_non_mapping_records_dropped(self) -> None:
        """Values that are not objects are dropped, not raised."""
        records = normalize_campaigns(["oops", None, {"campaignId": "c1"}])
        assert [r.campaign_id for r in records] == ["c1"]

    def test_none_input_gives_empty_list(self) -> None:
        """A null source array normalizes to an empty list."""
        assert normalize_campaigns(None) == []
        assert normalize_customer_journeys(None) == []
        assert normalize_campaign_types(None) == []
        assert normalize_accounts(None) == []

    def test_logs_coerced_fields(self, caplog: pytest.LogCaptureFixture) -> None:
        """Coerced fields are summarized at WARNING level."""
        with caplog.at_level(logging.WARNING):
            normalize_campaign_types([{"campaignType": "Event", "totalCustomers": 1}])
        assert "Defaulted" in caplog.text


class TestValidityFilter:
    """Tests for the pre-aggregation validity filter."""

    def test_drops_empty_unknown_and_customerless_types(self) -> None:
        """Empty key, Unknown sentinel and zero customers are dropped."""
        records = normalize_campaign_types(
            [
                {"campaignType": "", "totalCustomers": 5},
                {"campaignType": "Unknown", "totalCustomers": 5},
                {"campaignType": "Webinar", "totalCustomers": 0},
                {"campaignType": "Event", "totalCustomers": 5},
            ]
        )
        assert [r.campaign_type for r in records] == ["Event"]

    def test_logs_dropped_records(self, caplog: pytest.LogCaptureFixture) -> None:
        """Dropped records are counted in a warning."""
        with caplog.at_level(logging.WARNING):
            normalize_campaign_types([{"campaignType": "Unknown", "totalCustomers": 1}])
        assert "Dropped 1 of 1" in caplog.text

    def test_rule_from_config(self) -> None:
        """Registry filter blocks override the default rule."""
        rule = FilterRule.from_config(
            {"key_field": "campaign_type", "count_field": None, "excluded_values": ["Test"]},
            CAMPAIGN_TYPE_FILTER,
        )
        records = normalize_campaign_types(
            [
                {"campaignType": "Test", "totalCustomers": 1},
                {"campaignType": "Unknown", "totalCustomers": 0},
            ],
            rule=rule,
        )
        assert [r.campaign_type for r in records] == ["Unknown"]

    def test_missing_config_uses_default(self) -> None:
        """No filter block means the default rule."""
        assert FilterRule.from_config(None, CAMPAIGN_TYPE_FILTER) is CAMPAIGN_TYPE_FILTER


class TestStrictMode:
    """Tests for the opt-in incomplete-record error channel."""

    def test_incomplete_record_raises(self) -> None:
        """Strict mode reports every incomplete record."""
        with pytest.raises(IncompleteRecordError) as exc_info:
            normalize_campaign_types(
                [{"campaignType": "Event", "totalCustomers": 3}], strict=True
            )
        error = exc_info.value
        assert isinstance(error, DataValidationError)
        assert error.row_count == 1
        assert error.errors[0]["row"] == 0
        assert "total_cost" in error.errors[0]["fields"]

    def test_malformed_value_raises(self, complete_type_record: dict) -> None:
        """A coerced value counts as incomplete in strict mode."""
        complete_type_record["totalCost"] = "not a number"
        with pytest.raises(IncompleteRecordError):
            normalize_campaign_types([complete_type_record], strict=True)

    def test_complete_record_passes(self, complete_type_record: dict) -> None:
        """Fully-populated records pass strict mode."""
        records = normalize_campaign_types([complete_type_record], strict=True)
        assert len(records) == 1
        assert records[0].total_attendees == 35

    def test_lenient_mode_does_not_raise(self) -> None:
        """The default mode defaults instead of raising."""
        records = normalize_campaign_types([{"campaignType": "Event", "totalCustomers": 3}])
        assert records[0].total_cost == 0.0


class TestJourneyReconciliation:
    """Tests for deriving journey fields from touch details."""

    @pytest.fixture
    def journey(self) -> dict:
        return {
            "customerId": "cust-1",
            "touches": 5,
            "currentStage": "Discover",
            "campaignDetails": [
                {"campaignType": "Email", "touchDate": "2024-01-01", "cost": 100},
                {"campaignType": "Event", "touchDate": "2024-01-11T09:30:00", "cost": 50},
                {"campaignType": "Email", "startDate": "2024-01-05"},
            ],
        }

    def test_details_override_touch_count(self, journey: dict) -> None:
        """Touch details are authoritative for the touch count."""
        record = normalize_customer_journeys([journey])[0]
        assert record.touches == 3

    def test_types_derived_and_deduplicated(self, journey: dict) -> None:
        """Campaign types come from details, de-duplicated in order."""
        record = normalize_customer_journeys([journey])[0]
        assert record.campaign_types == ["Email", "Event"]

    def test_cac_and_period_derived(self, journey: dict) -> None:
        """CAC sums touch costs; period spans first to last touch."""
        record = normalize_customer_journeys([journey])[0]
        assert record.total_cac == pytest.approx(150.0)
        assert record.journey_period == 10

    def test_supplied_cac_kept(self, journey: dict) -> None:
        """An upstream CAC is passed through."""
        journey["totalCAC"] = 900
        record = normalize_customer_journeys([journey])[0]
        assert record.total_cac == pytest.approx(900.0)

    def test_negative_period_clamped(self) -> None:
        """Journey period is never negative."""
        record = normalize_customer_journeys(
            [{"customerId": "cust-2", "touches": 1, "journeyPeriod": -4}]
        )[0]
        assert record.journey_period == 0
        assert record.touches == 1


class TestAuxiliaryBlocks:
    """Tests for metadata, comparison, matrix and account normalization."""

    def test_metadata_none(self) -> None:
        """Absent metadata stays None."""
        assert normalize_metadata(None) is None

    def test_metadata_tracks_supplied_fields(self) -> None:
        """Only supplied metadata fields are marked as set."""
        meta = normalize_metadata({"totalUniqueCustomers": 40})
        assert meta is not None
        assert meta.total_unique_customers == 40
        assert "total_unique_customers" in meta.model_fields_set
        assert "total_pipeline_value" not in meta.model_fields_set

    def test_target_comparison_nested_advantage(self) -> None:
        """Advantage ratios are read from the comparison block."""
        comparison = normalize_target_comparison(
            {
                "targetAccounts": {"customerCount": 5, "averageDealSize": 50000},
                "comparison": {"targetAccountAdvantage": {"dealSizeMultiplier": 2.0}},
            }
        )
        assert comparison.target_accounts.customer_count == 5
        assert comparison.advantage.deal_size_multiplier == pytest.approx(2.0)
        assert comparison.non_target_accounts.customer_count == 0

    def test_target_comparison_none(self) -> None:
        """A missing comparison gives zeroed segments."""
        comparison = normalize_target_comparison(None)
        assert comparison.target_accounts.win_rate == 0.0
        assert comparison.advantage.deal_size_multiplier == 0.0

    def test_engagement_matrix_bare_list(self) -> None:
        """A bare list is read as matrix rows."""
        matrix = normalize_engagement_matrix(
            [{"attendeeRange": "1-2", "targetAccounts": {"roi": 150}}]
        )
        assert matrix.matrix[0].attendee_range == "1-2"
        assert matrix.matrix[0].target_accounts.roi == pytest.approx(150.0)
        assert matrix.matrix[0].non_target_accounts.roi == 0.0

    def test_account_aliases(self) -> None:
        """Account records accept the API's opportunity field names."""
        records = normalize_accounts(
            [
                {
                    "opportunityId": "opp-1",
                    "targetAccount": "true",
                    "stage": "Closed Won",
                    "currentYear1Value": "25,000",
                    "attendees": 3,
                    "cost": 1000,
                }
            ]
        )
        record = records[0]
        assert record.customer_id == "opp-1"
        assert record.is_target_account is True
        assert record.current_stage == "Closed Won"
        assert record.pipeline_value == pytest.approx(25000.0)
        assert record.campaign_cost == pytest.approx(1000.0)
