"""Tests for the dashboard service."""

import json
from pathlib import Path

import pytest

from campaign_insights.analytics import JourneyMetrics, Severity
from campaign_insights.exceptions import IncompleteRecordError
from campaign_insights.services import DashboardOutput, DashboardService


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def service() -> DashboardService:
    """Service using the bundled registry."""
    return DashboardService()


@pytest.fixture
def campaigns() -> list[dict]:
    """Two Email campaigns and one Event campaign, no type export."""
    return [
        {
            "campaignId": "c1",
            "campaignName": "Spring Webinar",
            "campaignType": "Email",
            "cost": 1000,
            "metrics": {
                "totalCustomers": 10,
                "pipelineValue": 10000,
                "closedWonValue": 5000,
                "winRate": 50,
            },
        },
        {
            "campaignId": "c2",
            "campaignName": "Summit",
            "campaignType": "Event",
            "cost": 3000,
            "metrics": {
                "totalCustomers": 30,
                "pipelineValue": 30000,
                "closedWonValue": 3000,
                "winRate": 20,
            },
        },
        {
            "campaignId": "c3",
            "campaignName": "Newsletter",
            "campaignType": "Email",
            "cost": 1000,
        },
    ]


@pytest.fixture
def journeys() -> list[dict]:
    """One single-touch and one multi-touch customer."""
    return [
        {"customerId": "a", "touches": 1, "pipelineValue": 100, "campaignTypes": ["Email"]},
        {
            "customerId": "b",
            "touches": 2,
            "pipelineValue": 300,
            "campaignTypes": ["Event", "Email"],
        },
    ]


@pytest.fixture
def accounts() -> list[dict]:
    """Target accounts with 2.5x the non-target deal size."""
    return [
        {
            "customerId": "t1",
            "isTargetAccount": True,
            "currentStage": "Closed Won",
            "pipelineValue": 60000,
            "attendees": 4,
            "campaignCost": 2000,
        },
        {
            "customerId": "t2",
            "isTargetAccount": True,
            "currentStage": "Closed Lost",
            "pipelineValue": 40000,
            "attendees": 2,
            "campaignCost": 1000,
        },
        {
            "customerId": "n1",
            "isTargetAccount": False,
            "currentStage": "Closed Won",
            "pipelineValue": 20000,
            "attendees": 1,
            "campaignCost": 500,
        },
        {
            "customerId": "n2",
            "isTargetAccount": False,
            "currentStage": "Discover",
            "pipelineValue": 20000,
            "attendees": 1,
            "campaignCost": 500,
        },
    ]


@pytest.fixture
def output(
    service: DashboardService,
    campaigns: list[dict],
    journeys: list[dict],
    accounts: list[dict],
) -> DashboardOutput:
    """Dashboard built from in-memory payloads."""
    return service.analyze(campaigns=campaigns, customer_journeys=journeys, accounts=accounts)


# =============================================================================
# TESTS
# =============================================================================


class TestEmptyInput:
    """Tests for a dashboard with no data at all."""

    def test_zeroed_structure(self, service: DashboardService) -> None:
        """Every section is present and zero-valued."""
        output = service.analyze()
        assert output.campaign_summary.campaigns == []
        assert output.campaign_type_summary.types == []
        assert output.journey_metrics == JourneyMetrics()
        assert output.touch_distribution == []
        assert output.engagement_matrix.matrix == []
        assert output.engagement_recommendations == []
        assert output.reallocation.recommended_target == "N/A"
        assert output.optimal_attendee_range.attendee_range == "N/A"
        assert output.insights == []

    def test_pack_serializes(self, service: DashboardService) -> None:
        """The insight pack serializes to valid JSON."""
        output = service.analyze()
        assert output.insight_pack is not None
        data = json.loads(output.insight_pack.to_json())
        assert data["meta"]["record_counts"]["campaigns"] == 0
        assert data["insights"] == []


class TestAnalyze:
    """Tests for the in-memory dashboard pass."""

    def test_types_rolled_up_from_campaigns(self, output: DashboardOutput) -> None:
        """Without a type export, types come from the campaigns."""
        types = output.campaign_type_summary.types
        assert [t.campaign_type for t in types] == ["Email", "Event"]
        assert types[0].average_roi == pytest.approx(250.0)
        assert output.campaign_type_summary.metrics.average_roi == pytest.approx(160.0)

    def test_leaders_and_reallocation(self, output: DashboardOutput) -> None:
        """Event sits below average ROI with 60% of the budget."""
        assert output.type_leaders.best.name == "Email"
        assert output.type_leaders.worst.name == "Event"
        assert [g.name for g in output.reallocation.inefficient] == ["Event"]
        assert output.reallocation.reallocation_percentage == pytest.approx(60.0)
        assert output.reallocation.recommended_target == "Email"

    def test_campaigns_ranked(self, output: DashboardOutput) -> None:
        """Campaign leaders and traits come from the ROI ranking."""
        assert output.campaign_leaders.best.name == "Spring Webinar"
        assert output.campaign_traits.dominant_type == "Email"

    def test_journey_findings(self, output: DashboardOutput) -> None:
        """Multi-touch customers hold 75% of journey value."""
        impact = output.journey_insights.multi_touch_impact
        assert impact.percentage == pytest.approx(50.0)
        assert impact.value_share == pytest.approx(75.0)
        assert [p.pattern for p in output.journey_insights.top_journey_patterns] == [
            "Email",
            "Email + Event",
        ]

    def test_target_accounts_derived(self, output: DashboardOutput) -> None:
        """Segments and matrix are derived from account records."""
        advantage = output.target_comparison.advantage
        assert advantage.deal_size_multiplier == pytest.approx(2.5)
        assert output.target_insights.is_significant is True
        assert [r.attendee_range for r in output.engagement_matrix.matrix] == [
            "1-2",
            "3-5",
            "6+",
        ]
        assert output.engagement_recommendations[0].optimal_attendee_range == "3-5"

    def test_insights(self, output: DashboardOutput) -> None:
        """Rules fire for reallocation, multi-touch value and target focus."""
        by_rule = {i.rule_id: i for i in output.insights}
        assert by_rule["multi_touch_value"].severity == Severity.GREEN
        assert by_rule["budget_reallocation"].severity == Severity.RED
        assert by_rule["target_account_focus"].severity == Severity.GREEN
        assert by_rule["target_win_rate"].severity == Severity.AMBER

    def test_precomputed_advantage_kept(self, service: DashboardService) -> None:
        """An advantage block without segments is used as supplied."""
        output = service.analyze(
            target_comparison={
                "comparison": {"targetAccountAdvantage": {"dealSizeMultiplier": 2.0}}
            }
        )
        assert output.target_comparison.advantage.deal_size_multiplier == pytest.approx(2.0)
        assert output.target_insights.is_significant is True

    def test_precomputed_segments_recomputed(self, service: DashboardService) -> None:
        """Supplied segments override a stale advantage block."""
        output = service.analyze(
            target_comparison={
                "targetAccounts": {"customerCount": 5, "averageDealSize": 30000},
                "nonTargetAccounts": {"customerCount": 5, "averageDealSize": 10000},
                "comparison": {"targetAccountAdvantage": {"dealSizeMultiplier": 9.0}},
            }
        )
        assert output.target_comparison.advantage.deal_size_multiplier == pytest.approx(3.0)

    def test_precomputed_matrix_wins(
        self, service: DashboardService, accounts: list[dict]
    ) -> None:
        """A supplied engagement matrix replaces the derived one."""
        output = service.analyze(
            accounts=accounts,
            engagement_matrix=[{"attendeeRange": "6+", "targetAccounts": {"roi": 900}}],
        )
        assert [r.attendee_range for r in output.engagement_matrix.matrix] == ["6+"]
        assert output.engagement_recommendations[0].optimal_attendee_range == "6+"

    def test_rates_bounded_with_negative_metadata(self, service: DashboardService) -> None:
        """Negative metadata counts cannot push rates past 100%."""
        output = service.analyze(
            campaign_types=[{"campaignType": "Event", "totalCost": 100, "totalCustomers": 5}],
            metadata={
                "closedWonCustomers": 5,
                "closedLostCustomers": "-3",
                "openPipelineCustomers": -1,
            },
        )
        metrics = output.campaign_type_summary.metrics
        assert 0.0 <= metrics.win_rate <= 100.0
        assert 0.0 <= metrics.close_rate <= 100.0

    def test_reallocation_cutoff_ignores_unique_totals(
        self, service: DashboardService
    ) -> None:
        """The reallocation cut-off folds per-type ROI even when metadata is supplied."""
        types = [
            {
                "campaignType": "Event",
                "totalCost": 500,
                "totalCustomers": 5,
                "totalClosedWonValue": 2000,
            },
            {
                "campaignType": "Webinar",
                "totalCost": 500,
                "totalCustomers": 5,
                "totalClosedWonValue": 1000,
            },
        ]
        output = service.analyze(
            campaign_types=types, metadata={"totalClosedWonValue": 1200}
        )
        summary = output.campaign_type_summary
        assert summary.metrics.average_roi == pytest.approx(120.0)

        folded = sum(t.average_roi * t.total_cost for t in summary.types) / sum(
            t.total_cost for t in summary.types
        )
        assert folded == pytest.approx(300.0)
        assert [g.name for g in output.reallocation.inefficient] == ["Webinar"]
        assert output.reallocation.recommended_target == "Event"

    def test_strict_mode_raises(self, service: DashboardService) -> None:
        """Strict mode surfaces incomplete records."""
        with pytest.raises(IncompleteRecordError):
            service.analyze(
                campaign_types=[{"campaignType": "Event", "totalCustomers": 3}], strict=True
            )


class TestGenerateDashboard:
    """Tests for the file-based dashboard pass."""

    def test_from_exports(self, service: DashboardService, tmp_path: Path) -> None:
        """Saved exports are ingested, with metadata unique totals."""
        types_path = tmp_path / "campaign-types.json"
        types_path.write_text(
            json.dumps(
                {
                    "campaignTypes": [
                        {
                            "campaignType": "Event",
                            "totalCampaigns": 2,
                            "totalCost": 1000,
                            "totalCustomers": 10,
                            "totalPipelineValue": 20000,
                            "totalClosedWonValue": 5000,
                        },
                        {
                            "campaignType": "Webinar",
                            "totalCampaigns": 1,
                            "totalCost": 3000,
                            "totalCustomers": 30,
                            "totalPipelineValue": 30000,
                            "totalClosedWonValue": 3000,
                        },
                    ],
                    "metadata": {
                        "totalUniqueCustomers": 32,
                        "closedWonCustomers": 6,
                        "closedLostCustomers": 2,
                    },
                }
            )
        )
        journeys_path = tmp_path / "customer-journey.json"
        journeys_path.write_text(
            json.dumps({"customers": [{"customerId": "a", "touches": 2, "pipelineValue": 50}]})
        )

        output = service.generate_dashboard(
            campaign_types_path=types_path, journeys_path=journeys_path
        )
        metrics = output.campaign_type_summary.metrics
        assert metrics.uses_unique_totals is True
        assert metrics.total_customers == 32
        assert metrics.win_rate == pytest.approx(75.0)
        assert output.journey_metrics.multi_touch_customers == 1
        assert output.insight_pack.record_counts == {
            "campaigns": 0,
            "customer_journeys": 1,
            "campaign_types": 2,
            "accounts": 0,
        }

    def test_missing_exports(self, service: DashboardService) -> None:
        """No exports gives the same zeroed dashboard as no payloads."""
        output = service.generate_dashboard()
        assert output.campaign_type_summary.metrics.total_types == 0
        assert output.insights == []


class TestSummaries:
    """Tests for the summary dictionary and the insight pack."""

    def test_summary_dict(self, service: DashboardService, output: DashboardOutput) -> None:
        """The summary holds one display table per section."""
        summary = service.generate_summary_dict(output)
        assert set(summary) == {
            "campaigns",
            "campaign_types",
            "touch_distribution",
            "engagement_matrix",
            "insights",
        }
        assert summary["campaign_types"][0]["campaign_type"] == "Email"
        assert summary["campaign_types"][0]["roi_pct"] == pytest.approx(250.0)
        assert summary["insights"][0]["severity"] in {"green", "amber", "red"}
        json.dumps(summary)

    def test_insight_pack(self, output: DashboardOutput) -> None:
        """The pack carries leaders, reallocation and the executive summary."""
        pack = output.insight_pack
        data = pack.to_dict()
        assert data["campaigns"]["leaders"]["best_type"] == "Email"
        assert data["campaign_types"]["reallocation"]["inefficient_types"] == ["Event"]
        assert data["target_accounts"]["is_significant"] is True

        summary = pack.get_executive_summary()
        assert summary["best_type"] == "Email"
        assert summary["total_investment"] == pytest.approx(5000.0)
        assert summary["insight_count"] == len(output.insights)
