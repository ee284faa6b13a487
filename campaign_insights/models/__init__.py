"""API record models and the exported insight pack."""

from .insight_pack import InsightPack
from .records import (
    AccountRecord,
    AccountSegmentMetrics,
    AdvantageRatios,
    CampaignRecord,
    CampaignTypeMetadata,
    CampaignTypeRecord,
    CustomerJourneyRecord,
    EngagementCell,
    EngagementRow,
    MetricsBlock,
    StrategicEngagementMatrix,
    TargetAccountComparison,
    TouchRecord,
)

__all__ = [
    "AccountRecord",
    "AccountSegmentMetrics",
    "AdvantageRatios",
    "CampaignRecord",
    "CampaignTypeMetadata",
    "CampaignTypeRecord",
    "CustomerJourneyRecord",
    "EngagementCell",
    "EngagementRow",
    "InsightPack",
    "MetricsBlock",
    "StrategicEngagementMatrix",
    "TargetAccountComparison",
    "TouchRecord",
]
