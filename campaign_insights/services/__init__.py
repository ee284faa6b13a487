"""Dashboard orchestration services."""

from .dashboard_service import DashboardOutput, DashboardService

__all__ = ["DashboardOutput", "DashboardService"]
