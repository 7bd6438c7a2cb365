"""Provider dashboard models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import Field

from optibook.models._base import ConsoleModel


class AlertType(StrEnum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


class DashboardStats(ConsoleModel):
    id: str
    total_facilities: int = 0
    total_bookings: int = 0
    active_bookings: int = 0
    team_members: int = 0
    monthly_revenue: float = 0.0
    pending_bookings: int = 0
    occupancy_rate: float | None = None
    average_rating: float | None = None
    today_bookings: int | None = None
    weekly_revenue: float | None = None
    last_week_revenue: float | None = None
    last_month_revenue: float | None = None
    last_updated: str | None = None


class DashboardAlert(ConsoleModel):
    id: str
    type: AlertType
    title: str
    message: str
    timestamp: datetime
    action_label: str | None = None
    """Label of the call-to-action button, if the alert has one."""


class DashboardData(ConsoleModel):
    stats: DashboardStats
    alerts: list[DashboardAlert] = Field(default_factory=list)
