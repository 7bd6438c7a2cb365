"""Optimistic provider dashboard: headline stats plus the alert feed."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from optibook.adapters._common import now_ms, temp_id, token_for
from optibook.config import MutationOptions
from optibook.engine import OptimisticMutations
from optibook.models.dashboard import AlertType, DashboardAlert, DashboardData, DashboardStats
from optibook.state.records import as_partial

_logger = logging.getLogger(__name__)


def generate_alerts(stats: DashboardStats) -> list[DashboardAlert]:
    """Alerts implied by the current stats.

    Pending bookings produce a warning with a "Review" action; more than five
    bookings today produce a success notice.
    """
    now = datetime.now(UTC)
    alerts: list[DashboardAlert] = []
    if stats.pending_bookings > 0:
        alerts.append(
            DashboardAlert(
                id=f"pending-bookings-{now_ms()}",
                type=AlertType.WARNING,
                title="Pending Bookings",
                message=f"{stats.pending_bookings} bookings need your attention",
                timestamp=now,
                action_label="Review",
            )
        )
    if stats.today_bookings and stats.today_bookings > 5:
        alerts.append(
            DashboardAlert(
                id=f"high-demand-{now_ms()}",
                type=AlertType.SUCCESS,
                title="High Demand Today",
                message=f"{stats.today_bookings} bookings scheduled for today",
                timestamp=now,
            )
        )
    return alerts


class OptimisticDashboard:
    """Two engines, one for the single stats record and one for alerts."""

    def __init__(
        self,
        initial: DashboardData,
        *,
        options: MutationOptions | None = None,
        on_stats_update: Callable[[DashboardStats], None] | None = None,
        on_alert_update: Callable[[list[DashboardAlert]], None] | None = None,
    ) -> None:
        self._stats: OptimisticMutations[DashboardStats] = OptimisticMutations([initial.stats], options=options)
        self._alerts: OptimisticMutations[DashboardAlert] = OptimisticMutations(initial.alerts, options=options)
        self._on_stats_update = on_stats_update
        self._on_alert_update = on_alert_update
        self.is_refreshing = False
        self.last_refresh: datetime | None = None

    def close(self) -> None:
        self._stats.close()
        self._alerts.close()

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    @property
    def stats_engine(self) -> OptimisticMutations[DashboardStats]:
        return self._stats

    @property
    def alerts_engine(self) -> OptimisticMutations[DashboardAlert]:
        return self._alerts

    @property
    def stats(self) -> DashboardStats | None:
        data = self._stats.data
        return data[-1] if data else None

    @property
    def alerts(self) -> list[DashboardAlert]:
        return self._alerts.data

    @property
    def data(self) -> DashboardData | None:
        stats = self.stats
        if stats is None:
            return None
        return DashboardData(stats=stats, alerts=self.alerts)

    @property
    def has_optimistic_updates(self) -> bool:
        return self._stats.optimistic_count() > 0 or self._alerts.optimistic_count() > 0

    @property
    def has_failed_updates(self) -> bool:
        return self._stats.has_failed_items() or self._alerts.has_failed_items()

    @property
    def has_pending_updates(self) -> bool:
        return self._stats.has_pending_items() or self._alerts.has_pending_items()

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    async def update_stats(
        self,
        updates: Mapping[str, Any],
        confirm: Callable[[Mapping[str, Any]], Awaitable[DashboardStats]] | None = None,
    ) -> DashboardStats | None:
        """Merge ``updates`` into the stats and stamp ``last_updated``.

        With ``confirm`` the previous stats are restored if it raises;
        otherwise the change is local only.
        """
        stats = self.stats
        if stats is None:
            return None
        token = token_for(self._stats, stats.id)
        if token is None:
            return None
        changes = {**updates, "last_updated": datetime.now(UTC).isoformat()}

        if confirm is None:
            self._stats.update_optimistic(token, changes)
        else:

            async def _confirm(_token: str, _changes: Mapping[str, Any]) -> DashboardStats:
                return await confirm(updates)

            result = await self._stats.update(token, changes, _confirm)
            if result is not None:
                server = as_partial(result)
                server["last_updated"] = datetime.now(UTC).isoformat()
                self._stats.update_optimistic(token, server)

        current = self.stats
        if current is not None and self._on_stats_update is not None:
            self._on_stats_update(current)
        return current

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    async def add_alert(
        self,
        alert_type: AlertType,
        title: str,
        message: str,
        *,
        action_label: str | None = None,
        confirm: Callable[[DashboardAlert], Awaitable[DashboardAlert]] | None = None,
    ) -> DashboardAlert:
        """Append a new alert.

        A failed ``confirm`` removes it again, unless the engine retains
        failures for a later retry.
        """
        alert = DashboardAlert(
            id=temp_id("alert"),
            type=AlertType(alert_type),
            title=title,
            message=message,
            timestamp=datetime.now(UTC),
            action_label=action_label,
        )
        if confirm is None:
            self._alerts.seed(alert)
            self._alerts_changed()
            return alert

        try:
            result = await self._alerts.create(alert, confirm)
        except Exception:
            token = token_for(self._alerts, alert.id)
            if token is not None and not self._alerts.options.retain_failures:
                self._alerts.remove_optimistic(token)
            raise
        self._alerts.seed(result)
        self._alerts_changed()
        return result

    async def remove_alert(
        self,
        alert_id: str,
        confirm: Callable[[str], Awaitable[Any]] | None = None,
    ) -> bool:
        """Drop an alert. A failed ``confirm`` puts it back."""
        token = token_for(self._alerts, alert_id)
        if token is None:
            return False
        if confirm is None:
            self._alerts.remove_optimistic(token)
        else:

            async def _confirm(_token: str) -> Any:
                return await confirm(alert_id)

            await self._alerts.remove(token, _confirm)
        self._alerts_changed()
        return True

    def _alerts_changed(self) -> None:
        if self._on_alert_update is not None:
            self._on_alert_update(self.alerts)

    # ------------------------------------------------------------------
    # Refresh, retry, errors
    # ------------------------------------------------------------------

    async def refresh_data(self, fetch: Callable[[], Awaitable[DashboardData]]) -> DashboardData:
        """Replace stats and alerts with a fresh server snapshot."""
        self.is_refreshing = True
        try:
            fresh = await fetch()
        except Exception:
            _logger.warning("Failed to refresh dashboard data", exc_info=True)
            raise
        finally:
            self.is_refreshing = False

        self._replace(self._stats, [fresh.stats])
        self._replace(self._alerts, fresh.alerts)
        self.last_refresh = datetime.now(UTC)
        return fresh

    @staticmethod
    def _replace(engine: OptimisticMutations[Any], values: list[Any]) -> None:
        for token in engine.store.tokens():
            engine.remove_optimistic(token)
        for value in values:
            engine.seed(value)

    def generate_alerts(self, stats: DashboardStats | None = None) -> list[DashboardAlert]:
        target = stats or self.stats
        return generate_alerts(target) if target is not None else []

    async def retry_failed_stats(self, confirm: Callable[[DashboardStats], Awaitable[Any]]) -> list[Any]:
        return await self._stats.retry_all_failed(confirm)

    async def retry_failed_alerts(self, confirm: Callable[[DashboardAlert], Awaitable[Any]]) -> list[Any]:
        return await self._alerts.retry_all_failed(confirm)

    def clear_errors(self) -> None:
        self._stats.clear_errors()
        self._alerts.clear_errors()
