"""Domain adapters binding the optimistic engine to the console's data API."""

from optibook.adapters.auth import OptimisticAuth
from optibook.adapters.bookings import OptimisticBookings
from optibook.adapters.dashboard import OptimisticDashboard, generate_alerts
from optibook.adapters.facilities import OptimisticFacilities

__all__ = [
    "OptimisticAuth",
    "OptimisticBookings",
    "OptimisticDashboard",
    "OptimisticFacilities",
    "generate_alerts",
]
