"""Domain models for the console's data API."""

from optibook.models.booking import Booking, BookingStatus, CreateBookingData
from optibook.models.dashboard import AlertType, DashboardAlert, DashboardData, DashboardStats
from optibook.models.facility import CreateFacilityData, Facility, FacilityStatus, UpdateFacilityData
from optibook.models.user import AuthState, LoginData, SignupData, User, UserRole

__all__ = [
    "AlertType",
    "AuthState",
    "Booking",
    "BookingStatus",
    "CreateBookingData",
    "CreateFacilityData",
    "DashboardAlert",
    "DashboardData",
    "DashboardStats",
    "Facility",
    "FacilityStatus",
    "LoginData",
    "SignupData",
    "UpdateFacilityData",
    "User",
    "UserRole",
]
