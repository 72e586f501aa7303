"""
Repository layer.

Interfaces (base.py) used by the core, and SQLAlchemy implementations
(sql.py) wired in by the API.
"""

from salon.repositories.base import (
    AppointmentRecord,
    BookingGuard,
    BookingRepository,
    BookingRequest,
    OtpEntry,
    OtpRepository,
    SalonConfig,
    SecuritySettingsRepository,
    UserRecord,
    UserRepository,
)
from salon.repositories.sql import (
    SqlBookingRepository,
    SqlOtpRepository,
    SqlSecuritySettingsRepository,
    SqlUserRepository,
)

__all__ = [
    "AppointmentRecord",
    "BookingGuard",
    "BookingRepository",
    "BookingRequest",
    "OtpEntry",
    "OtpRepository",
    "SalonConfig",
    "SecuritySettingsRepository",
    "UserRecord",
    "UserRepository",
    "SqlBookingRepository",
    "SqlOtpRepository",
    "SqlSecuritySettingsRepository",
    "SqlUserRepository",
]
