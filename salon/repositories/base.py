"""
Repository interfaces consumed by the booking and authentication core.

The core never touches SQLAlchemy directly: it depends on these narrow,
named operations so it can be unit-tested against in-memory doubles.
"""

from datetime import date, datetime, time
from typing import Callable, Optional, Protocol

from pydantic import BaseModel


class SalonConfig(BaseModel):
    """Snapshot of the singleton system configuration row."""
    salon_hours: Optional[str] = None
    max_daily_bookings: Optional[int] = None
    maintenance_schedule: Optional[str] = None


class BookingRequest(BaseModel):
    """A parsed booking request (date and time already validated)."""
    user_id: int
    service: str
    stylist: Optional[str] = None
    date: date
    time: time


class AppointmentRecord(BaseModel):
    id: int
    user_id: int
    service: str
    stylist: Optional[str] = None
    date: date
    time: time
    status: str

    def to_response(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "service": self.service,
            "stylist": self.stylist,
            "date": self.date.isoformat(),
            "time": self.time.strftime("%H:%M"),
            "status": self.status,
        }


class UserRecord(BaseModel):
    id: int
    name: str
    email: str
    phone: str
    role: str
    password_hash: str

    def public(self) -> dict:
        """User payload returned to clients (never includes the password hash)."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
        }


class OtpEntry(BaseModel):
    user_id: int
    code: str
    created_at: datetime
    attempts: int = 0


# Called inside the booking transaction with the locked config snapshot and
# the active booking count for the requested day; raises to abort the insert.
BookingGuard = Callable[[Optional[SalonConfig], int], None]


class BookingRepository(Protocol):
    async def get_config(self) -> SalonConfig | None: ...

    async def count_active_bookings(self, day: date) -> int: ...

    async def create_appointment(self, request: BookingRequest, guard: BookingGuard) -> AppointmentRecord:
        """
        Atomically check and insert a Pending appointment.

        Implementations must run guard() and the insert in one serialized
        unit so concurrent requests cannot both take the last daily slot.
        """
        ...

    async def reschedule_appointment(self, appointment_id: int, day: date, at: time) -> bool: ...


class UserRepository(Protocol):
    async def get_by_email(self, email: str) -> UserRecord | None: ...

    async def get_by_id(self, user_id: int) -> UserRecord | None: ...

    async def create(
        self, name: str, email: str, phone: str, password_hash: str, role: str = "user"
    ) -> UserRecord: ...

    async def update_password(self, user_id: int, password_hash: str) -> bool: ...


class OtpRepository(Protocol):
    async def upsert_otp(self, user_id: int, code: str, created_at: datetime) -> None:
        """Insert the user's OTP or replace the existing one (single row per user)."""
        ...

    async def get_otp(self, user_id: int) -> OtpEntry | None: ...

    async def claim_attempt(self, user_id: int, max_attempts: int) -> OtpEntry | None:
        """
        Spend one verification attempt on the user's OTP.

        Returns the entry (attempts already incremented), or None when there is
        no OTP or its attempts are used up. The increment must be atomic so
        concurrent guesses cannot exceed max_attempts.
        """
        ...

    async def delete_for_user(self, user_id: int) -> int: ...


class SecuritySettingsRepository(Protocol):
    async def is_enabled(self, name: str) -> bool: ...
