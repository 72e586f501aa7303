"""
Test configuration and fixtures.

This module sets up the test environment and provides in-memory doubles for
the repository interfaces, a controllable clock and an OTP notifier.
"""

import asyncio
import os
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

import pytest

# Must be set BEFORE any imports of database.connection or shared.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret-for-password-reset-tokens-0123456789"
os.environ["TIMEZONE"] = "Asia/Manila"
os.environ["SMTP_USERNAME"] = ""
os.environ["SMTP_PASSWORD"] = ""

from salon.errors import BusinessRuleViolation  # noqa: E402
from salon.repositories.base import (  # noqa: E402
    AppointmentRecord,
    BookingGuard,
    BookingRequest,
    OtpEntry,
    SalonConfig,
    UserRecord,
)
from shared.security import hash_password  # noqa: E402

MANILA_TZ = ZoneInfo("Asia/Manila")


# ============================================================================
# Clock
# ============================================================================


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


# ============================================================================
# In-memory repositories
# ============================================================================


class InMemoryBookingRepository:
    """BookingRepository double; the lock makes check-then-insert atomic."""

    def __init__(self, config: Optional[SalonConfig] = None):
        self.config = config
        self.appointments: list[AppointmentRecord] = []
        self._lock = asyncio.Lock()

    def add_existing(self, day: date, at: time, status: str = "Pending", user_id: int = 99) -> None:
        self.appointments.append(
            AppointmentRecord(
                id=len(self.appointments) + 1,
                user_id=user_id,
                service="Haircut",
                stylist=None,
                date=day,
                time=at,
                status=status,
            )
        )

    async def get_config(self) -> SalonConfig | None:
        return self.config

    async def count_active_bookings(self, day: date) -> int:
        return sum(1 for a in self.appointments if a.date == day and a.status != "Cancelled")

    async def create_appointment(self, request: BookingRequest, guard: BookingGuard) -> AppointmentRecord:
        async with self._lock:
            active = await self.count_active_bookings(request.date)
            # Yield control so concurrent callers really interleave
            await asyncio.sleep(0)
            guard(self.config, active)
            record = AppointmentRecord(
                id=len(self.appointments) + 1,
                user_id=request.user_id,
                service=request.service,
                stylist=request.stylist,
                date=request.date,
                time=request.time,
                status="Pending",
            )
            self.appointments.append(record)
            return record

    async def reschedule_appointment(self, appointment_id: int, day: date, at: time) -> bool:
        for index, appointment in enumerate(self.appointments):
            if appointment.id == appointment_id:
                self.appointments[index] = appointment.model_copy(
                    update={"date": day, "time": at, "status": "Rescheduled"}
                )
                return True
        return False


class InMemoryUserRepository:
    def __init__(self):
        self.users: dict[int, UserRecord] = {}

    def add(self, name: str, email: str, password: str, role: str = "user", phone: str = "09123456789") -> UserRecord:
        user = UserRecord(
            id=len(self.users) + 1,
            name=name,
            email=email,
            phone=phone,
            role=role,
            password_hash=hash_password(password),
        )
        self.users[user.id] = user
        return user

    async def get_by_email(self, email: str) -> UserRecord | None:
        return next((u for u in self.users.values() if u.email == email), None)

    async def get_by_id(self, user_id: int) -> UserRecord | None:
        return self.users.get(user_id)

    async def create(self, name, email, phone, password_hash, role="user") -> UserRecord:
        if await self.get_by_email(email) is not None:
            raise BusinessRuleViolation("Registration failed. Email already exists.", code="EMAIL_EXISTS")
        user = UserRecord(
            id=len(self.users) + 1,
            name=name,
            email=email,
            phone=phone,
            role=role,
            password_hash=password_hash,
        )
        self.users[user.id] = user
        return user

    async def update_password(self, user_id: int, password_hash: str) -> bool:
        if user_id not in self.users:
            return False
        self.users[user_id] = self.users[user_id].model_copy(update={"password_hash": password_hash})
        return True


class InMemoryOtpRepository:
    def __init__(self):
        self.rows: dict[int, OtpEntry] = {}

    async def upsert_otp(self, user_id: int, code: str, created_at: datetime) -> None:
        self.rows[user_id] = OtpEntry(user_id=user_id, code=code, created_at=created_at)

    async def get_otp(self, user_id: int) -> OtpEntry | None:
        return self.rows.get(user_id)

    async def claim_attempt(self, user_id: int, max_attempts: int) -> OtpEntry | None:
        entry = self.rows.get(user_id)
        if entry is None or entry.attempts >= max_attempts:
            return None
        self.rows[user_id] = entry.model_copy(update={"attempts": entry.attempts + 1})
        return self.rows[user_id]

    async def delete_for_user(self, user_id: int) -> int:
        return 1 if self.rows.pop(user_id, None) is not None else 0


class InMemorySecuritySettings:
    def __init__(self, enabled: Optional[dict[str, bool]] = None):
        self.enabled = enabled or {}

    async def is_enabled(self, name: str) -> bool:
        return self.enabled.get(name, False)


class SequenceCodes:
    """Deterministic OTP code generator."""

    def __init__(self, codes: list[str]):
        self._codes = list(codes)
        self.issued: list[str] = []

    def __call__(self) -> str:
        code = self._codes.pop(0)
        self.issued.append(code)
        return code


class RecordingNotifier:
    """OTP notifier that records deliveries, optionally failing every send."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    async def send_otp(self, to: str, code: str) -> bool:
        if self.fail:
            raise ConnectionError("SMTP server unreachable")
        self.sent.append((to, code))
        return True

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def salon_config():
    return SalonConfig(
        salon_hours="10:00 AM - 8:00 PM",
        max_daily_bookings=40,
        maintenance_schedule="Sundays 9:00 PM",
    )


@pytest.fixture
def booking_clock():
    """Salon-local clock fixed at 2026-11-02 09:00 (Manila)."""
    return FakeClock(datetime(2026, 11, 2, 9, 0, tzinfo=MANILA_TZ))


@pytest.fixture
def otp_clock():
    """UTC clock used for OTP issuance and expiry."""
    return FakeClock(datetime(2026, 11, 2, 1, 0, tzinfo=UTC))


@pytest.fixture
def make_booking_repository():
    return InMemoryBookingRepository


@pytest.fixture
def booking_repository(salon_config):
    return InMemoryBookingRepository(salon_config)


@pytest.fixture
def user_repository():
    return InMemoryUserRepository()


@pytest.fixture
def otp_repository():
    return InMemoryOtpRepository()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_notifier_failing():
    return RecordingNotifier(fail=True)


@pytest.fixture
def make_security_settings():
    return InMemorySecuritySettings


@pytest.fixture
def otp_codes():
    return SequenceCodes(["4821", "7310", "5555", "1234", "9876"])


@pytest.fixture
async def sql_session_factory():
    """
    Session factory bound to a fresh in-memory SQLite database.

    The schema is created per test and the engine disposed afterwards.
    """
    from database.connection import create_engine_for, create_session_factory, init_models

    engine = create_engine_for("sqlite+aiosqlite://")
    await init_models(engine)
    factory = create_session_factory(engine)

    @asynccontextmanager
    async def session_factory():
        async with factory() as session:
            yield session

    yield session_factory
    await engine.dispose()
