"""
SQLAlchemy implementations of the core repository interfaces.

Each repository takes a session factory (an async context manager yielding
an AsyncSession) so tests can bind it to a throwaway engine.
"""

import logging
from datetime import UTC, date, datetime, time
from typing import AsyncContextManager, Callable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.connection import get_async_session
from database.models import (
    SYSTEM_CONFIG_ID,
    Appointment,
    AppointmentStatus,
    OtpRecord,
    SecuritySetting,
    SystemConfig,
    User,
    UserRole,
)
from salon.errors import BusinessRuleViolation
from salon.repositories.base import (
    AppointmentRecord,
    BookingGuard,
    BookingRequest,
    OtpEntry,
    SalonConfig,
    UserRecord,
)

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


def as_utc(value: datetime) -> datetime:
    """SQLite returns naive timestamps; everything is stored in UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _config_from_row(row: Optional[SystemConfig]) -> SalonConfig | None:
    if row is None:
        return None
    return SalonConfig(
        salon_hours=row.salon_hours,
        max_daily_bookings=row.max_daily_bookings,
        maintenance_schedule=row.maintenance_schedule,
    )


def _appointment_record(row: Appointment) -> AppointmentRecord:
    return AppointmentRecord(
        id=row.id,
        user_id=row.user_id,
        service=row.service,
        stylist=row.stylist,
        date=row.date,
        time=row.time,
        status=str(row.status),
    )


def _user_record(row: Optional[User]) -> UserRecord | None:
    if row is None:
        return None
    return UserRecord(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        role=row.role.value,
        password_hash=row.password_hash,
    )


def _otp_entry(row: Optional[OtpRecord]) -> OtpEntry | None:
    if row is None:
        return None
    return OtpEntry(
        user_id=row.user_id,
        code=row.otp,
        created_at=as_utc(row.created_at),
        attempts=row.attempts,
    )


async def count_active_bookings_in(session: AsyncSession, day: date) -> int:
    """Count appointments on a day whose status is not Cancelled."""
    result = await session.execute(
        select(func.count(Appointment.id)).where(
            Appointment.date == day,
            Appointment.status != AppointmentStatus.CANCELLED,
        )
    )
    return result.scalar() or 0


class SqlBookingRepository:
    """Booking persistence with a row-locked capacity check."""

    def __init__(self, session_factory: SessionFactory = get_async_session):
        self._session_factory = session_factory

    async def get_config(self) -> SalonConfig | None:
        async with self._session_factory() as session:
            row = await session.get(SystemConfig, SYSTEM_CONFIG_ID)
            return _config_from_row(row)

    async def count_active_bookings(self, day: date) -> int:
        async with self._session_factory() as session:
            return await count_active_bookings_in(session, day)

    async def create_appointment(self, request: BookingRequest, guard: BookingGuard) -> AppointmentRecord:
        """
        Check capacity and insert in a single transaction.

        The singleton system_config row is locked with SELECT ... FOR UPDATE,
        which serializes concurrent bookings: the second request only counts
        after the first has committed its insert. Any exception raised by
        guard() rolls the transaction back.
        """
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(SystemConfig)
                    .where(SystemConfig.id == SYSTEM_CONFIG_ID)
                    .with_for_update()
                )
                config = _config_from_row(result.scalar_one_or_none())
                active_count = await count_active_bookings_in(session, request.date)

                guard(config, active_count)

                appointment = Appointment(
                    user_id=request.user_id,
                    service=request.service,
                    stylist=request.stylist,
                    date=request.date,
                    time=request.time,
                    status=AppointmentStatus.PENDING,
                )
                session.add(appointment)
                await session.flush()
                record = _appointment_record(appointment)

            logger.info(
                "Appointment committed",
                extra={"appointment_id": record.id, "user_id": record.user_id},
            )
            return record

    async def reschedule_appointment(self, appointment_id: int, day: date, at: time) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                update(Appointment)
                .where(Appointment.id == appointment_id)
                .values(date=day, time=at, status=AppointmentStatus.RESCHEDULED)
            )
            await session.commit()
            return result.rowcount > 0


class SqlUserRepository:
    def __init__(self, session_factory: SessionFactory = get_async_session):
        self._session_factory = session_factory

    async def get_by_email(self, email: str) -> UserRecord | None:
        async with self._session_factory() as session:
            result = await session.execute(select(User).where(User.email == email))
            return _user_record(result.scalar_one_or_none())

    async def get_by_id(self, user_id: int) -> UserRecord | None:
        async with self._session_factory() as session:
            return _user_record(await session.get(User, user_id))

    async def create(
        self, name: str, email: str, phone: str, password_hash: str, role: str = "user"
    ) -> UserRecord:
        async with self._session_factory() as session:
            user = User(
                name=name,
                email=email,
                phone=phone,
                password_hash=password_hash,
                role=UserRole(role),
            )
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.warning(f"Duplicate email on user create: {e.orig}", extra={"email": email})
                raise BusinessRuleViolation(
                    "Registration failed. Email already exists.", code="EMAIL_EXISTS"
                ) from e
            return _user_record(user)

    async def update_password(self, user_id: int, password_hash: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                update(User).where(User.id == user_id).values(password_hash=password_hash)
            )
            await session.commit()
            return result.rowcount > 0


class SqlOtpRepository:
    """OTP storage keyed on the unique otp.user_id column."""

    def __init__(self, session_factory: SessionFactory = get_async_session):
        self._session_factory = session_factory

    async def upsert_otp(self, user_id: int, code: str, created_at: datetime) -> None:
        """
        Insert or replace the user's OTP in one statement.

        Uses INSERT ... ON CONFLICT (user_id) DO UPDATE so concurrent
        issuance for the same user can never leave two live rows.
        """
        async with self._session_factory() as session:
            dialect = session.get_bind().dialect.name
            if dialect == "postgresql":
                insert = pg_insert
            elif dialect == "sqlite":
                insert = sqlite_insert
            else:
                raise NotImplementedError(f"OTP upsert is not implemented for dialect '{dialect}'")

            stmt = insert(OtpRecord).values(user_id=user_id, otp=code, attempts=0, created_at=created_at)
            stmt = stmt.on_conflict_do_update(
                index_elements=[OtpRecord.user_id],
                set_={
                    "otp": stmt.excluded.otp,
                    "attempts": 0,
                    "created_at": stmt.excluded.created_at,
                },
            )
            await session.execute(stmt)
            await session.commit()

    async def get_otp(self, user_id: int) -> OtpEntry | None:
        async with self._session_factory() as session:
            result = await session.execute(select(OtpRecord).where(OtpRecord.user_id == user_id))
            return _otp_entry(result.scalar_one_or_none())

    async def claim_attempt(self, user_id: int, max_attempts: int) -> OtpEntry | None:
        """
        Increment attempts with a conditional UPDATE.

        The WHERE attempts < max_attempts clause is evaluated by the database,
        so concurrent verifications can never spend more than max_attempts.
        """
        async with self._session_factory() as session:
            result = await session.execute(
                update(OtpRecord)
                .where(OtpRecord.user_id == user_id, OtpRecord.attempts < max_attempts)
                .values(attempts=OtpRecord.attempts + 1)
            )
            if result.rowcount == 0:
                await session.rollback()
                return None
            row = (
                await session.execute(select(OtpRecord).where(OtpRecord.user_id == user_id))
            ).scalar_one()
            entry = _otp_entry(row)
            await session.commit()
            return entry

    async def delete_for_user(self, user_id: int) -> int:
        async with self._session_factory() as session:
            result = await session.execute(delete(OtpRecord).where(OtpRecord.user_id == user_id))
            await session.commit()
            return result.rowcount


class SqlSecuritySettingsRepository:
    def __init__(self, session_factory: SessionFactory = get_async_session):
        self._session_factory = session_factory

    async def is_enabled(self, name: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(SecuritySetting.enabled).where(SecuritySetting.name == name)
            )
            return bool(result.scalar_one_or_none())
