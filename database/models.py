"""
SQLAlchemy ORM models for the salon database.

This module defines the tables:
- users: Customers, admins and the seeded superadmin (bcrypt password hashes)
- stylists / stylist_availability: Salon professionals and their weekly slots
- services: Salon services with pricing and duration
- appointments: Bookings with lifecycle status
- feedback: Customer ratings and comments
- notifications: Per-user and global (user_id NULL) notifications
- otp: One live one-time password per user (unique user_id)
- security_settings: Named feature flags (e.g. "Two-Factor Authentication")
- system_config: Singleton row with salon hours and daily booking cap

All models use:
- Integer autoincrement primary keys (ids are exposed as-is over the API)
- TIMESTAMP WITH TIME ZONE for datetime fields
- Portable column types so the schema runs on PostgreSQL and SQLite
"""

import datetime as dt
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    DATE,
    TIME,
    TIMESTAMP,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy import (
    Enum as SQLEnum,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# ============================================================================
# Base Class
# ============================================================================


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _enum_values(enum_cls: type[PyEnum]) -> list[str]:
    return [member.value for member in enum_cls]


# ============================================================================
# Enums
# ============================================================================


class UserRole(str, PyEnum):
    """Account role."""

    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class AppointmentStatus(str, PyEnum):
    """
    Appointment lifecycle status.

    Completed appointments are deleted rather than stored with a terminal status.
    """

    PENDING = "Pending"
    APPROVED = "Approved"
    RESCHEDULED = "Rescheduled"
    CANCELLED = "Cancelled"

    def __str__(self):
        return self.value


TWO_FACTOR_SETTING_NAME = "Two-Factor Authentication"
SYSTEM_CONFIG_ID = 1


# ============================================================================
# Core Models
# ============================================================================


class User(Base):
    """
    User model - customers, admins and the superadmin.

    Email is unique. Passwords are never stored in plaintext.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name="user_role", native_enum=False, length=20,
                values_callable=_enum_values),
        nullable=False,
        default=UserRole.USER,
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, nullable=False
    )

    def to_public_dict(self) -> dict:
        """User payload returned to clients (never includes the password hash)."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role.value,
        }

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"


class Stylist(Base):
    """Stylist model - salon professionals offered at booking time."""

    __tablename__ = "stylists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    specialty: Mapped[str] = mapped_column(String(100), nullable=False)
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Stylist(id={self.id}, name='{self.name}')>"


class StylistAvailability(Base):
    """Weekly availability slot published for a stylist."""

    __tablename__ = "stylist_availability"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stylist_id: Mapped[int] = mapped_column(
        ForeignKey("stylists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day: Mapped[str] = mapped_column(String(20), nullable=False)
    time_slot: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Available")


class Service(Base):
    """Service model - bookable salon services."""

    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, default="Active")
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Appointment(Base):
    """
    Appointment model - a booked (date, time, service, stylist) slot.

    The stylist may be a reference to a Stylist row or free text.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service: Mapped[str] = mapped_column(String(150), nullable=False)
    stylist_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("stylists.id", ondelete="SET NULL"), nullable=True
    )
    stylist: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    date: Mapped[dt.date] = mapped_column(DATE, nullable=False)
    time: Mapped[dt.time] = mapped_column(TIME, nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        SQLEnum(AppointmentStatus, name="appointment_status", native_enum=False, length=20,
                values_callable=_enum_values),
        nullable=False,
        default=AppointmentStatus.PENDING,
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, nullable=False
    )

    __table_args__ = (
        # Daily capacity count filters on date and status
        Index("idx_appointments_date_status", "date", "status"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "service": self.service,
            "stylist": self.stylist,
            "date": self.date.isoformat(),
            "time": self.time.strftime("%H:%M"),
            "status": self.status.value,
        }

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, date={self.date}, time={self.time}, status='{self.status}')>"


class Feedback(Base):
    """Customer feedback with a 1-5 rating."""

    __tablename__ = "feedback"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    stylist_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("stylists.id", ondelete="SET NULL"), nullable=True
    )
    stylist: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="check_feedback_rating_range"),
    )


class Notification(Base):
    """In-app notification. user_id NULL means the notification is global."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="success")
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, nullable=False
    )


class OtpRecord(Base):
    """
    One-time password for two-factor login and password reset.

    At most one row per user (unique user_id): issuing a new code replaces
    the previous one and resets attempts. Each verification spends one
    attempt; at the cap the code is unusable. Expiry is computed from
    created_at, not stored.
    """

    __tablename__ = "otp"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    otp: Mapped[str] = mapped_column(String(6), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, nullable=False
    )


class SecuritySetting(Base):
    """Named security feature flag."""

    __tablename__ = "security_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "enabled": int(self.enabled)}


class SystemConfig(Base):
    """
    Singleton salon configuration (id = 1).

    salon_hours is free text like "10:00 AM - 8:00 PM".
    """

    __tablename__ = "system_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    salon_hours: Mapped[str] = mapped_column(String(100), nullable=False)
    max_daily_bookings: Mapped[int] = mapped_column(Integer, nullable=False)
    maintenance_schedule: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        CheckConstraint("max_daily_bookings >= 0", name="check_max_daily_bookings_non_negative"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "salon_hours": self.salon_hours,
            "max_daily_bookings": self.max_daily_bookings,
            "maintenance_schedule": self.maintenance_schedule,
        }
