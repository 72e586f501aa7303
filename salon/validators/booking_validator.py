"""
Booking Validator - single source of truth for booking admission rules.

Checks, applied in order and short-circuiting on the first failure:
0. Input shape (date is YYYY-MM-DD, time is HH:mm / HH:mm:ss / hh:mm AM|PM)
1. Past-time rejection (requested instant <= now, equality counts as past)
2. Configuration presence (system_config row must exist)
3. Daily capacity (active bookings for the date < max_daily_bookings)
4. Operating hours (open <= time < close, close is exclusive)

All functions here are pure: the caller supplies the config snapshot, the
active booking count and "now". BookingTransaction runs ensure_bookable()
inside the repository's locked insert so the count cannot go stale.
"""

import logging
from datetime import date, datetime, time, tzinfo
from typing import Any, Optional

from pydantic import BaseModel, Field

from salon.errors import BusinessRuleViolation, ConfigMissingError, SalonError, ValidationError
from salon.repositories.base import SalonConfig
from shared.config import get_settings

logger = logging.getLogger(__name__)

# Accepted time-of-day spellings, tried in order
TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p", "%I:%M:%S %p", "%I %p")

HOURS_SEPARATOR = "-"

PAST_BOOKING_MESSAGE = "You cannot book an appointment in the past."
PAST_RESCHEDULE_MESSAGE = "You cannot reschedule to a past date or time."
INVALID_SLOT_MESSAGE = "Invalid date or time format."
CONFIG_MISSING_MESSAGE = "System configuration not found."
CONFIG_INVALID_MESSAGE = "Salon hours are misconfigured. Please contact the salon."
DAILY_LIMIT_MESSAGE = "Daily booking limit reached. Please choose another date."
OUTSIDE_HOURS_MESSAGE = "Selected time is outside salon hours."


class ValidationResult(BaseModel):
    """Result of a booking validation operation."""
    valid: bool
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)


class SalonHours(BaseModel):
    """Parsed operating window; close is exclusive."""
    open: time
    close: time

    def contains(self, at: time) -> bool:
        return self.open <= at < self.close


def salon_now() -> datetime:
    """Current time in the salon's timezone."""
    return datetime.now(get_settings().salon_timezone)


def parse_time_of_day(text: Any) -> time | None:
    """
    Parse a time-of-day in 24-hour or 12-hour notation.

    Returns None when the text matches none of TIME_FORMATS.

    Example:
        >>> parse_time_of_day("08:00 PM")
        datetime.time(20, 0)
        >>> parse_time_of_day("10:00")
        datetime.time(10, 0)
    """
    if not isinstance(text, str):
        return None
    candidate = " ".join(text.strip().upper().split())
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).time()
        except ValueError:
            continue
    return None


def parse_booking_date(text: Any) -> date:
    """Strict YYYY-MM-DD (no compact or ISO week forms)."""
    if not isinstance(text, str) or len(text.strip()) != 10:
        raise ValidationError(INVALID_SLOT_MESSAGE)
    try:
        return datetime.strptime(text.strip(), "%Y-%m-%d").date()
    except ValueError as e:
        raise ValidationError(INVALID_SLOT_MESSAGE) from e


def parse_requested_slot(date_text: Any, time_text: Any, tz: tzinfo) -> datetime:
    """
    Combine a requested date and time into one timezone-aware instant.

    Raises:
        ValidationError: If either part is missing or unparsable
    """
    day = parse_booking_date(date_text)
    at = parse_time_of_day(time_text)
    if at is None:
        raise ValidationError(INVALID_SLOT_MESSAGE)
    return datetime.combine(day, at, tzinfo=tz)


def parse_salon_hours(text: Optional[str]) -> SalonHours | None:
    """
    Parse salon_hours text such as "10:00 AM - 8:00 PM" or "10:00 - 20:00".

    Returns None (no hours restriction) when the text is empty or has no
    separator at all.

    Raises:
        ConfigMissingError: CONFIG_INVALID when a separator is present but a
        side does not parse, or when open is not before close
    """
    if text is None or not text.strip():
        return None

    if HOURS_SEPARATOR not in text:
        logger.warning(
            f"salon_hours '{text}' has no '{HOURS_SEPARATOR}' separator; "
            f"treating as no hours restriction"
        )
        return None

    open_text, _, close_text = text.partition(HOURS_SEPARATOR)
    open_at = parse_time_of_day(open_text)
    close_at = parse_time_of_day(close_text)

    if open_at is None or close_at is None or open_at >= close_at:
        logger.error(f"Unparsable salon_hours configuration: '{text}'")
        raise ConfigMissingError(CONFIG_INVALID_MESSAGE, code="CONFIG_INVALID")

    return SalonHours(open=open_at, close=close_at)


def ensure_future(slot: datetime, now: datetime, message: str = PAST_BOOKING_MESSAGE) -> None:
    """Reject a slot that is not strictly after now."""
    if slot <= now:
        raise BusinessRuleViolation(message, code="PAST_TIME")


def ensure_bookable(
    slot: datetime,
    config: Optional[SalonConfig],
    active_count: int,
    now: datetime,
) -> None:
    """
    Apply checks 1-4 to an already parsed slot.

    A max_daily_bookings of None or 0 means no cap is configured.

    Raises:
        BusinessRuleViolation: PAST_TIME, DAILY_LIMIT_REACHED or OUTSIDE_SALON_HOURS
        ConfigMissingError: CONFIG_MISSING or CONFIG_INVALID
    """
    ensure_future(slot, now)

    if config is None:
        raise ConfigMissingError(CONFIG_MISSING_MESSAGE)

    cap = config.max_daily_bookings
    if cap and active_count >= cap:
        raise BusinessRuleViolation(DAILY_LIMIT_MESSAGE, code="DAILY_LIMIT_REACHED")

    hours = parse_salon_hours(config.salon_hours)
    if hours is not None and not hours.contains(slot.time()):
        raise BusinessRuleViolation(OUTSIDE_HOURS_MESSAGE, code="OUTSIDE_SALON_HOURS")


def validate_booking(
    date_text: Any,
    time_text: Any,
    config: Optional[SalonConfig],
    active_count: int,
    now: datetime,
) -> ValidationResult:
    """
    Decide whether a requested (date, time) may be booked.

    The requested date/time is interpreted in now's timezone.

    Returns:
        ValidationResult(valid=True) to accept, otherwise valid=False with
        error_code and a user-facing error_message
    """
    try:
        slot = parse_requested_slot(date_text, time_text, now.tzinfo)
        ensure_bookable(slot, config, active_count, now)
    except SalonError as e:
        return ValidationResult(
            valid=False,
            error_code=e.code,
            error_message=e.message,
            details={"active_count": active_count},
        )
    return ValidationResult(valid=True, details={"active_count": active_count})
