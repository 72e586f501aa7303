"""
Booking validators.

Validators:
- validate_booking: Non-raising accept/reject decision for a requested slot
- ensure_bookable: Raising form used inside the atomic booking insert
- ensure_future: Past-time check shared by booking and reschedule
- parse_requested_slot / parse_salon_hours: Input and configuration parsing
"""

from salon.validators.booking_validator import (
    SalonHours,
    ValidationResult,
    ensure_bookable,
    ensure_future,
    parse_requested_slot,
    parse_salon_hours,
    parse_time_of_day,
    salon_now,
    validate_booking,
)

__all__ = [
    "SalonHours",
    "ValidationResult",
    "ensure_bookable",
    "ensure_future",
    "parse_requested_slot",
    "parse_salon_hours",
    "parse_time_of_day",
    "salon_now",
    "validate_booking",
]
