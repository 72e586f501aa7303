"""
Booking Transaction Handler.

This module implements appointment creation and rescheduling:
- Input parsing (date YYYY-MM-DD, time HH:mm or hh:mm AM/PM, salon timezone)
- Business rule validation (past time, config presence, daily cap, salon hours)
- Persistence through BookingRepository.create_appointment(), which runs the
  capacity check and the insert in one serialized transaction

Rescheduling only re-applies the past-time rule; capacity and salon hours are
not re-checked for an existing appointment.

Both entry points return the uniform API result dict on success and raise
SalonError subclasses on rejection (routers convert them).
"""

import logging
from datetime import datetime
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

from salon.errors import SalonError, ValidationError
from salon.repositories.base import BookingRepository, BookingRequest, SalonConfig
from salon.validators.booking_validator import (
    PAST_RESCHEDULE_MESSAGE,
    ensure_bookable,
    ensure_future,
    parse_requested_slot,
    salon_now,
)
from shared.config import get_settings

logger = logging.getLogger(__name__)


class BookingTransaction:
    """
    Atomic transaction handler for creating and rescheduling appointments.

    Usage:
        transaction = BookingTransaction(SqlBookingRepository())
        result = await transaction.execute(
            user_id=7, service="Haircut", stylist="Ana",
            date_text="2026-11-02", time_text="10:30",
        )
    """

    def __init__(
        self,
        repository: BookingRepository,
        clock: Callable[[], datetime] = salon_now,
        tz: Optional[ZoneInfo] = None,
    ):
        self._repository = repository
        self._clock = clock
        self._tz = tz or get_settings().salon_timezone

    async def execute(
        self,
        user_id: int,
        service: Optional[str],
        stylist: Optional[str],
        date_text: Any,
        time_text: Any,
    ) -> dict[str, Any]:
        """
        Validate and persist a new Pending appointment.

        Returns:
            {"success": True, "message": "Booking created successfully",
             "appointment": {...}}

        Raises:
            ValidationError: Missing service, unparsable date or time
            BusinessRuleViolation: Past time, daily limit reached, outside salon hours
            ConfigMissingError: No (or unusable) system configuration
        """
        trace_id = f"{user_id}_{date_text}T{time_text}"
        if not service or not service.strip():
            logger.warning(
                f"[{trace_id}] Booking rejected: no service",
                extra={"user_id": user_id, "trace_id": trace_id, "error_code": "INVALID_INPUT"},
            )
            raise ValidationError("Service is required.")

        slot = parse_requested_slot(date_text, time_text, self._tz)
        now = self._clock()

        logger.info(
            f"[{trace_id}] Starting booking transaction",
            extra={"user_id": user_id, "trace_id": trace_id},
        )

        def guard(config: Optional[SalonConfig], active_count: int) -> None:
            ensure_bookable(slot, config, active_count, now)

        request = BookingRequest(
            user_id=user_id,
            service=service,
            stylist=stylist,
            date=slot.date(),
            time=slot.time(),
        )

        try:
            appointment = await self._repository.create_appointment(request, guard)
        except SalonError as e:
            logger.warning(
                f"[{trace_id}] Booking rejected: {e.message}",
                extra={"user_id": user_id, "trace_id": trace_id, "error_code": e.code},
            )
            raise

        logger.info(
            f"[{trace_id}] Appointment created (Pending)",
            extra={"appointment_id": appointment.id, "user_id": user_id, "trace_id": trace_id},
        )
        return {
            "success": True,
            "message": "Booking created successfully",
            "appointment": appointment.to_response(),
        }

    async def reschedule(self, appointment_id: int, date_text: Any, time_text: Any) -> dict[str, Any]:
        """
        Move an appointment to a new date/time and mark it Rescheduled.

        Returns:
            {"success": bool} - False when the appointment id does not exist

        Raises:
            ValidationError: Unparsable date or time
            BusinessRuleViolation: New slot is not in the future
        """
        slot = parse_requested_slot(date_text, time_text, self._tz)
        ensure_future(slot, self._clock(), PAST_RESCHEDULE_MESSAGE)

        updated = await self._repository.reschedule_appointment(
            appointment_id, slot.date(), slot.time()
        )
        if updated:
            logger.info("Appointment rescheduled", extra={"appointment_id": appointment_id})
        else:
            logger.warning("Reschedule target not found", extra={"appointment_id": appointment_id})
        return {"success": updated}
