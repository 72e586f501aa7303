"""
Appointment API Endpoints

Provides REST endpoints for:
- Booking and rescheduling (through BookingTransaction)
- Cancel / status update / completion
- Customer and admin appointment listings
"""

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import delete, func, select, update

from api.dependencies import BookingTransactionDep, SessionDep
from api.responses import failure, store_errors, success
from database.models import Appointment, AppointmentStatus, User
from shared.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["appointments"])


# =============================================================================
# Request Models
# =============================================================================


class BookAppointmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(..., alias="userId")
    service: Optional[str] = None
    stylist: Optional[str | int] = None
    date: Any = None
    time: Any = None


class RescheduleRequest(BaseModel):
    date: Any = None
    time: Any = None


class UpdateStatusRequest(BaseModel):
    status: str


# =============================================================================
# Booking
# =============================================================================


@router.post("/book-appointment")
@store_errors("Error booking appointment")
async def book_appointment(request: BookAppointmentRequest, transaction: BookingTransactionDep):
    """
    Create a Pending appointment.

    Rejections (past time, missing config, daily limit, outside salon hours)
    come back as {"success": false, "message": ...}.
    """
    return await transaction.execute(
        user_id=request.user_id,
        service=request.service,
        stylist=str(request.stylist) if request.stylist is not None else None,
        date_text=request.date,
        time_text=request.time,
    )


@router.patch("/reschedule-appointment/{appointment_id}")
@store_errors("Error rescheduling appointment")
async def reschedule_appointment(
    appointment_id: int, request: RescheduleRequest, transaction: BookingTransactionDep
):
    return await transaction.reschedule(appointment_id, request.date, request.time)


# =============================================================================
# Lifecycle
# =============================================================================


@router.patch("/cancel-appointment/{appointment_id}")
@store_errors("Error cancelling appointment")
async def cancel_appointment(appointment_id: int, session: SessionDep):
    result = await session.execute(
        update(Appointment)
        .where(Appointment.id == appointment_id)
        .values(status=AppointmentStatus.CANCELLED)
    )
    await session.commit()
    if result.rowcount > 0:
        logger.info("Appointment cancelled", extra={"appointment_id": appointment_id})
    return {"success": result.rowcount > 0}


@router.patch("/update-appointment-status/{appointment_id}")
@store_errors("Failed to update appointment status")
async def update_appointment_status(appointment_id: int, request: UpdateStatusRequest, session: SessionDep):
    try:
        new_status = AppointmentStatus(request.status)
    except ValueError:
        allowed = ", ".join(s.value for s in AppointmentStatus)
        return failure(f"Invalid status '{request.status}'. Must be one of: {allowed}")

    result = await session.execute(
        update(Appointment).where(Appointment.id == appointment_id).values(status=new_status)
    )
    await session.commit()

    if result.rowcount > 0:
        logger.info(
            f"Appointment status updated to {new_status.value}",
            extra={"appointment_id": appointment_id},
        )
        return success(message=f"Appointment status updated to '{new_status.value}'")
    return failure("Appointment not found or status unchanged")


@router.delete("/complete-appointment/{appointment_id}")
@store_errors("Error deleting appointment")
async def complete_appointment(appointment_id: int, session: SessionDep):
    """Completing an appointment removes it."""
    result = await session.execute(delete(Appointment).where(Appointment.id == appointment_id))
    await session.commit()

    if result.rowcount > 0:
        logger.info("Appointment completed and removed", extra={"appointment_id": appointment_id})
        return success(message="Appointment deleted successfully")
    return failure("Appointment not found")


# =============================================================================
# Queries
# =============================================================================


@router.get("/user-appointments/{user_id}")
@store_errors("Failed to retrieve appointments")
async def list_user_appointments(user_id: int, session: SessionDep):
    result = await session.execute(
        select(Appointment)
        .where(Appointment.user_id == user_id)
        .order_by(Appointment.date.asc(), Appointment.time.asc())
    )
    return success(appointments=[a.to_dict() for a in result.scalars().all()])


@router.get("/appointment/{appointment_id}")
@store_errors("Failed to retrieve appointment")
async def get_appointment(appointment_id: int, session: SessionDep):
    appointment = await session.get(Appointment, appointment_id)
    if appointment is None:
        return failure("Appointment not found")
    return success(appointment=appointment.to_dict())


@router.get("/admin/appointments")
@store_errors("Failed to fetch appointments")
async def list_all_appointments(session: SessionDep):
    result = await session.execute(
        select(Appointment, User.name)
        .join(User, Appointment.user_id == User.id)
        .order_by(Appointment.date.asc(), Appointment.time.asc())
    )
    appointments = []
    for appointment, customer_name in result.all():
        item = appointment.to_dict()
        item["customer_name"] = customer_name
        appointments.append(item)
    return success(appointments=appointments)


@router.get("/admin/appointments/today/approved/count")
@store_errors("Failed to count today's approved appointments")
async def count_today_approved(session: SessionDep):
    today = datetime.now(get_settings().salon_timezone).date()
    result = await session.execute(
        select(func.count(Appointment.id)).where(
            Appointment.date == today,
            Appointment.status == AppointmentStatus.APPROVED,
        )
    )
    return success(totalTodayApproved=result.scalar() or 0)
