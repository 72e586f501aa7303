"""
Superadmin API Endpoints

Provides REST endpoints for:
- System overview counts
- Admin account management (Gmail address, 09XXXXXXXXX phone, strong password)
- Security settings (two-factor toggle)
- System configuration (salon hours, daily booking cap)
- PDF reports (appointments, bookings, users, services)
"""

import logging
import re
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import SessionDep
from api.responses import failure, store_errors, success
from database.models import (
    Appointment,
    SecuritySetting,
    Stylist,
    SystemConfig,
    User,
    UserRole,
)
from salon.errors import ConfigMissingError, ValidationError
from salon.services.report_service import build_report_pdf
from salon.validators.booking_validator import parse_salon_hours
from shared.security import hash_password

logger = logging.getLogger(__name__)

router = APIRouter(tags=["superadmin"])

GMAIL_PATTERN = re.compile(r"^[\w.%+-]+@gmail\.com$", re.IGNORECASE)
PHONE_PATTERN = re.compile(r"^09\d{9}$")
STRONG_PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[\W_]).{8,}$")

GMAIL_MESSAGE = "Email must be a Gmail address"
PHONE_MESSAGE = "Phone must be 11 digits starting with 09"
PASSWORD_MESSAGE = (
    "Password must be at least 8 characters long and include uppercase, "
    "lowercase, number, and special character"
)


def admin_field_error(email: str, phone: str, password: str) -> Optional[str]:
    """First failing admin field rule, or None when all pass."""
    if not GMAIL_PATTERN.match(email or ""):
        return GMAIL_MESSAGE
    if not PHONE_PATTERN.match(phone or ""):
        return PHONE_MESSAGE
    if not STRONG_PASSWORD_PATTERN.match(password or ""):
        return PASSWORD_MESSAGE
    return None


# =============================================================================
# Overview
# =============================================================================


@router.get("/superadmin/overview")
async def overview(session: SessionDep):
    try:
        admins = await session.scalar(select(func.count(User.id)).where(User.role == UserRole.ADMIN))
        customers = await session.scalar(select(func.count(User.id)).where(User.role == UserRole.USER))
        stylists = await session.scalar(select(func.count(Stylist.id)))
        appointments = await session.scalar(select(func.count(Appointment.id)))
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch overview: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=failure("Failed to fetch overview"))

    return {
        "admins": admins,
        "customers": customers,
        "stylists": stylists,
        "appointments": appointments,
        "total": admins + customers + stylists + appointments,
    }


# =============================================================================
# Admin Accounts
# =============================================================================


class AdminRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str
    phone: str
    password: str


@router.get("/superadmin/admins")
@store_errors("Failed to fetch admins")
async def list_admins(session: SessionDep):
    result = await session.execute(
        select(User.id, User.name, User.email, User.phone)
        .where(User.role == UserRole.ADMIN)
        .order_by(User.id)
    )
    return [
        {"id": row.id, "name": row.name, "email": row.email, "phone": row.phone}
        for row in result.all()
    ]


@router.post("/superadmin/admins")
@store_errors("Server error")
async def add_admin(request: AdminRequest, session: SessionDep):
    error = admin_field_error(request.email, request.phone, request.password)
    if error:
        return JSONResponse(status_code=400, content=failure(error))

    admin = User(
        name=request.name,
        email=request.email,
        phone=request.phone,
        password_hash=hash_password(request.password),
        role=UserRole.ADMIN,
    )
    session.add(admin)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        return JSONResponse(status_code=400, content=failure("Email already exists."))

    logger.info("Admin account created", extra={"user_id": admin.id, "email": admin.email})
    return success(
        message="Admin added successfully",
        admin={"id": admin.id, "name": admin.name, "email": admin.email, "phone": admin.phone},
    )


@router.put("/superadmin/admins/{admin_id}")
@store_errors("Error updating admin")
async def update_admin(admin_id: int, request: AdminRequest, session: SessionDep):
    error = admin_field_error(request.email, request.phone, request.password)
    if error:
        return failure(error)

    try:
        result = await session.execute(
            update(User)
            .where(User.id == admin_id, User.role == UserRole.ADMIN)
            .values(
                name=request.name,
                email=request.email,
                phone=request.phone,
                password_hash=hash_password(request.password),
            )
        )
        await session.commit()
    except IntegrityError:
        await session.rollback()
        return failure("Email already exists.")

    if result.rowcount > 0:
        logger.info("Admin account updated", extra={"user_id": admin_id})
        return success(message="Admin updated successfully")
    return failure("Admin not found or no changes made")


@router.delete("/superadmin/admins/{admin_id}")
@store_errors("Error deleting admin")
async def delete_admin(admin_id: int, session: SessionDep):
    result = await session.execute(
        delete(User).where(User.id == admin_id, User.role == UserRole.ADMIN)
    )
    await session.commit()
    if result.rowcount > 0:
        logger.info("Admin account deleted", extra={"user_id": admin_id})
        return success(message="Admin deleted successfully")
    return failure("Admin not found")


# =============================================================================
# Security Settings
# =============================================================================


class SecuritySettingUpdate(BaseModel):
    enabled: Optional[bool] = None
    value: Optional[bool] = None

    @property
    def resolved(self) -> bool:
        if self.enabled is not None:
            return self.enabled
        return bool(self.value)


class SecuritySettingToggle(BaseModel):
    id: int
    enabled: bool = False


async def _set_security_setting(session: AsyncSession, setting_id: int, enabled: bool) -> bool:
    result = await session.execute(
        update(SecuritySetting).where(SecuritySetting.id == setting_id).values(enabled=enabled)
    )
    await session.commit()
    if result.rowcount > 0:
        logger.info(f"Security setting {setting_id} set to {'enabled' if enabled else 'disabled'}")
    return result.rowcount > 0


@router.get("/superadmin/security")
@store_errors("Failed to fetch security settings")
async def list_security_settings(session: SessionDep):
    result = await session.execute(select(SecuritySetting).order_by(SecuritySetting.id))
    return [s.to_dict() for s in result.scalars().all()]


@router.put("/superadmin/security/{setting_id}")
@store_errors("Failed to update security setting")
async def update_security_setting(setting_id: int, request: SecuritySettingUpdate, session: SessionDep):
    return {"success": await _set_security_setting(session, setting_id, request.resolved)}


@router.post("/update-security-setting")
@store_errors("Failed to update security setting")
async def toggle_security_setting(request: SecuritySettingToggle, session: SessionDep):
    return {"success": await _set_security_setting(session, request.id, request.enabled)}


# =============================================================================
# System Configuration
# =============================================================================


class SystemConfigUpdate(BaseModel):
    salon_hours: str = Field(..., min_length=1, max_length=100)
    max_daily_bookings: int = Field(..., ge=0)
    maintenance_schedule: str = Field(..., max_length=255)


@router.get("/superadmin/config")
@store_errors("Failed to fetch system config")
async def get_system_config(session: SessionDep):
    result = await session.execute(select(SystemConfig).order_by(SystemConfig.id).limit(1))
    config = result.scalar_one_or_none()
    return success(config=config.to_dict() if config else None)


@router.put("/superadmin/config/{config_id}")
@store_errors("Failed to update system config")
async def update_system_config(config_id: int, request: SystemConfigUpdate, session: SessionDep):
    try:
        parse_salon_hours(request.salon_hours)
    except ConfigMissingError:
        return failure("Invalid salon hours. Use a range like '10:00 AM - 8:00 PM'.")

    result = await session.execute(
        update(SystemConfig)
        .where(SystemConfig.id == config_id)
        .values(
            salon_hours=request.salon_hours,
            max_daily_bookings=request.max_daily_bookings,
            maintenance_schedule=request.maintenance_schedule,
        )
    )
    await session.commit()
    if result.rowcount > 0:
        logger.info(
            f"System config updated: hours '{request.salon_hours}', cap {request.max_daily_bookings}"
        )
    return {"success": result.rowcount > 0}


# =============================================================================
# Reports
# =============================================================================


@router.get("/superadmin/reports/{report_type}")
async def download_report(report_type: str, session: SessionDep):
    """Stream a PDF report as an attachment."""
    try:
        filename, pdf_bytes = await build_report_pdf(session, report_type)
    except ValidationError as e:
        return JSONResponse(status_code=400, content=failure(e.message))
    except Exception as e:
        logger.error(f"Error generating {report_type} report: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=failure("Error generating report"))

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
