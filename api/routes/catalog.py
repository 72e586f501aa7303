"""
Catalog API Endpoints

Provides REST endpoints for:
- Stylists (public listing + admin CRUD)
- Stylist availability slots (admin CRUD)
- Services (public active listing + admin CRUD)
"""

import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field
from sqlalchemy import delete, select, update

from api.dependencies import SessionDep
from api.responses import store_errors, success
from database.models import Service, Stylist, StylistAvailability

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])

ACTIVE_SERVICE_STATUS = "Active"
AVAILABLE_SLOT_STATUS = "Available"


def _stylist_dict(stylist: Stylist) -> dict:
    return {
        "id": stylist.id,
        "name": stylist.name,
        "specialty": stylist.specialty,
        "image": stylist.image,
    }


def _service_dict(service: Service) -> dict:
    return {
        "id": service.id,
        "name": service.name,
        "description": service.description,
        "price": float(service.price) if service.price is not None else None,
        "duration": service.duration,
        "status": service.status,
        "image": service.image,
    }


# =============================================================================
# Stylists
# =============================================================================


class StylistRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    specialty: str = Field(..., min_length=1, max_length=100)
    image: Optional[str] = None


@router.get("/stylists")
@router.get("/admin/stylists")
@store_errors("Error fetching stylists")
async def list_stylists(session: SessionDep):
    result = await session.execute(select(Stylist).order_by(Stylist.id))
    return success(stylists=[_stylist_dict(s) for s in result.scalars().all()])


@router.post("/stylists")
@router.post("/admin/add-stylist")
@store_errors("Error adding stylist")
async def add_stylist(request: StylistRequest, session: SessionDep):
    stylist = Stylist(name=request.name, specialty=request.specialty, image=request.image)
    session.add(stylist)
    await session.commit()
    logger.info(f"Stylist added: {stylist.name} (id={stylist.id})")
    return success(id=stylist.id)


@router.patch("/stylists/{stylist_id}")
@router.patch("/admin/update-stylist/{stylist_id}")
@store_errors("Error updating stylist")
async def update_stylist(stylist_id: int, request: StylistRequest, session: SessionDep):
    values = {"name": request.name, "specialty": request.specialty}
    if request.image is not None:
        values["image"] = request.image
    result = await session.execute(update(Stylist).where(Stylist.id == stylist_id).values(**values))
    await session.commit()
    return {"success": result.rowcount > 0}


@router.delete("/stylists/{stylist_id}")
@router.delete("/admin/delete-stylist/{stylist_id}")
@store_errors("Error deleting stylist")
async def delete_stylist(stylist_id: int, session: SessionDep):
    result = await session.execute(delete(Stylist).where(Stylist.id == stylist_id))
    await session.commit()
    return {"success": result.rowcount > 0}


# =============================================================================
# Stylist Availability
# =============================================================================


class AvailabilityRequest(BaseModel):
    stylist_id: int
    day: str = Field(..., min_length=1, max_length=20)
    time_slot: str = Field(..., min_length=1, max_length=50)


@router.get("/admin/availability")
@store_errors("Error fetching availability")
async def list_availability(session: SessionDep):
    result = await session.execute(
        select(StylistAvailability, Stylist.name)
        .join(Stylist, StylistAvailability.stylist_id == Stylist.id)
        .order_by(StylistAvailability.id)
    )
    availability = [
        {
            "id": slot.id,
            "stylist_id": slot.stylist_id,
            "stylist": stylist_name,
            "day": slot.day,
            "time_slot": slot.time_slot,
            "status": slot.status,
        }
        for slot, stylist_name in result.all()
    ]
    return success(availability=availability)


@router.post("/admin/add-availability")
@store_errors("Error adding availability")
async def add_availability(request: AvailabilityRequest, session: SessionDep):
    session.add(
        StylistAvailability(
            stylist_id=request.stylist_id,
            day=request.day,
            time_slot=request.time_slot,
            status=AVAILABLE_SLOT_STATUS,
        )
    )
    await session.commit()
    return success()


@router.patch("/admin/update-availability/{slot_id}")
@store_errors("Error updating availability")
async def update_availability(slot_id: int, request: AvailabilityRequest, session: SessionDep):
    result = await session.execute(
        update(StylistAvailability)
        .where(StylistAvailability.id == slot_id)
        .values(stylist_id=request.stylist_id, day=request.day, time_slot=request.time_slot)
    )
    await session.commit()
    return {"success": result.rowcount > 0}


@router.delete("/admin/delete-availability/{slot_id}")
@store_errors("Error deleting availability")
async def delete_availability(slot_id: int, session: SessionDep):
    result = await session.execute(delete(StylistAvailability).where(StylistAvailability.id == slot_id))
    await session.commit()
    return {"success": result.rowcount > 0}


# =============================================================================
# Services
# =============================================================================


class ServiceRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    duration: int = Field(..., gt=0)
    status: Optional[str] = None
    image: Optional[str] = None


@router.get("/services")
@store_errors("Error fetching services")
async def list_active_services(session: SessionDep):
    """Services customers can book."""
    result = await session.execute(
        select(Service).where(Service.status == ACTIVE_SERVICE_STATUS).order_by(Service.id)
    )
    services = []
    for service in result.scalars().all():
        item = _service_dict(service)
        item.pop("status")
        services.append(item)
    return success(services=services)


@router.get("/admin/services")
@store_errors("Failed to fetch services")
async def list_services(session: SessionDep):
    result = await session.execute(select(Service).order_by(Service.id.desc()))
    return success(services=[_service_dict(s) for s in result.scalars().all()])


@router.post("/admin/add-service")
@store_errors("Error adding service")
async def add_service(request: ServiceRequest, session: SessionDep):
    service = Service(
        name=request.name,
        description=request.description,
        price=request.price,
        duration=request.duration,
        image=request.image or "",
        status=ACTIVE_SERVICE_STATUS,
    )
    session.add(service)
    await session.commit()
    logger.info(f"Service added: {service.name} (id={service.id})")
    return success()


@router.patch("/admin/update-service/{service_id}")
@store_errors("Error updating service")
async def update_service(service_id: int, request: ServiceRequest, session: SessionDep):
    result = await session.execute(
        update(Service)
        .where(Service.id == service_id)
        .values(
            name=request.name,
            description=request.description,
            price=request.price,
            duration=request.duration,
            status=request.status or ACTIVE_SERVICE_STATUS,
            image=request.image or "",
        )
    )
    await session.commit()
    return {"success": result.rowcount > 0}


@router.delete("/admin/delete-service/{service_id}")
@store_errors("Error deleting service")
async def delete_service(service_id: int, session: SessionDep):
    result = await session.execute(delete(Service).where(Service.id == service_id))
    await session.commit()
    return {"success": result.rowcount > 0}
