"""
User Profile and Customer Management Endpoints

Provides REST endpoints for:
- Fetching and updating a user profile
- Admin customer listing and deletion
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from api.dependencies import SessionDep
from api.responses import failure, store_errors, success
from database.models import User, UserRole

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["users"])


class UpdateProfileRequest(BaseModel):
    name: str
    email: str
    phone: str


@router.get("/user/{user_id}")
@store_errors("Failed to fetch user")
async def get_user(user_id: int, session: SessionDep):
    user = await session.get(User, user_id)
    if user is None:
        return failure("User not found")

    payload = user.to_public_dict()
    payload["created_at"] = user.created_at.isoformat() if user.created_at else None
    return success(user=payload)


@router.patch("/update-profile/{user_id}")
@store_errors("Error updating profile")
async def update_profile(user_id: int, request: UpdateProfileRequest, session: SessionDep):
    try:
        result = await session.execute(
            update(User)
            .where(User.id == user_id)
            .values(name=request.name, email=request.email, phone=request.phone)
        )
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.warning("Profile update rejected: email already in use", extra={"user_id": user_id})
        return failure("Email already exists.")

    return {"success": result.rowcount > 0}


@router.get("/admin/customers")
@store_errors("Error retrieving customers")
async def list_customers(session: SessionDep):
    result = await session.execute(
        select(User.id, User.name, User.email, User.phone)
        .where(User.role == UserRole.USER)
        .order_by(User.id)
    )
    customers = [
        {"id": row.id, "name": row.name, "email": row.email, "phone": row.phone}
        for row in result.all()
    ]
    return success(customers=customers)


@router.delete("/admin/delete-user/{user_id}")
@store_errors("Error deleting user")
async def delete_customer(user_id: int, session: SessionDep):
    """Delete a customer account. Admin and superadmin accounts are never removed here."""
    result = await session.execute(
        delete(User).where(User.id == user_id, User.role == UserRole.USER)
    )
    await session.commit()
    return {"success": result.rowcount > 0}
