"""
Feedback API Endpoints

Provides REST endpoints for:
- Customer feedback submission (rating 1-5)
- Admin feedback listing, deletion and total count
"""

import logging
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import delete, func, select

from api.dependencies import SessionDep
from api.responses import store_errors, success
from database.models import Feedback, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["feedback"])


class SubmitFeedbackRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(..., alias="userId")
    stylist: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    comments: str = ""


@router.post("/submit-feedback")
@store_errors("Failed to submit feedback")
async def submit_feedback(request: SubmitFeedbackRequest, session: SessionDep):
    session.add(
        Feedback(
            user_id=request.user_id,
            stylist=request.stylist,
            comment=request.comments,
            rating=request.rating,
        )
    )
    await session.commit()
    logger.info(f"Feedback submitted ({request.rating}/5)", extra={"user_id": request.user_id})
    return success()


@router.get("/admin/feedback")
@store_errors("Failed to retrieve feedback")
async def list_feedback(session: SessionDep):
    result = await session.execute(
        select(Feedback, User.name)
        .join(User, Feedback.user_id == User.id)
        .order_by(Feedback.id.desc())
    )
    feedback = [
        {
            "id": item.id,
            "user_id": item.user_id,
            "customer_name": customer_name,
            "stylist": item.stylist,
            "rating": item.rating,
            "comment": item.comment,
            "created_at": item.created_at.isoformat() if item.created_at else None,
        }
        for item, customer_name in result.all()
    ]
    return success(feedback=feedback)


@router.delete("/admin/feedback/{feedback_id}")
@store_errors("Error deleting feedback")
async def delete_feedback(feedback_id: int, session: SessionDep):
    result = await session.execute(delete(Feedback).where(Feedback.id == feedback_id))
    await session.commit()
    return {"success": result.rowcount > 0}


@router.get("/admin/total-feedback")
@store_errors("Failed to count feedback")
async def total_feedback(session: SessionDep):
    result = await session.execute(select(func.count(Feedback.id)))
    return success(total=result.scalar() or 0)
