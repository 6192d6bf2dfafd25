"""Admin feedback inbox."""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from editaja.crud.feedback import FeedbackCRUD
from editaja.dependencies import get_db_client
from editaja.models.feedback import FeedbackStatus
from editaja.schemas.responses import ok_response

router = APIRouter()


class ReviewRequest(BaseModel):
    """Request model for reviewing a feedback entry."""
    status: Optional[FeedbackStatus] = None
    admin_notes: Optional[str] = Field(default=None, alias="adminNotes")


@router.get("")
async def list_feedback(
    category: Optional[str] = Query(None),
    db_client=Depends(get_db_client),
) -> Dict:
    crud = FeedbackCRUD(db_client)
    feedbacks = crud.get_all(category)
    return ok_response(feedbacks=feedbacks, total=len(feedbacks), unread=crud.unread_count())


@router.get("/unread-count")
async def get_unread_count(db_client=Depends(get_db_client)) -> Dict:
    return ok_response(count=FeedbackCRUD(db_client).unread_count())


@router.get("/{feedback_id}")
async def get_feedback(feedback_id: str, db_client=Depends(get_db_client)) -> Dict:
    return ok_response(feedback=FeedbackCRUD(db_client).get_or_404(feedback_id))


@router.post("/{feedback_id}/read")
async def mark_feedback_read(feedback_id: str, db_client=Depends(get_db_client)) -> Dict:
    FeedbackCRUD(db_client).mark_as_read(feedback_id)
    return ok_response("Feedback marked as read")


@router.put("/{feedback_id}")
async def review_feedback(
    feedback_id: str,
    request: ReviewRequest,
    db_client=Depends(get_db_client),
) -> Dict:
    status = request.status.value if request.status else None
    feedback = FeedbackCRUD(db_client).update_review(feedback_id, status, request.admin_notes)
    return ok_response("Feedback updated", feedback=feedback)


@router.delete("/{feedback_id}")
async def delete_feedback(feedback_id: str, db_client=Depends(get_db_client)) -> Dict:
    FeedbackCRUD(db_client).delete_feedback(feedback_id)
    return ok_response("Feedback deleted")
