"""User feedback endpoints."""

from typing import Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile

from editaja.crud.beta_tester import BetaTesterCRUD
from editaja.crud.feedback import FeedbackCRUD
from editaja.dependencies import (
    get_current_user,
    get_db_client,
    get_file_storage,
    get_notifier,
    get_optional_user,
)
from editaja.models.feedback import FeedbackCategory
from editaja.schemas.responses import ok_response
from editaja.services.file_storage import LocalFileStorage, extension_for, random_suffix, timestamp_ms
from editaja.services.notifications import FeedbackNotifier
from editaja.utils.exceptions import ValidationError
from editaja.utils.logger import get_logger
from editaja.utils.timeutils import utcnow

logger = get_logger(__name__)
router = APIRouter()

MAX_SCREENSHOT_BYTES = 5 * 1024 * 1024


@router.post("/submit")
async def submit_feedback(
    background_tasks: BackgroundTasks,
    feedback: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    screenshot: Optional[UploadFile] = File(None),
    current_user: Optional[dict] = Depends(get_optional_user),
    db_client=Depends(get_db_client),
    storage: LocalFileStorage = Depends(get_file_storage),
    notifier: FeedbackNotifier = Depends(get_notifier),
) -> Dict:
    """
    Submit feedback with an optional screenshot.

    The notification e-mail is sent after the response so a slow mail
    provider never delays the user.
    """
    if not feedback or not feedback.strip() or not category:
        raise ValidationError("Feedback and category are required")
    try:
        category = FeedbackCategory(category).value
    except ValueError:
        raise ValidationError("Invalid category") from None

    screenshot_url = None
    if screenshot is not None and screenshot.filename:
        if not (screenshot.content_type or "").startswith("image/"):
            raise ValidationError("Screenshot must be an image file")
        content = await screenshot.read()
        if len(content) > MAX_SCREENSHOT_BYTES:
            raise ValidationError("Screenshot size must be less than 5MB")
        ext = extension_for(screenshot.filename, screenshot.content_type, default="png")
        screenshot_url = storage.save("feedback", f"feedback_{timestamp_ms()}_{random_suffix()}.{ext}", content)

    user_id = current_user["uid"] if current_user else None
    data = {
        "userId": user_id,
        "userEmail": current_user.get("email") if current_user else None,
        "feedback": feedback.strip(),
        "category": category,
        "isBetaTester": bool(user_id) and BetaTesterCRUD(db_client).is_beta_tester(user_id),
        "screenshotUrl": screenshot_url,
        "createdAt": utcnow(),
    }
    feedback_id = FeedbackCRUD(db_client).save_feedback(data)
    logger.info(f"Feedback {feedback_id} submitted ({category})")

    if notifier.enabled:
        background_tasks.add_task(notifier.notify, dict(data, id=feedback_id))

    return ok_response("Feedback submitted successfully", id=feedback_id)


@router.get("/mine")
async def list_my_feedback(
    current_user: dict = Depends(get_current_user),
    db_client=Depends(get_db_client),
) -> Dict:
    return ok_response(feedbacks=FeedbackCRUD(db_client).get_user_feedbacks(current_user["uid"]))
