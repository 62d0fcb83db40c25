"""
Route handler for thumbs up/down feedback.
"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from models.api_models import FeedbackRequest
from services.feedback_store import FeedbackStore, get_feedback_store

router = APIRouter()


@router.post("/api/feedback")
async def record_feedback(
    body: FeedbackRequest,
    request: Request,
    store: FeedbackStore = Depends(get_feedback_store)
):
    """Validate and append one feedback record."""
    if not body.message_id or not body.feedback:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"ok": False, "message": "messageId and feedback are required"},
        )

    if body.feedback not in FeedbackStore.VALID_FEEDBACK:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"ok": False, "message": 'feedback must be "up" or "down"'},
        )

    user = getattr(request.state, "user", None)
    record = FeedbackStore.build_record(
        message_id=body.message_id,
        feedback=body.feedback,
        username=(user or {}).get("username"),
        content=body.content,
        prompt=body.prompt,
        user_agent=request.headers.get("user-agent"),
        ip=request.client.host if request.client else None
    )
    store.append(record)

    return {"ok": True}
