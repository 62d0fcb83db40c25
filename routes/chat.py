"""
Route handlers for chat operations.
Handles the /api/chat endpoint and polling of background full answers.
"""
import secrets

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from models.api_models import ChatRequest
from services.chat_service import ChatService, get_chat_service
from utils.errors import GenerationError, ModelUnavailableError
from utils.logger import chat_logger

router = APIRouter()


@router.post("/api/chat")
async def chat(request: ChatRequest, http_request: Request, service: ChatService = Depends(get_chat_service)):
    """
    Chat endpoint with optional web augmentation and two-phase answers.
    """
    chat_id = secrets.token_hex(3)
    user = getattr(http_request.state, "user", None)
    username = (user or {}).get("username") or "guest"
    chat_logger(chat_id).info(f"Request from {username}")

    try:
        return await service.handle_chat(request, chat_id)

    except ModelUnavailableError as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "message": str(e),
                "usedWeb": e.context.get("usedWeb", False),
                "sources": e.context.get("sources", [])
            },
        )
    except GenerationError as e:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message": "Local model error",
                "usedWeb": e.context.get("usedWeb", False),
                "sources": e.context.get("sources", [])
            },
        )
    except Exception as e:
        chat_logger(chat_id).error(f"Chat endpoint error: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Error processing request"},
        )


@router.get("/api/chat/full/{full_id}")
async def get_full_response(full_id: str, service: ChatService = Depends(get_chat_service)):
    """Poll for the background full answer of a two-phase request."""
    entry = service.get_full_response(full_id)
    if entry is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"ready": False, "answer": None, "error": "Not found"},
        )

    return {"ready": entry.ready, "answer": entry.answer, "error": entry.error}
