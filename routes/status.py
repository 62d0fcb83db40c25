"""
Route handlers for runtime diagnostics: model runner status and search pass-through.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from config import Config
from services.chat_service import ChatService, get_chat_service
from services.search import SearchService, get_search_service
from utils.logger import app_logger

router = APIRouter()


@router.get("/api/local/status")
async def local_status(request: Request, service: ChatService = Depends(get_chat_service)):
    """Report whether the local model runner can serve requests."""
    user = getattr(request.state, "user", None)
    app_logger.info(f"Status check from: {(user or {}).get('username') or 'guest'}")

    return {
        "status": "available" if service.runner.is_available() else "unavailable",
        "model": service.runner.model,
        "host": Config.OLLAMA_HOST,
        "provider": service.runner.PROVIDER
    }


@router.get("/api/search/test")
async def search_test(
    q: Optional[str] = None,
    query: Optional[str] = None,
    search: SearchService = Depends(get_search_service)
):
    """Run a raw web search for diagnostics."""
    term = q or query
    if not term:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"ok": False, "message": "Missing query parameter q"},
        )

    try:
        results = await search.search(term)
    except Exception as e:
        app_logger.error(f"Search test error: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "message": str(e)},
        )

    if not results:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "message": "Search failed"},
        )

    return {
        "ok": True,
        "provider": results.get("provider") or "unknown",
        "results": results.get("results") or [],
        "summary": results.get("summary") or ""
    }
