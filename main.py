"""
Luck Relay - FastAPI chat relay in front of a local Ollama model.
Fast short answers with background full answers, optional web augmentation and output sanitization.
"""
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from config import Config
from routes import auth_route, chat, feedback, status as status_route
from auth import BearerAuthMiddleware
from services.chat_service import get_chat_service
from utils.http_client import HTTPClientManager
from utils.logger import app_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    service = get_chat_service()
    app_logger.info(f"Initializing model runner ({Config.OLLAMA_MODEL} at {Config.OLLAMA_HOST})...")
    if not await service.runner.init():
        app_logger.warning("Model runner unavailable at startup, will retry on first chat request")

    yield

    if service.pending_tasks:
        app_logger.info(f"Waiting for {service.pending_tasks} background full generations...")
        await service.drain(timeout=Config.SHUTDOWN_DRAIN_TIMEOUT)
    await HTTPClientManager.close_all()

app = FastAPI(title=Config.APP_TITLE, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def validation_message(path: str, errors: list) -> str:
    """Turn pydantic errors into the short message returned to clients."""
    if path == "/api/feedback":
        return "messageId and feedback are required"
    if path == "/api/login":
        return "Username and password required"

    for error in errors:
        loc = error.get('loc') or ()
        if loc and loc[-1] == 'message':
            if error.get('type') == 'string_too_long':
                return f"Message too long (max {Config.MAX_MESSAGE_LENGTH} characters)"
            return "Invalid message"

    if errors and path == "/api/chat":
        first_error = errors[0]
        loc = first_error.get('loc') or ()
        if len(loc) >= 2 and isinstance(loc[-1], str):
            return f"{loc[-1]}: {first_error.get('msg', 'Validation error')}"
        return "Invalid message"

    return "Invalid request"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with user-friendly messages"""
    errors = exc.errors()
    app_logger.warning(f"Validation error for {request.url.path}: {[e.get('type') for e in errors]}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": validation_message(request.url.path, errors)},
    )


app.add_middleware(BearerAuthMiddleware)

#root endpoint
@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {"message": "Luck Relay is running"}

app.include_router(auth_route.router, tags=["auth"])
app.include_router(chat.router, tags=["chat"])
app.include_router(feedback.router, tags=["feedback"])
app.include_router(status_route.router, tags=["status"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=Config.HOST, port=Config.PORT)
