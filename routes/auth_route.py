"""
Route handlers for login and token verification.
"""
import secrets

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from auth import create_token
from config import Config
from models.api_models import LoginRequest
from utils.logger import app_logger

router = APIRouter()


@router.post("/api/login")
async def login(credentials: LoginRequest):
    """Exchange username/password for a bearer token."""
    if not credentials.username or not credentials.password:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Username and password required"},
        )

    valid_user = secrets.compare_digest(credentials.username, Config.ADMIN_USERNAME)
    valid_password = secrets.compare_digest(credentials.password, Config.ADMIN_PASSWORD)
    if not (valid_user and valid_password):
        app_logger.warning(f"Failed login attempt for user: {credentials.username}")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"message": "Invalid credentials"},
        )

    token = create_token(credentials.username, Config.ADMIN_USER_ID)
    app_logger.info(f"User logged in: {credentials.username}")

    return {
        "token": token,
        "user": {"username": credentials.username, "id": Config.ADMIN_USER_ID},
        "message": "Login successful"
    }


@router.get("/api/verify")
async def verify(request: Request):
    """Report the user carried by a valid bearer token."""
    user = getattr(request.state, "user", None)
    app_logger.info(f"Token verified for user: {(user or {}).get('username') or 'guest'}")
    return {"valid": True, "user": user}
