"""
Bearer token authentication: token helpers and the request middleware.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from config import Config
from utils.logger import app_logger


def create_token(username: str, user_id: str) -> str:
    """Issue a signed token carrying the username and user id."""
    payload = {
        "username": username,
        "userId": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(hours=Config.TOKEN_TTL_HOURS)
    }
    return jwt.encode(payload, Config.JWT_SECRET, algorithm=Config.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Verify a token and return its claims.

    Raises:
        jwt.InvalidTokenError: Bad signature, malformed or expired token
    """
    return jwt.decode(token, Config.JWT_SECRET, algorithms=[Config.JWT_ALGORITHM])


def bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization") or ""
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """
    Checks Authorization: Bearer tokens on API routes.
    Guests are let through on chat and status endpoints or when x-guest: true is sent.
    """

    PUBLIC_PATHS = {"/", "/docs", "/openapi.json", "/redoc", "/api/login", "/api/feedback", "/api/search/test"}
    PUBLIC_PREFIXES = ("/api/chat/full/",)
    GUEST_PATHS = {"/api/chat", "/api/local/status"}

    def _is_public(self, path: str) -> bool:
        return path in self.PUBLIC_PATHS or path.startswith(self.PUBLIC_PREFIXES)

    @staticmethod
    def _client_host(request: Request) -> str:
        return request.client.host if request.client else "unknown"

    async def dispatch(self, request: Request, call_next):
        """
        Process each request and verify the bearer token.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/handler in chain

        Returns:
            Response from next handler or error response
        """
        path = request.url.path
        request.state.user = None

        if request.method == "OPTIONS":
            return await call_next(request)

        token = bearer_token(request)

        if self._is_public(path):
            if token:
                request.state.user = self._optional_user(token)
            return await call_next(request)

        is_guest = request.headers.get("x-guest", "").lower() == "true"

        if not token:
            if is_guest or path in self.GUEST_PATHS:
                app_logger.info(f"Guest request to {path} from {self._client_host(request)}")
                return await call_next(request)

            app_logger.warning(f"Request without token to {path} from {self._client_host(request)}")
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"message": "Access token required"},
                headers={"WWW-Authenticate": "Bearer"},
            )

        if is_guest and path in self.GUEST_PATHS:
            return await call_next(request)

        try:
            request.state.user = decode_token(token)
        except jwt.InvalidTokenError:
            app_logger.warning(f"Invalid token to {path} from {self._client_host(request)}")
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"message": "Invalid token"},
            )

        app_logger.info(f"User authenticated: {request.state.user.get('username')}")
        return await call_next(request)

    @staticmethod
    def _optional_user(token: str) -> Optional[dict]:
        try:
            return decode_token(token)
        except jwt.InvalidTokenError:
            return None
