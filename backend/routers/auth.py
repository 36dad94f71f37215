"""
Auth endpoints.

Errors are HealthGuardError subclasses rendered by the app's exception
handler as {"error": message, "code": ...} with the matching status.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from errors import AuthenticationError
from services.user_auth import UserAuthManager

from .models import LoginRequest, RegisterRequest

router = APIRouter(prefix="/api/auth", tags=["auth"])

# Optional Bearer token extractor (doesn't auto-raise on missing)
_bearer_scheme = HTTPBearer(auto_error=False)


def get_auth(request: Request) -> UserAuthManager:
    return request.app.state.services.auth


async def current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    auth: UserAuthManager = Depends(get_auth),
) -> str:
    """
    Auth dependency for any logged-in user.

    Raises:
        AuthenticationError: no bearer token, or the token does not verify
    """
    if not credentials or not credentials.credentials:
        raise AuthenticationError("Unauthorized")
    payload = auth.verify_token(credentials.credentials)
    return str(payload["sub"])


@router.post("/register")
async def register(body: RegisterRequest, auth: UserAuthManager = Depends(get_auth)) -> Dict[str, Any]:
    """Create an account; returns a token and the public user fields."""
    return await auth.register(body.name, body.email, body.password)


@router.post("/login")
async def login(body: LoginRequest, auth: UserAuthManager = Depends(get_auth)) -> Dict[str, Any]:
    """Login with email and password, returns JWT."""
    return await auth.login(body.email, body.password)


@router.get("/me")
async def me(
    user_id: str = Depends(current_user_id),
    auth: UserAuthManager = Depends(get_auth),
) -> Dict[str, Any]:
    return await auth.me(user_id)
