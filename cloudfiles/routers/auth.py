"""Authentication routes."""

from fastapi import APIRouter, Request, Response
from ..config import settings
from ..middleware.auth import is_authenticated
from ..schemas.auth import AuthStatusResponse, LogoutResponse

router = APIRouter(prefix="/api/auth", tags=["authentication"])


@router.get("/status", response_model=AuthStatusResponse)
async def auth_status(request: Request):
    """Report whether the caller carries a valid session token."""
    return AuthStatusResponse(authenticated=is_authenticated(request))


@router.post("/logout", response_model=LogoutResponse)
async def logout(response: Response):
    """Clear the session cookie."""
    response.delete_cookie(
        settings.jwt_cookie_name,
        path="/",
        secure=True,
        httponly=True,
        samesite="lax",
    )
    return LogoutResponse()
