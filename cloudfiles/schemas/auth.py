"""Authentication schemas."""

from pydantic import BaseModel


class AuthStatusResponse(BaseModel):
    """Whether the caller carries a valid session token."""

    authenticated: bool


class LogoutResponse(BaseModel):
    """Logout acknowledgement."""

    success: bool = True
    message: str = "Logged out"
