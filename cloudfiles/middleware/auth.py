"""Authentication dependencies backed by the session token."""

from typing import Any, Dict, Optional
from fastapi import HTTPException, Request, status
from ..config import settings
from ..core.security import decode_access_token


def get_access_token_from_request(request: Request) -> Optional[str]:
    """
    Read the session token.
    The cookie covers same-site calls; the Authorization header covers cross-site ones.
    """
    token = request.cookies.get(settings.jwt_cookie_name)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[len("Bearer "):].strip()
    return token or None


def get_token_claims(request: Request) -> Optional[Dict[str, Any]]:
    """Return verified claims when the request carries a usable token."""
    token = get_access_token_from_request(request)
    if not token:
        return None
    claims = decode_access_token(token)
    if not claims or not claims.get("sub"):
        return None
    return claims


def is_authenticated(request: Request) -> bool:
    """Check if the caller has a valid session token."""
    return get_token_claims(request) is not None


async def get_current_user(request: Request) -> Dict[str, Any]:
    """
    Dependency that requires an authenticated caller.
    Raises 401 before any storage interaction happens.
    """
    claims = get_token_claims(request)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {"id": claims["sub"]}
