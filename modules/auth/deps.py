"""
Auth Module - Dependencies
===========================
FastAPI dependencies for user authentication.
These are injected into route handlers via Depends().

The token is read from the `Authorization: Bearer` header, falling back
to the auth_token cookie.
"""

from fastapi import Request, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config.database import get_db
from common.helpers import valid_id
from common.security import decode_token
from modules.user.models import User


def _extract_token(request: Request):
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.cookies.get("auth_token")


def get_current_active_user(request: Request, db: Session = Depends(get_db)):
    """
    Identify the current user from the request token.
    Returns User object or None.
    """
    token = _extract_token(request)
    if not token:
        return None

    payload = decode_token(token)
    if not payload:
        return None

    user_id = valid_id(payload.get("sub"))
    if user_id is None:
        return None

    return db.query(User).filter(User.id == user_id).first()


def require_login(user=Depends(get_current_active_user)):
    """Require an authenticated user. Raises 401 if not logged in."""
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, please log in",
        )
    return user
