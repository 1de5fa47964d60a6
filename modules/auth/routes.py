"""
Auth Routes
=============
Register, login (both accept an optional guest cart to merge), current user.
"""

from typing import Optional, Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from config.database import get_db
from common.security import create_user_token, get_cookie_kwargs
from modules.auth.deps import require_login
from modules.auth.service import auth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


# ==========================================
# Schemas
# ==========================================

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    guestCart: Optional[Dict[str, Any]] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    guestCart: Optional[Dict[str, Any]] = None


def _auth_response(user, status_code: int = 200) -> JSONResponse:
    token = create_user_token(user.id)
    response = JSONResponse(
        {"success": True, "data": {**user.to_public(), "token": token}},
        status_code=status_code,
    )
    response.set_cookie("auth_token", token, **get_cookie_kwargs())
    return response


# ==========================================
# 📝 Register
# ==========================================

@router.post("/register")
async def register(body: RegisterRequest, db: Session = Depends(get_db)):
    user = auth_service.register(db, body.name, body.email, body.password)
    db.commit()

    auth_service.merge_guest_cart(db, user.id, body.guestCart)
    return _auth_response(user, status_code=201)


# ==========================================
# 🔑 Login
# ==========================================

@router.post("/login")
async def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = auth_service.authenticate(db, body.email, body.password)

    auth_service.merge_guest_cart(db, user.id, body.guestCart)
    return _auth_response(user)


# ==========================================
# 👤 Current User
# ==========================================

@router.get("/me")
async def me(user=Depends(require_login)):
    return {"success": True, "data": user.to_public()}
