"""
Auth Module - Service Layer
=============================
Registration, credential check, and guest cart hand-off after login.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from common.exceptions import AuthenticationError, DuplicateError
from common.security import hash_password, verify_password
from modules.user.models import User

logger = logging.getLogger("storefront.auth")


class AuthService:
    """Handles user registration, login and post-login cart reconciliation."""

    def register(self, db: Session, name: str, email: str, password: str) -> User:
        email = email.strip().lower()
        if db.query(User.id).filter(User.email == email).first():
            raise DuplicateError("Email already in use")

        user = User(name=name.strip(), email=email, password_hash=hash_password(password))
        try:
            db.add(user)
            db.flush()
        except IntegrityError:
            db.rollback()
            # Race condition: another request registered this e-mail
            raise DuplicateError("Email already in use")
        return user

    def authenticate(self, db: Session, email: str, password: str) -> User:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid credentials")
        return user

    def get_user(self, db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    def merge_guest_cart(self, db: Session, user_id: int, guest_cart: Optional[dict]) -> bool:
        """
        Merge a guest cart sent along with login/register.
        Never raises: a failed merge must not block authentication.
        """
        items = (guest_cart or {}).get("items")
        if not isinstance(items, list) or not items:
            return False

        from modules.cart.service import cart_service
        try:
            cart_service.merge_guest_items(db, user_id, items)
            db.commit()
            return True
        except Exception as e:
            db.rollback()
            logger.error(f"Cart merge error for user #{user_id}: {e}")
            return False


# Singleton
auth_service = AuthService()
