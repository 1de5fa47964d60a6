"""
Cart Routes
=============
Authenticated cart (view, add, update, remove, clear, merge)
and the public guest cart validation endpoint.
"""

import logging
from typing import Any, List

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.database import get_db
from config.settings import MAX_ITEM_QUANTITY
from common.helpers import MAX_ID
from modules.auth.deps import require_login
from modules.cart.service import cart_service

logger = logging.getLogger("storefront.cart")

router = APIRouter(prefix="/api/cart", tags=["cart"])


# ==========================================
# Schemas
# ==========================================

class AddToCartRequest(BaseModel):
    productId: int = Field(..., gt=0, le=MAX_ID)
    size: str = Field(..., min_length=1, max_length=4)
    quantity: int = Field(..., ge=1, le=MAX_ITEM_QUANTITY)


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(..., ge=1, le=MAX_ITEM_QUANTITY)


class GuestItemsRequest(BaseModel):
    # Lines are validated one by one in the service; bad lines are skipped, not rejected
    items: List[Any] = []


# ==========================================
# 🛒 View Cart
# ==========================================

@router.get("")
async def view_cart(db: Session = Depends(get_db), me=Depends(require_login)):
    cart = cart_service.get_cart(db, me.id)
    db.commit()
    return {"success": True, "data": cart}


# ==========================================
# ➕ Add Item
# ==========================================

@router.post("")
async def add_to_cart(body: AddToCartRequest, db: Session = Depends(get_db), me=Depends(require_login)):
    cart = cart_service.add_item(db, me.id, body.productId, body.size, body.quantity)
    db.commit()
    return {"success": True, "data": cart}


# ==========================================
# 🔀 Merge Guest Cart
# ==========================================

@router.post("/merge")
async def merge_cart(body: GuestItemsRequest, db: Session = Depends(get_db), me=Depends(require_login)):
    try:
        cart = cart_service.merge_guest_items(db, me.id, body.items)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Cart merge failed for user #{me.id}, returning current cart: {e}")
        cart = cart_service.get_cart(db, me.id)
        db.commit()
    return {"success": True, "data": cart, "message": "Cart merged successfully"}


# ==========================================
# ✅ Validate Guest Cart (public)
# ==========================================

@router.post("/guest/validate")
async def validate_guest_cart(body: GuestItemsRequest, db: Session = Depends(get_db)):
    return {"success": True, "data": cart_service.validate_guest_items(db, body.items)}


# ==========================================
# ✏️ Update / ❌ Remove Item
# ==========================================

@router.put("/{item_id}")
async def update_cart_item(
    body: UpdateCartItemRequest,
    item_id: int = Path(..., ge=1, le=MAX_ID),
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    cart = cart_service.update_item_quantity(db, me.id, item_id, body.quantity)
    db.commit()
    return {"success": True, "data": cart}


@router.delete("/{item_id}")
async def remove_cart_item(
    item_id: int = Path(..., ge=1, le=MAX_ID),
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    cart = cart_service.remove_item(db, me.id, item_id)
    db.commit()
    return {"success": True, "data": cart}


# ==========================================
# 🧹 Clear Cart
# ==========================================

@router.delete("")
async def clear_cart(db: Session = Depends(get_db), me=Depends(require_login)):
    cart = cart_service.clear_cart(db, me.id)
    db.commit()
    return {"success": True, "data": cart, "message": "Cart cleared successfully"}
