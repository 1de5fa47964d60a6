"""
Order Routes
==============
Checkout, order history, order detail, status update.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from common.helpers import MAX_ID, pagination_block
from modules.auth.deps import require_login
from modules.order.models import PaymentMethod
from modules.order.service import order_service

router = APIRouter(prefix="/api/orders", tags=["orders"])


# ==========================================
# Schemas
# ==========================================

class ShippingAddress(BaseModel):
    street: str = Field(..., min_length=5, max_length=200)
    city: str = Field(..., min_length=2, max_length=100)
    state: str = Field(..., min_length=2, max_length=100)
    zipCode: str = Field(..., pattern=r"^[0-9A-Za-z\s-]{3,10}$")
    country: str = Field(..., min_length=2, max_length=100)


class CreateOrderRequest(BaseModel):
    shippingAddress: Optional[ShippingAddress] = None
    paymentMethod: Optional[PaymentMethod] = None


class UpdateStatusRequest(BaseModel):
    status: str = Field(..., min_length=1)


# ==========================================
# ✅ Checkout
# ==========================================

@router.post("")
async def create_order(
    background_tasks: BackgroundTasks,
    body: Optional[CreateOrderRequest] = None,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    body = body or CreateOrderRequest()
    order = order_service.checkout(
        db, me.id,
        shipping_address=body.shippingAddress.model_dump() if body.shippingAddress else None,
        payment_method=body.paymentMethod.value if body.paymentMethod else None,
        background_tasks=background_tasks,
    )
    return JSONResponse(
        {
            "success": True,
            "data": order.to_dict(include_user=True),
            "message": "Order created successfully",
        },
        status_code=201,
        background=background_tasks,
    )


# ==========================================
# 📋 My Orders
# ==========================================

@router.get("/my")
async def my_orders(
    page: Optional[str] = "1",
    limit: Optional[str] = "10",
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    orders, total, page_num, limit_num = order_service.get_user_orders(
        db, me.id, page=page, limit=limit, status=status,
    )
    return {
        "success": True,
        "data": [o.to_dict() for o in orders],
        "pagination": pagination_block(page_num, limit_num, total),
    }


# ==========================================
# 🧾 Order Detail
# ==========================================

@router.get("/{order_id}")
async def order_detail(
    order_id: int = Path(..., ge=1, le=MAX_ID),
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    order = order_service.get_order_for_user(db, order_id, me.id)
    return {"success": True, "data": order.to_dict(include_user=True)}


# ==========================================
# 🔄 Status Update
# ==========================================

@router.put("/{order_id}/status")
async def update_order_status(
    body: UpdateStatusRequest,
    order_id: int = Path(..., ge=1, le=MAX_ID),
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    order = order_service.update_status(db, order_id, me.id, body.status)
    db.commit()
    return {
        "success": True,
        "data": order.to_dict(),
        "message": "Order status updated successfully",
    }
