"""
Order Module - Models
======================
Order with a frozen product snapshot per item.

user_id, order_number, total_amount and the items are write-once;
only status may change after the order is created.
"""

import enum
from sqlalchemy import (
    Column, Integer, String, Numeric, ForeignKey, DateTime, Index,
    CheckConstraint, event, inspect,
)
from sqlalchemy.orm import Session, relationship
from sqlalchemy.sql import func
from config.database import Base
from common.exceptions import ImmutableFieldError


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, enum.Enum):
    CASH_ON_DELIVERY = "CASH_ON_DELIVERY"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    PAYPAL = "PAYPAL"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    order_number = Column(String(32), unique=True, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String, default=OrderStatus.PENDING.value, nullable=False)
    payment_method = Column(String, default=PaymentMethod.CASH_ON_DELIVERY.value, nullable=False)

    # Shipping address (optional)
    shipping_street = Column(String(200), nullable=True)
    shipping_city = Column(String(100), nullable=True)
    shipping_state = Column(String(100), nullable=True)
    shipping_zip_code = Column(String(10), nullable=True)
    shipping_country = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    items = relationship(
        "OrderItem", back_populates="order",
        cascade="all, delete-orphan", order_by="OrderItem.id", lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_order_total"),
        Index("ix_orders_user_created", "user_id", "created_at"),
        Index("ix_orders_status_created", "status", "created_at"),
    )

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def shipping_address(self):
        fields = {
            "street": self.shipping_street,
            "city": self.shipping_city,
            "state": self.shipping_state,
            "zipCode": self.shipping_zip_code,
            "country": self.shipping_country,
        }
        return fields if any(fields.values()) else None

    def to_dict(self, include_user: bool = False) -> dict:
        data = {
            "id": self.id,
            "orderNumber": self.order_number,
            "userId": self.user_id,
            "items": [item.to_dict() for item in self.items],
            "totalAmount": float(self.total_amount),
            "itemCount": self.item_count,
            "status": self.status,
            "paymentMethod": self.payment_method,
            "shippingAddress": self.shipping_address,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_user and self.user:
            data["user"] = self.user.to_public()
        return data


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)

    # Snapshot at time of purchase (no FK: the product may change or disappear later)
    product_id = Column(Integer, nullable=False)
    name = Column(String(100), nullable=False)
    size = Column(String(4), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    image_url = Column(String, nullable=False, default="")

    order = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_item_qty"),
        CheckConstraint("price >= 0", name="ck_order_item_price"),
    )

    @property
    def line_total(self):
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "product": self.product_id,
            "name": self.name,
            "size": self.size,
            "price": float(self.price),
            "quantity": self.quantity,
            "imageUrl": self.image_url,
        }


# ==========================================
# Write-once guards
# ==========================================

_ORDER_WRITE_ONCE = ("user_id", "order_number", "total_amount")


@event.listens_for(Order, "before_update")
def _guard_order_fields(mapper, connection, target):
    state = inspect(target)
    for field in _ORDER_WRITE_ONCE:
        if state.attrs[field].history.has_changes():
            raise ImmutableFieldError(f"Cannot modify immutable order field: {field}")


@event.listens_for(OrderItem, "before_update")
def _guard_order_item(mapper, connection, target):
    state = inspect(target)
    for attr in mapper.column_attrs:
        if state.attrs[attr.key].history.has_changes():
            raise ImmutableFieldError("Order items cannot be modified")


@event.listens_for(Session, "before_flush")
def _guard_order_item_insert(session, flush_context, instances):
    """Items are written together with their order, never added afterwards."""
    for obj in session.new:
        if not isinstance(obj, OrderItem):
            continue
        if obj.order is not None:
            existing = inspect(obj.order).has_identity
        else:
            existing = obj.order_id is not None
        if existing:
            raise ImmutableFieldError("Items cannot be added to an existing order")
