"""
Order Module - Service Layer
===============================
Checkout (cart -> order unit of work), order history, status changes.
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from common.exceptions import (
    StorefrontError, EmptyCartError, CartItemsUnavailableError,
    InvalidInputError, NotFoundError, AuthorizationError, InvalidTransitionError,
)
from common.helpers import generate_unique_order_number, safe_int
from config.settings import DEFAULT_PAGE_SIZE, ORDERS_MAX_PAGE_SIZE
from modules.cart.models import Cart
from modules.catalog.models import Product
from modules.catalog.service import product_service
from modules.order.models import Order, OrderItem, OrderStatus, PaymentMethod

logger = logging.getLogger("storefront.order")


def build_order_item(product: Product, size: str, quantity: int) -> OrderItem:
    """Create an OrderItem with a frozen copy of the product's display fields."""
    return OrderItem(
        product_id=product.id,
        name=product.name,
        size=size,
        price=product.price,
        quantity=quantity,
        image_url=product.image_url or "",
    )


class OrderService:

    # ==========================================
    # Checkout
    # ==========================================

    def checkout(
        self,
        db: Session,
        user_id: int,
        shipping_address: Optional[dict] = None,
        payment_method: Optional[str] = None,
        background_tasks=None,
    ) -> Order:
        """
        Turn the user's cart into a PENDING order in one transaction:
        1. Lock the cart and its products (SELECT FOR UPDATE, product id order)
        2. Validate every line against live stock, collecting all problems
        3. Decrement stock with a conditional UPDATE per product
        4. Write the order with snapshot items, clear the cart, commit
        5. After commit: schedule the confirmation e-mail (fire-and-forget)

        Any failure before commit rolls back everything; stock, cart and
        orders are left as they were.

        Raises EmptyCartError, CartItemsUnavailableError, InvalidInputError.
        """
        if payment_method and payment_method not in PaymentMethod.__members__:
            raise InvalidInputError(
                f"Invalid payment method. Must be one of: {', '.join(PaymentMethod.__members__)}"
            )

        try:
            order = self._create_order_from_cart(db, user_id, shipping_address or {}, payment_method)
            db.commit()
        except StorefrontError as e:
            db.rollback()
            logger.info(f"Checkout rejected for user #{user_id}: {e.message}")
            raise
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Checkout failed for user #{user_id}, rolled back")
            raise

        logger.info(
            f"Order {order.order_number} created for user #{user_id} "
            f"({order.item_count} items, total {order.total_amount})"
        )
        self._dispatch_confirmation(order.id, background_tasks)
        return order

    def _create_order_from_cart(
        self, db: Session, user_id: int, shipping_address: dict, payment_method: Optional[str],
    ) -> Order:
        cart = (
            db.query(Cart)
            .filter(Cart.user_id == user_id)
            .with_for_update()
            .first()
        )
        if not cart or not cart.items:
            raise EmptyCartError()

        lines = list(cart.items)
        product_ids = sorted({line.product_id for line in lines if line.product_id is not None})
        products = {
            p.id: p for p in (
                db.query(Product)
                .filter(Product.id.in_(product_ids))
                .order_by(Product.id)
                .with_for_update()
                .populate_existing()
                .all()
            )
        } if product_ids else {}

        # Validate all lines; sizes of one product share the same stock counter
        errors: List[str] = []
        claimed = defaultdict(int)
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                errors.append(
                    f"Product {line.product_id} no longer exists" if line.product_id is not None
                    else "A product in your cart no longer exists"
                )
                continue
            if not product.in_stock:
                errors.append(f"{product.name} (Size: {line.size}) is out of stock")
                continue
            remaining = product.stock - claimed[product.id]
            if remaining < line.quantity:
                errors.append(
                    f"Only {max(0, remaining)} items available for {product.name} "
                    f"(Size: {line.size}). You requested {line.quantity}"
                )
                continue
            claimed[product.id] += line.quantity

        if errors:
            raise CartItemsUnavailableError(errors)

        for product_id in sorted(claimed):
            if not product_service.decrement_stock(db, product_id, claimed[product_id]):
                name = products[product_id].name
                raise CartItemsUnavailableError([
                    f"{name} sold out while your order was being placed"
                ])

        order_items = [build_order_item(products[line.product_id], line.size, line.quantity) for line in lines]
        total = sum((oi.price * oi.quantity for oi in order_items), Decimal("0"))

        order = Order(
            user_id=user_id,
            order_number=generate_unique_order_number(db),
            total_amount=total,
            status=OrderStatus.PENDING.value,
            payment_method=payment_method or PaymentMethod.CASH_ON_DELIVERY.value,
            shipping_street=shipping_address.get("street"),
            shipping_city=shipping_address.get("city"),
            shipping_state=shipping_address.get("state"),
            shipping_zip_code=shipping_address.get("zipCode"),
            shipping_country=shipping_address.get("country"),
        )
        order.items = order_items
        db.add(order)

        # Clear cart (same transaction)
        cart.items.clear()

        db.flush()
        return order

    def _dispatch_confirmation(self, order_id: int, background_tasks=None):
        """Post-commit side effect. Never raises."""
        from modules.notification.service import notification_service
        try:
            if background_tasks is not None:
                background_tasks.add_task(notification_service.send_order_confirmation, order_id)
            else:
                notification_service.send_order_confirmation(order_id)
        except Exception as e:
            logger.error(f"Could not dispatch confirmation for order #{order_id}: {e}")

    # ==========================================
    # Status
    # ==========================================

    def update_status(self, db: Session, order_id: int, user_id: int, status: str) -> Order:
        """
        Owner-initiated status change. CANCELLED is terminal; every other
        transition is currently allowed.
        """
        if status not in OrderStatus.__members__:
            raise InvalidInputError(
                f"Invalid status. Must be one of: {', '.join(OrderStatus.__members__)}"
            )

        order = db.query(Order).filter(Order.id == order_id).with_for_update().first()
        if not order:
            raise NotFoundError("Order not found")
        if order.user_id != user_id:
            raise AuthorizationError("Not authorized to update this order")
        if order.status == OrderStatus.CANCELLED.value:
            raise InvalidTransitionError("Cannot update status of cancelled order")

        if order.status != status:
            logger.info(f"Order {order.order_number}: {order.status} -> {status}")
            order.status = status
            db.flush()
        return order

    # ==========================================
    # Query
    # ==========================================

    def get_user_orders(
        self, db: Session, user_id: int,
        page=1, limit=DEFAULT_PAGE_SIZE, status: str = None,
    ) -> Tuple[List[Order], int, int, int]:
        """Newest first. Unknown status filters are ignored. Returns (orders, total, page, limit)."""
        q = db.query(Order).filter(Order.user_id == user_id)
        if status and status.upper() in OrderStatus.__members__:
            q = q.filter(Order.status == status.upper())

        page_num = max(1, safe_int(page) or 1)
        limit_num = min(ORDERS_MAX_PAGE_SIZE, max(1, safe_int(limit) or DEFAULT_PAGE_SIZE))

        total = q.count()
        orders = (
            q.order_by(desc(Order.created_at), desc(Order.id))
            .offset((page_num - 1) * limit_num)
            .limit(limit_num)
            .all()
        )
        return orders, total, page_num, limit_num

    def get_order_by_id(self, db: Session, order_id: int) -> Optional[Order]:
        return db.query(Order).filter(Order.id == order_id).first()

    def get_order_for_user(self, db: Session, order_id: int, user_id: int) -> Order:
        order = self.get_order_by_id(db, order_id)
        if not order:
            raise NotFoundError("Order not found")
        if order.user_id != user_id:
            raise AuthorizationError("Not authorized to view this order")
        return order


# Singleton
order_service = OrderService()
