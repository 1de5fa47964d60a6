"""
Cart Module - Service Layer
==============================
Cart management: get/create, add/update/remove items, totals,
and guest cart reconciliation (validate + merge).

Every line written here references an existing, available product/size
with a quantity not exceeding the product's stock at the time of writing.
Callers own the commit.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from common.exceptions import InvalidInputError, NotFoundError, InsufficientStockError
from common.helpers import safe_int, valid_id, to_money
from modules.cart.models import Cart, CartItem
from modules.catalog.models import Product
from modules.catalog.service import product_service

logger = logging.getLogger("storefront.cart")


def _require_positive_int(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidInputError("Quantity must be a positive integer")
    return quantity


class CartService:

    def get_or_create_cart(self, db: Session, user_id: int) -> Cart:
        """Get existing cart or create new one for user."""
        cart = db.query(Cart).filter(Cart.user_id == user_id).first()
        if not cart:
            cart = Cart(user_id=user_id)
            db.add(cart)
            db.flush()
        return cart

    def get_cart(self, db: Session, user_id: int) -> dict:
        """Cart view; lines whose product was deleted are dropped for good."""
        cart = self.get_or_create_cart(db, user_id)
        self._prune_orphans(db, cart)
        return self.build_cart_view(cart)

    # ==========================================
    # Mutations
    # ==========================================

    def add_item(self, db: Session, user_id: int, product_id: int, size: str, quantity: int) -> dict:
        """
        Add quantity of (product, size) to the user's cart.
        An existing line for the same pair grows instead of being duplicated.
        """
        quantity = _require_positive_int(quantity)
        product_id = valid_id(product_id)
        if product_id is None:
            raise InvalidInputError("Invalid product ID format")

        product = product_service.get_by_id(db, product_id)
        if not product:
            raise NotFoundError("Product not found")
        if not product.in_stock:
            raise InvalidInputError("Product is out of stock")
        if not product.offers_size(size):
            raise InvalidInputError("Invalid size for this product")

        cart = self.get_or_create_cart(db, user_id)
        existing = cart.find_item(product.id, size)
        current = existing.quantity if existing else 0

        if current + quantity > product.stock:
            headroom = max(0, product.stock - current)
            if existing:
                msg = f"Cannot add {quantity} items. Only {headroom} more available in stock"
            else:
                msg = f"Only {product.stock} items available in stock"
            raise InsufficientStockError(msg, available=headroom)

        if existing:
            existing.quantity = current + quantity
        else:
            cart.items.append(CartItem(product_id=product.id, size=size, quantity=quantity))

        db.flush()
        return self.build_cart_view(cart)

    def update_item_quantity(self, db: Session, user_id: int, item_id: int, quantity: int) -> dict:
        """Set an existing line's quantity, checked against stock not held by other lines."""
        quantity = _require_positive_int(quantity)

        cart = db.query(Cart).filter(Cart.user_id == user_id).first()
        if not cart:
            raise NotFoundError("Cart not found")
        item = self._find_by_id(cart, item_id)
        if not item:
            raise NotFoundError("Cart item not found")
        if not item.product:
            raise NotFoundError("Product not found")

        held_elsewhere = sum(
            other.quantity for other in cart.items
            if other.id != item.id
            and other.product_id == item.product_id
            and other.size == item.size
        )
        available = item.product.stock - held_elsewhere
        if quantity > available:
            raise InsufficientStockError(
                f"Only {max(0, available)} items available in stock",
                available=max(0, available),
            )

        item.quantity = quantity
        db.flush()
        return self.build_cart_view(cart)

    def remove_item(self, db: Session, user_id: int, item_id: int) -> dict:
        cart = db.query(Cart).filter(Cart.user_id == user_id).first()
        if not cart:
            raise NotFoundError("Cart not found")
        item = self._find_by_id(cart, item_id)
        if not item:
            raise NotFoundError("Cart item not found")

        cart.items.remove(item)
        db.flush()
        return self.build_cart_view(cart)

    def clear_cart(self, db: Session, user_id: int) -> dict:
        """Remove all items. An empty or missing cart is not an error."""
        cart = self.get_or_create_cart(db, user_id)
        if cart.items:
            cart.items.clear()
            db.flush()
        return self.build_cart_view(cart)

    # ==========================================
    # Guest cart reconciliation
    # ==========================================

    def validate_guest_items(self, db: Session, items: list) -> List[dict]:
        """
        Filter a client-held cart against the live catalog without persisting.
        Invalid lines are dropped; quantities are clamped to stock.
        """
        validated = []
        for raw in items or []:
            resolved = self._resolve_guest_item(db, raw)
            if not resolved:
                continue
            product, size, quantity = resolved
            valid_qty = min(quantity, product.stock)
            if valid_qty > 0:
                validated.append({
                    "product": product.id,
                    "size": size,
                    "quantity": valid_qty,
                })
        return validated

    def merge_guest_items(self, db: Session, user_id: int, items: list) -> dict:
        """
        Best-effort merge of a guest cart into the user's cart.

        Lines with a malformed id, a missing/unavailable product or an
        unoffered size are skipped. Quantities are capped at current stock
        instead of raising. Never fails because of an individual line.
        """
        cart = self.get_or_create_cart(db, user_id)
        merged, skipped = 0, 0

        for raw in items or []:
            resolved = self._resolve_guest_item(db, raw)
            if not resolved:
                skipped += 1
                continue
            product, size, quantity = resolved

            existing = cart.find_item(product.id, size)
            if existing:
                existing.quantity = min(existing.quantity + quantity, product.stock)
                merged += 1
            else:
                to_add = min(quantity, product.stock)
                if to_add > 0:
                    cart.items.append(CartItem(product_id=product.id, size=size, quantity=to_add))
                    merged += 1
                else:
                    skipped += 1

        db.flush()
        logger.info(f"Merged guest cart for user #{user_id}: {merged} applied, {skipped} skipped")
        return self.build_cart_view(cart)

    # ==========================================
    # View
    # ==========================================

    def build_cart_view(self, cart: Cart) -> dict:
        """
        Cart with per-line subtotals and cart totals.
        Lines whose product has been deleted are left out of items and totals.
        """
        items_data = []
        total = Decimal("0")
        total_items = 0

        for item in cart.items:
            product = item.product
            if product is None:
                continue
            subtotal = product.price * item.quantity
            total += subtotal
            total_items += item.quantity
            items_data.append({
                "id": item.id,
                "product": {
                    "id": product.id,
                    "name": product.name,
                    "price": float(product.price),
                    "imageUrl": product.image_url,
                    "category": product.category,
                    "sizes": product.sizes,
                    "stock": product.stock,
                    "inStock": product.in_stock,
                },
                "size": item.size,
                "quantity": item.quantity,
                "subtotal": to_money(subtotal),
            })

        return {
            "id": cart.id,
            "userId": cart.user_id,
            "items": items_data,
            "total": to_money(total),
            "totalItems": total_items,
        }

    # ==========================================
    # Private helpers
    # ==========================================

    def _prune_orphans(self, db: Session, cart: Cart) -> int:
        orphans = [item for item in cart.items if item.product is None]
        for item in orphans:
            cart.items.remove(item)
        if orphans:
            db.flush()
            logger.info(f"Removed {len(orphans)} line(s) for deleted products from cart #{cart.id}")
        return len(orphans)

    def _find_by_id(self, cart: Cart, item_id) -> Optional[CartItem]:
        item_id = valid_id(item_id)
        for item in cart.items:
            if item.id == item_id:
                return item
        return None

    def _resolve_guest_item(self, db: Session, raw) -> Optional[Tuple[Product, str, int]]:
        """
        Turn one guest line into (product, size, quantity), or None if it must be skipped.
        The product may be an id or an embedded snapshot ({id|_id, name, price, ...}).
        """
        if not isinstance(raw, dict):
            return None

        ref = raw.get("product", raw.get("productId"))
        if isinstance(ref, dict):
            ref = ref.get("id", ref.get("_id"))
        product_id = valid_id(ref)
        size = raw.get("size")
        quantity = safe_int(raw.get("quantity"))

        if product_id is None or not size or quantity is None or quantity < 1:
            logger.debug(f"Skipping malformed guest cart line: {raw!r}")
            return None

        product = product_service.get_by_id(db, product_id)
        if not product or not product.in_stock or not product.offers_size(size):
            logger.debug(f"Skipping unavailable guest cart line: product={product_id} size={size}")
            return None

        return product, size, quantity


# Singleton
cart_service = CartService()
