"""
Catalog Module - Service Layer
================================
Product queries (filtered, paginated) and the only code paths allowed
to change a product's stock.
"""

from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, asc, desc
from sqlalchemy.orm import Session

from common.exceptions import InvalidInputError
from common.helpers import safe_int
from config.settings import (
    PRODUCT_SIZES, PRODUCT_CATEGORIES, DEFAULT_PAGE_SIZE, PRODUCTS_MAX_PAGE_SIZE,
)
from modules.catalog.models import Product, ProductSize


SORTABLE_FIELDS = {
    "createdAt": Product.created_at,
    "price": Product.price,
    "name": Product.name,
}


def _parse_price(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        price = Decimal(str(value))
    except Exception:
        return None
    # NaN / Infinity cannot be compared or stored
    if not price.is_finite():
        return None
    return price if price >= 0 else None


class ProductService:

    # ==========================================
    # Query
    # ==========================================

    def get_by_id(self, db: Session, product_id: int) -> Optional[Product]:
        return db.query(Product).filter(Product.id == product_id).first()

    def list_products(
        self,
        db: Session,
        search: str = None,
        category: str = None,
        size: str = None,
        min_price=None,
        max_price=None,
        in_stock: Optional[bool] = None,
        page=1,
        limit=DEFAULT_PAGE_SIZE,
        sort: str = "-createdAt",
    ) -> Tuple[List[Product], int, int, int]:
        """
        Filtered, sorted, paginated product listing.
        Invalid category/size/sort values are ignored; page size is clamped.
        Returns: (products, total, page, limit)
        """
        q = db.query(Product)

        if search:
            term = search.strip().lower()
            q = q.filter(or_(
                func.lower(Product.name).contains(term, autoescape=True),
                func.lower(Product.description).contains(term, autoescape=True),
            ))

        if category in PRODUCT_CATEGORIES:
            q = q.filter(Product.category == category)

        if size in PRODUCT_SIZES:
            q = q.filter(Product.size_links.any(ProductSize.size == size))

        low, high = _parse_price(min_price), _parse_price(max_price)
        if low is not None and high is not None and low > high:
            raise InvalidInputError("minPrice cannot be greater than maxPrice")
        if low is not None:
            q = q.filter(Product.price >= low)
        if high is not None:
            q = q.filter(Product.price <= high)

        if in_stock is not None:
            q = q.filter(Product.in_stock == in_stock)

        page_num = max(1, safe_int(page) or 1)
        limit_num = min(PRODUCTS_MAX_PAGE_SIZE, max(1, safe_int(limit) or DEFAULT_PAGE_SIZE))

        total = q.count()

        order_by = []
        for field in (sort or "").split(","):
            field = field.strip()
            column = SORTABLE_FIELDS.get(field.lstrip("-"))
            if column is None:
                continue
            order_by.append(desc(column) if field.startswith("-") else asc(column))
        if not order_by:
            order_by = [desc(Product.created_at)]
        order_by.append(desc(Product.id))

        products = (
            q.order_by(*order_by)
            .offset((page_num - 1) * limit_num)
            .limit(limit_num)
            .all()
        )
        return products, total, page_num, limit_num

    # ==========================================
    # Write
    # ==========================================

    def create(self, db: Session, data: dict) -> Product:
        sizes = [s for s in data.get("sizes", []) if s in PRODUCT_SIZES]
        if not sizes:
            raise InvalidInputError("At least one size must be specified")
        if data.get("category") not in PRODUCT_CATEGORIES:
            raise InvalidInputError(f"Category must be one of: {', '.join(PRODUCT_CATEGORIES)}")
        price = _parse_price(data.get("price"))
        if not price:
            raise InvalidInputError("Price must be greater than 0")

        product = Product(
            name=data["name"],
            description=data.get("description", ""),
            price=price,
            image_url=data.get("image_url", ""),
            category=data["category"],
            stock=max(0, int(data.get("stock", 0))),
        )
        product.size_links = [ProductSize(size=s) for s in dict.fromkeys(sizes)]
        db.add(product)
        db.flush()
        return product

    def set_stock(self, db: Session, product: Product, stock: int) -> Product:
        """Absolute stock update (restock / admin correction)."""
        if stock < 0:
            raise InvalidInputError("Stock cannot be negative")
        product.stock = stock
        product.in_stock = stock > 0
        db.flush()
        return product

    def decrement_stock(self, db: Session, product_id: int, quantity: int) -> bool:
        """
        Conditional decrement: succeeds only if stock >= quantity at write time.
        The availability flag is recomputed in the same statement.
        Returns False when the guard fails (nothing is written).
        """
        updated = (
            db.query(Product)
            .filter(Product.id == product_id, Product.stock >= quantity)
            .update(
                {
                    Product.stock: Product.stock - quantity,
                    Product.in_stock: (Product.stock - quantity) > 0,
                },
                synchronize_session=False,
            )
        )
        return updated == 1


# Singleton
product_service = ProductService()
