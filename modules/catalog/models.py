"""
Catalog Module - Models
========================
Product and its offered sizes.

Stock is tracked per product, not per (product, size): every size of a
product draws from the same counter.
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, Text,
    ForeignKey, DateTime, UniqueConstraint, CheckConstraint, Index, event,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base
from config.settings import PRODUCT_SIZES


# ==========================================
# 📦 Product
# ==========================================

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False)
    image_url = Column(String, nullable=False, default="")
    category = Column(String, nullable=False, index=True)      # Men / Women / Kids
    stock = Column(Integer, default=0, nullable=False)
    in_stock = Column(Boolean, default=True, nullable=False, index=True)  # cache of stock > 0

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    size_links = relationship(
        "ProductSize", back_populates="product",
        cascade="all, delete-orphan", lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_stock"),
        CheckConstraint("price > 0", name="ck_product_price"),
        Index("ix_products_price_category", "price", "category"),
    )

    @property
    def sizes(self):
        """Offered sizes in canonical S, M, L, XL order."""
        offered = {link.size for link in self.size_links}
        return [s for s in PRODUCT_SIZES if s in offered]

    def offers_size(self, size: str) -> bool:
        return any(link.size == size for link in self.size_links)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": float(self.price),
            "imageUrl": self.image_url,
            "category": self.category,
            "sizes": self.sizes,
            "stock": self.stock,
            "inStock": self.in_stock,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Product {self.name} (stock={self.stock})>"


@event.listens_for(Product, "before_insert")
@event.listens_for(Product, "before_update")
def _sync_in_stock(mapper, connection, target):
    """Availability flag follows stock on every ORM write."""
    target.in_stock = (target.stock or 0) > 0


# ==========================================
# 📏 Product ↔ Size
# ==========================================

class ProductSize(Base):
    __tablename__ = "product_sizes"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    size = Column(String(4), nullable=False)

    product = relationship("Product", back_populates="size_links")

    __table_args__ = (
        UniqueConstraint("product_id", "size", name="uq_product_size"),
    )
