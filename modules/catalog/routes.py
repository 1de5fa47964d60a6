"""
Catalog Routes
================
Public product listing (filter/search/sort/paginate) and product detail.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import NotFoundError
from common.helpers import MAX_ID, pagination_block
from modules.catalog.service import product_service

router = APIRouter(prefix="/api/products", tags=["catalog"])


@router.get("")
async def list_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    size: Optional[str] = None,
    minPrice: Optional[str] = None,
    maxPrice: Optional[str] = None,
    inStock: Optional[str] = None,
    page: Optional[str] = "1",
    limit: Optional[str] = "10",
    sort: str = "-createdAt",
    db: Session = Depends(get_db),
):
    in_stock = None
    if inStock is not None:
        in_stock = inStock.lower() == "true"

    products, total, page_num, limit_num = product_service.list_products(
        db,
        search=search,
        category=category,
        size=size,
        min_price=minPrice,
        max_price=maxPrice,
        in_stock=in_stock,
        page=page,
        limit=limit,
        sort=sort,
    )
    return {
        "success": True,
        "data": [p.to_dict() for p in products],
        "pagination": pagination_block(page_num, limit_num, total),
    }


@router.get("/{product_id}")
async def get_product(product_id: int = Path(..., ge=1, le=MAX_ID), db: Session = Depends(get_db)):
    product = product_service.get_by_id(db, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return {"success": True, "data": product.to_dict()}
