from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Optional
import logging

from shopcart.api.dependencies import get_cart_service
from shopcart.db.session import get_db
from shopcart.db.models import Product
from shopcart.schemas.product import ProductResponse, ProductListResponse
from shopcart.services.cart import CartService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=ProductListResponse)
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db)
):
    """List catalog products, newest first."""
    query = select(Product)
    count_query = select(func.count()).select_from(Product)

    # Apply search filter
    if search:
        query = query.where(Product.name.ilike(f"%{search}%"))
        count_query = count_query.where(Product.name.ilike(f"%{search}%"))

    count_result = await db.execute(count_query)
    total = count_result.scalar()

    # Paginate
    offset = (page - 1) * limit
    result = await db.execute(
        query.order_by(Product.created_at.desc(), Product.name).offset(offset).limit(limit)
    )
    products = [ProductResponse.model_validate(product) for product in result.scalars().all()]

    return ProductListResponse(
        products=products,
        total=total,
        page=page,
        limit=limit,
        total_pages=(total + limit - 1) // limit
    )


@router.get("/{slug}", response_model=ProductResponse)
async def get_product(
    slug: str,
    db: AsyncSession = Depends(get_db),
    cart_service: CartService = Depends(get_cart_service)
):
    """Product page data, including how many units the visitor already has in their cart."""
    result = await db.execute(select(Product).where(Product.slug == slug))
    product = result.scalar_one_or_none()

    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    cart = await cart_service.get_current_cart()
    item = cart.find_item(product.id) if cart else None

    response = ProductResponse.model_validate(product)
    return response.model_copy(update={"cart_qty": item.qty if item else 0})
