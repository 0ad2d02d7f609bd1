from pydantic import BaseModel
from decimal import Decimal
from typing import List


class ProductInfo(BaseModel):
    """What the cart core needs to know about a catalog product."""
    id: str
    name: str
    slug: str
    price: Decimal
    stock: int

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    id: str
    name: str
    slug: str
    price: Decimal
    stock: int
    cart_qty: int = 0

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    products: List[ProductResponse]
    total: int
    page: int
    limit: int
    total_pages: int
