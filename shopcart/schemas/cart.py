from pydantic import BaseModel, Field
from decimal import Decimal
from typing import List, Optional

ID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class CartItemAdd(BaseModel):
    """Incoming add-to-cart payload, validated before it reaches the cart core."""
    product_id: str = Field(pattern=ID_PATTERN)
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255, pattern=SLUG_PATTERN)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    qty: int = Field(1, ge=1)


class CartItem(BaseModel):
    product_id: str
    name: str
    slug: str
    price: Decimal
    qty: int = Field(ge=1)

    class Config:
        frozen = True

    def to_json(self) -> dict:
        """Plain JSON shape stored in the carts.items column."""
        return {
            "product_id": self.product_id,
            "name": self.name,
            "slug": self.slug,
            "price": str(self.price),
            "qty": self.qty,
        }


class PriceBreakdown(BaseModel):
    items_price: str
    shipping_price: str
    tax_price: str
    total_price: str


class CartRecord(BaseModel):
    # id is None for a cart that has been resolved but not yet inserted
    id: Optional[str] = None
    owner_user_id: Optional[str] = None
    session_cart_id: Optional[str] = None
    items: List[CartItem] = []
    items_price: str = "0.00"
    shipping_price: str = "0.00"
    tax_price: str = "0.00"
    total_price: str = "0.00"
    version: int = 0

    class Config:
        frozen = True

    @property
    def is_draft(self) -> bool:
        return self.id is None

    def find_item(self, product_id: str) -> Optional[CartItem]:
        return next((item for item in self.items if item.product_id == product_id), None)


class ActionResult(BaseModel):
    success: bool
    message: str
