from fastapi import APIRouter, Depends, Path, Response
from typing import Optional
import logging

from shopcart.api.dependencies import get_cart_service, get_notifier
from shopcart.schemas.cart import ID_PATTERN, ActionResult, CartItemAdd, CartRecord
from shopcart.services.cart import CartService
from shopcart.services.notifications import PathInvalidationNotifier

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("", response_model=Optional[CartRecord])
async def get_cart(service: CartService = Depends(get_cart_service)):
    """Get current shopping cart, or null when the visitor has none."""
    return await service.get_current_cart()


@router.post("/items", response_model=ActionResult)
async def add_to_cart(
    item: CartItemAdd,
    response: Response,
    service: CartService = Depends(get_cart_service),
    notifier: PathInvalidationNotifier = Depends(get_notifier),
):
    """Add one unit of a product to the cart."""
    result = await service.add_item_to_cart(item)
    notifier.apply(response)
    return result


@router.delete("/items/{product_id}", response_model=ActionResult)
async def remove_from_cart(
    response: Response,
    product_id: str = Path(pattern=ID_PATTERN),
    service: CartService = Depends(get_cart_service),
    notifier: PathInvalidationNotifier = Depends(get_notifier),
):
    """Remove one unit of a product from the cart."""
    result = await service.remove_item_from_cart(product_id)
    notifier.apply(response)
    return result
