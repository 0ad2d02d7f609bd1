"""
Line item mutations.

Each function takes the current item list and returns a new one; the input
list and its items are never modified. Persisting and repricing the result is
the caller's job.
"""
from typing import List, Sequence

from shopcart.core.errors import InsufficientStock, ItemNotFound
from shopcart.schemas.cart import CartItem


def add_item(items: Sequence[CartItem], item: CartItem, available_stock: int) -> List[CartItem]:
    """Add one unit of ``item``, appending a new line or bumping an existing one."""
    existing = next((ci for ci in items if ci.product_id == item.product_id), None)

    if existing:
        if available_stock < existing.qty + 1:
            raise InsufficientStock()
        return [
            ci.model_copy(update={"qty": ci.qty + 1}) if ci.product_id == item.product_id else ci
            for ci in items
        ]

    if available_stock < 1:
        raise InsufficientStock()
    return [*items, item.model_copy(update={"qty": 1})]


def remove_item(items: Sequence[CartItem], product_id: str) -> List[CartItem]:
    """Take one unit away; the line disappears when its last unit goes."""
    existing = next((ci for ci in items if ci.product_id == product_id), None)
    if not existing:
        raise ItemNotFound()

    if existing.qty == 1:
        return [ci for ci in items if ci.product_id != product_id]

    return [
        ci.model_copy(update={"qty": ci.qty - 1}) if ci.product_id == product_id else ci
        for ci in items
    ]
