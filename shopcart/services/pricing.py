"""
Cart price calculation.

All arithmetic is done in Decimal and rounded half-up to cents, so the same
item list always produces the same four strings.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

from shopcart.schemas.cart import CartItem, PriceBreakdown

MONEY_PRECISION = Decimal("0.01")
FREE_SHIPPING_THRESHOLD = Decimal("100")
FLAT_SHIPPING_PRICE = Decimal("10")
TAX_RATE = Decimal("0.15")


def round2(value: Union[int, str, Decimal]) -> Decimal:
    return Decimal(value).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def calc_price(items: Iterable[CartItem]) -> PriceBreakdown:
    items_price = round2(sum((Decimal(item.price) * item.qty for item in items), Decimal("0")))
    # Strictly greater: a cart of exactly 100.00 still pays shipping
    shipping_price = round2(0 if items_price > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING_PRICE)
    tax_price = round2(TAX_RATE * items_price)
    total_price = round2(items_price + shipping_price + tax_price)

    return PriceBreakdown(
        items_price=f"{items_price:.2f}",
        shipping_price=f"{shipping_price:.2f}",
        tax_price=f"{tax_price:.2f}",
        total_price=f"{total_price:.2f}",
    )
