"""
Cart operations exposed to the web layer.

Every mutation resolves the caller's cart, transforms its item list, reprices
it and writes it back with a version check. A write that loses a race is
replayed from a fresh read. Business failures come back as an ActionResult
with ``success=False``; nothing in the CartError family escapes to the caller.
"""
import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from shopcart.core.config import settings
from shopcart.core.errors import (
    CartConflict,
    CartError,
    CartNotFound,
    CatalogUnavailable,
    ProductNotFound,
    StoreUnavailable,
)
from shopcart.schemas.cart import ActionResult, CartItem, CartItemAdd, CartRecord
from shopcart.schemas.product import ProductInfo
from shopcart.services.cart_items import add_item, remove_item
from shopcart.services.cart_store import CartStore, to_columns
from shopcart.services.identity import resolve_cart
from shopcart.services.notifications import CartNotifier
from shopcart.services.pricing import calc_price, round2

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CartService:
    def __init__(
        self,
        store: CartStore,
        catalog,
        session_token: Optional[str],
        user_id: Optional[str],
        notifier: CartNotifier = None,
        conflict_retries: int = None,
    ):
        self.store = store
        self.catalog = catalog
        self.session_token = session_token
        self.user_id = user_id
        self.notifier = notifier or CartNotifier()
        retries = settings.CART_CONFLICT_RETRIES if conflict_retries is None else conflict_retries
        self.conflict_retries = max(0, retries)

    async def add_item_to_cart(self, item: CartItemAdd) -> ActionResult:
        try:
            product = await self._get_product(item.product_id)
            line = CartItem(
                product_id=product.id,
                name=product.name,
                slug=product.slug,
                price=round2(product.price),
                qty=1,
            )
            cart, existed = await self._with_retries(lambda: self._add(line, product.stock))
        except CartError as e:
            self._log_failure("Add to cart", item.product_id, e)
            return ActionResult(success=False, message=e.message)

        logger.info(f"Cart {cart.id}: product {product.id} qty now {cart.find_item(product.id).qty}")
        self.notifier.product_changed(product.slug)
        return ActionResult(
            success=True,
            message=f"{product.name} {'updated in' if existed else 'added to'} cart successfully",
        )

    async def remove_item_from_cart(self, product_id: str) -> ActionResult:
        try:
            product = await self._get_product(product_id)
            cart, remaining = await self._with_retries(lambda: self._remove(product_id))
        except CartError as e:
            self._log_failure("Remove from cart", product_id, e)
            return ActionResult(success=False, message=e.message)

        logger.info(f"Cart {cart.id}: product {product_id} qty now {remaining.qty if remaining else 0}")
        self.notifier.product_changed(product.slug)
        return ActionResult(
            success=True,
            message=f"{product.name} {'updated in' if remaining else 'removed from'} cart successfully",
        )

    async def get_current_cart(self) -> Optional[CartRecord]:
        """The caller's cart, or None when there is none or it cannot be read."""
        try:
            return await resolve_cart(self.store, self.session_token, self.user_id, create=False)
        except CartError as e:
            logger.warning(f"Could not load cart (user={self.user_id}): {e.message}")
            return None

    async def _get_product(self, product_id: str) -> ProductInfo:
        product = await self.catalog.get_product(product_id)
        if not product:
            raise ProductNotFound()
        return product

    async def _add(self, line: CartItem, stock: int):
        cart = await resolve_cart(self.store, self.session_token, self.user_id, create=True)
        existed = cart.find_item(line.product_id) is not None
        saved = await self._save(cart, add_item(cart.items, line, stock))
        return saved, existed

    async def _remove(self, product_id: str):
        cart = await resolve_cart(self.store, self.session_token, self.user_id, create=False)
        if cart is None:
            raise CartNotFound()
        saved = await self._save(cart, remove_item(cart.items, product_id))
        return saved, saved.find_item(product_id)

    async def _save(self, cart: CartRecord, items: Sequence[CartItem]) -> CartRecord:
        repriced = cart.model_copy(update={"items": list(items), **calc_price(items).model_dump()})
        if cart.is_draft:
            return await self.store.create(repriced)
        return await self.store.update(cart.id, to_columns(repriced), expected_version=cart.version)

    async def _with_retries(self, operation: Callable[[], Awaitable[T]]) -> T:
        attempts = self.conflict_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return await operation()
            except CartConflict:
                if attempt >= attempts:
                    raise
                logger.info(f"Cart write conflict, replaying ({attempt}/{self.conflict_retries})")

    def _log_failure(self, action: str, product_id: str, error: CartError):
        if isinstance(error, (CartConflict, CatalogUnavailable, StoreUnavailable)):
            logger.error(f"{action} failed for product {product_id}: {error.message}")
        else:
            logger.warning(f"{action} failed for product {product_id}: {error.message}")
