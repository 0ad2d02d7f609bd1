"""
Cart identity resolution.

A caller is described by an anonymous session token and, once logged in, a
user id. ``resolve_cart`` maps that pair onto the one cart that should be read
or written, in this order:

1. a logged-in user with a cart of their own gets that cart, and any anonymous
   cart on the session is left alone;
2. a logged-in user without a cart takes over the session's anonymous cart
   (same record, same items, only the owner changes);
3. a logged-in user with neither gets a new cart;
4. an anonymous visitor gets the session's cart;
5. an anonymous visitor without one gets a new cart under the session token;
6. an anonymous visitor without a session token cannot have a cart.

"New cart" in cases 3 and 5 is an unsaved draft (``id is None``) returned only
when ``create=True``; the caller inserts it once it has something to store.
Lookups (``create=False``) return None instead.
"""
import logging
from typing import Optional

from shopcart.core.errors import CartConflict, NoSessionContext
from shopcart.schemas.cart import CartRecord
from shopcart.services.cart_store import CartStore
from shopcart.services.pricing import calc_price

logger = logging.getLogger(__name__)


def new_cart(owner_user_id: Optional[str] = None, session_cart_id: Optional[str] = None) -> CartRecord:
    return CartRecord(
        owner_user_id=owner_user_id,
        session_cart_id=session_cart_id,
        items=[],
        **calc_price([]).model_dump(),
    )


async def merge_session_cart(store: CartStore, session_cart: CartRecord, user_id: str) -> Optional[CartRecord]:
    """Hand an anonymous cart over to ``user_id``. None when another request got there first."""
    try:
        merged = await store.assign_owner(session_cart.id, user_id)
    except CartConflict:
        # The user gained a cart of their own between our lookup and the claim
        merged = None

    if merged is not None:
        logger.info(f"Merged session cart {session_cart.id} into user {user_id}")
        return merged
    return await store.find_by_user(user_id)


async def resolve_cart(
    store: CartStore,
    session_token: Optional[str],
    user_id: Optional[str],
    create: bool = False,
) -> Optional[CartRecord]:
    user_cart = await store.find_by_user(user_id) if user_id else None
    session_cart = await store.find_by_token(session_token) if session_token else None

    if user_id:
        if user_cart:
            return user_cart

        # find_by_token only matches carts nobody owns yet
        if session_cart:
            merged = await merge_session_cart(store, session_cart, user_id)
            if merged is not None:
                return merged

        if not create:
            return None
        return new_cart(owner_user_id=user_id, session_cart_id=session_token)

    if session_cart:
        return session_cart

    if not session_token:
        raise NoSessionContext()

    if not create:
        return None
    return new_cart(session_cart_id=session_token)
