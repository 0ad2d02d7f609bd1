import uuid
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shopcart.db.session import get_db
from shopcart.services import catalog as catalog_service
from shopcart.services.cart import CartService
from shopcart.services.cart_store import CartStore
from shopcart.services.notifications import PathInvalidationNotifier

SESSION_CART_KEY = "session_cart_id"
SESSION_USER_KEY = "user_id"


def get_session_token(request: Request) -> str:
    """Anonymous cart token for this browser session, minted on first use."""
    token = request.session.get(SESSION_CART_KEY)
    if not token:
        token = str(uuid.uuid4())
        request.session[SESSION_CART_KEY] = token
    return token


def get_current_user_id(request: Request) -> Optional[str]:
    """Id of the logged-in user, written to the session by the login flow."""
    user_id = request.session.get(SESSION_USER_KEY)
    return str(user_id) if user_id is not None else None


def get_catalog(db: AsyncSession = Depends(get_db)):
    if catalog_service.remote_catalog is not None:
        return catalog_service.remote_catalog
    return catalog_service.DatabaseCatalog(db)


def get_notifier() -> PathInvalidationNotifier:
    return PathInvalidationNotifier()


async def get_cart_service(
    db: AsyncSession = Depends(get_db),
    catalog=Depends(get_catalog),
    session_token: str = Depends(get_session_token),
    user_id: Optional[str] = Depends(get_current_user_id),
    notifier: PathInvalidationNotifier = Depends(get_notifier),
) -> CartService:
    return CartService(
        store=CartStore(db),
        catalog=catalog,
        session_token=session_token,
        user_id=user_id,
        notifier=notifier,
    )
