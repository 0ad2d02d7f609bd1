"""
Persistence gateway for cart records.

Writes are conditional: ``update`` only applies when the stored version still
matches the one the caller read, and ``assign_owner`` only claims a cart that
has no owner yet. A lost race surfaces as CartConflict; any other database
failure surfaces as StoreUnavailable.
"""
import logging
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shopcart.core.errors import CartConflict, StoreUnavailable
from shopcart.db.models import Cart
from shopcart.schemas.cart import CartItem, CartRecord

logger = logging.getLogger(__name__)


def to_record(cart: Cart) -> CartRecord:
    try:
        return CartRecord(
            id=cart.id,
            owner_user_id=cart.owner_user_id,
            session_cart_id=cart.session_cart_id,
            items=[CartItem(**item) for item in cart.items or []],
            items_price=f"{Decimal(cart.items_price):.2f}",
            shipping_price=f"{Decimal(cart.shipping_price):.2f}",
            tax_price=f"{Decimal(cart.tax_price):.2f}",
            total_price=f"{Decimal(cart.total_price):.2f}",
            version=cart.version,
        )
    except (ArithmeticError, KeyError, TypeError, ValueError) as e:
        logger.error(f"Cart {cart.id} has an unreadable stored record: {str(e)}")
        raise StoreUnavailable() from e


def to_columns(record: CartRecord) -> dict:
    """Column values for the items and price fields of a record."""
    return {
        "items": [item.to_json() for item in record.items],
        "items_price": Decimal(record.items_price),
        "shipping_price": Decimal(record.shipping_price),
        "tax_price": Decimal(record.tax_price),
        "total_price": Decimal(record.total_price),
    }


class CartStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    @contextmanager
    def _reading(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(f"Cart store {action} failed: {str(e)}")
            raise StoreUnavailable() from e

    @asynccontextmanager
    async def _writing(self, action: str):
        try:
            yield
            await self.db.commit()
        except CartConflict:
            await self.db.rollback()
            raise
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Cart store {action} rejected by constraint: {str(e.orig)}")
            raise CartConflict() from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Cart store {action} failed: {str(e)}")
            raise StoreUnavailable() from e

    async def _find_one(self, action: str, query) -> Optional[CartRecord]:
        with self._reading(action):
            result = await self.db.execute(query.execution_options(populate_existing=True))
            cart = result.scalars().first()
        return to_record(cart) if cart else None

    async def find_by_id(self, cart_id: str) -> Optional[CartRecord]:
        return await self._find_one("find_by_id", select(Cart).where(Cart.id == cart_id))

    async def find_by_user(self, user_id: str) -> Optional[CartRecord]:
        return await self._find_one("find_by_user", select(Cart).where(Cart.owner_user_id == user_id))

    async def find_by_token(self, session_cart_id: str) -> Optional[CartRecord]:
        """Anonymous cart for a session token. Carts that already have an owner are not matched."""
        return await self._find_one(
            "find_by_token",
            select(Cart)
            .where(Cart.session_cart_id == session_cart_id, Cart.owner_user_id.is_(None))
            .order_by(Cart.created_at.desc()),
        )

    async def create(self, record: CartRecord) -> CartRecord:
        cart = Cart(
            owner_user_id=record.owner_user_id,
            session_cart_id=record.session_cart_id,
            version=0,
            **to_columns(record),
        )
        async with self._writing("create"):
            self.db.add(cart)
            await self.db.flush()

        logger.info(f"Created cart {cart.id} (user={cart.owner_user_id}, session={cart.session_cart_id})")
        return to_record(cart)

    async def update(self, cart_id: str, patch: dict, expected_version: int) -> CartRecord:
        """Apply ``patch`` only if the cart is still at ``expected_version``; bumps the version."""
        async with self._writing("update"):
            result = await self.db.execute(
                update(Cart)
                .where(Cart.id == cart_id, Cart.version == expected_version)
                .values(**patch, version=Cart.version + 1, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                logger.warning(f"Cart {cart_id} changed since version {expected_version}")
                raise CartConflict()

        updated = await self.find_by_id(cart_id)
        if updated is None:
            raise CartConflict()
        return updated

    async def assign_owner(self, cart_id: str, user_id: str) -> Optional[CartRecord]:
        """Claim an unowned cart for ``user_id``. Returns None if someone else claimed it first."""
        async with self._writing("assign_owner"):
            result = await self.db.execute(
                update(Cart)
                .where(Cart.id == cart_id, Cart.owner_user_id.is_(None))
                .values(owner_user_id=user_id, version=Cart.version + 1, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            claimed = result.rowcount == 1

        if not claimed:
            return None
        return await self.find_by_id(cart_id)
