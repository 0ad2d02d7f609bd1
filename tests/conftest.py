import os

os.environ.setdefault("SESSION_SECRET_KEY", "test-session-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from shopcart.db.base import Base
from shopcart.db.models import Product
from shopcart.services.cart import CartService
from shopcart.services.cart_store import CartStore
from shopcart.services.catalog import DatabaseCatalog
from shopcart.services.notifications import CartNotifier


DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class RecordingNotifier(CartNotifier):
    def __init__(self):
        self.slugs = []

    def product_changed(self, slug: str) -> None:
        self.slugs.append(slug)


@pytest.fixture
async def engine():
    engine = create_async_engine(DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def store(db_session):
    return CartStore(db_session)


@pytest.fixture
def make_product(db_session):
    async def _make_product(name="Runner Shoe", slug="runner-shoe", price="60.00", stock=10):
        product = Product(name=name, slug=slug, price=Decimal(price), stock=stock)
        db_session.add(product)
        await db_session.commit()
        await db_session.refresh(product)
        return product

    return _make_product


@pytest.fixture
async def shoe(make_product):
    return await make_product()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_service(db_session, notifier):
    def _make_service(session_token="S1", user_id=None, store=None, **kwargs):
        return CartService(
            store=store or CartStore(db_session),
            catalog=kwargs.pop("catalog", DatabaseCatalog(db_session)),
            session_token=session_token,
            user_id=user_id,
            notifier=kwargs.pop("notifier", notifier),
            **kwargs,
        )

    return _make_service
