from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from shopcart.core.config import settings

engine = create_async_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO, pool_pre_ping=True)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """Request-scoped session; cart store writes commit or roll back on their own."""
    async with async_session() as session:
        yield session
