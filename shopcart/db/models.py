"""
Shop database models: catalog products and persisted carts.
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, DateTime, JSON, Index, text

from shopcart.db.base import Base


def new_id() -> str:
    return str(uuid.uuid4())


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Cart(Base):
    __tablename__ = "carts"

    id = Column(String(36), primary_key=True, default=new_id)
    # One cart per account; set once when an anonymous cart is merged
    owner_user_id = Column(String(255), unique=True, nullable=True, index=True)
    session_cart_id = Column(String(255), nullable=True, index=True)
    items = Column(JSON, default=list, nullable=False)
    items_price = Column(Numeric(12, 2), nullable=False)
    shipping_price = Column(Numeric(12, 2), nullable=False)
    tax_price = Column(Numeric(12, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    version = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        # At most one anonymous cart per session token
        Index(
            "uq_carts_session_cart_id_unowned",
            "session_cart_id",
            unique=True,
            sqlite_where=text("owner_user_id IS NULL"),
            postgresql_where=text("owner_user_id IS NULL"),
        ),
    )


__all__ = [
    "Product",
    "Cart",
    "Base",
]
