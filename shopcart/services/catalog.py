"""
Product catalog lookups used by the cart.

DatabaseCatalog reads the local products table. RemoteCatalog asks an
upstream product API over HTTP and is used when CATALOG_API_BASE_URL is set.
"""
import logging
from decimal import Decimal
from typing import Optional

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shopcart.core.config import settings
from shopcart.core.errors import CatalogUnavailable, StoreUnavailable
from shopcart.db.models import Product
from shopcart.schemas.product import ProductInfo

logger = logging.getLogger(__name__)


class DatabaseCatalog:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_product(self, product_id: str) -> Optional[ProductInfo]:
        try:
            result = await self.db.execute(select(Product).where(Product.id == product_id))
            product = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Product lookup failed for {product_id}: {str(e)}")
            raise StoreUnavailable() from e

        return ProductInfo.model_validate(product) if product else None


class RemoteCatalog:
    """HTTP client for the upstream product API."""

    def __init__(self, base_url: str = None, client: httpx.AsyncClient = None):
        self.base_url = (base_url or settings.CATALOG_API_BASE_URL).rstrip("/")
        self.client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=settings.CATALOG_TIMEOUT_SECONDS)
        return self.client

    async def get_product(self, product_id: str) -> Optional[ProductInfo]:
        """
        GET /api/v1/products/{id}

        Returns: {"id": "...", "name": "...", "slug": "...", "price": "60.00", "stockQuantity": 5}
        """
        try:
            client = await self._get_client()
            response = await client.get(f"{self.base_url}/api/v1/products/{product_id}")
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()
            return ProductInfo(
                id=str(data.get("id", product_id)),
                name=data["name"],
                slug=data["slug"],
                price=Decimal(str(data["price"])),
                stock=int(data.get("stockQuantity", 0)),
            )
        except httpx.HTTPStatusError as e:
            logger.error(f"Catalog lookup for {product_id} failed with status {e.response.status_code}: {e.response.text}")
            raise CatalogUnavailable() from e
        except (httpx.HTTPError, ArithmeticError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Catalog lookup for {product_id} failed: {str(e)}")
            raise CatalogUnavailable() from e

    async def close(self):
        """Close HTTP client."""
        if self.client:
            await self.client.aclose()


# Global instance, only when an upstream catalog is configured
remote_catalog = RemoteCatalog() if settings.CATALOG_API_BASE_URL else None
