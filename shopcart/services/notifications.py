import logging
from typing import List

logger = logging.getLogger(__name__)


def product_path(slug: str) -> str:
    return f"/product/{slug}"


class CartNotifier:
    """Told about every product whose cart state changed, so pages showing it can refresh."""

    def product_changed(self, slug: str) -> None:
        logger.info(f"Cart changed for {product_path(slug)}")


class PathInvalidationNotifier(CartNotifier):
    """Collects the product page paths to invalidate for one request."""

    header_name = "X-Invalidate-Paths"

    def __init__(self):
        self.paths: List[str] = []

    def product_changed(self, slug: str) -> None:
        super().product_changed(slug)
        path = product_path(slug)
        if path not in self.paths:
            self.paths.append(path)

    def apply(self, response) -> None:
        if self.paths:
            response.headers[self.header_name] = ",".join(self.paths)
