"""
Cart error taxonomy.

Every failure the cart core can report is a CartError. Public cart operations
turn these into ``{"success": False, "message": ...}`` results instead of
raising them to the caller.
"""


class CartError(Exception):
    """Base class for business-visible cart failures."""

    default_message = "Cart operation failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ProductNotFound(CartError):
    default_message = "Product not found"


class InsufficientStock(CartError):
    default_message = "Not enough stock"


class ItemNotFound(CartError):
    default_message = "Item not found"


class NoSessionContext(CartError):
    default_message = "Cart session not found"


class CartNotFound(CartError):
    default_message = "Cart not found"


class StoreUnavailable(CartError):
    default_message = "Cart storage is unavailable"


class CatalogUnavailable(CartError):
    default_message = "Product catalog is unavailable"


class CartConflict(CartError):
    """The cart changed between read and write (version mismatch or duplicate owner)."""

    default_message = "Cart was modified by another request, please try again"
