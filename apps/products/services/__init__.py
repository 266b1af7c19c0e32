"""Services for product stock consumed by billing."""

from .exceptions import (
    ProductsServiceError,
    ProductNotFoundError,
    InvalidQuantityError,
    InsufficientStockError,
)
from .stock_management import (
    get_product,
    decrement_stock,
    restore_stock,
)

__all__ = [
    # Exceptions
    'ProductsServiceError',
    'ProductNotFoundError',
    'InvalidQuantityError',
    'InsufficientStockError',
    # Stock Management
    'get_product',
    'decrement_stock',
    'restore_stock',
]
