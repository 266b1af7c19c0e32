"""Domain exceptions for products services."""


class ProductsServiceError(Exception):
    """Base exception for products services."""
    pass


class ProductNotFoundError(ProductsServiceError):
    """Product does not exist."""
    pass


class InvalidQuantityError(ProductsServiceError):
    """Stock movement quantity must be a positive integer."""
    pass


class InsufficientStockError(ProductsServiceError):
    """Not enough units on hand for the requested decrement."""

    def __init__(self, message, *, product_id=None, requested=0, available=0):
        super().__init__(message)
        self.product_id = product_id
        self.requested = requested
        self.available = available
