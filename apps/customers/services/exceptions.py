"""Domain exceptions for customers services."""


class CustomersServiceError(Exception):
    """Base exception for customers services."""
    pass


class CustomerNotFoundError(CustomersServiceError):
    """Customer does not exist or is inactive."""
    pass


class InsufficientLoyaltyPointsError(CustomersServiceError):
    """Customer's loyalty balance can't cover the redemption."""
    pass
