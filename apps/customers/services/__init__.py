"""Services for customer records consumed by billing."""

from .exceptions import (
    CustomersServiceError,
    CustomerNotFoundError,
    InsufficientLoyaltyPointsError,
)
from .purchase_stats import (
    TIER_MULTIPLIERS,
    TIER_THRESHOLDS,
    get_customer,
    calculate_loyalty_points,
    tier_for_spend,
    apply_purchase,
    reverse_purchase,
)

__all__ = [
    # Exceptions
    'CustomersServiceError',
    'CustomerNotFoundError',
    'InsufficientLoyaltyPointsError',
    # Purchase statistics
    'TIER_MULTIPLIERS',
    'TIER_THRESHOLDS',
    'get_customer',
    'calculate_loyalty_points',
    'tier_for_spend',
    'apply_purchase',
    'reverse_purchase',
]
