"""Customer purchase statistics and loyalty accounting."""

import logging
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from uuid import UUID

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from ..models import Customer, CustomerTier
from .exceptions import CustomerNotFoundError, InsufficientLoyaltyPointsError

logger = logging.getLogger(__name__)


TIER_MULTIPLIERS = {
    CustomerTier.NEW: Decimal('1.0'),
    CustomerTier.REGULAR: Decimal('1.0'),
    CustomerTier.LOYAL: Decimal('1.5'),
    CustomerTier.VIP: Decimal('2.0'),
}

# Lifetime spend (paise) at which a customer is promoted, highest first
TIER_THRESHOLDS = (
    (100_000_00, CustomerTier.VIP),
    (50_000_00, CustomerTier.LOYAL),
    (10_000_00, CustomerTier.REGULAR),
)


def get_customer(
    *,
    customer_id: UUID,
    for_update: bool = False,
    active_only: bool = True,
) -> Customer:
    """
    Fetch a customer.

    Args:
        customer_id: Customer UUID
        for_update: Lock the row until the surrounding transaction ends
        active_only: Treat deactivated customers as missing

    Raises:
        CustomerNotFoundError: If customer doesn't exist (or is inactive)
    """
    queryset = Customer.objects.all()
    if active_only:
        queryset = queryset.filter(is_active=True)
    if for_update:
        queryset = queryset.select_for_update()

    try:
        return queryset.get(id=customer_id)
    except (Customer.DoesNotExist, ValueError, ValidationError):
        raise CustomerNotFoundError(f"Customer {customer_id} not found")


def calculate_loyalty_points(*, customer: Customer, grand_total_paise: int) -> int:
    """
    Points earned on a bill: one per full 100 rupees, scaled by tier.

    The customer's current tier applies; promotion caused by this very
    purchase only affects later bills.
    """
    paise_per_point = settings.BILLING_LOYALTY_RUPEES_PER_POINT * 100
    base_points = grand_total_paise // paise_per_point
    multiplier = TIER_MULTIPLIERS.get(customer.customer_type, Decimal('1.0'))
    return int((base_points * multiplier).to_integral_value(rounding=ROUND_FLOOR))


def tier_for_spend(*, total_spent_paise: int, current_tier: str) -> str:
    """Tier matching lifetime spend; below the lowest threshold the tier is kept."""
    for threshold, tier in TIER_THRESHOLDS:
        if total_spent_paise >= threshold:
            return tier
    return current_tier


def _average_order_value(total_spent_paise, total_purchases):
    if total_purchases <= 0:
        return 0
    average = Decimal(total_spent_paise) / Decimal(total_purchases)
    return int(average.to_integral_value(rounding=ROUND_HALF_UP))


@transaction.atomic
def apply_purchase(
    *,
    customer_id: UUID,
    grand_total_paise: int,
    points_earned: int,
    points_used: int = 0,
) -> Customer:
    """
    Record a finalized bill against the customer.

    Increments purchase count, adds the bill total to lifetime spend,
    recomputes average order value, stamps the purchase date and moves
    the loyalty balance by ``points_earned - points_used``.

    Raises:
        CustomerNotFoundError: If customer doesn't exist or is inactive
        InsufficientLoyaltyPointsError: If the balance can't cover points_used
    """
    customer = get_customer(customer_id=customer_id, for_update=True)

    if points_used > customer.loyalty_points:
        raise InsufficientLoyaltyPointsError(
            f"Customer has {customer.loyalty_points} points, {points_used} requested"
        )

    customer.total_purchases += 1
    customer.total_spent_paise += grand_total_paise
    customer.average_order_value_paise = _average_order_value(
        customer.total_spent_paise, customer.total_purchases
    )
    customer.last_purchase_date = timezone.now()
    customer.loyalty_points = customer.loyalty_points + points_earned - points_used
    customer.customer_type = tier_for_spend(
        total_spent_paise=customer.total_spent_paise,
        current_tier=customer.customer_type,
    )
    customer.save(update_fields=[
        'total_purchases',
        'total_spent_paise',
        'average_order_value_paise',
        'last_purchase_date',
        'loyalty_points',
        'customer_type',
        'updated_at',
    ])

    logger.info(
        "Purchase applied to customer",
        extra={'customer_id': str(customer.id), 'grand_total_paise': grand_total_paise},
    )
    return customer


@transaction.atomic
def reverse_purchase(
    *,
    customer_id: UUID,
    grand_total_paise: int,
    points_earned: int,
    points_used: int = 0,
    purchase_count: int = 1,
) -> Customer:
    """
    Undo (part of) a previously applied purchase.

    Every counter is floored at zero. ``purchase_count`` is 0 for partial
    refunds, which reduce spend and points but keep the purchase.

    Raises:
        CustomerNotFoundError: If customer doesn't exist
    """
    customer = get_customer(customer_id=customer_id, for_update=True, active_only=False)

    customer.total_purchases = max(0, customer.total_purchases - purchase_count)
    customer.total_spent_paise = max(0, customer.total_spent_paise - grand_total_paise)
    customer.average_order_value_paise = _average_order_value(
        customer.total_spent_paise, customer.total_purchases
    )
    customer.loyalty_points = max(0, customer.loyalty_points + points_used - points_earned)
    customer.customer_type = tier_for_spend(
        total_spent_paise=customer.total_spent_paise,
        current_tier=customer.customer_type,
    )
    customer.save(update_fields=[
        'total_purchases',
        'total_spent_paise',
        'average_order_value_paise',
        'loyalty_points',
        'customer_type',
        'updated_at',
    ])

    logger.info(
        "Purchase reversed for customer",
        extra={'customer_id': str(customer.id), 'grand_total_paise': grand_total_paise},
    )
    return customer
