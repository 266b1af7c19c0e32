"""
Settlement services for bills.

Views and admin actions call these functions; they never touch bill,
product or customer rows directly.
"""

from .bill_cancellation import cancel_bill
from .bill_finalization import finalize_bill
from .bill_numbering import next_bill_number
from .bill_queries import get_bill, list_bills, lock_bill
from .bill_refund import refund_bill_items
from .lifecycle import ALLOWED_TRANSITIONS, can_transition, validate_transition
from .payment_application import apply_payment

__all__ = [
    # Settlement
    'finalize_bill',
    'apply_payment',
    'cancel_bill',
    'refund_bill_items',
    # Queries
    'get_bill',
    'list_bills',
    'lock_bill',
    # Numbering
    'next_bill_number',
    # Lifecycle
    'ALLOWED_TRANSITIONS',
    'can_transition',
    'validate_transition',
]
