"""Cancelling bills that were never paid in full."""

import logging
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..exceptions import CannotCancelPaidBillError
from ..models import Bill, BillStatus, PaymentStatus
from . import collaborators, inputs
from .bill_queries import lock_bill
from .lifecycle import validate_transition

logger = logging.getLogger(__name__)


@transaction.atomic
def cancel_bill(*, bill_id: UUID, reason: str) -> Bill:
    """
    Cancel a draft bill, or a completed bill that isn't paid in full.

    For a completed bill the sale is reversed: every line's quantity goes
    back to stock, and the customer's purchase count, spend and loyalty
    balance are rolled back (each floored at zero).

    Raises:
        InvalidInputError: Blank or over-long reason
        BillNotFoundError: If bill doesn't exist
        CannotCancelPaidBillError: Completed and paid; refund it instead
        InvalidStateTransitionError: Bill is already cancelled or refunded
    """
    reason = inputs.require_reason(reason)
    bill = lock_bill(bill_id=bill_id)

    if bill.status == BillStatus.COMPLETED and bill.payment_status == PaymentStatus.PAID:
        logger.warning(
            "Cancellation rejected, bill is paid",
            extra={'bill_id': str(bill.id), 'bill_number': bill.bill_number},
        )
        raise CannotCancelPaidBillError(bill_id=str(bill.id))
    validate_transition(bill=bill, target=BillStatus.CANCELLED)

    if bill.status == BillStatus.COMPLETED:
        collaborators.lock_customer(customer_id=bill.customer_id)
        for item in bill.items.order_by('product_id'):
            if item.remaining_quantity > 0:
                collaborators.return_stock(
                    product_id=item.product_id,
                    quantity=item.remaining_quantity,
                )

        collaborators.reverse_customer_purchase(
            customer_id=bill.customer_id,
            grand_total_paise=bill.grand_total_paise,
            points_earned=bill.loyalty_points_earned,
            points_used=bill.loyalty_points_used,
        )
        bill.loyalty_points_reversed = bill.loyalty_points_earned

    bill.status = BillStatus.CANCELLED
    bill.cancelled_at = timezone.now()
    bill.cancellation_reason = reason
    note = f"Cancelled: {reason}"
    # Older notes are cut so the cancellation line always fits
    room = settings.BILLING_NOTES_MAX_LENGTH - len(note) - 1
    bill.notes = f"{bill.notes[:room].rstrip()}\n{note}" if bill.notes else note
    bill.version += 1
    bill.save()

    logger.info(
        "Bill cancelled",
        extra={'bill_id': str(bill.id), 'bill_number': bill.bill_number},
    )
    return bill
