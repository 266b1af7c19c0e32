"""Payments against completed bills."""

import logging
from uuid import UUID

from django.db import transaction

from ..exceptions import (
    AlreadySettledError,
    InvalidStateTransitionError,
    OverpaymentError,
)
from ..models import Bill, BillPayment, BillStatus, PaymentMethod, PaymentStatus
from . import inputs
from .bill_queries import lock_bill

logger = logging.getLogger(__name__)


@transaction.atomic
def apply_payment(*, bill_id: UUID, method: str, amount, reference: str = '') -> Bill:
    """
    Record a payment and re-derive the bill's payment status.

    Args:
        bill_id: Bill UUID
        method: cash, card, upi, net_banking, wallet or credit
        amount: Rupees, greater than 0 and at most the remaining balance
        reference: Transaction ID, card last 4 digits, etc.

    Returns:
        Bill: Updated bill

    Raises:
        InvalidInputError: Bad method, amount or reference
        BillNotFoundError: If bill doesn't exist
        AlreadySettledError: Bill is already paid in full
        InvalidStateTransitionError: Bill is not completed
        OverpaymentError: Amount exceeds the remaining balance
    """
    method = inputs.payment_method(method, field='method', allow_multiple=False)
    amount_paise = inputs.payment_amount(amount)
    reference = inputs.reference(reference)

    bill = lock_bill(bill_id=bill_id)

    if bill.payment_status == PaymentStatus.PAID:
        raise AlreadySettledError(
            f"Bill {bill.bill_number} is already fully paid",
            bill_id=str(bill.id),
        )
    if bill.status != BillStatus.COMPLETED:
        raise InvalidStateTransitionError(
            f"Cannot accept payments on a {bill.status} bill",
            bill_id=str(bill.id),
            current=bill.status,
        )

    remaining = bill.remaining_balance_paise
    if amount_paise > remaining:
        logger.warning(
            "Payment rejected for overpayment",
            extra={
                'bill_id': str(bill.id),
                'amount_paise': amount_paise,
                'remaining_paise': remaining,
            },
        )
        raise OverpaymentError(
            "Payment amount exceeds remaining balance",
            field='amount',
            requested=amount_paise,
            available=remaining,
        )

    BillPayment.objects.create(
        bill=bill,
        method=method,
        amount_paise=amount_paise,
        reference=reference,
    )

    methods = set(bill.payments.values_list('method', flat=True))
    if len(methods) > 1:
        bill.payment_method = PaymentMethod.MULTIPLE

    bill.amount_paid_paise += amount_paise
    bill.refresh_payment_position()
    bill.version += 1
    bill.save()

    logger.info(
        "Payment applied",
        extra={
            'bill_id': str(bill.id),
            'amount_paise': amount_paise,
            'payment_status': bill.payment_status,
        },
    )
    return bill
