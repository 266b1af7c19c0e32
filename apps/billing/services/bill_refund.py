"""
Line-level refunds of paid bills.

Refunds are append-only ``BillItemRefund`` rows. Each request refunds some
units of some lines; the bill moves to ``partial_refund`` until every unit
is refunded, and then to ``refunded``.

Customer statistics are reversed in step with the money:

* a partial refund takes the refunded amount off lifetime spend and claws
  back earned points in proportion to the share of the grand total
  refunded so far;
* the refund that empties the bill reverses whatever is left (delivery
  charge, rounding, remaining earned points, the purchase itself and the
  points redeemed on it), so a bill refunded in several steps leaves the
  customer exactly where a cancellation would.
"""

import logging
from collections import OrderedDict
from uuid import UUID

from django.db import transaction
from django.db.models import F

from ..exceptions import InvalidInputError, InvalidStateTransitionError
from ..models import Bill, BillItemRefund, BillStatus, PaymentStatus
from ..pricing import price_line
from . import collaborators, inputs
from .bill_queries import lock_bill
from .lifecycle import validate_transition

logger = logging.getLogger(__name__)


def _normalize_refund_items(items):
    if not isinstance(items, (list, tuple)) or not items:
        raise InvalidInputError("Refund must name at least one item", field='items')

    requested = OrderedDict()
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidInputError(f"items[{index}] must be an object", field=f'items[{index}]')
        item_id = inputs.require_uuid(item.get('item_id'), field=f'items[{index}].item_id')
        quantity = inputs.require_whole_number(
            item.get('quantity'),
            field=f'items[{index}].quantity',
            minimum=1,
        )
        requested[item_id] = requested.get(item_id, 0) + quantity
    return requested


def _check_refundable(bill):
    if bill.status == BillStatus.PARTIAL_REFUND:
        return
    if bill.status == BillStatus.COMPLETED and bill.payment_status != PaymentStatus.PAID:
        raise InvalidStateTransitionError(
            f"Bill {bill.bill_number} must be paid in full before it can be refunded",
            bill_id=str(bill.id),
            current=bill.status,
            payment_status=bill.payment_status,
        )
    validate_transition(bill=bill, target=BillStatus.REFUNDED)


def _clawback_target(bill, refunded_paise):
    """Earned points that should be reversed once ``refunded_paise`` is refunded."""
    if bill.grand_total_paise <= 0:
        return 0
    return bill.loyalty_points_earned * refunded_paise // bill.grand_total_paise


@transaction.atomic
def refund_bill_items(*, bill_id: UUID, items, reason: str) -> Bill:
    """
    Refund units of one or more lines of a paid bill.

    Args:
        bill_id: Bill UUID
        items: ``[{'item_id', 'quantity'}]``; each quantity at most the
            line's unrefunded quantity
        reason: Why the goods came back

    Returns:
        Bill: Bill in ``partial_refund`` or ``refunded`` status

    Raises:
        InvalidInputError: Bad reason, unknown line or excess quantity
        BillNotFoundError: If bill doesn't exist
        InvalidStateTransitionError: Bill isn't paid, or already
            cancelled / refunded
    """
    reason = inputs.require_reason(reason)
    requested = _normalize_refund_items(items)

    bill = lock_bill(bill_id=bill_id)
    _check_refundable(bill)

    lines = {
        item.id: item
        for item in bill.items.select_for_update().filter(id__in=list(requested))
    }
    for item_id, quantity in requested.items():
        item = lines.get(item_id)
        if item is None:
            raise InvalidInputError(
                f"Item {item_id} is not part of bill {bill.bill_number}",
                field='items',
                value=str(item_id),
            )
        if quantity > item.remaining_quantity:
            raise InvalidInputError(
                f"Cannot refund {quantity} of {item.product_name}, "
                f"only {item.remaining_quantity} left",
                field='items',
                requested=quantity,
                available=item.remaining_quantity,
            )

    collaborators.lock_customer(customer_id=bill.customer_id)

    refunded_paise = 0
    returned = []
    for item_id, quantity in requested.items():
        item = lines[item_id]
        amount = price_line(
            unit_price_paise=item.unit_price_paise,
            quantity=quantity,
            discount_percentage=item.discount_percentage,
            tax_rate=item.tax_rate,
        ).total_paise
        refunded_paise += amount

        BillItemRefund.objects.create(
            bill=bill,
            bill_item=item,
            quantity_refunded=quantity,
            amount_paise=amount,
            reason=reason,
        )
        item.quantity_refunded += quantity
        item.save(update_fields=['quantity_refunded'])
        returned.append((item.product_id, quantity))

    # Same product order as finalize_bill
    for product_id, quantity in sorted(returned, key=lambda pair: str(pair[0])):
        collaborators.return_stock(product_id=product_id, quantity=quantity)

    fully_refunded = not bill.items.filter(quantity_refunded__lt=F('quantity')).exists()
    outstanding_paise = bill.grand_total_paise - bill.amount_refunded_paise

    if fully_refunded:
        target = BillStatus.REFUNDED
        refunded_paise = outstanding_paise
        points_reversed = bill.loyalty_points_earned - bill.loyalty_points_reversed
        collaborators.reverse_customer_purchase(
            customer_id=bill.customer_id,
            grand_total_paise=refunded_paise,
            points_earned=points_reversed,
            points_used=bill.loyalty_points_used,
            purchase_count=1,
        )
    else:
        target = BillStatus.PARTIAL_REFUND
        refunded_paise = min(refunded_paise, outstanding_paise)
        points_reversed = (
            _clawback_target(bill, bill.amount_refunded_paise + refunded_paise)
            - bill.loyalty_points_reversed
        )
        collaborators.reverse_customer_purchase(
            customer_id=bill.customer_id,
            grand_total_paise=refunded_paise,
            points_earned=points_reversed,
            points_used=0,
            purchase_count=0,
        )

    validate_transition(bill=bill, target=target)
    bill.status = target
    bill.amount_refunded_paise += refunded_paise
    bill.loyalty_points_reversed += points_reversed
    bill.version += 1
    bill.save()

    logger.info(
        "Bill items refunded",
        extra={
            'bill_id': str(bill.id),
            'bill_number': bill.bill_number,
            'refunded_paise': refunded_paise,
            'status': bill.status,
        },
    )
    return bill
