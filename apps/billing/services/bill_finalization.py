"""
Bill finalization: turn a cart into a completed, persisted bill.
"""

import logging
from collections import OrderedDict
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..exceptions import (
    InsufficientStockError,
    InvalidInputError,
    OverpaymentError,
)
from ..models import Bill, BillItem, BillPayment, BillStatus, PaymentMethod
from ..pricing import (
    PAISE_PER_POINT,
    aggregate,
    max_redeemable_points,
    price_line,
    to_paise,
    to_percentage,
)
from . import collaborators, inputs
from .bill_numbering import next_bill_number
from .lifecycle import validate_transition

logger = logging.getLogger(__name__)


def _normalize_items(items):
    if not isinstance(items, (list, tuple)) or not items:
        raise InvalidInputError("Bill must contain at least one item", field='items')

    lines = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidInputError(f"items[{index}] must be an object", field=f'items[{index}]')
        lines.append({
            'product_id': inputs.require_uuid(item.get('product_id'), field=f'items[{index}].product_id'),
            'quantity': inputs.require_whole_number(
                item.get('quantity'),
                field=f'items[{index}].quantity',
                minimum=1,
            ),
            'discount_percentage': to_percentage(
                item.get('discount_percentage') or 0,
                field=f'items[{index}].discount_percentage',
            ),
        })
    return lines


def _normalize_payments(payment_details):
    payments = []
    for index, payment in enumerate(payment_details or []):
        if not isinstance(payment, dict):
            raise InvalidInputError(
                f"payment_details[{index}] must be an object",
                field=f'payment_details[{index}]',
            )
        payments.append({
            'method': inputs.payment_method(
                payment.get('method'),
                field=f'payment_details[{index}].method',
                allow_multiple=False,
            ),
            'amount_paise': inputs.payment_amount(
                payment.get('amount'),
                field=f'payment_details[{index}].amount',
            ),
            'reference': inputs.reference(payment.get('reference')),
        })
    return payments


def _requested_quantities(lines):
    """Combined quantity per product; first-seen order is kept."""
    requested = OrderedDict()
    for line in lines:
        requested[line['product_id']] = requested.get(line['product_id'], 0) + line['quantity']
    return requested


def _check_stock(products, requested):
    shortfalls = [
        {
            'product_id': str(product_id),
            'product_name': products[product_id].name,
            'requested': quantity,
            'available': products[product_id].stock_quantity,
        }
        for product_id, quantity in requested.items()
        if products[product_id].stock_quantity < quantity
    ]
    if shortfalls:
        logger.warning(
            "Bill rejected for insufficient stock",
            extra={'shortfalls': shortfalls},
        )
        raise InsufficientStockError(shortfalls)


def _check_loyalty_points(points, *, customer, grand_total_paise):
    if not points:
        return
    limit = max_redeemable_points(grand_total_paise)
    if points > limit:
        raise InvalidInputError(
            f"Cannot redeem more than {limit} points on this bill",
            field='loyalty_points_used',
            requested=points,
            available=limit,
        )
    if points > customer.loyalty_points:
        raise InvalidInputError(
            f"Customer has only {customer.loyalty_points} loyalty points",
            field='loyalty_points_used',
            requested=points,
            available=customer.loyalty_points,
        )


def _check_initial_payments(payments, *, payable_paise):
    paid = sum(payment['amount_paise'] for payment in payments)
    if paid > payable_paise:
        logger.warning(
            "Bill rejected for overpayment",
            extra={'amount_paid_paise': paid, 'payable_paise': payable_paise},
        )
        raise OverpaymentError(
            "Total payment exceeds the bill amount",
            field='payment_details',
            requested=paid,
            available=payable_paise,
        )
    return paid


def _bill_payment_method(payment_method, payments):
    methods = {payment['method'] for payment in payments}
    if len(methods) > 1:
        return PaymentMethod.MULTIPLE
    return payment_method


@transaction.atomic
def finalize_bill(
    *,
    customer_id: UUID,
    items,
    cashier: str,
    payment_method: str,
    payment_details=None,
    loyalty_points_used: int = 0,
    notes: str = '',
    delivery_charge=0,
) -> Bill:
    """
    Price a cart and persist it as a completed bill.

    Everything happens in one transaction: bill number, bill, lines and
    payments are written, stock is decremented for every product and the
    customer's purchase statistics and loyalty balance are updated. Any
    failure rolls all of it back.

    Args:
        customer_id: Customer UUID (must be active)
        items: ``[{'product_id', 'quantity', 'discount_percentage'}]``;
            repeated products are checked against their combined quantity
        cashier: Name of the cashier
        payment_method: Declared payment method of the bill
        payment_details: Optional initial payments
            ``[{'method', 'amount', 'reference'}]``, amounts in rupees
        loyalty_points_used: Points redeemed (1 point = 1 rupee), at most
            half the grand total
        notes: Free text
        delivery_charge: Rupees, added after tax

    Returns:
        Bill: The completed bill

    Raises:
        InvalidInputError: Malformed input, or points over cap/balance
        CustomerNotFoundError: Unknown or inactive customer
        ProductNotFoundError: Unknown product
        ProductInactiveError: Deactivated product
        InsufficientStockError: Lists every line short of stock
        OverpaymentError: Initial payments exceed the payable total
    """
    lines = _normalize_items(items)
    payments = _normalize_payments(payment_details)
    cashier = inputs.require_text(cashier, field='cashier', max_length=150)
    payment_method = inputs.payment_method(payment_method)
    loyalty_points_used = inputs.require_whole_number(
        loyalty_points_used,
        field='loyalty_points_used',
    )
    delivery_charge_paise = to_paise(delivery_charge, 'delivery_charge')
    notes = (notes or '').strip()
    if len(notes) > settings.BILLING_NOTES_MAX_LENGTH:
        raise InvalidInputError(
            f"Notes cannot exceed {settings.BILLING_NOTES_MAX_LENGTH} characters",
            field='notes',
            value=len(notes),
        )

    customer = collaborators.load_customer(customer_id=customer_id, for_update=True)

    requested = _requested_quantities(lines)
    products = collaborators.load_products(product_ids=requested.keys())
    _check_stock(products, requested)

    priced = [
        price_line(
            unit_price_paise=products[line['product_id']].selling_price_paise,
            quantity=line['quantity'],
            discount_percentage=line['discount_percentage'],
            tax_rate=products[line['product_id']].tax_rate,
        )
        for line in lines
    ]
    totals = aggregate(priced, delivery_charge_paise=delivery_charge_paise)

    _check_loyalty_points(
        loyalty_points_used,
        customer=customer,
        grand_total_paise=totals.grand_total_paise,
    )
    payable_paise = max(0, totals.grand_total_paise - loyalty_points_used * PAISE_PER_POINT)
    amount_paid_paise = _check_initial_payments(payments, payable_paise=payable_paise)

    # Accrual uses the tier held before this purchase
    points_earned = collaborators.points_for(
        customer=customer,
        grand_total_paise=totals.grand_total_paise,
    )

    now = timezone.now()
    bill = Bill(
        bill_number=next_bill_number(when=now),
        customer=customer,
        cashier=cashier,
        payment_method=_bill_payment_method(payment_method, payments),
        loyalty_points_used=loyalty_points_used,
        loyalty_points_earned=points_earned,
        amount_paid_paise=amount_paid_paise,
        notes=notes,
        bill_date=now,
        status=BillStatus.DRAFT,
    )
    bill.apply_totals(totals)
    bill.refresh_payment_position()

    validate_transition(bill=bill, target=BillStatus.COMPLETED)
    bill.status = BillStatus.COMPLETED
    bill.completed_at = now
    bill.save()

    BillItem.objects.bulk_create([
        BillItem(
            bill=bill,
            position=position,
            product=products[line['product_id']],
            product_name=products[line['product_id']].name,
            sku=products[line['product_id']].sku,
            unit=products[line['product_id']].unit,
            unit_price_paise=products[line['product_id']].selling_price_paise,
            tax_rate=products[line['product_id']].tax_rate,
            quantity=line['quantity'],
            discount_percentage=line['discount_percentage'],
            discount_amount_paise=priced_line.discount_paise,
            tax_amount_paise=priced_line.tax_paise,
            line_total_paise=priced_line.total_paise,
        )
        for position, (line, priced_line) in enumerate(zip(lines, priced))
    ])
    BillPayment.objects.bulk_create([
        BillPayment(
            bill=bill,
            method=payment['method'],
            amount_paise=payment['amount_paise'],
            reference=payment['reference'],
        )
        for payment in payments
    ])

    for product_id in sorted(requested, key=str):
        collaborators.take_stock(product=products[product_id], quantity=requested[product_id])

    collaborators.record_purchase(
        customer_id=customer.id,
        grand_total_paise=totals.grand_total_paise,
        points_earned=points_earned,
        points_used=loyalty_points_used,
    )

    logger.info(
        "Bill finalized",
        extra={
            'bill_id': str(bill.id),
            'bill_number': bill.bill_number,
            'grand_total_paise': bill.grand_total_paise,
            'payment_status': bill.payment_status,
        },
    )
    return bill
