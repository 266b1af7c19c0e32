"""
Service layer tests for billing app.

Tests cover:
- Finalizing bills (pricing, stock, customer statistics, loyalty)
- Payment application and settlement status
- Cancellation and its reversal of stock and customer statistics
- Line-level refunds
- Bill numbering
- Rollback when a collaborator fails mid-way
"""

import pytest
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

from django.db import DatabaseError
from django.utils import timezone

from apps.billing.exceptions import (
    AlreadySettledError,
    BillNotFoundError,
    CannotCancelPaidBillError,
    CollaboratorFailureError,
    CustomerNotFoundError,
    InsufficientStockError,
    InvalidInputError,
    InvalidStateTransitionError,
    OverpaymentError,
    ProductInactiveError,
    ProductNotFoundError,
)
from apps.billing.models import (
    Bill,
    BillItemRefund,
    BillSequence,
    BillStatus,
    PaymentMethod,
    PaymentStatus,
)
from apps.billing.services import (
    apply_payment,
    cancel_bill,
    finalize_bill,
    get_bill,
    list_bills,
    next_bill_number,
    refund_bill_items,
)
from apps.billing.services import collaborators
from apps.billing.pricing import aggregate, price_line
from apps.customers.models import CustomerTier
from apps.products.services import InsufficientStockError as StockShortError


def _finalize(customer, *lines, **kwargs):
    params = {
        'customer_id': customer.id,
        'items': [
            {'product_id': product.id, 'quantity': quantity}
            for product, quantity in lines
        ],
        'cashier': 'till-1',
        'payment_method': PaymentMethod.CASH,
    }
    params.update(kwargs)
    return finalize_bill(**params)


# =============================================================================
# Finalize
# =============================================================================

@pytest.mark.django_db
class TestFinalizeBill:

    def test_prices_and_persists_bill(self, shopper, rice):
        bill = finalize_bill(
            customer_id=shopper.id,
            items=[{
                'product_id': rice.id,
                'quantity': 3,
                'discount_percentage': Decimal('10'),
            }],
            cashier='till-1',
            payment_method=PaymentMethod.CASH,
        )

        assert bill.status == BillStatus.COMPLETED
        assert bill.completed_at is not None
        assert bill.subtotal_paise == 300_00
        assert bill.total_discount_paise == 30_00
        assert bill.total_tax_paise == 48_60
        assert bill.grand_total_paise == 318_60
        assert bill.payment_status == PaymentStatus.PENDING
        assert bill.amount_due_paise == 318_60

        item = bill.items.get()
        assert item.product_name == 'Basmati Rice 1kg'
        assert item.sku == 'RICE-1KG'
        assert item.unit_price_paise == 100_00
        assert item.tax_rate == Decimal('18.00')
        assert item.discount_amount_paise == 30_00
        assert item.tax_amount_paise == 48_60
        assert item.line_total_paise == 318_60

    def test_discount_with_three_places_rejected(self, shopper, rice):
        with pytest.raises(InvalidInputError) as exc_info:
            finalize_bill(
                customer_id=shopper.id,
                items=[{
                    'product_id': rice.id,
                    'quantity': 10,
                    'discount_percentage': '12.345',
                }],
                cashier='till-1',
                payment_method=PaymentMethod.CASH,
            )

        assert exc_info.value.detail['field'] == 'items[0].discount_percentage'
        assert not Bill.objects.exists()

    def test_stored_lines_reprice_to_bill_totals(self, shopper, rice, lamp):
        bill = finalize_bill(
            customer_id=shopper.id,
            items=[
                {'product_id': rice.id, 'quantity': 10, 'discount_percentage': '12.35'},
                {'product_id': lamp.id, 'quantity': 1, 'discount_percentage': '7.5'},
            ],
            cashier='till-1',
            payment_method=PaymentMethod.CASH,
            delivery_charge=Decimal('40'),
        )
        bill = get_bill(bill_id=bill.id)

        stored = [item.as_priced_line() for item in bill.items.all()]
        for item, line in zip(bill.items.all(), stored):
            assert price_line(
                unit_price_paise=item.unit_price_paise,
                quantity=item.quantity,
                discount_percentage=item.discount_percentage,
                tax_rate=item.tax_rate,
            ) == line

        totals = aggregate(stored, delivery_charge_paise=bill.delivery_charge_paise)
        assert totals.grand_total_paise == bill.grand_total_paise
        assert totals.total_discount_paise == bill.total_discount_paise
        assert totals.total_tax_paise == bill.total_tax_paise
        assert bill.total_items == 11

    def test_decrements_stock_and_counts_sales(self, shopper, rice):
        _finalize(shopper, (rice, 4))

        rice.refresh_from_db()
        assert rice.stock_quantity == 6
        assert rice.sales_count == 4
        assert rice.last_sold_date is not None

    def test_updates_customer_statistics(self, shopper, lamp):
        bill = _finalize(shopper, (lamp, 2))

        shopper.refresh_from_db()
        assert shopper.total_purchases == 1
        assert shopper.total_spent_paise == 2000_00
        assert shopper.average_order_value_paise == 2000_00
        assert shopper.loyalty_points == 20
        assert bill.loyalty_points_earned == 20

    def test_vip_earns_double_points(self, vip_shopper, lamp):
        """₹2000 bill for a VIP earns 40 points."""
        bill = _finalize(vip_shopper, (lamp, 2))

        assert bill.loyalty_points_earned == 40
        vip_shopper.refresh_from_db()
        assert vip_shopper.loyalty_points == 40

    def test_points_use_tier_before_purchase(self, shopper, lamp):
        shopper.customer_type = CustomerTier.REGULAR
        shopper.total_spent_paise = 49_000_00
        shopper.save()

        bill = _finalize(shopper, (lamp, 2))

        shopper.refresh_from_db()
        assert bill.loyalty_points_earned == 20
        assert shopper.customer_type == CustomerTier.LOYAL

    def test_delivery_charge_added_after_tax(self, shopper, rice):
        bill = _finalize(shopper, (rice, 1), delivery_charge=Decimal('40.00'))

        assert bill.delivery_charge_paise == 40_00
        assert bill.grand_total_paise == 118_00 + 40_00

    def test_initial_payments(self, shopper, rice):
        bill = _finalize(
            shopper,
            (rice, 1),
            payment_details=[
                {'method': PaymentMethod.CASH, 'amount': Decimal('18.00')},
                {'method': PaymentMethod.CARD, 'amount': Decimal('100.00'), 'reference': '4242'},
            ],
        )

        assert bill.payment_status == PaymentStatus.PAID
        assert bill.amount_paid_paise == 118_00
        assert bill.amount_due_paise == 0
        assert bill.payment_method == PaymentMethod.MULTIPLE
        assert bill.payments.count() == 2

    def test_initial_overpayment_rejected(self, shopper, rice):
        with pytest.raises(OverpaymentError):
            _finalize(
                shopper,
                (rice, 1),
                payment_details=[{'method': PaymentMethod.CASH, 'amount': Decimal('118.01')}],
            )
        assert not Bill.objects.exists()

    def test_redeem_loyalty_points(self, points_shopper, lamp):
        bill = _finalize(
            points_shopper,
            (lamp, 1),
            loyalty_points_used=300,
            payment_details=[{'method': PaymentMethod.CASH, 'amount': Decimal('700.00')}],
        )

        assert bill.payment_status == PaymentStatus.PAID
        assert bill.amount_due_paise == 0
        points_shopper.refresh_from_db()
        assert points_shopper.loyalty_points == 600 - 300 + 10

    def test_points_above_half_the_bill_rejected(self, points_shopper, lamp):
        with pytest.raises(InvalidInputError) as exc_info:
            _finalize(points_shopper, (lamp, 1), loyalty_points_used=501)

        assert exc_info.value.detail['available'] == 500
        assert not Bill.objects.exists()

    def test_points_above_balance_rejected(self, shopper, lamp):
        with pytest.raises(InvalidInputError):
            _finalize(shopper, (lamp, 1), loyalty_points_used=10)

    def test_insufficient_stock(self, shopper, oil):
        """qty 5 against 3 on hand: nothing is written."""
        with pytest.raises(InsufficientStockError) as exc_info:
            _finalize(shopper, (oil, 5))

        assert exc_info.value.shortfalls == [{
            'product_id': str(oil.id),
            'product_name': 'Mustard Oil 1L',
            'requested': 5,
            'available': 3,
        }]
        oil.refresh_from_db()
        shopper.refresh_from_db()
        assert oil.stock_quantity == 3
        assert shopper.total_purchases == 0
        assert not Bill.objects.exists()
        assert not BillSequence.objects.exists()

    def test_all_shortfalls_reported(self, shopper, oil, lamp):
        with pytest.raises(InsufficientStockError) as exc_info:
            _finalize(shopper, (oil, 4), (lamp, 6))

        assert {s['product_id'] for s in exc_info.value.shortfalls} == {str(oil.id), str(lamp.id)}

    def test_duplicate_lines_checked_on_combined_quantity(self, shopper, oil):
        with pytest.raises(InsufficientStockError) as exc_info:
            _finalize(shopper, (oil, 2), (oil, 2))

        assert exc_info.value.shortfalls[0]['requested'] == 4

    def test_duplicate_lines_kept_as_separate_items(self, shopper, oil):
        bill = _finalize(shopper, (oil, 1), (oil, 2))

        assert bill.items.count() == 2
        oil.refresh_from_db()
        assert oil.stock_quantity == 0

    def test_unknown_product(self, shopper):
        with pytest.raises(ProductNotFoundError):
            finalize_bill(
                customer_id=shopper.id,
                items=[{'product_id': uuid4(), 'quantity': 1}],
                cashier='till-1',
                payment_method=PaymentMethod.CASH,
            )

    def test_inactive_product(self, shopper, rice):
        rice.is_active = False
        rice.save()

        with pytest.raises(ProductInactiveError):
            _finalize(shopper, (rice, 1))

    def test_unknown_customer(self, rice):
        with pytest.raises(CustomerNotFoundError):
            finalize_bill(
                customer_id=uuid4(),
                items=[{'product_id': rice.id, 'quantity': 1}],
                cashier='till-1',
                payment_method=PaymentMethod.CASH,
            )

    def test_inactive_customer(self, shopper, rice):
        shopper.is_active = False
        shopper.save()

        with pytest.raises(CustomerNotFoundError):
            _finalize(shopper, (rice, 1))

    @pytest.mark.parametrize('overrides', [
        {'items': []},
        {'cashier': '  '},
        {'payment_method': 'cheque'},
        {'loyalty_points_used': -1},
        {'notes': 'x' * 501},
    ])
    def test_invalid_input(self, shopper, rice, overrides):
        with pytest.raises(InvalidInputError):
            _finalize(shopper, (rice, 1), **overrides)

    def test_invalid_line_quantity(self, shopper, rice):
        with pytest.raises(InvalidInputError):
            finalize_bill(
                customer_id=shopper.id,
                items=[{'product_id': rice.id, 'quantity': 0}],
                cashier='till-1',
                payment_method=PaymentMethod.CASH,
            )

    def test_lost_stock_race_rolls_back_everything(self, shopper, rice):
        """Stock taken by a concurrent bill between check and decrement."""
        shortfall = StockShortError('gone', product_id=rice.id, requested=2, available=0)

        with patch(
            'apps.billing.services.collaborators.product_store.decrement_stock',
            side_effect=shortfall,
        ):
            with pytest.raises(InsufficientStockError) as exc_info:
                _finalize(shopper, (rice, 2))

        assert exc_info.value.shortfalls[0]['available'] == 0
        shopper.refresh_from_db()
        assert shopper.total_purchases == 0
        assert not Bill.objects.exists()
        assert not BillSequence.objects.exists()

    def test_collaborator_failure(self, shopper, rice):
        with patch(
            'apps.billing.services.collaborators.customer_store.apply_purchase',
            side_effect=DatabaseError('connection lost'),
        ):
            with pytest.raises(CollaboratorFailureError):
                _finalize(shopper, (rice, 2))

        rice.refresh_from_db()
        assert rice.stock_quantity == 10
        assert not Bill.objects.exists()


# =============================================================================
# Payments
# =============================================================================

@pytest.mark.django_db
class TestApplyPayment:

    def test_partial_then_full_then_settled(self, unpaid_bill):
        """Grand total ₹1000: pay 600, then 400, then nothing more."""
        bill = apply_payment(bill_id=unpaid_bill.id, method=PaymentMethod.CASH, amount=Decimal('600'))
        assert bill.payment_status == PaymentStatus.PARTIAL
        assert bill.amount_due_paise == 400_00

        bill = apply_payment(bill_id=unpaid_bill.id, method=PaymentMethod.CASH, amount=Decimal('400'))
        assert bill.payment_status == PaymentStatus.PAID
        assert bill.amount_due_paise == 0
        assert bill.payments.count() == 2

        with pytest.raises(AlreadySettledError):
            apply_payment(bill_id=unpaid_bill.id, method=PaymentMethod.CASH, amount=Decimal('1'))

    def test_overpayment_rejected(self, unpaid_bill):
        with pytest.raises(OverpaymentError) as exc_info:
            apply_payment(bill_id=unpaid_bill.id, method=PaymentMethod.CARD, amount=Decimal('1000.01'))

        assert exc_info.value.detail['available'] == 1000_00
        unpaid_bill.refresh_from_db()
        assert unpaid_bill.amount_paid_paise == 0
        assert not unpaid_bill.payments.exists()

    @pytest.mark.parametrize('amount', [Decimal('0'), Decimal('-5'), Decimal('0.001')])
    def test_invalid_amount(self, unpaid_bill, amount):
        with pytest.raises(InvalidInputError):
            apply_payment(bill_id=unpaid_bill.id, method=PaymentMethod.CASH, amount=amount)

    def test_multiple_is_not_a_payment_method(self, unpaid_bill):
        with pytest.raises(InvalidInputError):
            apply_payment(bill_id=unpaid_bill.id, method=PaymentMethod.MULTIPLE, amount=Decimal('1'))

    def test_second_method_marks_bill_multiple(self, unpaid_bill):
        apply_payment(bill_id=unpaid_bill.id, method=PaymentMethod.CASH, amount=Decimal('100'))
        bill = apply_payment(
            bill_id=unpaid_bill.id,
            method=PaymentMethod.UPI,
            amount=Decimal('100'),
            reference='UPI-991',
        )

        assert bill.payment_method == PaymentMethod.MULTIPLE
        assert bill.version == 2

    def test_cancelled_bill_rejects_payment(self, unpaid_bill):
        cancel_bill(bill_id=unpaid_bill.id, reason='Customer left')

        with pytest.raises(InvalidStateTransitionError):
            apply_payment(bill_id=unpaid_bill.id, method=PaymentMethod.CASH, amount=Decimal('10'))

    def test_unknown_bill(self, db):
        with pytest.raises(BillNotFoundError):
            apply_payment(bill_id=uuid4(), method=PaymentMethod.CASH, amount=Decimal('10'))


# =============================================================================
# Cancellation
# =============================================================================

@pytest.mark.django_db
class TestCancelBill:

    def test_cannot_cancel_paid_bill(self, paid_bill):
        with pytest.raises(CannotCancelPaidBillError):
            cancel_bill(bill_id=paid_bill.id, reason='Changed mind')

        paid_bill.refresh_from_db()
        assert paid_bill.status == BillStatus.COMPLETED

    def test_cancel_pending_bill_reverses_sale(self, shopper, rice, oil):
        bill = _finalize(shopper, (rice, 3), (oil, 2))

        cancelled = cancel_bill(bill_id=bill.id, reason='Card declined')

        assert cancelled.status == BillStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        assert cancelled.cancellation_reason == 'Card declined'
        assert cancelled.notes.endswith('Cancelled: Card declined')

        rice.refresh_from_db()
        oil.refresh_from_db()
        shopper.refresh_from_db()
        assert (rice.stock_quantity, rice.sales_count) == (10, 0)
        assert (oil.stock_quantity, oil.sales_count) == (3, 0)
        assert shopper.total_purchases == 0
        assert shopper.total_spent_paise == 0
        assert shopper.average_order_value_paise == 0
        assert shopper.loyalty_points == 0

    def test_cancel_partially_paid_bill(self, unpaid_bill):
        apply_payment(bill_id=unpaid_bill.id, method=PaymentMethod.CASH, amount=Decimal('100'))

        bill = cancel_bill(bill_id=unpaid_bill.id, reason='Dispute')

        assert bill.status == BillStatus.CANCELLED

    def test_cancel_returns_redeemed_points(self, points_shopper, lamp):
        bill = _finalize(points_shopper, (lamp, 1), loyalty_points_used=200)

        cancel_bill(bill_id=bill.id, reason='Wrong customer')

        points_shopper.refresh_from_db()
        assert points_shopper.loyalty_points == 600

    def test_notes_are_appended(self, shopper, rice):
        bill = _finalize(shopper, (rice, 1), notes='Gift wrap')

        cancelled = cancel_bill(bill_id=bill.id, reason='No stock of wrap')

        assert cancelled.notes == 'Gift wrap\nCancelled: No stock of wrap'

    def test_cancellation_note_keeps_notes_within_limit(self, shopper, rice, settings):
        bill = _finalize(shopper, (rice, 1), notes='n' * settings.BILLING_NOTES_MAX_LENGTH)
        reason = 'r' * 200

        cancelled = cancel_bill(bill_id=bill.id, reason=reason)

        assert len(cancelled.notes) <= settings.BILLING_NOTES_MAX_LENGTH
        assert cancelled.notes.startswith('nnn')
        assert cancelled.notes.endswith(f"\nCancelled: {reason}")

    def test_customer_locked_before_stock_restored(self, shopper, rice, oil):
        bill = _finalize(shopper, (oil, 1), (rice, 2))
        calls = []
        real_get_customer = collaborators.customer_store.get_customer
        real_restore_stock = collaborators.product_store.restore_stock

        def get_customer(**kwargs):
            calls.append(('customer', kwargs.get('for_update')))
            return real_get_customer(**kwargs)

        def restore_stock(**kwargs):
            calls.append(('stock', str(kwargs['product_id'])))
            return real_restore_stock(**kwargs)

        with patch.object(collaborators.customer_store, 'get_customer', side_effect=get_customer), \
                patch.object(collaborators.product_store, 'restore_stock', side_effect=restore_stock):
            cancel_bill(bill_id=bill.id, reason='Changed mind')

        assert calls[0] == ('customer', True)
        assert [c[1] for c in calls[1:]] == sorted([str(rice.id), str(oil.id)])

    def test_cancel_draft_leaves_customer_alone(self, draft_bill, shopper):
        bill = cancel_bill(bill_id=draft_bill.id, reason='Abandoned cart')

        assert bill.status == BillStatus.CANCELLED
        shopper.refresh_from_db()
        assert shopper.total_purchases == 0

    def test_cancel_twice(self, unpaid_bill):
        cancel_bill(bill_id=unpaid_bill.id, reason='First')

        with pytest.raises(InvalidStateTransitionError):
            cancel_bill(bill_id=unpaid_bill.id, reason='Second')

    @pytest.mark.parametrize('reason', ['', '   ', None, 'x' * 201])
    def test_reason_required(self, unpaid_bill, reason):
        with pytest.raises(InvalidInputError):
            cancel_bill(bill_id=unpaid_bill.id, reason=reason)

    def test_unknown_bill(self, db):
        with pytest.raises(BillNotFoundError):
            cancel_bill(bill_id=uuid4(), reason='Missing')

    def test_finalize_then_cancel_round_trip(self, points_shopper, rice, lamp):
        before = (points_shopper.loyalty_points, points_shopper.total_spent_paise)

        bill = _finalize(
            points_shopper,
            (rice, 2),
            (lamp, 1),
            loyalty_points_used=100,
            delivery_charge=Decimal('25.50'),
        )
        cancel_bill(bill_id=bill.id, reason='Testing reversal')

        points_shopper.refresh_from_db()
        rice.refresh_from_db()
        lamp.refresh_from_db()
        assert (points_shopper.loyalty_points, points_shopper.total_spent_paise) == before
        assert points_shopper.total_purchases == 0
        assert rice.stock_quantity == 10
        assert lamp.stock_quantity == 5


# =============================================================================
# Refunds
# =============================================================================

@pytest.mark.django_db
class TestRefundBillItems:

    def _item(self, bill, sku):
        return bill.items.get(sku=sku)

    def test_partial_refund(self, paid_bill, shopper, rice):
        rice_line = self._item(paid_bill, 'RICE-1KG')

        bill = refund_bill_items(
            bill_id=paid_bill.id,
            items=[{'item_id': rice_line.id, 'quantity': 1}],
            reason='Damaged bag',
        )

        assert bill.status == BillStatus.PARTIAL_REFUND
        assert bill.amount_refunded_paise == 118_00
        # floor(5 * 118 / 554)
        assert bill.loyalty_points_reversed == 1

        rice_line.refresh_from_db()
        assert rice_line.quantity_refunded == 1
        refund = BillItemRefund.objects.get(bill=bill)
        assert refund.amount_paise == 118_00

        rice.refresh_from_db()
        assert rice.stock_quantity == 8

        shopper.refresh_from_db()
        assert shopper.total_purchases == 1
        assert shopper.total_spent_paise == 554_00 - 118_00
        assert shopper.loyalty_points == 4

    def test_full_refund_in_steps_reverses_customer_exactly(self, paid_bill, shopper, rice, oil):
        rice_line = self._item(paid_bill, 'RICE-1KG')
        oil_line = self._item(paid_bill, 'OIL-1L')

        refund_bill_items(
            bill_id=paid_bill.id,
            items=[{'item_id': rice_line.id, 'quantity': 1}],
            reason='Damaged bag',
        )
        bill = refund_bill_items(
            bill_id=paid_bill.id,
            items=[
                {'item_id': rice_line.id, 'quantity': 2},
                {'item_id': oil_line.id, 'quantity': 1},
            ],
            reason='Returned rest',
        )

        assert bill.status == BillStatus.REFUNDED
        assert bill.amount_refunded_paise == bill.grand_total_paise
        assert bill.loyalty_points_reversed == bill.loyalty_points_earned

        shopper.refresh_from_db()
        rice.refresh_from_db()
        oil.refresh_from_db()
        assert shopper.total_purchases == 0
        assert shopper.total_spent_paise == 0
        assert shopper.loyalty_points == 0
        assert rice.stock_quantity == 10
        assert oil.stock_quantity == 3

    def test_customer_locked_before_stock_restored(self, paid_bill, rice, oil):
        rice_line = self._item(paid_bill, 'RICE-1KG')
        oil_line = self._item(paid_bill, 'OIL-1L')
        calls = []
        real_get_customer = collaborators.customer_store.get_customer
        real_restore_stock = collaborators.product_store.restore_stock

        def get_customer(**kwargs):
            calls.append(('customer', kwargs.get('for_update')))
            return real_get_customer(**kwargs)

        def restore_stock(**kwargs):
            calls.append(('stock', str(kwargs['product_id'])))
            return real_restore_stock(**kwargs)

        with patch.object(collaborators.customer_store, 'get_customer', side_effect=get_customer), \
                patch.object(collaborators.product_store, 'restore_stock', side_effect=restore_stock):
            refund_bill_items(
                bill_id=paid_bill.id,
                items=[
                    {'item_id': rice_line.id, 'quantity': 1},
                    {'item_id': oil_line.id, 'quantity': 1},
                ],
                reason='Wrong brand',
            )

        assert calls[0] == ('customer', True)
        assert [c[1] for c in calls[1:]] == sorted([str(rice.id), str(oil.id)])

    def test_refund_in_one_go(self, paid_bill):
        bill = refund_bill_items(
            bill_id=paid_bill.id,
            items=[{'item_id': item.id, 'quantity': item.quantity} for item in paid_bill.items.all()],
            reason='Everything back',
        )
        assert bill.status == BillStatus.REFUNDED

    def test_quantity_above_remaining(self, paid_bill):
        oil_line = self._item(paid_bill, 'OIL-1L')

        with pytest.raises(InvalidInputError):
            refund_bill_items(
                bill_id=paid_bill.id,
                items=[{'item_id': oil_line.id, 'quantity': 2}],
                reason='Too many',
            )

    def test_item_from_another_bill(self, paid_bill):
        with pytest.raises(InvalidInputError):
            refund_bill_items(
                bill_id=paid_bill.id,
                items=[{'item_id': uuid4(), 'quantity': 1}],
                reason='Unknown line',
            )

    def test_unpaid_bill_cannot_be_refunded(self, unpaid_bill):
        item = unpaid_bill.items.get()

        with pytest.raises(InvalidStateTransitionError):
            refund_bill_items(
                bill_id=unpaid_bill.id,
                items=[{'item_id': item.id, 'quantity': 1}],
                reason='Not paid',
            )

    def test_refunded_bill_is_terminal(self, paid_bill):
        items = [{'item_id': item.id, 'quantity': item.quantity} for item in paid_bill.items.all()]
        refund_bill_items(bill_id=paid_bill.id, items=items, reason='All back')

        with pytest.raises(InvalidStateTransitionError):
            refund_bill_items(bill_id=paid_bill.id, items=items, reason='Again')
        with pytest.raises(AlreadySettledError):
            apply_payment(bill_id=paid_bill.id, method=PaymentMethod.CASH, amount=Decimal('1'))

    def test_partial_refund_blocks_cancellation(self, paid_bill):
        rice_line = self._item(paid_bill, 'RICE-1KG')
        refund_bill_items(
            bill_id=paid_bill.id,
            items=[{'item_id': rice_line.id, 'quantity': 1}],
            reason='Damaged bag',
        )

        with pytest.raises(InvalidStateTransitionError):
            cancel_bill(bill_id=paid_bill.id, reason='Too late')


# =============================================================================
# Numbering and queries
# =============================================================================

@pytest.mark.django_db
class TestBillNumbering:

    def test_format_and_sequence(self, shopper, rice):
        today = timezone.localdate().strftime('%Y%m%d')

        first = _finalize(shopper, (rice, 1))
        second = _finalize(shopper, (rice, 1))

        assert first.bill_number == f'INV{today}0001'
        assert second.bill_number == f'INV{today}0002'

    def test_numbers_not_reused_after_cancellation(self, shopper, rice):
        first = _finalize(shopper, (rice, 1))
        cancel_bill(bill_id=first.id, reason='Void')

        second = _finalize(shopper, (rice, 1))

        assert second.bill_number > first.bill_number

    def test_sequence_per_day(self, db):
        day_one = timezone.now()
        day_two = day_one + timedelta(days=1)

        assert next_bill_number(when=day_one).endswith('0001')
        assert next_bill_number(when=day_two).endswith('0001')
        assert next_bill_number(when=day_one).endswith('0002')


@pytest.mark.django_db
class TestBillQueries:

    def test_get_bill(self, unpaid_bill):
        bill = get_bill(bill_id=unpaid_bill.id)
        assert bill == unpaid_bill
        assert len(bill.items.all()) == 1

    def test_get_unknown_bill(self, db):
        with pytest.raises(BillNotFoundError):
            get_bill(bill_id='not-a-uuid')

    def test_list_filters(self, unpaid_bill, paid_bill, shopper):
        assert list(list_bills(payment_status=PaymentStatus.PAID)) == [paid_bill]
        assert list(list_bills(payment_status=PaymentStatus.PENDING)) == [unpaid_bill]
        assert list_bills(customer_id=shopper.id).count() == 2
        assert list_bills(cashier='TILL').count() == 2
        assert list_bills(cashier='till-9').count() == 0
        assert list_bills(status=BillStatus.CANCELLED).count() == 0

    def test_list_newest_first(self, unpaid_bill, paid_bill):
        assert list(list_bills()) == [paid_bill, unpaid_bill]

    def test_list_date_range(self, unpaid_bill):
        today = timezone.localdate()
        assert list_bills(date_from=today, date_to=today).count() == 1
        assert list_bills(date_from=today + timedelta(days=1)).count() == 0
