from decimal import Decimal

from rest_framework import serializers

from apps.customers.models import Customer
from .models import (
    Bill,
    BillItem,
    BillItemRefund,
    BillPayment,
    BillStatus,
    PaymentMethod,
    PaymentStatus,
)
from .pricing import to_rupees
from .services.inputs import PAYMENT_RECORD_METHODS, REASON_MAX_LENGTH, REFERENCE_MAX_LENGTH


class PaiseField(serializers.Field):
    """Read-only integer paise rendered as a two-place rupee string."""

    def __init__(self, **kwargs):
        kwargs['read_only'] = True
        super().__init__(**kwargs)

    def to_representation(self, value):
        return str(to_rupees(value))


PAYMENT_RECORD_CHOICES = [
    (value, label) for value, label in PaymentMethod.choices
    if value in PAYMENT_RECORD_METHODS
]


# =============================================================================
# Input Serializers
# =============================================================================

class BillFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for bill filtering.

    Query Parameters:
        status (str): Lifecycle status
        payment_status (str): pending / partial / paid
        customer (UUID): Filter by customer ID
        cashier (str): Case-insensitive cashier name fragment
        date_from (date): Bills from this date
        date_to (date): Bills up to this date
    """

    status = serializers.ChoiceField(choices=BillStatus.choices, required=False)
    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices, required=False)
    customer = serializers.UUIDField(required=False)
    cashier = serializers.CharField(max_length=150, required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        """Validate date range."""
        date_from = attrs.get('date_from')
        date_to = attrs.get('date_to')

        if date_from and date_to:
            if date_from > date_to:
                raise serializers.ValidationError({
                    'date_to': 'End date must be after start date'
                })

        return attrs


class BillItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    discount_percentage = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal('0.00'),
        max_value=Decimal('100.00'),
        default=Decimal('0.00')
    )


class PaymentInputSerializer(serializers.Serializer):
    """
    Validate a single payment.

    Fields:
        method (str): cash, card, upi, net_banking, wallet or credit
        amount (Decimal): Rupees, at least 0.01
        reference (str): Optional transaction reference
    """

    method = serializers.ChoiceField(choices=PAYMENT_RECORD_CHOICES)
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal('0.01')
    )
    reference = serializers.CharField(
        max_length=REFERENCE_MAX_LENGTH,
        required=False,
        allow_blank=True,
        default=''
    )


class BillCreateSerializer(serializers.Serializer):
    """
    Validate input for finalizing a bill.

    ``cashier`` defaults to the requesting user's username.
    """

    customer_id = serializers.UUIDField()
    items = BillItemInputSerializer(many=True, allow_empty=False)
    cashier = serializers.CharField(max_length=150, required=False)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    payment_details = PaymentInputSerializer(many=True, required=False)
    loyalty_points_used = serializers.IntegerField(min_value=0, default=0)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    delivery_charge = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal('0.00'),
        default=Decimal('0.00')
    )


class BillCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=REASON_MAX_LENGTH)


class RefundItemInputSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class BillRefundSerializer(serializers.Serializer):
    items = RefundItemInputSerializer(many=True, allow_empty=False)
    reason = serializers.CharField(max_length=REASON_MAX_LENGTH)


# =============================================================================
# Output Serializers
# =============================================================================

class CustomerMinimalSerializer(serializers.ModelSerializer):
    """Minimal customer info for nested serialization."""

    full_name = serializers.CharField(source='get_full_name', read_only=True)

    class Meta:
        model = Customer
        fields = ['id', 'full_name', 'phone', 'customer_type', 'loyalty_points']
        read_only_fields = fields


class BillItemSerializer(serializers.ModelSerializer):
    """Line item with snapshot pricing."""

    product = serializers.UUIDField(source='product_id', read_only=True, allow_null=True)
    unit_price = PaiseField(source='unit_price_paise')
    discount_amount = PaiseField(source='discount_amount_paise')
    tax_amount = PaiseField(source='tax_amount_paise')
    line_total = PaiseField(source='line_total_paise')

    class Meta:
        model = BillItem
        fields = [
            'id',
            'product',
            'product_name',
            'sku',
            'unit',
            'quantity',
            'unit_price',
            'discount_percentage',
            'discount_amount',
            'tax_rate',
            'tax_amount',
            'line_total',
            'quantity_refunded',
        ]
        read_only_fields = fields


class BillPaymentSerializer(serializers.ModelSerializer):
    amount = PaiseField(source='amount_paise')

    class Meta:
        model = BillPayment
        fields = ['id', 'method', 'amount', 'reference', 'status', 'created_at']
        read_only_fields = fields


class BillItemRefundSerializer(serializers.ModelSerializer):
    amount = PaiseField(source='amount_paise')

    class Meta:
        model = BillItemRefund
        fields = ['id', 'bill_item', 'quantity_refunded', 'amount', 'reason', 'created_at']
        read_only_fields = fields


class BillListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for bill lists."""

    customer_name = serializers.CharField(source='customer.get_full_name', read_only=True)
    grand_total = PaiseField(source='grand_total_paise')
    amount_due = PaiseField(source='amount_due_paise')

    class Meta:
        model = Bill
        fields = [
            'id',
            'bill_number',
            'customer',
            'customer_name',
            'status',
            'payment_status',
            'payment_method',
            'grand_total',
            'amount_due',
            'cashier',
            'bill_date',
        ]
        read_only_fields = fields


class BillSerializer(serializers.ModelSerializer):
    """Full bill with lines, payments and refunds."""

    customer = CustomerMinimalSerializer(read_only=True)
    items = BillItemSerializer(many=True, read_only=True)
    payments = BillPaymentSerializer(many=True, read_only=True)
    refunds = BillItemRefundSerializer(source='item_refunds', many=True, read_only=True)

    subtotal = PaiseField(source='subtotal_paise')
    total_discount = PaiseField(source='total_discount_paise')
    total_tax = PaiseField(source='total_tax_paise')
    delivery_charge = PaiseField(source='delivery_charge_paise')
    grand_total = PaiseField(source='grand_total_paise')
    amount_paid = PaiseField(source='amount_paid_paise')
    amount_due = PaiseField(source='amount_due_paise')
    amount_refunded = PaiseField(source='amount_refunded_paise')
    remaining_balance = PaiseField(source='remaining_balance_paise')
    total_items = serializers.IntegerField(read_only=True)

    class Meta:
        model = Bill
        fields = [
            'id',
            'bill_number',
            'bill_type',
            'customer',
            'status',
            'items',
            'total_items',
            'subtotal',
            'total_discount',
            'total_tax',
            'delivery_charge',
            'grand_total',
            'loyalty_points_used',
            'loyalty_points_earned',
            'loyalty_points_reversed',
            'payment_method',
            'payment_status',
            'amount_paid',
            'amount_due',
            'amount_refunded',
            'remaining_balance',
            'payments',
            'refunds',
            'cashier',
            'bill_date',
            'completed_at',
            'cancelled_at',
            'cancellation_reason',
            'notes',
            'original_bill',
            'version',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields
