from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
from django.utils import timezone
from decimal import Decimal
import uuid

from .pricing import PricedLine, PAISE_PER_POINT, payment_position


class BillStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'
    REFUNDED = 'refunded', 'Refunded'
    PARTIAL_REFUND = 'partial_refund', 'Partial Refund'


class PaymentStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    PARTIAL = 'partial', 'Partial'
    PAID = 'paid', 'Paid'


class PaymentMethod(models.TextChoices):
    CASH = 'cash', 'Cash'
    CARD = 'card', 'Card'
    UPI = 'upi', 'UPI'
    NET_BANKING = 'net_banking', 'Net Banking'
    WALLET = 'wallet', 'Wallet'
    CREDIT = 'credit', 'Credit'
    MULTIPLE = 'multiple', 'Multiple'


class PaymentRecordStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'


class BillType(models.TextChoices):
    SALE = 'sale', 'Sale'
    RETURN = 'return', 'Return'


PERCENT_VALIDATORS = [MinValueValidator(Decimal('0.00')), MaxValueValidator(Decimal('100.00'))]


class Bill(models.Model):
    """
    Customer invoice (aggregate root).

    Bills are never deleted; cancellation and refunds are status changes.
    Totals are written by the billing services through ``apply_totals`` and
    ``refresh_payment_position`` after every mutation; ``save`` itself never
    recomputes anything.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Human-readable number: INV<YYYYMMDD><NNNN>
    bill_number = models.CharField(max_length=32, unique=True, editable=False)
    bill_type = models.CharField(max_length=20, choices=BillType.choices, default=BillType.SALE)

    customer = models.ForeignKey(
        'customers.Customer',
        on_delete=models.PROTECT,
        related_name='bills'
    )

    # Financial summary (paise)
    subtotal_paise = models.PositiveBigIntegerField(default=0)
    total_discount_paise = models.PositiveBigIntegerField(default=0)
    total_tax_paise = models.PositiveBigIntegerField(default=0)
    delivery_charge_paise = models.PositiveBigIntegerField(default=0)
    grand_total_paise = models.PositiveBigIntegerField(default=0)

    # Loyalty
    loyalty_points_used = models.PositiveIntegerField(default=0)
    loyalty_points_earned = models.PositiveIntegerField(default=0)
    loyalty_points_reversed = models.PositiveIntegerField(default=0)

    # Payment tracking
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING
    )
    amount_paid_paise = models.PositiveBigIntegerField(default=0)
    amount_due_paise = models.PositiveBigIntegerField(default=0)
    amount_refunded_paise = models.PositiveBigIntegerField(default=0)

    # Lifecycle
    status = models.CharField(max_length=20, choices=BillStatus.choices, default=BillStatus.DRAFT)
    cashier = models.CharField(max_length=150)
    bill_date = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)

    # Returns link back to the sale they reverse
    original_bill = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='returns'
    )

    # Bumped on every settlement mutation
    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'bills'
        indexes = [
            models.Index(fields=['customer', '-bill_date'], name='bills_customer_date_idx'),
            models.Index(fields=['status', 'payment_status'], name='bills_status_idx'),
            models.Index(fields=['-bill_date'], name='bills_date_idx'),
            models.Index(fields=['cashier'], name='bills_cashier_idx'),
        ]
        ordering = ['-bill_date', '-created_at']

    def __str__(self):
        return f"{self.bill_number} - {self.grand_total_paise / 100:.2f} ({self.status})"

    @property
    def loyalty_points_value_paise(self):
        return self.loyalty_points_used * PAISE_PER_POINT

    @property
    def remaining_balance_paise(self):
        """grand total - amount paid - redeemed points, floored at zero."""
        return max(
            0,
            self.grand_total_paise - self.amount_paid_paise - self.loyalty_points_value_paise
        )

    @property
    def total_items(self):
        return sum(item.quantity for item in self.items.all())

    def apply_totals(self, totals):
        """Copy aggregator output onto the bill (does not save)."""
        self.subtotal_paise = totals.subtotal_paise
        self.total_discount_paise = totals.total_discount_paise
        self.total_tax_paise = totals.total_tax_paise
        self.delivery_charge_paise = totals.delivery_charge_paise
        self.grand_total_paise = totals.grand_total_paise

    def refresh_payment_position(self):
        """Re-derive payment status and amount due (does not save)."""
        position = payment_position(
            grand_total_paise=self.grand_total_paise,
            amount_paid_paise=self.amount_paid_paise,
            loyalty_points_used=self.loyalty_points_used,
        )
        self.payment_status = position.payment_status
        self.amount_due_paise = position.amount_due_paise
        return position


class BillItem(models.Model):
    """
    Priced line of a bill.

    Product name, SKU, unit, unit price and tax rate are snapshots taken
    when the bill is created; later product edits never change them.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    bill = models.ForeignKey(
        Bill,
        on_delete=models.CASCADE,
        related_name='items'
    )
    position = models.PositiveSmallIntegerField(default=0)

    product = models.ForeignKey(
        'products.Product',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='bill_items'
    )

    # Snapshot
    product_name = models.CharField(max_length=100)
    sku = models.CharField(max_length=50)
    unit = models.CharField(max_length=20)
    unit_price_paise = models.PositiveBigIntegerField()
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    discount_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=PERCENT_VALIDATORS
    )

    # Derived (paise)
    discount_amount_paise = models.PositiveBigIntegerField(default=0)
    tax_amount_paise = models.PositiveBigIntegerField(default=0)
    line_total_paise = models.PositiveBigIntegerField(default=0)

    quantity_refunded = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'bill_items'
        ordering = ['bill', 'position']

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"

    @property
    def gross_paise(self):
        return self.quantity * self.unit_price_paise

    @property
    def remaining_quantity(self):
        return self.quantity - self.quantity_refunded

    def as_priced_line(self):
        """Stored figures as a ``PricedLine`` for re-aggregation."""
        return PricedLine(
            gross_paise=self.gross_paise,
            discount_paise=self.discount_amount_paise,
            tax_paise=self.tax_amount_paise,
            total_paise=self.line_total_paise,
        )


class BillPayment(models.Model):
    """Payment applied to a bill."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    bill = models.ForeignKey(
        Bill,
        on_delete=models.CASCADE,
        related_name='payments'
    )
    method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    amount_paise = models.PositiveBigIntegerField(validators=[MinValueValidator(1)])
    # Transaction ID, card last 4 digits, etc.
    reference = models.CharField(max_length=100, blank=True)
    status = models.CharField(
        max_length=20,
        choices=PaymentRecordStatus.choices,
        default=PaymentRecordStatus.COMPLETED
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'bill_payments'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.method} {self.amount_paise / 100:.2f} ({self.status})"


class BillItemRefund(models.Model):
    """Append-only record of units refunded from a bill line."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    bill = models.ForeignKey(
        Bill,
        on_delete=models.PROTECT,
        related_name='item_refunds'
    )
    bill_item = models.ForeignKey(
        BillItem,
        on_delete=models.PROTECT,
        related_name='refunds'
    )
    quantity_refunded = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    # Priced from the line's snapshot figures
    amount_paise = models.PositiveBigIntegerField()
    reason = models.CharField(max_length=200)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'bill_item_refunds'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.bill_item.product_name} x {self.quantity_refunded} refunded"


class BillSequence(models.Model):
    """Last daily sequence number issued; numbers are never reused."""

    day = models.DateField(unique=True)
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'bill_sequences'

    def __str__(self):
        return f"{self.day}: {self.last_value}"
