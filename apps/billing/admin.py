# ==========================================
# apps/billing/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html

from .models import Bill, BillItem, BillPayment, BillItemRefund, BillStatus, PaymentStatus
from .pricing import to_rupees


def _badge(bg, fg, label):
    return format_html(
        '<span style="background: {}; color: {}; padding: 3px 8px; '
        'border-radius: 10px; font-size: 11px;">{}</span>',
        bg, fg, label
    )


class ReadOnlyInline(admin.TabularInline):
    """Inline rows are written by the billing services only."""
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class BillItemInline(ReadOnlyInline):
    model = BillItem
    fields = [
        'position',
        'product_name',
        'sku',
        'quantity',
        'quantity_refunded',
        'get_unit_price',
        'discount_percentage',
        'tax_rate',
        'get_line_total',
    ]
    readonly_fields = fields

    def get_unit_price(self, obj):
        return to_rupees(obj.unit_price_paise)
    get_unit_price.short_description = 'Unit Price (₹)'

    def get_line_total(self, obj):
        return to_rupees(obj.line_total_paise)
    get_line_total.short_description = 'Line Total (₹)'


class BillPaymentInline(ReadOnlyInline):
    model = BillPayment
    fields = ['method', 'get_amount', 'reference', 'status', 'created_at']
    readonly_fields = fields

    def get_amount(self, obj):
        return to_rupees(obj.amount_paise)
    get_amount.short_description = 'Amount (₹)'


class BillItemRefundInline(ReadOnlyInline):
    model = BillItemRefund
    fields = ['bill_item', 'quantity_refunded', 'get_amount', 'reason', 'created_at']
    readonly_fields = fields

    def get_amount(self, obj):
        return to_rupees(obj.amount_paise)
    get_amount.short_description = 'Amount (₹)'


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    """
    Admin interface for Bills.

    Bills are read-only here: totals, payments, cancellation and refunds
    all go through the settlement services so stock and customer records
    stay consistent.
    """

    list_display = [
        'bill_number',
        'customer',
        'get_grand_total',
        'status_badge',
        'payment_status_badge',
        'payment_method',
        'cashier',
        'bill_date',
    ]

    list_filter = [
        'status',
        'payment_status',
        'payment_method',
        'bill_date',
    ]

    search_fields = [
        'bill_number',
        'customer__first_name',
        'customer__last_name',
        'customer__phone',
        'cashier',
    ]

    inlines = [BillItemInline, BillPaymentInline, BillItemRefundInline]
    date_hierarchy = 'bill_date'
    ordering = ['-bill_date']

    fieldsets = (
        ('Bill', {
            'fields': (
                'bill_number',
                'bill_type',
                'customer',
                'cashier',
                'bill_date',
                'status',
            )
        }),
        ('Totals (paise)', {
            'fields': (
                'subtotal_paise',
                'total_discount_paise',
                'total_tax_paise',
                'delivery_charge_paise',
                'grand_total_paise',
            )
        }),
        ('Payment', {
            'fields': (
                'payment_method',
                'payment_status',
                'amount_paid_paise',
                'amount_due_paise',
                'amount_refunded_paise',
            )
        }),
        ('Loyalty', {
            'fields': (
                'loyalty_points_used',
                'loyalty_points_earned',
                'loyalty_points_reversed',
            ),
            'classes': ('collapse',),
        }),
        ('Notes', {
            'fields': ('notes', 'cancellation_reason', 'cancelled_at', 'completed_at'),
            'classes': ('collapse',),
        }),
        ('Metadata', {
            'fields': ('original_bill', 'version', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in Bill._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def get_grand_total(self, obj):
        return f"₹{to_rupees(obj.grand_total_paise)}"
    get_grand_total.short_description = 'Grand Total'
    get_grand_total.admin_order_field = 'grand_total_paise'

    def status_badge(self, obj):
        """Display lifecycle status as colored badge."""
        colors = {
            BillStatus.DRAFT: ('#E5E5E5', '#333'),
            BillStatus.COMPLETED: ('#6B8E5E', 'white'),
            BillStatus.CANCELLED: ('#B85C5C', 'white'),
            BillStatus.REFUNDED: ('#A47449', 'white'),
            BillStatus.PARTIAL_REFUND: ('#E5C49A', '#2C1810'),
        }
        bg, fg = colors.get(obj.status, ('#ccc', '#666'))
        return _badge(bg, fg, obj.get_status_display())
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'

    def payment_status_badge(self, obj):
        """Display payment status, with the amount due when not paid."""
        if obj.payment_status == PaymentStatus.PAID:
            return _badge('#6B8E5E', 'white', 'Paid')
        return _badge('#E5C49A', '#2C1810', f"-₹{to_rupees(obj.amount_due_paise)}")
    payment_status_badge.short_description = 'Payment'
    payment_status_badge.admin_order_field = 'payment_status'

    def get_queryset(self, request):
        """Optimize query with select_related."""
        qs = super().get_queryset(request)
        return qs.select_related('customer')
