# ==========================================
# apps/customers/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html

from apps.billing.pricing import to_rupees
from .models import Customer, CustomerTier


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    """
    Admin interface for Customers.

    Purchase statistics and loyalty balance are maintained by the billing
    services and are read-only here.
    """

    list_display = [
        'get_full_name',
        'email',
        'phone',
        'tier_badge',
        'loyalty_points',
        'get_total_spent',
        'total_purchases',
        'last_purchase_date',
        'is_active',
    ]

    list_filter = [
        'customer_type',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'first_name',
        'last_name',
        'email',
        'phone',
        'membership_number',
    ]

    readonly_fields = [
        'loyalty_points',
        'total_spent_paise',
        'total_purchases',
        'average_order_value_paise',
        'last_purchase_date',
        'created_at',
        'updated_at',
    ]

    fieldsets = (
        ('Personal Information', {
            'fields': (
                'first_name',
                'last_name',
                'email',
                'phone',
            )
        }),
        ('Classification', {
            'fields': (
                'customer_type',
                'membership_number',
                'is_active',
            )
        }),
        ('Purchase Statistics', {
            'fields': (
                'loyalty_points',
                'total_spent_paise',
                'total_purchases',
                'average_order_value_paise',
                'last_purchase_date',
            ),
            'classes': ('collapse',)
        }),
        ('Timestamps', {
            'fields': (
                'created_at',
                'updated_at',
            ),
            'classes': ('collapse',)
        }),
    )

    def get_full_name(self, obj):
        return obj.get_full_name()
    get_full_name.short_description = 'Name'

    def get_total_spent(self, obj):
        return f"₹{to_rupees(obj.total_spent_paise)}"
    get_total_spent.short_description = 'Total Spent'
    get_total_spent.admin_order_field = 'total_spent_paise'

    def tier_badge(self, obj):
        """Display tier as colored badge."""
        colors = {
            CustomerTier.NEW: ('#E5E5E5', '#333'),
            CustomerTier.REGULAR: ('#9AB8E5', '#1A2C48'),
            CustomerTier.LOYAL: ('#6B8E5E', 'white'),
            CustomerTier.VIP: ('#A47449', 'white'),
        }
        bg, fg = colors.get(obj.customer_type, ('#ccc', '#666'))
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, obj.get_customer_type_display()
        )
    tier_badge.short_description = 'Tier'
    tier_badge.admin_order_field = 'customer_type'
