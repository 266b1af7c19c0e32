# ==========================================
# apps/products/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html

from apps.billing.pricing import to_rupees
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """
    Admin interface for Products.

    Stock is editable here for receiving goods; sales counters are
    maintained by billing and stay read-only.
    """

    list_display = [
        'name',
        'sku',
        'unit',
        'get_selling_price',
        'tax_rate',
        'stock_badge',
        'sales_count',
        'is_active',
    ]

    list_filter = [
        'is_active',
        'unit',
        'tax_rate',
    ]

    search_fields = [
        'name',
        'sku',
    ]

    readonly_fields = [
        'sales_count',
        'last_sold_date',
        'created_at',
        'updated_at',
    ]

    ordering = ['name']

    def get_selling_price(self, obj):
        return f"₹{to_rupees(obj.selling_price_paise)}"
    get_selling_price.short_description = 'Price'
    get_selling_price.admin_order_field = 'selling_price_paise'

    def stock_badge(self, obj):
        """Display stock level as colored badge."""
        if obj.stock_quantity == 0:
            bg, fg = '#B85C5C', 'white'
        elif obj.stock_quantity <= 20:
            bg, fg = '#E5C49A', '#2C1810'
        else:
            bg, fg = '#6B8E5E', 'white'
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, obj.stock_quantity
        )
    stock_badge.short_description = 'Stock'
    stock_badge.admin_order_field = 'stock_quantity'
