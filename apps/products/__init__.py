"""
Products App - Sellable products and stock levels.

Billing reads price, tax rate and stock from here and changes stock only
through ``apps.products.services`` (conditional decrement and restore).
"""
