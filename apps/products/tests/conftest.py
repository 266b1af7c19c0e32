import pytest
from decimal import Decimal

from apps.products.models import Product


@pytest.fixture
def product(db):
    """Create and return a stocked product (₹100, 18% GST)."""
    return Product.objects.create(
        name='Basmati Rice 1kg',
        sku='rice-1kg',
        selling_price_paise=100_00,
        tax_rate=Decimal('18.00'),
        stock_quantity=10,
    )
