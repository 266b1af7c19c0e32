import pytest
from decimal import Decimal
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.billing.models import Bill, BillStatus, PaymentMethod
from apps.billing.services import finalize_bill
from apps.customers.models import Customer, CustomerTier
from apps.products.models import Product


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def cashier_user(db):
    """Create and return a till operator."""
    return get_user_model().objects.create_user(
        username='till-1',
        password='TestPass123!',
    )


@pytest.fixture
def cashier_client(api_client, cashier_user):
    """Return API client authenticated as the cashier."""
    refresh = RefreshToken.for_user(cashier_user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client


@pytest.fixture
def shopper(db):
    """Create and return a new-tier customer without loyalty points."""
    return Customer.objects.create(
        first_name='Asha',
        last_name='Verma',
        email='asha@example.com',
        phone='9876543210',
    )


@pytest.fixture
def points_shopper(db):
    """Create and return a customer holding 600 loyalty points."""
    return Customer.objects.create(
        first_name='Kiran',
        last_name='Rao',
        email='kiran@example.com',
        phone='9988776655',
        loyalty_points=600,
    )


@pytest.fixture
def vip_shopper(db):
    """Create and return a VIP customer."""
    return Customer.objects.create(
        first_name='Rohan',
        last_name='Mehta',
        email='rohan@example.com',
        phone='9123456780',
        customer_type=CustomerTier.VIP,
        total_spent_paise=150_000_00,
        total_purchases=30,
    )


@pytest.fixture
def rice(db):
    """₹100 per unit, 18% GST, 10 in stock."""
    return Product.objects.create(
        name='Basmati Rice 1kg',
        sku='RICE-1KG',
        selling_price_paise=100_00,
        tax_rate=Decimal('18.00'),
        stock_quantity=10,
    )


@pytest.fixture
def oil(db):
    """₹200 per unit, tax free, 3 in stock."""
    return Product.objects.create(
        name='Mustard Oil 1L',
        sku='OIL-1L',
        selling_price_paise=200_00,
        tax_rate=Decimal('0.00'),
        stock_quantity=3,
    )


@pytest.fixture
def lamp(db):
    """₹1000 per unit, tax free, 5 in stock."""
    return Product.objects.create(
        name='LED Lamp',
        sku='LAMP-01',
        selling_price_paise=1000_00,
        tax_rate=Decimal('0.00'),
        stock_quantity=5,
    )


@pytest.fixture
def unpaid_bill(shopper, lamp):
    """Completed ₹1000 bill with nothing paid."""
    return finalize_bill(
        customer_id=shopper.id,
        items=[{'product_id': lamp.id, 'quantity': 1}],
        cashier='till-1',
        payment_method=PaymentMethod.CASH,
    )


@pytest.fixture
def paid_bill(shopper, rice, oil):
    """
    Completed and fully paid bill.

    rice 3 x ₹100 + 18% = ₹354.00, oil 1 x ₹200 = ₹200.00; grand total ₹554.00
    """
    return finalize_bill(
        customer_id=shopper.id,
        items=[
            {'product_id': rice.id, 'quantity': 3},
            {'product_id': oil.id, 'quantity': 1},
        ],
        cashier='till-1',
        payment_method=PaymentMethod.UPI,
        payment_details=[{'method': PaymentMethod.UPI, 'amount': Decimal('554.00')}],
    )


@pytest.fixture
def draft_bill(shopper):
    """A bill still being assembled."""
    return Bill.objects.create(
        bill_number='INV202401010001',
        customer=shopper,
        cashier='till-1',
        payment_method=PaymentMethod.CASH,
        status=BillStatus.DRAFT,
    )
