import pytest

from apps.customers.models import Customer, CustomerTier


@pytest.fixture
def customer(db):
    """Create and return a new-tier customer with some loyalty points."""
    return Customer.objects.create(
        first_name='Asha',
        last_name='Verma',
        email='asha@example.com',
        phone='9876543210',
        loyalty_points=50,
    )


@pytest.fixture
def vip_customer(db):
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
def inactive_customer(db):
    """Create and return a deactivated customer."""
    return Customer.objects.create(
        first_name='Old',
        last_name='Account',
        email='old@example.com',
        phone='9000000000',
        is_active=False,
    )
