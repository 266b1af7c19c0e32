from django.db import models
import uuid


class CustomerTier(models.TextChoices):
    NEW = 'new', 'New'
    REGULAR = 'regular', 'Regular'
    LOYAL = 'loyal', 'Loyal'
    VIP = 'vip', 'VIP'


class Customer(models.Model):
    """Supermarket customer with purchase statistics and loyalty balance."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    first_name = models.CharField(max_length=50)
    last_name = models.CharField(max_length=50)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=10, unique=True)

    # Classification
    customer_type = models.CharField(
        max_length=20,
        choices=CustomerTier.choices,
        default=CustomerTier.NEW
    )
    membership_number = models.CharField(max_length=20, unique=True, null=True, blank=True)

    # Loyalty balance (1 point redeems 1 rupee)
    loyalty_points = models.PositiveIntegerField(default=0)

    # Purchase statistics (money in paise)
    total_spent_paise = models.PositiveBigIntegerField(default=0)
    total_purchases = models.PositiveIntegerField(default=0)
    average_order_value_paise = models.PositiveBigIntegerField(default=0)
    last_purchase_date = models.DateTimeField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'customers'
        indexes = [
            models.Index(fields=['customer_type'], name='customers_type_idx'),
            models.Index(fields=['is_active'], name='customers_active_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.get_full_name()} ({self.get_customer_type_display()})"

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}".strip()
