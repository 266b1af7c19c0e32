from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
from decimal import Decimal
import uuid


class ProductUnit(models.TextChoices):
    PIECE = 'piece', 'Piece'
    KG = 'kg', 'Kilogram'
    GRAM = 'gram', 'Gram'
    LITER = 'liter', 'Liter'
    ML = 'ml', 'Millilitre'
    METER = 'meter', 'Meter'
    CM = 'cm', 'Centimetre'
    DOZEN = 'dozen', 'Dozen'
    PACK = 'pack', 'Pack'
    BOX = 'box', 'Box'
    BOTTLE = 'bottle', 'Bottle'


class Product(models.Model):
    """Sellable product with live price, tax rate and stock level."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100, db_index=True)
    sku = models.CharField(max_length=50, unique=True)
    unit = models.CharField(max_length=20, choices=ProductUnit.choices, default=ProductUnit.PIECE)

    # Pricing (paise) and GST rate (percent)
    selling_price_paise = models.PositiveBigIntegerField()
    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('18.00'),
        validators=[MinValueValidator(Decimal('0.00')), MaxValueValidator(Decimal('100.00'))]
    )

    # Inventory
    stock_quantity = models.PositiveIntegerField(default=0)
    sales_count = models.PositiveIntegerField(default=0)
    last_sold_date = models.DateTimeField(null=True, blank=True)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'products'
        indexes = [
            models.Index(fields=['is_active'], name='products_active_idx'),
            models.Index(fields=['stock_quantity'], name='products_stock_idx'),
            models.Index(fields=['-sales_count'], name='products_sales_idx'),
        ]
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def save(self, *args, **kwargs):
        """Normalize SKU to upper case."""
        if self.sku:
            self.sku = self.sku.strip().upper()
        super().save(*args, **kwargs)
