# Generated manually for billing app

import uuid
from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import migrations, models


PAYMENT_METHOD_CHOICES = [
    ('cash', 'Cash'),
    ('card', 'Card'),
    ('upi', 'UPI'),
    ('net_banking', 'Net Banking'),
    ('wallet', 'Wallet'),
    ('credit', 'Credit'),
    ('multiple', 'Multiple'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('customers', '0001_initial'),
        ('products', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='BillSequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('day', models.DateField(unique=True)),
                ('last_value', models.PositiveIntegerField(default=0)),
            ],
            options={
                'db_table': 'bill_sequences',
            },
        ),
        migrations.CreateModel(
            name='Bill',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('bill_number', models.CharField(editable=False, max_length=32, unique=True)),
                ('bill_type', models.CharField(choices=[('sale', 'Sale'), ('return', 'Return')], default='sale', max_length=20)),
                ('subtotal_paise', models.PositiveBigIntegerField(default=0)),
                ('total_discount_paise', models.PositiveBigIntegerField(default=0)),
                ('total_tax_paise', models.PositiveBigIntegerField(default=0)),
                ('delivery_charge_paise', models.PositiveBigIntegerField(default=0)),
                ('grand_total_paise', models.PositiveBigIntegerField(default=0)),
                ('loyalty_points_used', models.PositiveIntegerField(default=0)),
                ('loyalty_points_earned', models.PositiveIntegerField(default=0)),
                ('loyalty_points_reversed', models.PositiveIntegerField(default=0)),
                ('payment_method', models.CharField(choices=PAYMENT_METHOD_CHOICES, max_length=20)),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('partial', 'Partial'), ('paid', 'Paid')], default='pending', max_length=20)),
                ('amount_paid_paise', models.PositiveBigIntegerField(default=0)),
                ('amount_due_paise', models.PositiveBigIntegerField(default=0)),
                ('amount_refunded_paise', models.PositiveBigIntegerField(default=0)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('completed', 'Completed'), ('cancelled', 'Cancelled'), ('refunded', 'Refunded'), ('partial_refund', 'Partial Refund')], default='draft', max_length=20)),
                ('cashier', models.CharField(max_length=150)),
                ('bill_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.CharField(blank=True, max_length=200)),
                ('notes', models.TextField(blank=True)),
                ('version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='bills', to='customers.customer')),
                ('original_bill', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='returns', to='billing.bill')),
            ],
            options={
                'db_table': 'bills',
                'ordering': ['-bill_date', '-created_at'],
                'indexes': [
                    models.Index(fields=['customer', '-bill_date'], name='bills_customer_date_idx'),
                    models.Index(fields=['status', 'payment_status'], name='bills_status_idx'),
                    models.Index(fields=['-bill_date'], name='bills_date_idx'),
                    models.Index(fields=['cashier'], name='bills_cashier_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='BillItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('position', models.PositiveSmallIntegerField(default=0)),
                ('product_name', models.CharField(max_length=100)),
                ('sku', models.CharField(max_length=50)),
                ('unit', models.CharField(max_length=20)),
                ('unit_price_paise', models.PositiveBigIntegerField()),
                ('tax_rate', models.DecimalField(decimal_places=2, max_digits=5, validators=[MinValueValidator(Decimal('0.00'))])),
                ('quantity', models.PositiveIntegerField(validators=[MinValueValidator(1)])),
                ('discount_percentage', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=5, validators=[MinValueValidator(Decimal('0.00')), MaxValueValidator(Decimal('100.00'))])),
                ('discount_amount_paise', models.PositiveBigIntegerField(default=0)),
                ('tax_amount_paise', models.PositiveBigIntegerField(default=0)),
                ('line_total_paise', models.PositiveBigIntegerField(default=0)),
                ('quantity_refunded', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('bill', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='billing.bill')),
                ('product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='bill_items', to='products.product')),
            ],
            options={
                'db_table': 'bill_items',
                'ordering': ['bill', 'position'],
            },
        ),
        migrations.CreateModel(
            name='BillPayment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('method', models.CharField(choices=PAYMENT_METHOD_CHOICES, max_length=20)),
                ('amount_paise', models.PositiveBigIntegerField(validators=[MinValueValidator(1)])),
                ('reference', models.CharField(blank=True, max_length=100)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed')], default='completed', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('bill', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='billing.bill')),
            ],
            options={
                'db_table': 'bill_payments',
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='BillItemRefund',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('quantity_refunded', models.PositiveIntegerField(validators=[MinValueValidator(1)])),
                ('amount_paise', models.PositiveBigIntegerField()),
                ('reason', models.CharField(max_length=200)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('bill', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='item_refunds', to='billing.bill')),
                ('bill_item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='refunds', to='billing.billitem')),
            ],
            options={
                'db_table': 'bill_item_refunds',
                'ordering': ['created_at'],
            },
        ),
    ]
