# Generated manually for customers app

import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Customer',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('first_name', models.CharField(max_length=50)),
                ('last_name', models.CharField(max_length=50)),
                ('email', models.EmailField(max_length=254, unique=True)),
                ('phone', models.CharField(max_length=10, unique=True)),
                ('customer_type', models.CharField(choices=[('new', 'New'), ('regular', 'Regular'), ('loyal', 'Loyal'), ('vip', 'VIP')], default='new', max_length=20)),
                ('membership_number', models.CharField(blank=True, max_length=20, null=True, unique=True)),
                ('loyalty_points', models.PositiveIntegerField(default=0)),
                ('total_spent_paise', models.PositiveBigIntegerField(default=0)),
                ('total_purchases', models.PositiveIntegerField(default=0)),
                ('average_order_value_paise', models.PositiveBigIntegerField(default=0)),
                ('last_purchase_date', models.DateTimeField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'customers',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['customer_type'], name='customers_type_idx'),
                    models.Index(fields=['is_active'], name='customers_active_idx'),
                ],
            },
        ),
    ]
