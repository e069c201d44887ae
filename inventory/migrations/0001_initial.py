import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('category', models.CharField(db_index=True, max_length=100)),
                ('description', models.TextField(blank=True, default='')),
                ('base_value', models.DecimalField(decimal_places=2, help_text='Reference value of the product; vendors set their own offer price', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'products',
                'ordering': ['name'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('base_value__gt', 0)), name='product_base_value_positive', violation_error_message='Product base value must be positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Warehouse',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('location', models.CharField(max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'warehouses',
                'ordering': ['location'],
            },
        ),
        migrations.CreateModel(
            name='StockEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('quantity', models.IntegerField(default=0, validators=[django.core.validators.MinValueValidator(0)])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='stock_entries', to='inventory.product')),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='stock_entries', to='inventory.warehouse')),
            ],
            options={
                'db_table': 'stock_entries',
                'ordering': ['product', '-quantity'],
                'indexes': [models.Index(fields=['product', 'quantity'], name='stock_entry_product_qty_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('product', 'warehouse'), name='unique_stock_entry_product_warehouse', violation_error_message='This product already has a stock entry in this warehouse'),
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 0)), name='stock_entry_quantity_non_negative', violation_error_message='Stock quantity cannot be negative'),
                ],
            },
        ),
    ]
