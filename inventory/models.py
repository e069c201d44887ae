import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Sum


class Product(models.Model):
    """Catalog products"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=100, db_index=True)
    description = models.TextField(blank=True, default='')
    base_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text="Reference value of the product; vendors set their own offer price"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'products'
        ordering = ['name']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(base_value__gt=0),
                name='product_base_value_positive',
                violation_error_message='Product base value must be positive',
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.category})"

    def total_stock(self) -> int:
        """Sum of on-hand quantity across all warehouses"""
        total = self.stock_entries.aggregate(total=Sum('quantity'))['total']
        return int(total or 0)


class Warehouse(models.Model):
    """Physical stock locations"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    location = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'warehouses'
        ordering = ['location']

    def __str__(self):
        return self.location


class StockEntry(models.Model):
    """On-hand quantity of one product in one warehouse"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='stock_entries')
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name='stock_entries')
    quantity = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'stock_entries'
        ordering = ['product', '-quantity']
        indexes = [
            models.Index(fields=['product', 'quantity'], name='stock_entry_product_qty_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'warehouse'],
                name='unique_stock_entry_product_warehouse',
                violation_error_message='This product already has a stock entry in this warehouse',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name='stock_entry_quantity_non_negative',
                violation_error_message='Stock quantity cannot be negative',
            ),
        ]

    def __str__(self):
        return f"{self.product.name} @ {self.warehouse.location} Qty: {self.quantity}"
