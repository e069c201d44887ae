import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from inventory.models import Product


class Vendor(models.Model):
    """Sellers listing catalog products"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    legal_name = models.CharField(max_length=255)
    tax_id = models.CharField(max_length=32, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'vendors'
        ordering = ['legal_name']

    def __str__(self):
        return f"{self.legal_name} ({self.tax_id})"


class Offer(models.Model):
    """
    A vendor's listing of one product.

    ``quantity`` is the vendor's self-reported availability, kept apart from
    warehouse stock. It only drops when an order line referencing the offer is
    written.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='offers')
    vendor = models.ForeignKey(Vendor, on_delete=models.PROTECT, related_name='offers')
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    quantity = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'offers'
        ordering = ['product', 'price']
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'vendor'],
                name='unique_offer_product_vendor',
                violation_error_message='This vendor already lists this product',
            ),
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name='offer_price_positive',
                violation_error_message='Offer price must be positive',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name='offer_quantity_non_negative',
                violation_error_message='Offer quantity cannot be negative',
            ),
        ]

    def __str__(self):
        return f"{self.product.name} by {self.vendor.legal_name} @ {self.price} Qty: {self.quantity}"
