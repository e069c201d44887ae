import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from orders.models import Order


class PaymentMethod(models.Model):
    """Accepted payment method; rows mirror the closed catalog in payments.catalog"""
    code = models.CharField(max_length=20, primary_key=True)
    label = models.CharField(max_length=100)

    class Meta:
        db_table = 'payment_methods'
        ordering = ['code']

    def __str__(self):
        return self.label


class PaymentAllocation(models.Model):
    """Amount of an order's total covered by one payment method"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='payment_allocations')
    payment_method = models.ForeignKey(PaymentMethod, on_delete=models.PROTECT, related_name='allocations')
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'payment_allocations'
        ordering = ['order', 'payment_method']
        constraints = [
            models.UniqueConstraint(
                fields=['order', 'payment_method'],
                name='unique_allocation_order_method',
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name='allocation_amount_positive',
            ),
        ]

    def __str__(self):
        return f"{self.payment_method_id} {self.amount} for order {self.order_id}"
