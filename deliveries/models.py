import uuid

from django.core.exceptions import ValidationError
from django.db import models

from app.exceptions import NotFoundError
from app.statemachine import StatusTransitionMixin
from orders.models import Order


class Delivery(StatusTransitionMixin, models.Model):
    """Shipment of an approved order; one per order"""
    STATUS_PREPARING = 'PREPARING'
    STATUS_IN_TRANSIT = 'IN_TRANSIT'
    STATUS_DELIVERED = 'DELIVERED'
    STATUS_FAILED = 'FAILED'

    STATUS_CHOICES = [
        (STATUS_PREPARING, 'Preparing'),
        (STATUS_IN_TRANSIT, 'In Transit'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_FAILED, 'Failed'),
    ]

    VALID_TRANSITIONS = {
        STATUS_PREPARING: {STATUS_IN_TRANSIT, STATUS_FAILED},
        STATUS_IN_TRANSIT: {STATUS_DELIVERED, STATUS_FAILED},
        STATUS_DELIVERED: set(),
        STATUS_FAILED: set(),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name='delivery')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PREPARING, db_index=True)
    tracking_code = models.CharField(
        max_length=64,
        unique=True,
        null=True,
        blank=True,
        help_text="Carrier tracking code, assigned once when the delivery is dispatched"
    )
    failure_reason = models.TextField(blank=True, default='')

    dispatched_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'deliveries'
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(status__in=['PREPARING', 'FAILED'])
                    | models.Q(tracking_code__isnull=False)
                ),
                name='delivery_dispatched_has_tracking_code',
                violation_error_message='A dispatched delivery needs a tracking code',
            ),
        ]
        verbose_name_plural = 'Deliveries'

    def __str__(self):
        return f"Delivery for order {self.order_id} - {self.status}"

    @classmethod
    def lock_for_order(cls, order_id):
        """Fetch an order's delivery with its row locked; call inside an atomic block"""
        try:
            return cls.objects.select_for_update().get(order_id=order_id)
        except (cls.DoesNotExist, ValidationError, ValueError):
            raise NotFoundError(f"No delivery for order {order_id}", order_id=order_id)
