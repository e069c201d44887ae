import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from app.exceptions import NotFoundError
from app.statemachine import StatusTransitionMixin
from customers.models import Customer
from inventory.models import Warehouse
from offers.models import Offer


class Order(StatusTransitionMixin, models.Model):
    """Customer orders composed from vendor offers"""
    STATUS_PROCESSING = 'PROCESSING'
    STATUS_APPROVED = 'APPROVED'
    STATUS_SHIPPED = 'SHIPPED'
    STATUS_DELIVERED = 'DELIVERED'
    STATUS_CANCELLED = 'CANCELLED'

    STATUS_CHOICES = [
        (STATUS_PROCESSING, 'Processing'),  # Awaiting payment
        (STATUS_APPROVED, 'Approved'),  # Fully paid, delivery being prepared
        (STATUS_SHIPPED, 'Shipped'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    VALID_TRANSITIONS = {
        STATUS_PROCESSING: {STATUS_APPROVED, STATUS_CANCELLED},
        STATUS_APPROVED: {STATUS_SHIPPED, STATUS_CANCELLED},
        STATUS_SHIPPED: {STATUS_DELIVERED},
        STATUS_DELIVERED: set(),
        STATUS_CANCELLED: set(),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name='orders')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PROCESSING, db_index=True)
    total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Sum of quantity x unit price over the lines, captured at creation"
    )
    cancellation_reason = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['customer', 'created_at'], name='orders_customer_created_idx'),
            models.Index(fields=['status', 'created_at'], name='orders_status_created_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total__gte=0),
                name='order_total_non_negative',
            ),
        ]

    def __str__(self):
        return f"Order {self.pk} - {self.status} - {self.total}"

    @classmethod
    def lock(cls, order_id):
        """Fetch an order with its row locked; call inside an atomic block"""
        try:
            return cls.objects.select_for_update().get(pk=order_id)
        except (cls.DoesNotExist, ValidationError, ValueError):
            raise NotFoundError(f"Order {order_id} not found", order_id=order_id)

    def compute_total(self):
        """Sum of quantity x captured unit price over the lines"""
        total = Decimal('0.00')
        for line in self.lines.all():
            total += line.line_total
        return total


class OrderLine(models.Model):
    """
    One offer within an order.

    Price, product and vendor details are copied from the offer when the line
    is written and never change afterwards, whatever happens to the offer.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='lines')
    offer = models.ForeignKey(Offer, on_delete=models.PROTECT, related_name='order_lines')
    quantity = models.IntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Offer price at the moment the order was placed"
    )

    # Snapshot of the listing
    product_id = models.UUIDField()
    product_name = models.CharField(max_length=255)
    vendor_name = models.CharField(max_length=255)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'order_lines'
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['order', 'offer'],
                name='unique_order_line_offer',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name='order_line_quantity_positive',
            ),
            models.CheckConstraint(
                condition=models.Q(unit_price__gt=0),
                name='order_line_unit_price_positive',
            ),
        ]

    def __str__(self):
        return f"{self.product_name} x {self.quantity} @ {self.unit_price}"

    @property
    def line_total(self):
        return self.unit_price * self.quantity

    def save(self, *args, **kwargs):
        """Order lines are written once"""
        if not self._state.adding:
            raise ValidationError("Order lines cannot be modified")
        super().save(*args, **kwargs)


class StockDraw(models.Model):
    """Warehouse quantity removed for an order line, kept so cancellation can put it back"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    line = models.ForeignKey(OrderLine, on_delete=models.CASCADE, related_name='stock_draws')
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name='order_draws')
    quantity = models.IntegerField(validators=[MinValueValidator(1)])

    class Meta:
        db_table = 'order_stock_draws'
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name='stock_draw_quantity_positive',
            ),
        ]

    def __str__(self):
        return f"{self.quantity} from {self.warehouse_id} for line {self.line_id}"


class AuditLog(models.Model):
    """
    Audit trail for order, payment and delivery mutations
    Immutable - records cannot be deleted or modified
    """
    EVENT_TYPES = [
        ('order.created', 'Order Created'),
        ('order.approved', 'Order Approved'),
        ('order.cancelled', 'Order Cancelled'),
        ('order.shipped', 'Order Shipped'),
        ('order.delivered', 'Order Delivered'),
        ('payment.allocated', 'Payment Allocated'),
        ('delivery.created', 'Delivery Created'),
        ('delivery.dispatched', 'Delivery Dispatched'),
        ('delivery.completed', 'Delivery Completed'),
        ('delivery.failed', 'Delivery Failed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event_type = models.CharField(max_length=50, choices=EVENT_TYPES, db_index=True)
    order = models.ForeignKey(Order, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    event_data = models.JSONField(default=dict, blank=True)
    description = models.TextField(blank=True, default='')
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'order_audit_logs'
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['event_type', 'timestamp'], name='audit_event_time_idx'),
            models.Index(fields=['order', 'timestamp'], name='audit_order_time_idx'),
        ]

    def __str__(self):
        return f"{self.event_type} at {self.timestamp}"

    @classmethod
    def log_event(cls, event_type, order=None, customer=None, event_data=None, description=''):
        """
        Create an audit log entry

        Args:
            event_type: Type of event (from EVENT_TYPES)
            order: Related Order
            customer: Related Customer; defaults to the order's customer
            event_data: Additional JSON-serializable data
            description: Human-readable description
        """
        if customer is None and order is not None:
            customer = order.customer
        return cls.objects.create(
            event_type=event_type,
            order=order,
            customer=customer,
            event_data=event_data or {},
            description=description,
        )

    def save(self, *args, **kwargs):
        """Override save to make audit logs immutable after creation"""
        if not self._state.adding:
            raise ValidationError("Audit logs cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion of audit logs"""
        raise ValidationError("Audit logs cannot be deleted")
