"""
Payment reconciliation.

Allocations record how much of an order each payment method covers. They are
written while holding the order row lock, the same lock approve_order takes
before reading the allocated total, so approval always sees a complete set of
allocations. Reconciliation never changes the order status.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Sum

from app.exceptions import InvalidTransitionError, NotFoundError, UnknownPaymentMethodError
from app.utils import ZERO, to_positive_money
from orders.models import AuditLog, Order
from . import catalog
from .models import PaymentAllocation, PaymentMethod

logger = logging.getLogger(__name__)


def _payment_method(code):
    if not catalog.is_enabled(code):
        logger.warning("Rejected allocation with unknown payment method %r", code)
        raise UnknownPaymentMethodError(
            f"Unknown payment method {code!r}; accepted: {', '.join(sorted(catalog.enabled_methods()))}",
            payment_method=code,
        )
    method, _ = PaymentMethod.objects.get_or_create(
        code=code,
        defaults={'label': catalog.LABELS.get(code, code)},
    )
    return method


def _ensure_order(order_id):
    try:
        exists = Order.objects.filter(pk=order_id).exists()
    except (ValidationError, ValueError):
        exists = False
    if not exists:
        raise NotFoundError(f"Order {order_id} not found", order_id=order_id)


def allocate_payment(order_id, payment_method_id, amount):
    """
    Set the amount a payment method covers for an order.

    A second allocation for the same (order, method) replaces the first; it is
    never added to it.

    Raises:
        InvalidValueError: amount <= 0
        UnknownPaymentMethodError: Method not in the catalog
        NotFoundError: Unknown order
        InvalidTransitionError: The order is no longer awaiting payment
    """
    amount = to_positive_money(amount, 'amount')
    with transaction.atomic():
        method = _payment_method(payment_method_id)
        order = Order.lock(order_id)
        if order.status != Order.STATUS_PROCESSING:
            raise InvalidTransitionError(
                f"Order {order.pk} is {order.status}; payments can only be allocated while PROCESSING",
                order_id=order.pk,
                current_status=order.status,
            )

        allocation, created = PaymentAllocation.objects.update_or_create(
            order=order,
            payment_method=method,
            defaults={'amount': amount},
        )

        AuditLog.log_event(
            event_type='payment.allocated',
            order=order,
            event_data={
                'payment_method': method.code,
                'amount': str(amount),
                'replaced': not created,
            },
        )

    logger.info(
        "%s %s allocation of %s for order %s",
        'Created' if created else 'Replaced', method.code, amount, order.pk,
    )
    return allocation


def total_allocated(order_id):
    """Sum of allocations for an order; Decimal('0.00') when there are none"""
    _ensure_order(order_id)
    total = PaymentAllocation.objects.filter(order_id=order_id).aggregate(total=Sum('amount'))['total']
    return total if total is not None else ZERO


def get_allocations(order_id):
    """Mapping of payment method code to allocated amount"""
    _ensure_order(order_id)
    return dict(
        PaymentAllocation.objects.filter(order_id=order_id).values_list('payment_method_id', 'amount')
    )
