"""
Delivery tracking.

A delivery is created once per order, when the order is approved. Its tracking
code is assigned exactly once, on the PREPARING -> IN_TRANSIT transition.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from app.exceptions import (
    DuplicateIdentifierError,
    InvalidTransitionError,
    InvalidValueError,
    NotFoundError,
)
from orders.models import AuditLog, Order
from .models import Delivery

logger = logging.getLogger(__name__)


def create_delivery(order):
    """Open the delivery of a just-approved order, in PREPARING"""
    if order.status != Order.STATUS_APPROVED:
        raise InvalidTransitionError(
            f"Order {order.pk} is {order.status}; only approved orders get a delivery",
            order_id=order.pk,
            current_status=order.status,
        )
    if Delivery.objects.filter(order=order).exists():
        raise InvalidTransitionError(
            f"Order {order.pk} already has a delivery",
            order_id=order.pk,
        )
    try:
        with transaction.atomic():
            delivery = Delivery.objects.create(order=order)
    except IntegrityError as exc:
        raise InvalidTransitionError(
            f"Order {order.pk} already has a delivery",
            order_id=order.pk,
        ) from exc

    AuditLog.log_event(
        event_type='delivery.created',
        order=order,
        event_data={'delivery_id': str(delivery.pk)},
    )
    logger.info("Created delivery %s for order %s", delivery.pk, order.pk)
    return delivery


def get_delivery(order_id):
    try:
        return Delivery.objects.get(order_id=order_id)
    except (Delivery.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError(f"No delivery for order {order_id}", order_id=order_id)


def dispatch_delivery(order_id, tracking_code):
    """
    Hand the delivery to the carrier and record its tracking code.

    Raises:
        InvalidTransitionError: Not PREPARING, or a tracking code is already set
        DuplicateIdentifierError: Another delivery already uses the code
    """
    tracking_code = (tracking_code or '').strip()
    if not tracking_code:
        raise InvalidValueError("Tracking code is required", field='tracking_code')

    with transaction.atomic():
        delivery = Delivery.lock_for_order(order_id)
        if delivery.tracking_code:
            raise InvalidTransitionError(
                f"Delivery {delivery.pk} already has tracking code {delivery.tracking_code}",
                delivery_id=delivery.pk,
                tracking_code=delivery.tracking_code,
            )
        delivery.check_transition(Delivery.STATUS_IN_TRANSIT)

        if Delivery.objects.filter(tracking_code=tracking_code).exclude(pk=delivery.pk).exists():
            raise DuplicateIdentifierError(
                f"Tracking code {tracking_code} is already in use",
                field='tracking_code',
                value=tracking_code,
            )

        try:
            with transaction.atomic():
                delivery.transition_to(
                    Delivery.STATUS_IN_TRANSIT,
                    tracking_code=tracking_code,
                    dispatched_at=timezone.now(),
                )
        except IntegrityError as exc:
            raise DuplicateIdentifierError(
                f"Tracking code {tracking_code} is already in use",
                field='tracking_code',
                value=tracking_code,
            ) from exc

        AuditLog.log_event(
            event_type='delivery.dispatched',
            order=delivery.order,
            event_data={'delivery_id': str(delivery.pk), 'tracking_code': tracking_code},
        )

    logger.info("Dispatched delivery %s with tracking code %s", delivery.pk, tracking_code)
    return delivery


def complete_delivery(order_id):
    with transaction.atomic():
        delivery = Delivery.lock_for_order(order_id)
        delivery.transition_to(Delivery.STATUS_DELIVERED, delivered_at=timezone.now())
        AuditLog.log_event(
            event_type='delivery.completed',
            order=delivery.order,
            event_data={'delivery_id': str(delivery.pk)},
        )

    logger.info("Delivery %s completed", delivery.pk)
    return delivery


def fail_delivery(order_id, reason=''):
    """
    Give up on a delivery that has not arrived.

    Refused once the order is SHIPPED: the order would be left with no way to
    reach DELIVERED or CANCELLED.
    """
    with transaction.atomic():
        order = Order.lock(order_id)
        if order.status == Order.STATUS_SHIPPED:
            raise InvalidTransitionError(
                f"Order {order.pk} has shipped; its delivery can only be completed",
                order_id=order.pk,
                current_status=order.status,
            )
        delivery = Delivery.lock_for_order(order_id)
        previous = delivery.transition_to(Delivery.STATUS_FAILED, failure_reason=reason or '')
        AuditLog.log_event(
            event_type='delivery.failed',
            order=delivery.order,
            event_data={'delivery_id': str(delivery.pk), 'previous_status': previous},
            description=reason or '',
        )

    logger.warning("Delivery %s failed from %s: %s", delivery.pk, previous, reason or 'no reason given')
    return delivery
