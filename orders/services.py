"""
Order engine.

Order creation locks every referenced offer (in primary key order), then, line
by line in product order, decrements the offer, draws the product from
warehouse stock and writes the line with a copy of the offer's current price. All of it runs in a
single transaction: if any line cannot be satisfied nothing is kept.

Status changes lock the order row and are written as a compare-and-swap on the
previous status (see StatusTransitionMixin).
"""
import logging
import uuid

from django.core.exceptions import ValidationError
from django.db import transaction

from app.exceptions import (
    DomainError,
    InsufficientOfferStockError,
    InvalidValueError,
    NotFoundError,
    PaymentIncompleteError,
)
from app.utils import ZERO, check_money, lock_conflicts_as, to_quantity
from customers.services import get_customer
from deliveries.models import Delivery
from deliveries.services import complete_delivery, create_delivery, dispatch_delivery, fail_delivery
from inventory.services import Draw, draw_stock, restore_stock
from offers.services import lock_offers, return_offer_quantity, take_offer_quantity
from payments.services import total_allocated
from .models import AuditLog, Order, OrderLine, StockDraw

logger = logging.getLogger(__name__)


def _normalize_lines(lines):
    """
    Validate ``(offer_id, quantity)`` pairs and merge repeated offers.

    Returns:
        dict mapping offer UUID to total requested quantity, in request order
    """
    if not lines:
        raise InvalidValueError("An order needs at least one line", field='lines')

    requested = {}
    for entry in lines:
        try:
            offer_id, quantity = entry
        except (TypeError, ValueError):
            raise InvalidValueError(
                "Order lines must be (offer_id, quantity) pairs",
                field='lines',
                value=entry,
            )
        quantity = to_quantity(quantity)
        if quantity < 1:
            raise InvalidValueError(
                f"Line quantity must be at least 1, got {quantity}",
                field='quantity',
                value=quantity,
            )
        try:
            key = offer_id if isinstance(offer_id, uuid.UUID) else uuid.UUID(str(offer_id))
        except ValueError:
            raise NotFoundError(f"Offer {offer_id} not found", offer_id=offer_id)
        requested[key] = requested.get(key, 0) + quantity
    return requested


def get_order(order_id):
    try:
        return Order.objects.select_related('customer').get(pk=order_id)
    except (Order.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError(f"Order {order_id} not found", order_id=order_id)


def order_total(order_id):
    """Sum of quantity x captured unit price over the order's lines"""
    return get_order(order_id).compute_total()


def create_order(customer_id, lines):
    """
    Place an order.

    Args:
        customer_id: Buying customer
        lines: Iterable of (offer_id, quantity) pairs; repeated offers are merged

    Returns:
        Order in PROCESSING with its lines written

    Raises:
        NotFoundError: Unknown customer or offer
        InvalidValueError: Empty order or quantity < 1
        InsufficientOfferStockError: An offer cannot cover its line
        InsufficientStockError: Warehouse stock cannot cover a line
        ConflictError: The database gave up on a lock; safe to retry
    """
    requested = _normalize_lines(lines)
    customer = get_customer(customer_id)

    conflicts = lock_conflicts_as(
        f"Order for customer {customer.pk} hit a lock conflict",
        customer_id=customer.pk,
    )
    try:
        with conflicts, transaction.atomic():
            offers = lock_offers(requested.keys())
            order = Order.objects.create(customer=customer)

            total = ZERO
            # Stock rows are locked product by product in one global order
            for offer in sorted(offers.values(), key=lambda offer: str(offer.product_id)):
                quantity = requested[offer.pk]
                if offer.quantity < quantity:
                    raise InsufficientOfferStockError(
                        f"Offer {offer.pk} lists {offer.quantity}, requested {quantity}",
                        offer_id=offer.pk,
                        available=offer.quantity,
                        requested=quantity,
                    )
                take_offer_quantity(offer.pk, quantity)
                draws = draw_stock(offer.product_id, quantity)

                line = OrderLine.objects.create(
                    order=order,
                    offer=offer,
                    quantity=quantity,
                    unit_price=offer.price,
                    product_id=offer.product_id,
                    product_name=offer.product.name,
                    vendor_name=offer.vendor.legal_name,
                )
                StockDraw.objects.bulk_create([
                    StockDraw(line=line, warehouse_id=draw.warehouse_id, quantity=draw.quantity)
                    for draw in draws
                ])
                total += line.line_total

            order.total = check_money(total, field='total')
            order.save(update_fields=['total', 'updated_at'])

            AuditLog.log_event(
                event_type='order.created',
                order=order,
                customer=customer,
                event_data={
                    'total': str(total),
                    'lines': [
                        {'offer_id': str(offer_id), 'quantity': quantity}
                        for offer_id, quantity in requested.items()
                    ],
                },
            )
    except DomainError as exc:
        logger.warning("Order for customer %s rejected: %s", customer.pk, exc.message)
        raise

    logger.info(
        "Created order %s for customer %s with %s line(s), total %s",
        order.pk, customer.pk, len(requested), total,
    )
    return order


def approve_order(order_id):
    """
    Approve a fully paid order and open its delivery.

    The allocated total is read while the order row is locked; allocations
    take the same lock, so the total cannot move underneath the check.

    Raises:
        InvalidTransitionError: Order is not PROCESSING
        PaymentIncompleteError: Allocations do not sum to the order total
    """
    with transaction.atomic():
        order = Order.lock(order_id)
        order.check_transition(Order.STATUS_APPROVED)

        total = order.compute_total()
        allocated = total_allocated(order.pk)
        if allocated != total:
            logger.warning(
                "Approval of order %s refused: allocated %s of %s",
                order.pk, allocated, total,
            )
            raise PaymentIncompleteError(
                f"Order {order.pk} total is {total} but {allocated} is allocated",
                order_id=order.pk,
                total=total,
                allocated=allocated,
            )

        order.transition_to(Order.STATUS_APPROVED)
        create_delivery(order)
        AuditLog.log_event(
            event_type='order.approved',
            order=order,
            event_data={'total': str(total)},
        )

    logger.info("Approved order %s (total %s)", order.pk, total)
    return order


def cancel_order(order_id, reason=''):
    """
    Cancel a PROCESSING or APPROVED order.

    Offer quantities and the exact per-warehouse stock draws are put back. An
    open delivery is marked FAILED.
    """
    conflicts = lock_conflicts_as(f"Cancellation of order {order_id} hit a lock conflict", order_id=order_id)
    with conflicts, transaction.atomic():
        order = Order.lock(order_id)
        order.check_transition(Order.STATUS_CANCELLED)

        lines = sorted(
            order.lines.prefetch_related('stock_draws'),
            key=lambda line: str(line.product_id),
        )
        lock_offers([line.offer_id for line in lines])
        for line in lines:
            return_offer_quantity(line.offer_id, line.quantity)
            restore_stock(
                line.product_id,
                [Draw(draw.warehouse_id, draw.quantity) for draw in line.stock_draws.all()],
            )

        delivery = Delivery.objects.filter(order=order).first()
        if delivery is not None and delivery.can_transition_to(Delivery.STATUS_FAILED):
            fail_delivery(order.pk, reason=reason or 'Order cancelled')

        previous = order.transition_to(Order.STATUS_CANCELLED, cancellation_reason=reason or '')
        AuditLog.log_event(
            event_type='order.cancelled',
            order=order,
            event_data={'previous_status': previous, 'lines': len(lines)},
            description=reason or '',
        )

    logger.info("Cancelled order %s (was %s)", order.pk, previous)
    return order


def mark_shipped(order_id, tracking_code):
    """APPROVED -> SHIPPED; dispatches the delivery with its tracking code"""
    with transaction.atomic():
        order = Order.lock(order_id)
        order.check_transition(Order.STATUS_SHIPPED)
        dispatch_delivery(order.pk, tracking_code)
        order.transition_to(Order.STATUS_SHIPPED)
        AuditLog.log_event(
            event_type='order.shipped',
            order=order,
            event_data={'tracking_code': tracking_code},
        )

    logger.info("Order %s shipped with tracking code %s", order.pk, tracking_code)
    return order


def mark_delivered(order_id):
    """SHIPPED -> DELIVERED; completes the delivery"""
    with transaction.atomic():
        order = Order.lock(order_id)
        order.check_transition(Order.STATUS_DELIVERED)
        complete_delivery(order.pk)
        order.transition_to(Order.STATUS_DELIVERED)
        AuditLog.log_event(event_type='order.delivered', order=order)

    logger.info("Order %s delivered", order.pk)
    return order
