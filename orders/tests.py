import uuid
from decimal import Decimal
from unittest.mock import patch

from django.core.exceptions import ValidationError
from django.db import OperationalError
from django.test import TestCase

from app.exceptions import (
    ConflictError,
    InsufficientOfferStockError,
    InsufficientStockError,
    InvalidTransitionError,
    InvalidValueError,
    NotFoundError,
    PaymentIncompleteError,
)
from deliveries.models import Delivery
from deliveries.services import get_delivery
from inventory.services import adjust_stock, draw_stock, stock_levels, total_stock
from offers.services import get_offer, update_offer_price
from payments.services import allocate_payment
from tests.utils import MarketplaceFixtureMixin
from .models import AuditLog, Order, OrderLine, StockDraw
from .services import (
    approve_order,
    cancel_order,
    create_order,
    get_order,
    mark_delivered,
    mark_shipped,
    order_total,
)


class CreateOrderTest(MarketplaceFixtureMixin, TestCase):
    def setUp(self):
        self.create_marketplace(price=Decimal('50.00'), offer_quantity=10, stock=(12, 8))

    def test_create_order_decrements_offer_and_stock(self):
        order = create_order(self.customer.pk, [(self.offer.pk, 3)])

        self.assertEqual(order.status, Order.STATUS_PROCESSING)
        self.assertEqual(order.total, Decimal('150.00'))
        self.assertEqual(get_offer(self.offer.pk).quantity, 7)
        self.assertEqual(total_stock(self.product.pk), 17)
        # Largest warehouse first
        self.assertEqual(stock_levels(self.product.pk)[self.warehouse_a.pk], 9)

        line = order.lines.get()
        self.assertEqual(line.unit_price, Decimal('50.00'))
        self.assertEqual(line.product_name, 'Coffee Maker')
        self.assertEqual(line.vendor_name, 'Casa Util Ltda')
        self.assertEqual(
            list(line.stock_draws.values_list('warehouse_id', 'quantity')),
            [(self.warehouse_a.pk, 3)],
        )
        self.assertTrue(AuditLog.objects.filter(order=order, event_type='order.created').exists())

    def test_repeated_offer_lines_are_merged(self):
        order = create_order(self.customer.pk, [(self.offer.pk, 2), (str(self.offer.pk), 3)])

        self.assertEqual(order.lines.count(), 1)
        self.assertEqual(order.lines.get().quantity, 5)
        self.assertEqual(order_total(order.pk), Decimal('250.00'))

    def test_draw_spans_warehouses(self):
        adjust_stock(self.product.pk, self.warehouse_a.pk, -6)

        order = create_order(self.customer.pk, [(self.offer.pk, 10)])

        draws = dict(StockDraw.objects.filter(line__order=order).values_list('warehouse_id', 'quantity'))
        self.assertEqual(draws, {self.warehouse_b.pk: 8, self.warehouse_a.pk: 2})
        self.assertEqual(total_stock(self.product.pk), 4)

    def test_invalid_lines(self):
        with self.assertRaises(InvalidValueError):
            create_order(self.customer.pk, [])
        with self.assertRaises(InvalidValueError):
            create_order(self.customer.pk, [(self.offer.pk, 0)])
        with self.assertRaises(InvalidValueError):
            create_order(self.customer.pk, [(self.offer.pk, 1.5)])
        with self.assertRaises(InvalidValueError):
            create_order(self.customer.pk, [self.offer.pk])
        self.assertFalse(Order.objects.exists())

    def test_unknown_customer_or_offer(self):
        with self.assertRaises(NotFoundError):
            create_order(uuid.uuid4(), [(self.offer.pk, 1)])
        with self.assertRaises(NotFoundError):
            create_order(self.customer.pk, [(uuid.uuid4(), 1)])
        with self.assertRaises(NotFoundError):
            create_order(self.customer.pk, [('bogus', 1)])
        self.assertFalse(Order.objects.exists())

    def test_offer_shortage_rolls_back_everything(self):
        other = self.add_offer('Kettle', Decimal('80.00'), offer_quantity=5, stock=5)

        with self.assertRaises(InsufficientOfferStockError):
            create_order(self.customer.pk, [(other.pk, 2), (self.offer.pk, 11)])

        self.assertFalse(Order.objects.exists())
        self.assertFalse(OrderLine.objects.exists())
        self.assertEqual(get_offer(other.pk).quantity, 5)
        self.assertEqual(get_offer(self.offer.pk).quantity, 10)
        self.assertEqual(total_stock(other.product_id), 5)
        self.assertEqual(total_stock(self.product.pk), 20)

    def test_warehouse_shortage_rolls_back_offer(self):
        short = self.add_offer('Toaster', Decimal('70.00'), offer_quantity=10, stock=2)

        with self.assertRaises(InsufficientStockError):
            create_order(self.customer.pk, [(self.offer.pk, 1), (short.pk, 3)])

        self.assertFalse(Order.objects.exists())
        self.assertEqual(get_offer(short.pk).quantity, 10)
        self.assertEqual(get_offer(self.offer.pk).quantity, 10)
        self.assertEqual(total_stock(short.product_id), 2)
        self.assertEqual(total_stock(self.product.pk), 20)

    def test_total_must_fit_a_money_column(self):
        yacht = self.add_offer('Yacht', Decimal('9999999999.99'), offer_quantity=5, stock=5)

        with self.assertRaises(InvalidValueError):
            create_order(self.customer.pk, [(yacht.pk, 2)])

        self.assertFalse(Order.objects.exists())
        self.assertEqual(get_offer(yacht.pk).quantity, 5)
        self.assertEqual(total_stock(yacht.product_id), 5)

        order = create_order(self.customer.pk, [(yacht.pk, 1)])
        self.assertEqual(order.total, Decimal('9999999999.99'))

    def test_stock_is_drawn_in_product_order(self):
        offers = [self.offer] + [
            self.add_offer(name, Decimal('10.00'), offer_quantity=5, stock=5)
            for name in ('Kettle', 'Toaster', 'Blender', 'Mixer')
        ]

        with patch('orders.services.draw_stock', wraps=draw_stock) as draw:
            create_order(self.customer.pk, [(offer.pk, 1) for offer in reversed(offers)])

        drawn = [call.args[0] for call in draw.call_args_list]
        self.assertEqual(drawn, sorted((offer.product_id for offer in offers), key=str))

    def test_lock_conflict_is_retryable_and_keeps_nothing(self):
        with patch('orders.services.draw_stock', side_effect=OperationalError('database is locked')):
            with self.assertRaises(ConflictError) as caught:
                create_order(self.customer.pk, [(self.offer.pk, 2)])

        self.assertTrue(caught.exception.retryable)
        self.assertFalse(Order.objects.exists())
        self.assertEqual(get_offer(self.offer.pk).quantity, 10)

    def test_price_snapshot_survives_repricing(self):
        order = create_order(self.customer.pk, [(self.offer.pk, 3)])

        update_offer_price(self.offer.pk, Decimal('99.99'))

        self.assertEqual(order_total(order.pk), Decimal('150.00'))
        self.assertEqual(get_order(order.pk).total, Decimal('150.00'))
        self.assertEqual(order.lines.get().unit_price, Decimal('50.00'))

    def test_order_lines_are_immutable(self):
        order = create_order(self.customer.pk, [(self.offer.pk, 1)])
        line = order.lines.get()
        line.unit_price = Decimal('1.00')
        with self.assertRaises(ValidationError):
            line.save()

    def test_get_order_unknown(self):
        with self.assertRaises(NotFoundError):
            get_order(uuid.uuid4())
        with self.assertRaises(NotFoundError):
            get_order('nope')


class OrderLifecycleTest(MarketplaceFixtureMixin, TestCase):
    def setUp(self):
        self.create_marketplace(price=Decimal('50.00'), offer_quantity=10, stock=(12, 8))
        self.order = create_order(self.customer.pk, [(self.offer.pk, 3)])

    def pay_in_full(self):
        allocate_payment(self.order.pk, 'CreditCard', Decimal('100.00'))
        allocate_payment(self.order.pk, 'Pix', Decimal('50.00'))

    def test_approve_requires_full_payment(self):
        allocate_payment(self.order.pk, 'CreditCard', Decimal('100.00'))

        with self.assertRaises(PaymentIncompleteError):
            approve_order(self.order.pk)

        self.assertEqual(get_order(self.order.pk).status, Order.STATUS_PROCESSING)
        self.assertFalse(Delivery.objects.filter(order=self.order).exists())

    def test_overpayment_is_also_incomplete(self):
        allocate_payment(self.order.pk, 'CreditCard', Decimal('150.01'))
        with self.assertRaises(PaymentIncompleteError):
            approve_order(self.order.pk)

    def test_approve_creates_preparing_delivery(self):
        self.pay_in_full()

        order = approve_order(self.order.pk)

        self.assertEqual(order.status, Order.STATUS_APPROVED)
        delivery = get_delivery(self.order.pk)
        self.assertEqual(delivery.status, Delivery.STATUS_PREPARING)
        self.assertIsNone(delivery.tracking_code)

    def test_full_lifecycle(self):
        self.pay_in_full()
        approve_order(self.order.pk)

        mark_shipped(self.order.pk, 'BR123456789')
        self.assertEqual(get_order(self.order.pk).status, Order.STATUS_SHIPPED)
        self.assertEqual(get_delivery(self.order.pk).status, Delivery.STATUS_IN_TRANSIT)
        self.assertEqual(get_delivery(self.order.pk).tracking_code, 'BR123456789')

        mark_delivered(self.order.pk)
        self.assertEqual(get_order(self.order.pk).status, Order.STATUS_DELIVERED)
        delivery = get_delivery(self.order.pk)
        self.assertEqual(delivery.status, Delivery.STATUS_DELIVERED)
        self.assertIsNotNone(delivery.delivered_at)

        events = set(AuditLog.objects.filter(order=self.order).values_list('event_type', flat=True))
        self.assertTrue({'order.created', 'order.approved', 'order.shipped', 'order.delivered'} <= events)

    def test_cancel_processing_restores_exactly(self):
        cancel_order(self.order.pk, reason='Customer changed their mind')

        order = get_order(self.order.pk)
        self.assertEqual(order.status, Order.STATUS_CANCELLED)
        self.assertEqual(order.cancellation_reason, 'Customer changed their mind')
        self.assertEqual(get_offer(self.offer.pk).quantity, 10)
        self.assertEqual(
            stock_levels(self.product.pk),
            {self.warehouse_a.pk: 12, self.warehouse_b.pk: 8},
        )

    def test_cancel_approved_fails_delivery(self):
        self.pay_in_full()
        approve_order(self.order.pk)

        cancel_order(self.order.pk)

        self.assertEqual(get_delivery(self.order.pk).status, Delivery.STATUS_FAILED)
        self.assertEqual(get_offer(self.offer.pk).quantity, 10)
        self.assertEqual(total_stock(self.product.pk), 20)

    def test_cancel_after_shipping_is_refused(self):
        self.pay_in_full()
        approve_order(self.order.pk)
        mark_shipped(self.order.pk, 'BR000000001')

        with self.assertRaises(InvalidTransitionError):
            cancel_order(self.order.pk)

        self.assertEqual(get_order(self.order.pk).status, Order.STATUS_SHIPPED)
        self.assertEqual(get_offer(self.offer.pk).quantity, 7)

    def test_cancel_twice_is_refused(self):
        cancel_order(self.order.pk)
        with self.assertRaises(InvalidTransitionError):
            cancel_order(self.order.pk)
        self.assertEqual(get_offer(self.offer.pk).quantity, 10)

    def test_ship_before_approval_is_refused(self):
        with self.assertRaises(InvalidTransitionError):
            mark_shipped(self.order.pk, 'BR000000002')
        with self.assertRaises(InvalidTransitionError):
            mark_delivered(self.order.pk)

    def test_unknown_order(self):
        for operation in (approve_order, cancel_order, mark_delivered):
            with self.assertRaises(NotFoundError):
                operation(uuid.uuid4())


class AuditLogTest(MarketplaceFixtureMixin, TestCase):
    def setUp(self):
        self.create_marketplace()
        self.order = create_order(self.customer.pk, [(self.offer.pk, 1)])

    def test_audit_log_is_immutable(self):
        entry = AuditLog.objects.get(order=self.order, event_type='order.created')
        self.assertEqual(entry.customer, self.customer)

        entry.description = 'edited'
        with self.assertRaises(ValidationError):
            entry.save()
        with self.assertRaises(ValidationError):
            entry.delete()
