"""
Every (status, requested transition) pair that is not explicitly allowed must
fail with InvalidTransitionError and leave the record untouched.
"""
from decimal import Decimal

from django.test import TestCase

from app.exceptions import InvalidTransitionError
from deliveries.models import Delivery
from deliveries.services import complete_delivery, dispatch_delivery, fail_delivery
from offers.services import get_offer
from orders.models import Order
from orders.services import approve_order, cancel_order, create_order, mark_delivered, mark_shipped
from payments.services import allocate_payment
from tests.utils import MarketplaceFixtureMixin

ORDER_STATUSES = [status for status, _ in Order.STATUS_CHOICES]
DELIVERY_STATUSES = [status for status, _ in Delivery.STATUS_CHOICES]


class OrderStateMachineTest(MarketplaceFixtureMixin, TestCase):
    def setUp(self):
        self.create_marketplace(price=Decimal('50.00'), offer_quantity=10, stock=(12, 8))
        self.order = create_order(self.customer.pk, [(self.offer.pk, 3)])
        allocate_payment(self.order.pk, 'Pix', Decimal('150.00'))

    def force_status(self, status):
        Order.objects.filter(pk=self.order.pk).update(status=status)

    def test_allowed_transitions(self):
        self.assertEqual(
            {status: set(targets) for status, targets in Order.VALID_TRANSITIONS.items()},
            {
                'PROCESSING': {'APPROVED', 'CANCELLED'},
                'APPROVED': {'SHIPPED', 'CANCELLED'},
                'SHIPPED': {'DELIVERED'},
                'DELIVERED': set(),
                'CANCELLED': set(),
            },
        )

    def test_model_refuses_unlisted_pairs(self):
        for current in ORDER_STATUSES:
            for target in ORDER_STATUSES:
                if target in Order.VALID_TRANSITIONS[current]:
                    continue
                with self.subTest(current=current, target=target):
                    order = Order(pk=self.order.pk, status=current)
                    with self.assertRaises(InvalidTransitionError):
                        order.check_transition(target)

    def test_operations_refuse_unlisted_pairs(self):
        operations = {
            Order.STATUS_APPROVED: lambda: approve_order(self.order.pk),
            Order.STATUS_SHIPPED: lambda: mark_shipped(self.order.pk, 'BR999'),
            Order.STATUS_DELIVERED: lambda: mark_delivered(self.order.pk),
            Order.STATUS_CANCELLED: lambda: cancel_order(self.order.pk),
        }
        for current in ORDER_STATUSES:
            for target, operation in operations.items():
                if target in Order.VALID_TRANSITIONS[current]:
                    continue
                with self.subTest(current=current, target=target):
                    self.force_status(current)
                    with self.assertRaises(InvalidTransitionError):
                        operation()
                    self.assertEqual(Order.objects.get(pk=self.order.pk).status, current)

        # Nothing was returned to the offer by a refused cancellation
        self.assertEqual(get_offer(self.offer.pk).quantity, 7)


class DeliveryStateMachineTest(MarketplaceFixtureMixin, TestCase):
    def setUp(self):
        self.create_marketplace(price=Decimal('50.00'), offer_quantity=10, stock=(12, 8))
        self.order = create_order(self.customer.pk, [(self.offer.pk, 1)])
        allocate_payment(self.order.pk, 'CreditCard', Decimal('50.00'))
        approve_order(self.order.pk)

    def force_status(self, status):
        tracking_code = None if status in (Delivery.STATUS_PREPARING, Delivery.STATUS_FAILED) else 'BR-FORCED'
        Delivery.objects.filter(order=self.order).update(status=status, tracking_code=tracking_code)

    def test_allowed_transitions(self):
        self.assertEqual(
            {status: set(targets) for status, targets in Delivery.VALID_TRANSITIONS.items()},
            {
                'PREPARING': {'IN_TRANSIT', 'FAILED'},
                'IN_TRANSIT': {'DELIVERED', 'FAILED'},
                'DELIVERED': set(),
                'FAILED': set(),
            },
        )

    def test_operations_refuse_unlisted_pairs(self):
        operations = {
            Delivery.STATUS_IN_TRANSIT: lambda: dispatch_delivery(self.order.pk, 'BR777'),
            Delivery.STATUS_DELIVERED: lambda: complete_delivery(self.order.pk),
            Delivery.STATUS_FAILED: lambda: fail_delivery(self.order.pk),
        }
        for current in DELIVERY_STATUSES:
            for target, operation in operations.items():
                if target in Delivery.VALID_TRANSITIONS[current]:
                    continue
                with self.subTest(current=current, target=target):
                    self.force_status(current)
                    with self.assertRaises(InvalidTransitionError):
                        operation()
                    self.assertEqual(Delivery.objects.get(order=self.order).status, current)

    def test_model_refuses_unlisted_pairs(self):
        for current in DELIVERY_STATUSES:
            for target in DELIVERY_STATUSES:
                if target in Delivery.VALID_TRANSITIONS[current]:
                    continue
                with self.subTest(current=current, target=target):
                    delivery = Delivery(status=current)
                    with self.assertRaises(InvalidTransitionError):
                        delivery.check_transition(target)
