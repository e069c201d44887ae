import uuid
from decimal import Decimal

from django.test import TestCase

from app.exceptions import (
    DuplicateIdentifierError,
    InvalidTransitionError,
    InvalidValueError,
    NotFoundError,
)
from orders.models import Order
from orders.services import approve_order, create_order, get_order, mark_delivered, mark_shipped
from payments.services import allocate_payment
from tests.utils import MarketplaceFixtureMixin
from .models import Delivery
from .services import (
    complete_delivery,
    create_delivery,
    dispatch_delivery,
    fail_delivery,
    get_delivery,
)


class DeliveryTrackerTest(MarketplaceFixtureMixin, TestCase):
    def setUp(self):
        self.create_marketplace(price=Decimal('25.00'), offer_quantity=10, stock=(12, 8))
        self.order = self.approved_order(2)

    def approved_order(self, quantity):
        order = create_order(self.customer.pk, [(self.offer.pk, quantity)])
        allocate_payment(order.pk, 'Pix', Decimal('25.00') * quantity)
        approve_order(order.pk)
        return order

    def test_one_delivery_per_order(self):
        self.assertEqual(Delivery.objects.filter(order=self.order).count(), 1)
        with self.assertRaises(InvalidTransitionError):
            create_delivery(get_order(self.order.pk))

    def test_only_approved_orders_get_a_delivery(self):
        processing = create_order(self.customer.pk, [(self.offer.pk, 1)])

        with self.assertRaises(InvalidTransitionError):
            create_delivery(processing)
        self.assertFalse(Delivery.objects.filter(order=processing).exists())
        self.assertEqual(get_order(processing.pk).status, Order.STATUS_PROCESSING)

    def test_tracking_code_set_once(self):
        delivery = dispatch_delivery(self.order.pk, 'BR111')
        self.assertEqual(delivery.status, Delivery.STATUS_IN_TRANSIT)
        self.assertIsNotNone(delivery.dispatched_at)

        with self.assertRaises(InvalidTransitionError):
            dispatch_delivery(self.order.pk, 'BR222')
        self.assertEqual(get_delivery(self.order.pk).tracking_code, 'BR111')

    def test_tracking_code_is_unique(self):
        other = self.approved_order(1)
        dispatch_delivery(self.order.pk, 'BR111')

        with self.assertRaises(DuplicateIdentifierError):
            dispatch_delivery(other.pk, 'BR111')
        self.assertEqual(get_delivery(other.pk).status, Delivery.STATUS_PREPARING)

    def test_blank_tracking_code(self):
        with self.assertRaises(InvalidValueError):
            dispatch_delivery(self.order.pk, '  ')

    def test_complete_requires_transit(self):
        with self.assertRaises(InvalidTransitionError):
            complete_delivery(self.order.pk)

        dispatch_delivery(self.order.pk, 'BR111')
        delivery = complete_delivery(self.order.pk)
        self.assertEqual(delivery.status, Delivery.STATUS_DELIVERED)

    def test_fail_from_preparing_and_transit(self):
        fail_delivery(self.order.pk, reason='Address not found')
        delivery = get_delivery(self.order.pk)
        self.assertEqual(delivery.status, Delivery.STATUS_FAILED)
        self.assertEqual(delivery.failure_reason, 'Address not found')

        other = self.approved_order(1)
        dispatch_delivery(other.pk, 'BR333')
        self.assertEqual(fail_delivery(other.pk).status, Delivery.STATUS_FAILED)

    def test_final_states_refuse_everything(self):
        dispatch_delivery(self.order.pk, 'BR111')
        complete_delivery(self.order.pk)

        with self.assertRaises(InvalidTransitionError):
            fail_delivery(self.order.pk)
        with self.assertRaises(InvalidTransitionError):
            complete_delivery(self.order.pk)

    def test_shipped_order_delivery_cannot_fail(self):
        mark_shipped(self.order.pk, 'BR111')

        with self.assertRaises(InvalidTransitionError):
            fail_delivery(self.order.pk, reason='Lost')
        self.assertEqual(get_delivery(self.order.pk).status, Delivery.STATUS_IN_TRANSIT)

        mark_delivered(self.order.pk)
        self.assertEqual(get_order(self.order.pk).status, Order.STATUS_DELIVERED)

    def test_failed_delivery_cannot_be_dispatched(self):
        fail_delivery(self.order.pk)
        with self.assertRaises(InvalidTransitionError):
            dispatch_delivery(self.order.pk, 'BR444')

    def test_unknown_order(self):
        with self.assertRaises(NotFoundError):
            get_delivery(uuid.uuid4())
        with self.assertRaises(NotFoundError):
            dispatch_delivery(uuid.uuid4(), 'BR555')
