import uuid
from decimal import Decimal

from django.core.exceptions import ImproperlyConfigured
from django.test import TestCase

from app.exceptions import (
    InvalidTransitionError,
    InvalidValueError,
    NotFoundError,
    PaymentIncompleteError,
    UnknownPaymentMethodError,
)
from orders.models import Order
from orders.services import approve_order, cancel_order, create_order, get_order
from tests.utils import MarketplaceFixtureMixin
from . import catalog
from .models import PaymentAllocation, PaymentMethod
from .services import allocate_payment, get_allocations, total_allocated


class PaymentCatalogTest(TestCase):
    def test_seeded_methods_match_catalog(self):
        self.assertEqual(
            set(PaymentMethod.objects.values_list('code', flat=True)),
            {'CreditCard', 'Boleto', 'Pix'},
        )
        self.assertEqual(catalog.enabled_methods(), frozenset({'CreditCard', 'Boleto', 'Pix'}))

    def test_unsupported_codes_are_rejected_at_load(self):
        enabled = catalog.enabled_methods()
        try:
            with self.assertRaises(ImproperlyConfigured):
                catalog.load(['CreditCard', 'Bitcoin'])
            with self.assertRaises(ImproperlyConfigured):
                catalog.load([])
        finally:
            catalog.load(enabled)
        self.assertEqual(catalog.enabled_methods(), enabled)


class PaymentAllocationTest(MarketplaceFixtureMixin, TestCase):
    def setUp(self):
        self.create_marketplace(price=Decimal('50.00'), offer_quantity=10, stock=(12, 8))
        # 3 x 50.00 = 150.00
        self.order = create_order(self.customer.pk, [(self.offer.pk, 3)])

    def test_split_payment_approves_order(self):
        allocate_payment(self.order.pk, 'CreditCard', Decimal('100.00'))
        allocate_payment(self.order.pk, 'Pix', Decimal('50.00'))

        self.assertEqual(total_allocated(self.order.pk), Decimal('150.00'))
        approve_order(self.order.pk)
        self.assertEqual(get_order(self.order.pk).status, Order.STATUS_APPROVED)

    def test_partial_payment_does_not_approve(self):
        allocate_payment(self.order.pk, 'CreditCard', Decimal('100.00'))

        with self.assertRaises(PaymentIncompleteError):
            approve_order(self.order.pk)

    def test_reallocation_replaces_amount(self):
        allocate_payment(self.order.pk, 'CreditCard', Decimal('100.00'))
        allocate_payment(self.order.pk, 'CreditCard', Decimal('150.00'))

        self.assertEqual(total_allocated(self.order.pk), Decimal('150.00'))
        self.assertEqual(PaymentAllocation.objects.filter(order=self.order).count(), 1)
        self.assertEqual(get_allocations(self.order.pk), {'CreditCard': Decimal('150.00')})

    def test_allocation_never_changes_status(self):
        allocate_payment(self.order.pk, 'Boleto', Decimal('150.00'))
        self.assertEqual(get_order(self.order.pk).status, Order.STATUS_PROCESSING)

    def test_total_is_zero_without_allocations(self):
        self.assertEqual(total_allocated(self.order.pk), Decimal('0.00'))
        self.assertEqual(get_allocations(self.order.pk), {})

    def test_invalid_amounts(self):
        for amount in (Decimal('0'), Decimal('-10.00'), 'ten', Decimal('1.005')):
            with self.assertRaises(InvalidValueError):
                allocate_payment(self.order.pk, 'Pix', amount)

    def test_amount_must_fit_a_money_column(self):
        for amount in (Decimal('99999999999.00'), Decimal('1e30')):
            with self.subTest(amount=amount):
                with self.assertRaises(InvalidValueError):
                    allocate_payment(self.order.pk, 'Pix', amount)
        self.assertEqual(get_allocations(self.order.pk), {})

    def test_unknown_payment_method(self):
        with self.assertRaises(UnknownPaymentMethodError):
            allocate_payment(self.order.pk, 'PayPal', Decimal('10.00'))
        with self.assertRaises(UnknownPaymentMethodError):
            allocate_payment(self.order.pk, 'pix', Decimal('10.00'))

    def test_unknown_order(self):
        with self.assertRaises(NotFoundError):
            allocate_payment(uuid.uuid4(), 'Pix', Decimal('10.00'))
        with self.assertRaises(NotFoundError):
            total_allocated(uuid.uuid4())
        with self.assertRaises(NotFoundError):
            total_allocated('not-an-id')

    def test_no_allocation_after_cancellation(self):
        cancel_order(self.order.pk)
        with self.assertRaises(InvalidTransitionError):
            allocate_payment(self.order.pk, 'Pix', Decimal('150.00'))

    def test_no_allocation_after_approval(self):
        allocate_payment(self.order.pk, 'Pix', Decimal('150.00'))
        approve_order(self.order.pk)

        with self.assertRaises(InvalidTransitionError):
            allocate_payment(self.order.pk, 'Pix', Decimal('10.00'))
        self.assertEqual(total_allocated(self.order.pk), Decimal('150.00'))
