"""
Concurrent callers against shared offers, stock and orders.

These run in real threads with their own database connections, so they use
TransactionTestCase: data created in setUp has to be committed to be visible
to the worker threads.
"""
import threading
from decimal import Decimal

from django.db import connection
from django.test import TransactionTestCase

from app.exceptions import DomainError, InsufficientOfferStockError
from customers.services import register_organization
from inventory.services import total_stock
from offers.services import get_offer
from orders.models import Order
from orders.services import approve_order, create_order, get_order
from payments.services import allocate_payment, total_allocated
from tests.utils import MarketplaceFixtureMixin


def run_concurrently(*calls):
    """
    Start every call at the same moment, each in its own thread.

    Returns:
        list of (result, exception) in call order
    """
    barrier = threading.Barrier(len(calls))
    outcomes = [None] * len(calls)

    def worker(index, func, args):
        try:
            barrier.wait()
            outcomes[index] = (func(*args), None)
        except DomainError as exc:
            outcomes[index] = (None, exc)
        finally:
            connection.close()

    threads = [
        threading.Thread(target=worker, args=(index, func, args))
        for index, (func, args) in enumerate(calls)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return outcomes


class ConcurrentOrderTest(MarketplaceFixtureMixin, TransactionTestCase):
    serialized_rollback = True

    def setUp(self):
        self.create_marketplace(price=Decimal('50.00'), offer_quantity=10, stock=(12, 8))
        self.second_customer = register_organization(
            name='Padaria Central',
            email='compras@padaria.com',
            address='Av. Brasil, 500',
            tax_id='44.444.444/0001-44',
            legal_name='Padaria Central Ltda',
        )

    def test_simultaneous_orders_cannot_oversell_offer(self):
        outcomes = run_concurrently(
            (create_order, (self.customer.pk, [(self.offer.pk, 6)])),
            (create_order, (self.second_customer.pk, [(self.offer.pk, 6)])),
        )

        placed = [result for result, error in outcomes if result is not None]
        failures = [error for result, error in outcomes if error is not None]
        self.assertEqual(len(placed), 1)
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], InsufficientOfferStockError)
        self.assertTrue(failures[0].retryable)

        self.assertEqual(get_offer(self.offer.pk).quantity, 4)
        self.assertEqual(total_stock(self.product.pk), 14)
        self.assertEqual(Order.objects.count(), 1)

    def test_concurrent_allocations_are_all_counted(self):
        order = create_order(self.customer.pk, [(self.offer.pk, 3)])

        outcomes = run_concurrently(
            (allocate_payment, (order.pk, 'CreditCard', Decimal('100.00'))),
            (allocate_payment, (order.pk, 'Pix', Decimal('50.00'))),
        )

        self.assertTrue(all(error is None for _, error in outcomes))
        self.assertEqual(total_allocated(order.pk), Decimal('150.00'))
        approve_order(order.pk)
        self.assertEqual(get_order(order.pk).status, Order.STATUS_APPROVED)
