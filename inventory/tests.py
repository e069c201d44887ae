import uuid
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.test import TestCase

from app.exceptions import InsufficientStockError, InvalidValueError, NotFoundError
from .models import StockEntry
from .services import (
    Draw,
    add_product,
    add_warehouse,
    adjust_stock,
    draw_stock,
    restore_stock,
    stock_levels,
    total_stock,
)


class ProductCatalogTest(TestCase):
    def test_add_product(self):
        product = add_product('Notebook', 'Computers', '14 inch', Decimal('3500.00'))

        product.refresh_from_db()
        self.assertEqual(product.base_value, Decimal('3500.00'))
        self.assertEqual(product.category, 'Computers')
        self.assertEqual(total_stock(product.pk), 0)

    def test_non_positive_base_value_is_rejected(self):
        for value in (Decimal('0'), Decimal('-1.50'), 'abc', None):
            with self.assertRaises(InvalidValueError):
                add_product('Broken', 'Misc', '', value)

    def test_base_value_must_fit_a_money_column(self):
        for value in (Decimal('1e30'), Decimal('10000000000.00'), '99999999999999'):
            with self.subTest(value=value):
                with self.assertRaises(InvalidValueError):
                    add_product('Yacht', 'Boats', '', value)

        product = add_product('Yacht', 'Boats', '', Decimal('9999999999.99'))
        self.assertEqual(product.base_value, Decimal('9999999999.99'))

    def test_total_stock_unknown_product(self):
        with self.assertRaises(NotFoundError):
            total_stock(uuid.uuid4())


class StockAdjustmentTest(TestCase):
    def setUp(self):
        self.product = add_product('Mouse', 'Peripherals', '', Decimal('80.00'))
        self.north = add_warehouse('North')
        self.south = add_warehouse('South')

    def test_adjust_creates_and_accumulates(self):
        adjust_stock(self.product.pk, self.north.pk, 10)
        entry = adjust_stock(self.product.pk, self.north.pk, 5)
        adjust_stock(self.product.pk, self.south.pk, 3)

        self.assertEqual(entry.quantity, 15)
        self.assertEqual(total_stock(self.product.pk), 18)

    def test_removal_below_zero_is_rejected(self):
        adjust_stock(self.product.pk, self.north.pk, 4)

        with self.assertRaises(InsufficientStockError) as ctx:
            adjust_stock(self.product.pk, self.north.pk, -5)

        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(stock_levels(self.product.pk), {self.north.pk: 4})

    def test_removal_from_empty_warehouse_leaves_nothing_behind(self):
        with self.assertRaises(InsufficientStockError):
            adjust_stock(self.product.pk, self.south.pk, -1)

        self.assertFalse(StockEntry.objects.filter(product=self.product).exists())

    def test_zero_and_non_integer_delta_rejected(self):
        for delta in (0, 1.5, '3', True):
            with self.assertRaises(InvalidValueError):
                adjust_stock(self.product.pk, self.north.pk, delta)

    def test_unknown_references(self):
        with self.assertRaises(NotFoundError):
            adjust_stock(uuid.uuid4(), self.north.pk, 1)
        with self.assertRaises(NotFoundError):
            adjust_stock(self.product.pk, uuid.uuid4(), 1)

    def test_database_refuses_negative_quantity(self):
        entry = adjust_stock(self.product.pk, self.north.pk, 1)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                StockEntry.objects.filter(pk=entry.pk).update(quantity=-1)


class StockDrawTest(TestCase):
    def setUp(self):
        self.product = add_product('Keyboard', 'Peripherals', '', Decimal('150.00'))
        self.alpha = add_warehouse('Alpha')
        self.beta = add_warehouse('Beta')
        self.gamma = add_warehouse('Gamma')
        adjust_stock(self.product.pk, self.alpha.pk, 3)
        adjust_stock(self.product.pk, self.beta.pk, 8)
        adjust_stock(self.product.pk, self.gamma.pk, 3)

    def test_draw_takes_largest_warehouse_first(self):
        draws = draw_stock(self.product.pk, 10)

        self.assertEqual(draws, [Draw(self.beta.pk, 8), Draw(self.alpha.pk, 2)])
        self.assertEqual(
            stock_levels(self.product.pk),
            {self.alpha.pk: 1, self.beta.pk: 0, self.gamma.pk: 3},
        )

    def test_draw_more_than_available_changes_nothing(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            draw_stock(self.product.pk, 15)

        self.assertEqual(ctx.exception.params['available'], 14)
        self.assertEqual(total_stock(self.product.pk), 14)

    def test_restore_returns_exact_quantities(self):
        before = stock_levels(self.product.pk)
        draws = draw_stock(self.product.pk, 12)

        restore_stock(self.product.pk, draws)

        self.assertEqual(stock_levels(self.product.pk), before)

    def test_draw_requires_positive_quantity(self):
        with self.assertRaises(InvalidValueError):
            draw_stock(self.product.pk, 0)
