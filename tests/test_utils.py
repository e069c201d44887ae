from decimal import Decimal

from django.db import OperationalError
from django.test import SimpleTestCase

from app.exceptions import ConflictError, InvalidValueError
from app.utils import check_money, lock_conflicts_as, to_money


class DeadlockDetected(Exception):
    sqlstate = '40P01'


class SerializationFailure(Exception):
    pgcode = '40001'


class MoneyParsingTest(SimpleTestCase):
    def test_accepts_values_that_fit(self):
        self.assertEqual(to_money('19.9'), Decimal('19.90'))
        self.assertEqual(to_money(7), Decimal('7.00'))
        self.assertEqual(to_money(Decimal('9999999999.99')), Decimal('9999999999.99'))

    def test_rejects_values_too_large_for_a_money_column(self):
        for value in (Decimal('1e30'), Decimal('10000000000.00'), '1' * 40):
            with self.subTest(value=value):
                with self.assertRaises(InvalidValueError):
                    to_money(value)

    def test_check_money_reports_the_field(self):
        with self.assertRaises(InvalidValueError) as caught:
            check_money(Decimal('19999999999.98'), field='total')
        self.assertEqual(caught.exception.params['field'], 'total')


class LockConflictTest(SimpleTestCase):
    def test_deadlock_becomes_conflict(self):
        for cause in (DeadlockDetected(), SerializationFailure()):
            with self.subTest(cause=type(cause).__name__):
                with self.assertRaises(ConflictError) as caught:
                    with lock_conflicts_as('Order hit a lock conflict', order_id=1):
                        raise OperationalError('could not serialize') from cause
                self.assertTrue(caught.exception.retryable)
                self.assertIsInstance(caught.exception.__cause__, OperationalError)

    def test_sqlite_busy_becomes_conflict(self):
        with self.assertRaises(ConflictError):
            with lock_conflicts_as('Order hit a lock conflict'):
                raise OperationalError('database is locked')

    def test_other_database_errors_propagate(self):
        with self.assertRaises(OperationalError):
            with lock_conflicts_as('Order hit a lock conflict'):
                raise OperationalError('no such table: orders')
