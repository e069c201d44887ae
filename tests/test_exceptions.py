from django.test import SimpleTestCase

from app.exceptions import (
    ConflictError,
    DomainError,
    InsufficientOfferStockError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    PaymentIncompleteError,
)


class DomainErrorTest(SimpleTestCase):
    def test_message_defaults_to_docstring(self):
        error = NotFoundError()
        self.assertEqual(error.message, 'Referenced record does not exist')
        self.assertEqual(str(error), error.message)

    def test_as_dict(self):
        error = PaymentIncompleteError('Order is short', order_id=7, allocated='100.00')
        self.assertEqual(
            error.as_dict(),
            {
                'code': 'payment_incomplete',
                'message': 'Order is short',
                'retryable': False,
                'params': {'order_id': '7', 'allocated': '100.00'},
            },
        )

    def test_only_contention_errors_are_retryable(self):
        retryable = {InsufficientStockError, InsufficientOfferStockError, ConflictError}
        for error_class in DomainError.__subclasses__():
            with self.subTest(error=error_class.__name__):
                self.assertEqual(error_class.retryable, error_class in retryable)
        self.assertFalse(InvalidTransitionError.retryable)
