"""
Domain errors raised by the marketplace services.

Every rejected operation surfaces one of these to the caller. Errors marked
retryable are caused by contention on shared stock, offers or order rows and
can be retried after re-reading current state.
"""


class DomainError(Exception):
    """Base exception for integrity violations"""
    code = 'domain_error'
    retryable = False

    def __init__(self, message=None, **params):
        self.message = message or self.__class__.__doc__
        self.params = params
        super().__init__(self.message)

    def as_dict(self):
        return {
            'code': self.code,
            'message': self.message,
            'retryable': self.retryable,
            'params': {key: str(value) for key, value in self.params.items()},
        }


class NotFoundError(DomainError):
    """Referenced record does not exist"""
    code = 'not_found'


class DuplicateIdentifierError(DomainError):
    """A unique identifier is already in use"""
    code = 'duplicate_identifier'


class InvalidSpecializationChangeError(DomainError):
    """A customer's specialization cannot be changed"""
    code = 'invalid_specialization_change'


class InvalidValueError(DomainError):
    """A value is outside its allowed range"""
    code = 'invalid_value'


class InsufficientStockError(DomainError):
    """Warehouse stock cannot cover the requested quantity"""
    code = 'insufficient_stock'
    retryable = True


class InsufficientOfferStockError(DomainError):
    """Offer quantity cannot cover the requested quantity"""
    code = 'insufficient_offer_stock'
    retryable = True


class DuplicateOfferError(DomainError):
    """The vendor already lists this product"""
    code = 'duplicate_offer'


class InvalidTransitionError(DomainError):
    """The requested status change is not allowed"""
    code = 'invalid_transition'


class PaymentIncompleteError(DomainError):
    """Payment allocations do not match the order total"""
    code = 'payment_incomplete'


class UnknownPaymentMethodError(DomainError):
    """Payment method is not part of the configured catalog"""
    code = 'unknown_payment_method'


class ConflictError(DomainError):
    """The record was changed concurrently"""
    code = 'conflict'
    retryable = True
