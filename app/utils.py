"""
Input coercion shared by the service layer.

Monetary values are handled as ``Decimal`` with two decimal places, quantities
as plain ``int``. Anything else is rejected with InvalidValueError before a
transaction is opened. Lock contention reported by the database is turned into
ConflictError.
"""
import contextlib
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.core.validators import DecimalValidator
from django.db import OperationalError

from app.exceptions import ConflictError, InvalidValueError

CENT = Decimal('0.01')
ZERO = Decimal('0.00')

# Every money column is DecimalField(max_digits=12, decimal_places=2)
MONEY_MAX_DIGITS = 12
MONEY_DECIMAL_PLACES = 2
money_validator = DecimalValidator(MONEY_MAX_DIGITS, MONEY_DECIMAL_PLACES)

# SQLSTATE deadlock_detected and serialization_failure
LOCK_CONFLICT_SQLSTATES = {'40P01', '40001'}


def check_money(amount, field='amount'):
    """
    Refuse amounts that do not fit a money column.

    Raises:
        InvalidValueError: More than 12 digits or more than two decimal places
    """
    try:
        money_validator(amount)
    except ValidationError as exc:
        raise InvalidValueError(
            f"{field} {amount} does not fit in {MONEY_MAX_DIGITS} digits "
            f"with {MONEY_DECIMAL_PLACES} decimal places",
            field=field,
            value=amount,
        ) from exc
    return amount


def to_money(value, field='amount'):
    """
    Parse a monetary value.

    Accepts Decimal, int or numeric strings. Floats are converted through
    ``str`` so ``19.9`` becomes ``Decimal('19.90')``.

    Raises:
        InvalidValueError: Not a finite number, more than two decimal places,
            or too large for a money column
    """
    if isinstance(value, bool):
        raise InvalidValueError(f"{field} must be a number", field=field, value=value)
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise InvalidValueError(f"{field} must be a finite number", field=field, value=value)
        quantized = amount.quantize(CENT)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidValueError(f"{field} must be a number of reasonable size", field=field, value=value)
    if amount != quantized:
        raise InvalidValueError(
            f"{field} cannot have more than two decimal places",
            field=field,
            value=value,
        )
    return check_money(quantized, field)


def to_positive_money(value, field='amount'):
    amount = to_money(value, field)
    if amount <= ZERO:
        raise InvalidValueError(f"{field} must be positive, got {amount}", field=field, value=amount)
    return amount


def to_quantity(value, field='quantity'):
    """Parse an integral quantity; bools and floats are rejected"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidValueError(f"{field} must be an integer", field=field, value=value)
    return value


def is_lock_conflict(exc) -> bool:
    """True for deadlocks, serialization failures and SQLite busy errors"""
    cause = exc.__cause__
    sqlstate = getattr(cause, 'sqlstate', None) or getattr(cause, 'pgcode', None)
    if sqlstate in LOCK_CONFLICT_SQLSTATES:
        return True
    return 'database is locked' in str(exc)


@contextlib.contextmanager
def lock_conflicts_as(message, **params):
    """
    Re-raise lock contention from the database as a retryable ConflictError.

    Wrap it around ``transaction.atomic()`` so the transaction has already been
    rolled back when the error is translated. Other database errors propagate.
    """
    try:
        yield
    except OperationalError as exc:
        if not is_lock_conflict(exc):
            raise
        raise ConflictError(message, **params) from exc
