"""
Payment-method catalog.

The set of accepted payment methods is closed. It is loaded once from
``settings.PAYMENT_METHODS`` when the payments app is ready and never changes
for the life of the process.
"""
import logging

from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

CREDIT_CARD = 'CreditCard'
BOLETO = 'Boleto'
PIX = 'Pix'

SUPPORTED_METHODS = (CREDIT_CARD, BOLETO, PIX)

LABELS = {
    CREDIT_CARD: 'Credit Card',
    BOLETO: 'Boleto Bancario',
    PIX: 'Pix',
}

_enabled = frozenset()


def load(codes):
    """Validate and install the enabled method codes"""
    global _enabled
    codes = tuple(codes or ())
    unknown = [code for code in codes if code not in SUPPORTED_METHODS]
    if unknown:
        raise ImproperlyConfigured(
            f"PAYMENT_METHODS contains unsupported codes {unknown}; "
            f"allowed: {', '.join(SUPPORTED_METHODS)}"
        )
    if not codes:
        raise ImproperlyConfigured("PAYMENT_METHODS must enable at least one payment method")

    _enabled = frozenset(codes)
    logger.debug("Payment methods enabled: %s", ', '.join(sorted(_enabled)))
    return _enabled


def enabled_methods():
    return _enabled


def is_enabled(code) -> bool:
    return code in _enabled
