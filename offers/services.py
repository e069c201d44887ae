"""
Vendor listings and their self-reported availability.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from app.exceptions import (
    DuplicateIdentifierError,
    DuplicateOfferError,
    InsufficientOfferStockError,
    InvalidValueError,
    NotFoundError,
)
from app.utils import to_positive_money, to_quantity
from inventory.services import get_product
from .models import Offer, Vendor

logger = logging.getLogger(__name__)


def register_vendor(legal_name, tax_id):
    tax_id = (tax_id or '').strip()
    if Vendor.objects.filter(tax_id=tax_id).exists():
        raise DuplicateIdentifierError(
            f"Vendor tax ID {tax_id} is already registered",
            field='tax_id',
            value=tax_id,
        )
    try:
        with transaction.atomic():
            vendor = Vendor.objects.create(legal_name=legal_name, tax_id=tax_id)
    except IntegrityError as exc:
        raise DuplicateIdentifierError(
            f"Vendor tax ID {tax_id} is already registered",
            field='tax_id',
            value=tax_id,
        ) from exc

    logger.info("Registered vendor %s (%s)", vendor.pk, legal_name)
    return vendor


def get_vendor(vendor_id):
    try:
        return Vendor.objects.get(pk=vendor_id)
    except (Vendor.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError(f"Vendor {vendor_id} not found", vendor_id=vendor_id)


def get_offer(offer_id):
    try:
        return Offer.objects.select_related('product', 'vendor').get(pk=offer_id)
    except (Offer.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError(f"Offer {offer_id} not found", offer_id=offer_id)


def _lock_offer(offer_id):
    try:
        return Offer.objects.select_for_update().get(pk=offer_id)
    except (Offer.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError(f"Offer {offer_id} not found", offer_id=offer_id)


def create_offer(product_id, vendor_id, price, quantity):
    """
    List a product for a vendor.

    Raises:
        InvalidValueError: price <= 0 or quantity < 0
        NotFoundError: Unknown product or vendor
        DuplicateOfferError: The vendor already lists the product
    """
    price = to_positive_money(price, 'price')
    quantity = to_quantity(quantity)
    if quantity < 0:
        raise InvalidValueError("Offer quantity cannot be negative", field='quantity', value=quantity)

    product = get_product(product_id)
    vendor = get_vendor(vendor_id)

    if Offer.objects.filter(product=product, vendor=vendor).exists():
        raise DuplicateOfferError(
            f"{vendor.legal_name} already has an offer for {product.name}",
            product_id=product.pk,
            vendor_id=vendor.pk,
        )

    try:
        with transaction.atomic():
            offer = Offer.objects.create(
                product=product,
                vendor=vendor,
                price=price,
                quantity=quantity,
            )
    except IntegrityError as exc:
        raise DuplicateOfferError(
            f"{vendor.legal_name} already has an offer for {product.name}",
            product_id=product.pk,
            vendor_id=vendor.pk,
        ) from exc

    logger.info(
        "Created offer %s: product %s by vendor %s at %s (qty %s)",
        offer.pk, product.pk, vendor.pk, price, quantity,
    )
    return offer


def adjust_offer_quantity(offer_id, delta):
    """Add to or remove from an offer's listed quantity"""
    delta = to_quantity(delta, 'delta')
    if delta == 0:
        raise InvalidValueError("Offer adjustment must be non-zero", field='delta', value=delta)

    with transaction.atomic():
        offer = _lock_offer(offer_id)
        updated = Offer.objects.filter(pk=offer.pk, quantity__gte=-delta).update(
            quantity=F('quantity') + delta,
            updated_at=timezone.now(),
        )
        if not updated:
            logger.warning(
                "Rejected offer adjustment of %s for offer %s (listed %s)",
                delta, offer.pk, offer.quantity,
            )
            raise InsufficientOfferStockError(
                f"Offer {offer.pk} lists {offer.quantity}, cannot adjust by {delta}",
                offer_id=offer.pk,
                available=offer.quantity,
                requested=-delta,
            )
        offer.refresh_from_db()

    logger.info("Adjusted offer %s by %s (now %s)", offer.pk, delta, offer.quantity)
    return offer


def update_offer_price(offer_id, price):
    """Change the listed price; order lines already written keep their own unit price"""
    price = to_positive_money(price, 'price')
    with transaction.atomic():
        offer = _lock_offer(offer_id)
        old_price = offer.price
        offer.price = price
        offer.save(update_fields=['price', 'updated_at'])

    logger.info("Repriced offer %s from %s to %s", offer.pk, old_price, price)
    return offer


def lock_offers(offer_ids):
    """
    Lock a set of offers for update, in primary key order.

    Must be called inside an atomic block. Locking in a fixed order keeps two
    orders over overlapping offers from deadlocking each other.

    Returns:
        dict mapping offer id to the locked Offer
    """
    offers = {}
    for offer_id in sorted(offer_ids, key=str):
        offer = _lock_offer(offer_id)
        offers[offer.pk] = offer
    return offers


def take_offer_quantity(offer_id, quantity):
    """
    Decrement an offer for an order line being written.

    Must run inside the caller's transaction; the guarded UPDATE fails rather
    than oversell when a concurrent order got there first.
    """
    updated = Offer.objects.filter(pk=offer_id, quantity__gte=quantity).update(
        quantity=F('quantity') - quantity,
        updated_at=timezone.now(),
    )
    if not updated:
        available = Offer.objects.filter(pk=offer_id).values_list('quantity', flat=True).first()
        raise InsufficientOfferStockError(
            f"Offer {offer_id} cannot cover {quantity} units (listed {available})",
            offer_id=offer_id,
            available=available,
            requested=quantity,
        )


def return_offer_quantity(offer_id, quantity):
    Offer.objects.filter(pk=offer_id).update(
        quantity=F('quantity') + quantity,
        updated_at=timezone.now(),
    )
