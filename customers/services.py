"""
Customer registry operations.

Registration writes the base customer and its single specialization record in
one transaction, so a half-registered customer is never visible.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from app.exceptions import (
    DuplicateIdentifierError,
    InvalidSpecializationChangeError,
    NotFoundError,
)
from .models import Customer, IndividualDetails, OrganizationDetails

logger = logging.getLogger(__name__)


def _normalize_email(email):
    return (email or '').strip().lower()


def _ensure_email_free(email, exclude_id=None):
    queryset = Customer.objects.filter(email=email)
    if exclude_id is not None:
        queryset = queryset.exclude(pk=exclude_id)
    if queryset.exists():
        raise DuplicateIdentifierError(
            f"Email {email} is already registered",
            field='email',
            value=email,
        )


def _register(kind, details_model, *, name, email, address, tax_id, **details):
    email = _normalize_email(email)
    tax_id = (tax_id or '').strip()

    _ensure_email_free(email)
    if details_model.objects.filter(tax_id=tax_id).exists():
        raise DuplicateIdentifierError(
            f"Tax ID {tax_id} is already registered for another {kind.lower()} customer",
            field='tax_id',
            value=tax_id,
        )

    try:
        with transaction.atomic():
            customer = Customer.objects.create(
                name=name,
                email=email,
                address=address,
                kind=kind,
            )
            details_model.objects.create(customer=customer, tax_id=tax_id, **details)
    except IntegrityError as exc:
        # Lost a race against a concurrent registration with the same identifiers
        raise DuplicateIdentifierError(
            f"Email {email} or tax ID {tax_id} is already registered",
            email=email,
            tax_id=tax_id,
        ) from exc

    logger.info("Registered %s customer %s (%s)", kind.lower(), customer.pk, email)
    return customer


def register_individual(name, email, address, tax_id):
    """Register a natural-person customer"""
    return _register(
        Customer.KIND_INDIVIDUAL,
        IndividualDetails,
        name=name,
        email=email,
        address=address,
        tax_id=tax_id,
    )


def register_organization(name, email, address, tax_id, legal_name):
    """Register a company customer"""
    return _register(
        Customer.KIND_ORGANIZATION,
        OrganizationDetails,
        name=name,
        email=email,
        address=address,
        tax_id=tax_id,
        legal_name=legal_name,
    )


def get_customer(customer_id):
    try:
        return Customer.objects.get(pk=customer_id)
    except (Customer.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError(f"Customer {customer_id} not found", customer_id=customer_id)


def update_customer(customer_id, *, name=None, email=None, address=None, kind=None):
    """
    Update a customer's contact data.

    Args:
        customer_id: Customer to update
        name, email, address: New values; None leaves the field unchanged
        kind: Accepted only when equal to the registered kind

    Raises:
        NotFoundError: Unknown customer
        DuplicateIdentifierError: Email belongs to another customer
        InvalidSpecializationChangeError: ``kind`` differs from the registered kind
    """
    with transaction.atomic():
        try:
            customer = Customer.objects.select_for_update().get(pk=customer_id)
        except (Customer.DoesNotExist, ValidationError, ValueError):
            raise NotFoundError(f"Customer {customer_id} not found", customer_id=customer_id)

        if kind is not None and kind != customer.kind:
            logger.warning(
                "Rejected specialization change for customer %s: %s -> %s",
                customer.pk, customer.kind, kind,
            )
            raise InvalidSpecializationChangeError(
                f"Customer {customer.pk} is registered as {customer.kind} and cannot become {kind}",
                customer_id=customer.pk,
                current_kind=customer.kind,
                requested_kind=kind,
            )

        update_fields = ['updated_at']
        if name is not None:
            customer.name = name
            update_fields.append('name')
        if address is not None:
            customer.address = address
            update_fields.append('address')
        if email is not None:
            email = _normalize_email(email)
            if email != customer.email:
                _ensure_email_free(email, exclude_id=customer.pk)
                customer.email = email
                update_fields.append('email')

        try:
            with transaction.atomic():
                customer.save(update_fields=update_fields)
        except IntegrityError as exc:
            raise DuplicateIdentifierError(
                f"Email {customer.email} is already registered",
                field='email',
                value=customer.email,
            ) from exc

    logger.info("Updated customer %s (%s)", customer.pk, ', '.join(update_fields))
    return customer
