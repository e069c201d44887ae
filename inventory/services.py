"""
Catalog and warehouse stock operations.

Stock quantities are only ever changed through guarded UPDATE statements
(``quantity >= n``) on rows locked with select_for_update, so a quantity can
never be driven below zero even when several orders draw on the same product.
"""
import logging
from collections import namedtuple

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from app.exceptions import InsufficientStockError, InvalidValueError, NotFoundError
from app.utils import to_positive_money, to_quantity
from .models import Product, StockEntry, Warehouse

logger = logging.getLogger(__name__)

# Quantity taken from (or returned to) a single warehouse
Draw = namedtuple('Draw', ['warehouse_id', 'quantity'])


def add_product(name, category, description, base_value):
    base_value = to_positive_money(base_value, 'base_value')

    product = Product.objects.create(
        name=name,
        category=category,
        description=description or '',
        base_value=base_value,
    )
    logger.info("Added product %s (%s) with base value %s", product.pk, name, base_value)
    return product


def add_warehouse(location):
    warehouse = Warehouse.objects.create(location=location)
    logger.info("Added warehouse %s at %s", warehouse.pk, location)
    return warehouse


def get_product(product_id):
    try:
        return Product.objects.get(pk=product_id)
    except (Product.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError(f"Product {product_id} not found", product_id=product_id)


def get_warehouse(warehouse_id):
    try:
        return Warehouse.objects.get(pk=warehouse_id)
    except (Warehouse.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError(f"Warehouse {warehouse_id} not found", warehouse_id=warehouse_id)


def adjust_stock(product_id, warehouse_id, delta):
    """
    Add or remove stock of a product in one warehouse.

    Args:
        product_id: Product to adjust
        warehouse_id: Warehouse holding the stock
        delta: Non-zero integer; negative values remove stock

    Returns:
        StockEntry with the new quantity

    Raises:
        InsufficientStockError: If the entry would go negative
    """
    delta = to_quantity(delta, 'delta')
    if delta == 0:
        raise InvalidValueError("Stock adjustment must be non-zero", field='delta', value=delta)

    with transaction.atomic():
        product = get_product(product_id)
        warehouse = get_warehouse(warehouse_id)

        entry, _ = StockEntry.objects.select_for_update().get_or_create(
            product=product,
            warehouse=warehouse,
            defaults={'quantity': 0},
        )

        updated = StockEntry.objects.filter(pk=entry.pk, quantity__gte=-delta).update(
            quantity=F('quantity') + delta,
            updated_at=timezone.now(),
        )
        if not updated:
            logger.warning(
                "Rejected stock adjustment of %s for product %s at warehouse %s (on hand %s)",
                delta, product.pk, warehouse.pk, entry.quantity,
            )
            raise InsufficientStockError(
                f"Insufficient stock for {product.name} at {warehouse.location}. "
                f"Available: {entry.quantity}, Adjustment: {delta}",
                product_id=product.pk,
                warehouse_id=warehouse.pk,
                available=entry.quantity,
                requested=-delta,
            )

        entry.refresh_from_db()

    logger.info(
        "Adjusted stock of product %s at warehouse %s by %s (now %s)",
        product.pk, warehouse.pk, delta, entry.quantity,
    )
    return entry


def total_stock(product_id) -> int:
    """Total on-hand quantity of a product across all warehouses"""
    return get_product(product_id).total_stock()


def stock_levels(product_id):
    """Mapping of warehouse id to on-hand quantity for one product"""
    product = get_product(product_id)
    return dict(
        StockEntry.objects.filter(product=product).values_list('warehouse_id', 'quantity')
    )


def draw_stock(product_id, quantity):
    """
    Remove ``quantity`` units of a product, largest warehouse first.

    Warehouses are drained in descending order of on-hand quantity; ties are
    broken by warehouse location and then id so the choice is deterministic.
    Either the whole quantity is drawn or nothing is.

    Returns:
        list[Draw]: Quantity taken from each warehouse, in draw order
    """
    quantity = to_quantity(quantity)
    if quantity < 1:
        raise InvalidValueError("Quantity must be at least 1", field='quantity', value=quantity)

    with transaction.atomic():
        # Rows are locked in warehouse order, then drained largest first
        entries = sorted(
            StockEntry.objects.select_for_update(of=('self',))
            .select_related('warehouse')
            .filter(product_id=product_id, quantity__gt=0)
            .order_by('warehouse_id'),
            key=lambda entry: (-entry.quantity, entry.warehouse.location, str(entry.warehouse_id)),
        )
        available = sum(entry.quantity for entry in entries)
        if available < quantity:
            raise InsufficientStockError(
                f"Insufficient stock for product {product_id}. "
                f"Available: {available}, Requested: {quantity}",
                product_id=product_id,
                available=available,
                requested=quantity,
            )

        draws = []
        remaining = quantity
        now = timezone.now()
        for entry in entries:
            if remaining == 0:
                break
            take = min(entry.quantity, remaining)
            updated = StockEntry.objects.filter(pk=entry.pk, quantity__gte=take).update(
                quantity=F('quantity') - take,
                updated_at=now,
            )
            if not updated:
                # Entry changed underneath the lock; let the caller retry
                raise InsufficientStockError(
                    f"Stock for product {product_id} changed concurrently",
                    product_id=product_id,
                    warehouse_id=entry.warehouse_id,
                    requested=take,
                )
            draws.append(Draw(entry.warehouse_id, take))
            remaining -= take

    logger.debug("Drew %s units of product %s: %s", quantity, product_id, draws)
    return draws


def restore_stock(product_id, draws):
    """Return previously drawn quantities to the warehouses they came from"""
    with transaction.atomic():
        now = timezone.now()
        for draw in sorted(draws, key=lambda draw: str(draw.warehouse_id)):
            entry, _ = StockEntry.objects.select_for_update().get_or_create(
                product_id=product_id,
                warehouse_id=draw.warehouse_id,
                defaults={'quantity': 0},
            )
            StockEntry.objects.filter(pk=entry.pk).update(
                quantity=F('quantity') + draw.quantity,
                updated_at=now,
            )
    logger.debug("Restored stock of product %s: %s", product_id, draws)
