"""
Data integrity validators for the marketplace
Re-checks the stored data against the invariants the services enforce
"""
from collections import namedtuple
from decimal import Decimal

from django.db.models import Count, Q, Sum

from customers.models import Customer
from deliveries.models import Delivery
from inventory.models import StockEntry
from offers.models import Offer
from payments.models import PaymentAllocation
from .models import Order

Violation = namedtuple('Violation', ['check', 'record_id', 'message'])


class IntegrityValidator:
    """
    Runs every integrity check and collects violations.

    Each check returns a list of Violation; an empty list means the check
    passed.
    """

    CHECKS = [
        ('customer_specialization', 'Each customer has exactly one matching specialization'),
        ('stock_non_negative', 'Warehouse stock quantities are non-negative'),
        ('offer_non_negative', 'Offer quantities are non-negative'),
        ('order_totals', 'Stored order totals equal their line totals'),
        ('approved_payments', 'Approved orders are fully paid'),
        ('order_deliveries', 'Approved orders have exactly one delivery in a matching state'),
    ]

    @staticmethod
    def check_customer_specialization():
        violations = []
        customers = Customer.objects.annotate(
            individual_count=Count('individual'),
            organization_count=Count('organization'),
        )
        for customer in customers:
            if customer.kind == Customer.KIND_INDIVIDUAL:
                expected = (customer.individual_count, customer.organization_count) == (1, 0)
            else:
                expected = (customer.individual_count, customer.organization_count) == (0, 1)
            if not expected:
                violations.append(Violation(
                    'customer_specialization',
                    customer.pk,
                    f"{customer.kind} customer has {customer.individual_count} individual "
                    f"and {customer.organization_count} organization records",
                ))
        return violations

    @staticmethod
    def check_stock_non_negative():
        return [
            Violation('stock_non_negative', entry.pk, f"Stock entry quantity is {entry.quantity}")
            for entry in StockEntry.objects.filter(quantity__lt=0)
        ]

    @staticmethod
    def check_offer_non_negative():
        return [
            Violation('offer_non_negative', offer.pk, f"Offer quantity is {offer.quantity}")
            for offer in Offer.objects.filter(quantity__lt=0)
        ]

    @staticmethod
    def check_order_totals():
        violations = []
        for order in Order.objects.prefetch_related('lines'):
            lines = list(order.lines.all())
            if not lines:
                violations.append(Violation('order_totals', order.pk, "Order has no lines"))
                continue
            computed = sum((line.line_total for line in lines), Decimal('0.00'))
            if computed != order.total:
                violations.append(Violation(
                    'order_totals',
                    order.pk,
                    f"Stored total {order.total} differs from line total {computed}",
                ))
        return violations

    @staticmethod
    def check_approved_payments():
        violations = []
        paid_statuses = [Order.STATUS_APPROVED, Order.STATUS_SHIPPED, Order.STATUS_DELIVERED]
        for order in Order.objects.filter(status__in=paid_statuses).prefetch_related('lines'):
            allocated = PaymentAllocation.objects.filter(order=order).aggregate(
                total=Sum('amount')
            )['total'] or Decimal('0.00')
            computed = order.compute_total()
            if allocated != computed:
                violations.append(Violation(
                    'approved_payments',
                    order.pk,
                    f"{order.status} order has {allocated} allocated against a total of {computed}",
                ))
        return violations

    @staticmethod
    def check_order_deliveries():
        violations = []
        expected_states = {
            Order.STATUS_APPROVED: {Delivery.STATUS_PREPARING},
            Order.STATUS_SHIPPED: {Delivery.STATUS_IN_TRANSIT},
            Order.STATUS_DELIVERED: {Delivery.STATUS_DELIVERED},
        }
        orders = Order.objects.filter(
            Q(status__in=list(expected_states)) | Q(delivery__isnull=False)
        ).select_related('delivery')
        for order in orders:
            delivery = getattr(order, 'delivery', None)
            if order.status == Order.STATUS_PROCESSING and delivery is not None:
                violations.append(Violation(
                    'order_deliveries', order.pk, "Unapproved order already has a delivery",
                ))
            elif order.status in expected_states:
                if delivery is None:
                    violations.append(Violation(
                        'order_deliveries', order.pk, f"{order.status} order has no delivery",
                    ))
                elif delivery.status not in expected_states[order.status]:
                    violations.append(Violation(
                        'order_deliveries',
                        order.pk,
                        f"{order.status} order has a {delivery.status} delivery",
                    ))
        return violations

    @classmethod
    def run(cls):
        """
        Run all checks

        Returns:
            dict mapping check name to its list of violations
        """
        return {
            name: getattr(cls, f'check_{name}')()
            for name, _ in cls.CHECKS
        }
