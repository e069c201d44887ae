from decimal import Decimal
from io import StringIO
import re

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from customers.models import Customer
from payments.services import allocate_payment
from tests.utils import MarketplaceFixtureMixin
from .models import Order
from .services import approve_order, create_order
from .tasks import audit_integrity
from .validators import IntegrityValidator


class IntegrityValidatorTest(MarketplaceFixtureMixin, TestCase):
    ansi_escape = re.compile(r"\x1b\[[0-9;]*m")

    def strip_ansi(self, value: str) -> str:
        return self.ansi_escape.sub("", value)

    def setUp(self):
        self.create_marketplace(price=Decimal('50.00'), offer_quantity=10, stock=(12, 8))
        self.order = create_order(self.customer.pk, [(self.offer.pk, 3)])
        allocate_payment(self.order.pk, 'CreditCard', Decimal('100.00'))
        allocate_payment(self.order.pk, 'Pix', Decimal('50.00'))
        approve_order(self.order.pk)

    def test_consistent_data_has_no_violations(self):
        results = IntegrityValidator.run()
        self.assertEqual(sum(len(violations) for violations in results.values()), 0)

    def test_detects_tampered_order_total(self):
        Order.objects.filter(pk=self.order.pk).update(total=Decimal('10.00'))

        violations = IntegrityValidator.check_order_totals()

        self.assertEqual(len(violations), 1)
        self.assertEqual(violations[0].record_id, self.order.pk)

    def test_detects_customer_without_specialization(self):
        orphan = Customer.objects.create(
            name='Orphan',
            email='orphan@example.com',
            address='Nowhere',
            kind=Customer.KIND_ORGANIZATION,
        )

        violations = IntegrityValidator.check_customer_specialization()

        self.assertEqual([violation.record_id for violation in violations], [orphan.pk])

    def test_detects_missing_delivery(self):
        self.order.delivery.delete()

        violations = IntegrityValidator.check_order_deliveries()

        self.assertEqual(len(violations), 1)
        self.assertIn('no delivery', violations[0].message)

    def test_command_passes_on_clean_data(self):
        out = StringIO()
        call_command('validate_integrity', verbose=True, stdout=out)
        output = self.strip_ansi(out.getvalue())

        self.assertIn('All integrity checks passed!', output)
        self.assertIn('order_totals: 0 violation(s)', output)

    def test_command_fails_on_violations(self):
        Order.objects.filter(pk=self.order.pk).update(total=Decimal('10.00'))

        out = StringIO()
        with self.assertRaises(CommandError):
            call_command('validate_integrity', stdout=out)
        self.assertIn('order_totals: 1 violation(s)', self.strip_ansi(out.getvalue()))

    def test_audit_task_returns_summary(self):
        Order.objects.filter(pk=self.order.pk).update(total=Decimal('10.00'))

        with self.assertLogs('orders.tasks', level='WARNING'):
            summary = audit_integrity()

        self.assertEqual(summary['order_totals'], 1)
        self.assertEqual(summary['approved_payments'], 0)
