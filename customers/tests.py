import uuid

from django.test import TestCase

from app.exceptions import (
    DuplicateIdentifierError,
    InvalidSpecializationChangeError,
    NotFoundError,
)
from .models import Customer, IndividualDetails, OrganizationDetails
from .services import (
    get_customer,
    register_individual,
    register_organization,
    update_customer,
)


class CustomerRegistrationTest(TestCase):
    def test_register_individual_creates_single_specialization(self):
        customer = register_individual(
            name='Ana Souza',
            email='Ana@Example.com ',
            address='Rua A, 10',
            tax_id='123.456.789-00',
        )

        self.assertEqual(customer.kind, Customer.KIND_INDIVIDUAL)
        self.assertEqual(customer.email, 'ana@example.com')
        self.assertEqual(customer.tax_id, '123.456.789-00')
        self.assertTrue(IndividualDetails.objects.filter(customer=customer).exists())
        self.assertFalse(OrganizationDetails.objects.filter(customer=customer).exists())

    def test_register_organization_keeps_legal_name(self):
        customer = register_organization(
            name='Acme',
            email='buyer@acme.com',
            address='Av. Central, 1000',
            tax_id='12.345.678/0001-90',
            legal_name='Acme Comercio Ltda',
        )

        details = customer.specialization
        self.assertIsInstance(details, OrganizationDetails)
        self.assertEqual(details.legal_name, 'Acme Comercio Ltda')
        self.assertFalse(IndividualDetails.objects.filter(customer=customer).exists())

    def test_duplicate_email_is_rejected(self):
        register_individual('Ana', 'ana@example.com', 'Rua A', '111')

        with self.assertRaises(DuplicateIdentifierError):
            register_organization('Other', 'ANA@example.com', 'Rua B', '222', 'Other Ltda')

        self.assertEqual(Customer.objects.count(), 1)

    def test_duplicate_tax_id_is_rejected_without_partial_record(self):
        register_individual('Ana', 'ana@example.com', 'Rua A', '111')

        with self.assertRaises(DuplicateIdentifierError):
            register_individual('Bruno', 'bruno@example.com', 'Rua B', '111')

        self.assertFalse(Customer.objects.filter(email='bruno@example.com').exists())

    def test_get_customer_unknown_id(self):
        with self.assertRaises(NotFoundError):
            get_customer(uuid.uuid4())
        with self.assertRaises(NotFoundError):
            get_customer('not-a-uuid')


class CustomerUpdateTest(TestCase):
    def setUp(self):
        self.customer = register_individual('Ana', 'ana@example.com', 'Rua A', '111')
        self.other = register_individual('Bruno', 'bruno@example.com', 'Rua B', '222')

    def test_update_contact_data(self):
        updated = update_customer(
            self.customer.pk,
            name='Ana Maria',
            address='Rua C, 5',
            email='ana.maria@example.com',
        )

        updated.refresh_from_db()
        self.assertEqual(updated.name, 'Ana Maria')
        self.assertEqual(updated.address, 'Rua C, 5')
        self.assertEqual(updated.email, 'ana.maria@example.com')

    def test_update_to_taken_email_is_rejected(self):
        with self.assertRaises(DuplicateIdentifierError):
            update_customer(self.customer.pk, email='bruno@example.com')

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.email, 'ana@example.com')

    def test_specialization_change_is_rejected(self):
        with self.assertRaises(InvalidSpecializationChangeError):
            update_customer(self.customer.pk, kind=Customer.KIND_ORGANIZATION)

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.kind, Customer.KIND_INDIVIDUAL)

    def test_same_kind_is_accepted(self):
        updated = update_customer(self.customer.pk, kind=Customer.KIND_INDIVIDUAL, name='Ana B')
        self.assertEqual(updated.name, 'Ana B')

    def test_model_refuses_kind_switch(self):
        self.customer.kind = Customer.KIND_ORGANIZATION
        with self.assertRaises(InvalidSpecializationChangeError):
            self.customer.save()

    def test_second_specialization_is_refused(self):
        with self.assertRaises(InvalidSpecializationChangeError):
            OrganizationDetails.objects.create(
                customer=self.customer,
                tax_id='999',
                legal_name='Ana Ltda',
            )

    def test_update_unknown_customer(self):
        with self.assertRaises(NotFoundError):
            update_customer(uuid.uuid4(), name='Nobody')
