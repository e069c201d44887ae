import uuid
from decimal import Decimal

from django.test import TestCase

from app.exceptions import (
    DuplicateIdentifierError,
    DuplicateOfferError,
    InsufficientOfferStockError,
    InvalidValueError,
    NotFoundError,
)
from inventory.services import add_product
from .services import (
    adjust_offer_quantity,
    create_offer,
    get_offer,
    register_vendor,
    return_offer_quantity,
    take_offer_quantity,
    update_offer_price,
)


class VendorTest(TestCase):
    def test_register_vendor(self):
        vendor = register_vendor('Loja Azul Ltda', '11.111.111/0001-11')
        self.assertEqual(vendor.tax_id, '11.111.111/0001-11')

    def test_duplicate_tax_id(self):
        register_vendor('Loja Azul Ltda', '111')
        with self.assertRaises(DuplicateIdentifierError):
            register_vendor('Loja Verde Ltda', '111')


class OfferLedgerTest(TestCase):
    def setUp(self):
        self.product = add_product('Headset', 'Audio', 'Wireless', Decimal('300.00'))
        self.vendor = register_vendor('Loja Azul Ltda', '111')
        self.other_vendor = register_vendor('Loja Verde Ltda', '222')

    def test_create_offer(self):
        offer = create_offer(self.product.pk, self.vendor.pk, Decimal('289.90'), 10)

        fetched = get_offer(offer.pk)
        self.assertEqual(fetched.price, Decimal('289.90'))
        self.assertEqual(fetched.quantity, 10)

    def test_two_vendors_may_list_the_same_product(self):
        create_offer(self.product.pk, self.vendor.pk, Decimal('289.90'), 10)
        offer = create_offer(self.product.pk, self.other_vendor.pk, Decimal('310.00'), 2)
        self.assertEqual(offer.vendor, self.other_vendor)

    def test_duplicate_pair_is_rejected(self):
        create_offer(self.product.pk, self.vendor.pk, Decimal('289.90'), 10)
        with self.assertRaises(DuplicateOfferError):
            create_offer(self.product.pk, self.vendor.pk, Decimal('250.00'), 1)

    def test_invalid_values(self):
        with self.assertRaises(InvalidValueError):
            create_offer(self.product.pk, self.vendor.pk, Decimal('0'), 1)
        with self.assertRaises(InvalidValueError):
            create_offer(self.product.pk, self.vendor.pk, Decimal('-5'), 1)
        with self.assertRaises(InvalidValueError):
            create_offer(self.product.pk, self.vendor.pk, Decimal('10.001'), 1)
        with self.assertRaises(InvalidValueError):
            create_offer(self.product.pk, self.vendor.pk, Decimal('10'), -1)

    def test_price_must_fit_a_money_column(self):
        with self.assertRaises(InvalidValueError):
            create_offer(self.product.pk, self.vendor.pk, Decimal('10000000000.00'), 1)
        offer = create_offer(self.product.pk, self.vendor.pk, Decimal('12.50'), 1)
        with self.assertRaises(InvalidValueError):
            update_offer_price(offer.pk, Decimal('1e30'))
        self.assertEqual(get_offer(offer.pk).price, Decimal('12.50'))

    def test_unknown_references(self):
        with self.assertRaises(NotFoundError):
            create_offer(uuid.uuid4(), self.vendor.pk, Decimal('10'), 1)
        with self.assertRaises(NotFoundError):
            create_offer(self.product.pk, uuid.uuid4(), Decimal('10'), 1)
        with self.assertRaises(NotFoundError):
            get_offer(uuid.uuid4())

    def test_adjust_offer_quantity_never_negative(self):
        offer = create_offer(self.product.pk, self.vendor.pk, Decimal('289.90'), 3)

        offer = adjust_offer_quantity(offer.pk, 2)
        self.assertEqual(offer.quantity, 5)

        with self.assertRaises(InsufficientOfferStockError):
            adjust_offer_quantity(offer.pk, -6)
        self.assertEqual(get_offer(offer.pk).quantity, 5)

        offer = adjust_offer_quantity(offer.pk, -5)
        self.assertEqual(offer.quantity, 0)

    def test_take_and_return(self):
        offer = create_offer(self.product.pk, self.vendor.pk, Decimal('289.90'), 4)

        take_offer_quantity(offer.pk, 3)
        with self.assertRaises(InsufficientOfferStockError):
            take_offer_quantity(offer.pk, 2)
        return_offer_quantity(offer.pk, 3)

        self.assertEqual(get_offer(offer.pk).quantity, 4)

    def test_update_offer_price(self):
        offer = create_offer(self.product.pk, self.vendor.pk, Decimal('289.90'), 4)
        update_offer_price(offer.pk, '275.00')
        self.assertEqual(get_offer(offer.pk).price, Decimal('275.00'))

        with self.assertRaises(InvalidValueError):
            update_offer_price(offer.pk, 0)
