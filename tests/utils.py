from decimal import Decimal

from customers.services import register_individual
from inventory.services import add_product, add_warehouse, adjust_stock
from offers.services import create_offer, register_vendor


class MarketplaceFixtureMixin:
    """Builds a customer, a product stocked in two warehouses and one offer for it"""

    def create_marketplace(self, *, price=Decimal('50.00'), offer_quantity=10, stock=(12, 8)):
        self.customer = register_individual(
            name='Carla Dias',
            email='carla@example.com',
            address='Rua das Flores, 42',
            tax_id='987.654.321-00',
        )
        self.product = add_product('Coffee Maker', 'Kitchen', 'Drip, 1.2L', Decimal('45.00'))
        self.warehouse_a = add_warehouse('Campinas')
        self.warehouse_b = add_warehouse('Sao Paulo')
        if stock[0]:
            adjust_stock(self.product.pk, self.warehouse_a.pk, stock[0])
        if stock[1]:
            adjust_stock(self.product.pk, self.warehouse_b.pk, stock[1])
        self.vendor = register_vendor('Casa Util Ltda', '33.333.333/0001-33')
        self.offer = create_offer(self.product.pk, self.vendor.pk, price, offer_quantity)
        return self.offer

    def add_offer(self, name, price, offer_quantity, stock, vendor=None):
        """Another product with its own offer, stocked in warehouse A"""
        product = add_product(name, 'Kitchen', '', price)
        adjust_stock(product.pk, self.warehouse_a.pk, stock)
        return create_offer(product.pk, (vendor or self.vendor).pk, price, offer_quantity)
