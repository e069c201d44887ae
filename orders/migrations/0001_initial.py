import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models

import app.statemachine


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('customers', '0001_initial'),
        ('inventory', '0001_initial'),
        ('offers', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('PROCESSING', 'Processing'), ('APPROVED', 'Approved'), ('SHIPPED', 'Shipped'), ('DELIVERED', 'Delivered'), ('CANCELLED', 'Cancelled')], db_index=True, default='PROCESSING', max_length=20)),
                ('total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Sum of quantity x unit price over the lines, captured at creation', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('cancellation_reason', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to='customers.customer')),
            ],
            options={
                'db_table': 'orders',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['customer', 'created_at'], name='orders_customer_created_idx'),
                    models.Index(fields=['status', 'created_at'], name='orders_status_created_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('total__gte', 0)), name='order_total_non_negative'),
                ],
            },
            bases=(app.statemachine.StatusTransitionMixin, models.Model),
        ),
        migrations.CreateModel(
            name='OrderLine',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('quantity', models.IntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('unit_price', models.DecimalField(decimal_places=2, help_text='Offer price at the moment the order was placed', max_digits=12)),
                ('product_id', models.UUIDField()),
                ('product_name', models.CharField(max_length=255)),
                ('vendor_name', models.CharField(max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('offer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='order_lines', to='offers.offer')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='orders.order')),
            ],
            options={
                'db_table': 'order_lines',
                'ordering': ['created_at'],
                'constraints': [
                    models.UniqueConstraint(fields=('order', 'offer'), name='unique_order_line_offer'),
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 1)), name='order_line_quantity_positive'),
                    models.CheckConstraint(condition=models.Q(('unit_price__gt', 0)), name='order_line_unit_price_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockDraw',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('quantity', models.IntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('line', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stock_draws', to='orders.orderline')),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='order_draws', to='inventory.warehouse')),
            ],
            options={
                'db_table': 'order_stock_draws',
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 1)), name='stock_draw_quantity_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('event_type', models.CharField(choices=[('order.created', 'Order Created'), ('order.approved', 'Order Approved'), ('order.cancelled', 'Order Cancelled'), ('order.shipped', 'Order Shipped'), ('order.delivered', 'Order Delivered'), ('payment.allocated', 'Payment Allocated'), ('delivery.created', 'Delivery Created'), ('delivery.dispatched', 'Delivery Dispatched'), ('delivery.completed', 'Delivery Completed'), ('delivery.failed', 'Delivery Failed')], db_index=True, max_length=50)),
                ('event_data', models.JSONField(blank=True, default=dict)),
                ('description', models.TextField(blank=True, default='')),
                ('timestamp', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to='customers.customer')),
                ('order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to='orders.order')),
            ],
            options={
                'db_table': 'order_audit_logs',
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['event_type', 'timestamp'], name='audit_event_time_idx'),
                    models.Index(fields=['order', 'timestamp'], name='audit_order_time_idx'),
                ],
            },
        ),
    ]
