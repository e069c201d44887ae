import uuid

import django.db.models.deletion
from django.db import migrations, models

import app.statemachine


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('orders', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Delivery',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('PREPARING', 'Preparing'), ('IN_TRANSIT', 'In Transit'), ('DELIVERED', 'Delivered'), ('FAILED', 'Failed')], db_index=True, default='PREPARING', max_length=20)),
                ('tracking_code', models.CharField(blank=True, help_text='Carrier tracking code, assigned once when the delivery is dispatched', max_length=64, null=True, unique=True)),
                ('failure_reason', models.TextField(blank=True, default='')),
                ('dispatched_at', models.DateTimeField(blank=True, null=True)),
                ('delivered_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('order', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='delivery', to='orders.order')),
            ],
            options={
                'db_table': 'deliveries',
                'ordering': ['-created_at'],
                'verbose_name_plural': 'Deliveries',
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('status__in', ['PREPARING', 'FAILED']), ('tracking_code__isnull', False), _connector='OR'), name='delivery_dispatched_has_tracking_code', violation_error_message='A dispatched delivery needs a tracking code'),
                ],
            },
            bases=(app.statemachine.StatusTransitionMixin, models.Model),
        ),
    ]
