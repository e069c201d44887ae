import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Customer',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('email', models.EmailField(max_length=254, unique=True)),
                ('address', models.TextField()),
                ('kind', models.CharField(choices=[('INDIVIDUAL', 'Individual'), ('ORGANIZATION', 'Organization')], max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'customers',
                'ordering': ['name'],
                'indexes': [models.Index(fields=['kind', 'name'], name='customers_kind_name_idx')],
            },
        ),
        migrations.CreateModel(
            name='IndividualDetails',
            fields=[
                ('tax_id', models.CharField(max_length=32, unique=True)),
                ('customer', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name='individual', serialize=False, to='customers.customer')),
            ],
            options={
                'db_table': 'customer_individuals',
            },
        ),
        migrations.CreateModel(
            name='OrganizationDetails',
            fields=[
                ('tax_id', models.CharField(max_length=32, unique=True)),
                ('customer', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name='organization', serialize=False, to='customers.customer')),
                ('legal_name', models.CharField(max_length=255)),
            ],
            options={
                'db_table': 'customer_organizations',
            },
        ),
    ]
