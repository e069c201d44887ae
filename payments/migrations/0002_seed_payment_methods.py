from django.db import migrations

METHODS = [
    ('CreditCard', 'Credit Card'),
    ('Boleto', 'Boleto Bancario'),
    ('Pix', 'Pix'),
]


def seed_payment_methods(apps, schema_editor):
    PaymentMethod = apps.get_model('payments', 'PaymentMethod')
    for code, label in METHODS:
        PaymentMethod.objects.update_or_create(code=code, defaults={'label': label})


def remove_payment_methods(apps, schema_editor):
    PaymentMethod = apps.get_model('payments', 'PaymentMethod')
    PaymentMethod.objects.filter(code__in=[code for code, _ in METHODS]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('payments', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(seed_payment_methods, remove_payment_methods),
    ]
