from django.apps import AppConfig
from django.conf import settings


class PaymentsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'payments'
    verbose_name = 'Payment Reconciler'

    def ready(self):
        from . import catalog
        catalog.load(getattr(settings, 'PAYMENT_METHODS', catalog.SUPPORTED_METHODS))
