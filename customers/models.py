import uuid

from django.db import models

from app.exceptions import InvalidSpecializationChangeError


class Customer(models.Model):
    """
    Customer identity shared by every kind of buyer.

    Exactly one specialization record (IndividualDetails or
    OrganizationDetails) hangs off each customer, matching ``kind``. The kind
    is fixed at registration and can never be switched afterwards.
    """
    KIND_INDIVIDUAL = 'INDIVIDUAL'
    KIND_ORGANIZATION = 'ORGANIZATION'

    KIND_CHOICES = [
        (KIND_INDIVIDUAL, 'Individual'),
        (KIND_ORGANIZATION, 'Organization'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(unique=True)
    address = models.TextField()
    kind = models.CharField(max_length=20, choices=KIND_CHOICES)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'customers'
        ordering = ['name']
        indexes = [
            models.Index(fields=['kind', 'name'], name='customers_kind_name_idx'),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}>"

    @property
    def specialization(self):
        """The IndividualDetails or OrganizationDetails record, or None"""
        if self.kind == self.KIND_INDIVIDUAL:
            return IndividualDetails.objects.filter(customer=self).first()
        if self.kind == self.KIND_ORGANIZATION:
            return OrganizationDetails.objects.filter(customer=self).first()
        return None

    @property
    def tax_id(self):
        details = self.specialization
        return details.tax_id if details else None

    def save(self, *args, **kwargs):
        """Refuse to persist a kind that differs from the stored one"""
        if not self._state.adding:
            stored_kind = (
                Customer.objects.filter(pk=self.pk).values_list('kind', flat=True).first()
            )
            if stored_kind is not None and stored_kind != self.kind:
                raise InvalidSpecializationChangeError(
                    f"Customer {self.pk} is registered as {stored_kind} and cannot become {self.kind}",
                    customer_id=self.pk,
                    current_kind=stored_kind,
                    requested_kind=self.kind,
                )
        super().save(*args, **kwargs)


class CustomerDetails(models.Model):
    """Common behaviour of the specialization records"""
    KIND = None

    tax_id = models.CharField(max_length=32, unique=True)

    class Meta:
        abstract = True

    def __str__(self):
        return f"{self.KIND} {self.tax_id}"

    def save(self, *args, **kwargs):
        # A customer carries exactly one specialization, of its own kind
        if self.customer.kind != self.KIND:
            raise InvalidSpecializationChangeError(
                f"Customer {self.customer_id} is {self.customer.kind}, not {self.KIND}",
                customer_id=self.customer_id,
                current_kind=self.customer.kind,
                requested_kind=self.KIND,
            )
        super().save(*args, **kwargs)


class IndividualDetails(CustomerDetails):
    """Specialization for natural persons; tax_id is the personal taxpayer number"""
    KIND = Customer.KIND_INDIVIDUAL

    customer = models.OneToOneField(
        Customer,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='individual',
    )

    class Meta:
        db_table = 'customer_individuals'


class OrganizationDetails(CustomerDetails):
    """Specialization for companies; tax_id is the company registration number"""
    KIND = Customer.KIND_ORGANIZATION

    customer = models.OneToOneField(
        Customer,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='organization',
    )
    legal_name = models.CharField(max_length=255)

    class Meta:
        db_table = 'customer_organizations'
