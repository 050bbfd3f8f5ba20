# catalog/models.py
from decimal import Decimal
from django.db import models

from core.models import OrgScopedModel, TimeStampedModel


class Tax(OrgScopedModel, TimeStampedModel):
    name = models.CharField(max_length=120, blank=True, default="")
    description = models.CharField(max_length=240, blank=True, null=True)
    percentage = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal("0.00"))
    active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self):
        return f"{self.name} ({self.percentage}%)"


class ServiceCategory(OrgScopedModel, TimeStampedModel):
    name = models.CharField(max_length=120, blank=True, default="")

    class Meta:
        ordering = ["name", "id"]
        verbose_name_plural = "service categories"

    def __str__(self):
        return self.name


class Service(OrgScopedModel, TimeStampedModel):
    name = models.CharField(max_length=200, blank=True, default="")
    description = models.TextField(blank=True, null=True)
    unit = models.CharField(max_length=40, blank=True, null=True)
    price = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    # Base imponible de facturación; si es None se usa price
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    frequency = models.CharField(max_length=40, blank=True, null=True)
    tax_one = models.ForeignKey(
        Tax, null=True, blank=True, on_delete=models.SET_NULL, related_name="services_as_tax_one"
    )
    tax_two = models.ForeignKey(
        Tax, null=True, blank=True, on_delete=models.SET_NULL, related_name="services_as_tax_two"
    )
    category = models.ForeignKey(
        ServiceCategory, null=True, blank=True, on_delete=models.SET_NULL, related_name="services"
    )
    # None = activo (registros antiguos sin estado)
    status = models.BooleanField(null=True, blank=True, default=True)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self):
        return self.name or f"Servicio {self.pk}"

    @property
    def billing_subtotal(self):
        if self.subtotal is not None:
            return self.subtotal
        return self.price
