# clients/models.py
from decimal import Decimal
from django.conf import settings
from django.db import models

from core.models import OrgScopedModel, TimeStampedModel
from catalog.models import Service
from .choices import AuditAction


class ClientParameter(OrgScopedModel, TimeStampedModel):
    """Campo personalizado de ficha de cliente (NIT, tipo, teléfono...)."""
    name = models.CharField(max_length=120, blank=True, default="")

    class Meta:
        ordering = ["name", "id"]

    def __str__(self):
        return self.name


class Client(OrgScopedModel, TimeStampedModel):
    name = models.CharField(max_length=200, blank=True, null=True)
    # True = activo, False = inactivo, None = en alta
    status = models.BooleanField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.name or f"Cliente {self.pk}"


class ClientDetail(TimeStampedModel):
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="details")
    parameter = models.ForeignKey(ClientParameter, on_delete=models.CASCADE, related_name="values")
    value = models.CharField(max_length=500, blank=True, default="")

    class Meta:
        ordering = ["parameter__name", "id"]


class ClientService(TimeStampedModel):
    """Asignación de un servicio a un cliente, con sus datos operativos."""
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="assignments")
    service = models.ForeignKey(Service, on_delete=models.PROTECT, related_name="assignments")
    started = models.DateTimeField(null=True, blank=True)
    delivery = models.DateTimeField(null=True, blank=True)
    expiry = models.DateTimeField(null=True, blank=True)
    frequency = models.CharField(max_length=40, blank=True, null=True)
    unit = models.CharField(max_length=40, blank=True, null=True)
    url_api = models.CharField(max_length=500, blank=True, null=True)
    token_api = models.CharField(max_length=500, blank=True, null=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(fields=["client", "service"], name="uniq_client_service"),
        ]


class ClientUsageLog(models.Model):
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="usage_logs")
    assignment = models.ForeignKey(
        ClientService, null=True, blank=True, on_delete=models.SET_NULL, related_name="usage_logs"
    )
    endpoint = models.CharField(max_length=240, blank=True, default="")
    units = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("1.00"))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]


class ClientAuditLog(models.Model):
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="audit_logs")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    action = models.CharField(max_length=32, choices=AuditAction.CHOICES)
    payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
