# sales/models.py
import uuid
from decimal import Decimal
from django.db import models

from core.models import OrgScopedModel, TimeStampedModel
from catalog.models import Service
from clients.models import Client


class Quote(OrgScopedModel, TimeStampedModel):
    client = models.ForeignKey(Client, null=True, blank=True, on_delete=models.PROTECT, related_name="quotes")
    description = models.CharField(max_length=240, blank=True, null=True)
    # Total plano heredado; sólo cuenta si la cotización no tiene líneas
    value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    # True = aprobada, False = rechazada, None = pendiente
    status = models.BooleanField(null=True, blank=True)
    url = models.CharField(max_length=500, blank=True, null=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.description or f"Cotización {self.pk}"


class QuoteLine(TimeStampedModel):
    quote = models.ForeignKey(Quote, on_delete=models.CASCADE, related_name="lines")
    service = models.ForeignKey(
        Service, null=True, blank=True, on_delete=models.SET_NULL, related_name="quote_lines"
    )
    quantity = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    total_value = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    status = models.BooleanField(null=True, blank=True, default=True)

    class Meta:
        ordering = ["id"]


class Invoice(OrgScopedModel, TimeStampedModel):
    client = models.ForeignKey(Client, null=True, blank=True, on_delete=models.PROTECT, related_name="invoices")
    service = models.ForeignKey(Service, null=True, blank=True, on_delete=models.PROTECT, related_name="invoices")
    # Número visible de la factura
    description = models.CharField(max_length=120, blank=True, null=True)
    # Importe como texto (registros heredados); se interpreta al leer
    value = models.CharField(max_length=40, blank=True, null=True)
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    tax_one = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    tax_two = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    include_vat = models.BooleanField(default=False)
    total = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    # True = pagada, False = anulada, None = abierta (pendiente o vencida según fecha)
    status = models.BooleanField(null=True, blank=True)
    expiry = models.DateTimeField(null=True, blank=True)
    url = models.CharField(max_length=500, blank=True, null=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.description or f"Factura {self.pk}"


class InvoiceLine(TimeStampedModel):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="lines")
    service = models.ForeignKey(
        Service, null=True, blank=True, on_delete=models.PROTECT, related_name="invoice_lines"
    )
    item = models.PositiveIntegerField(null=True, blank=True)
    quantity = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    status = models.BooleanField(null=True, blank=True, default=True)

    class Meta:
        ordering = ["item", "id"]


class QuoteAttachment(TimeStampedModel):
    """Enlace cotización -> factura generada. Como mucho uno por cotización."""
    quote = models.OneToOneField(Quote, on_delete=models.CASCADE, related_name="conversion")
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="quote_attachments")


class PaymentMethod(OrgScopedModel, TimeStampedModel):
    name = models.CharField(max_length=120)

    class Meta:
        ordering = ["name", "id"]
        constraints = [
            models.UniqueConstraint(fields=["org", "name"], name="uniq_payment_method_name"),
        ]

    def __str__(self):
        return self.name


class Payment(OrgScopedModel, TimeStampedModel):
    client = models.ForeignKey(Client, null=True, blank=True, on_delete=models.PROTECT, related_name="payments")
    code = models.CharField(max_length=120, blank=True, null=True)
    value = models.CharField(max_length=40, blank=True, null=True)
    # Estado libre tal y como llega de la pasarela o del usuario
    status_pay = models.CharField(max_length=120, blank=True, null=True)
    status = models.BooleanField(null=True, blank=True)
    method = models.CharField(max_length=120, blank=True, null=True)
    payment_method = models.ForeignKey(
        PaymentMethod, null=True, blank=True, on_delete=models.SET_NULL, related_name="payments"
    )
    type = models.CharField(max_length=60, blank=True, null=True)
    url = models.CharField(max_length=500, blank=True, null=True)

    class Meta:
        ordering = ["-updated_at", "-id"]


def _attachment_uid():
    return str(uuid.uuid4())


class PaymentAttachment(TimeStampedModel):
    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name="attachments")
    invoice = models.ForeignKey(
        Invoice, null=True, blank=True, on_delete=models.CASCADE, related_name="payment_attachments"
    )
    uid = models.CharField(max_length=64, default=_attachment_uid)
    url = models.CharField(max_length=500)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["payment", "uid"], name="uniq_payment_attachment_uid"),
        ]
