# sales/serializers.py
from decimal import Decimal
from rest_framework import serializers

from core.normalizers import quote_status
from .pricing import InvoiceStatus


# --- Cotizaciones ---

class QuoteLineInputSerializer(serializers.Serializer):
    serviceId = serializers.IntegerField(source="service_id", required=False, allow_null=True)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    total = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)


class QuoteWriteSerializer(serializers.Serializer):
    clientId = serializers.IntegerField(source="client_id", required=False, allow_null=True)
    description = serializers.CharField(max_length=240, required=False, allow_blank=True, allow_null=True)
    value = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)
    status = serializers.ChoiceField(choices=list(quote_status.labels), required=False)
    url = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)
    lines = QuoteLineInputSerializer(many=True, required=False)


class QuoteEmailSerializer(serializers.Serializer):
    recipients = serializers.ListField(child=serializers.CharField(allow_blank=True), required=False)
    message = serializers.CharField(required=False, allow_blank=True, allow_null=True)


# --- Facturas ---

class InvoiceLineInputSerializer(serializers.Serializer):
    serviceId = serializers.IntegerField(source="service_id", required=False, allow_null=True)
    item = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    total = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)


class InvoiceWriteSerializer(serializers.Serializer):
    clientId = serializers.IntegerField(source="client_id")
    serviceId = serializers.IntegerField(source="service_id")
    number = serializers.CharField(max_length=120)
    includeIva = serializers.BooleanField(source="include_vat", required=False, allow_null=True)
    subtotal = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True, min_value=Decimal("0"))
    taxOne = serializers.DecimalField(source="tax_one", max_digits=14, decimal_places=2, required=False, allow_null=True)
    taxTwo = serializers.DecimalField(source="tax_two", max_digits=14, decimal_places=2, required=False, allow_null=True)
    status = serializers.ChoiceField(
        choices=list(InvoiceStatus.WRITABLE),
        required=False,
        error_messages={"invalid_choice": "El estado de la factura es inválido"},
    )
    issuedAt = serializers.CharField(source="issued_at", required=False, allow_blank=True, allow_null=True)
    dueAt = serializers.CharField(source="due_at", required=False, allow_blank=True, allow_null=True)
    url = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)
    details = InvoiceLineInputSerializer(many=True, required=False)

    def validate_number(self, value):
        if not value.strip():
            raise serializers.ValidationError("El número de factura es obligatorio")
        return value


class InvoiceEmailSerializer(serializers.Serializer):
    recipient = serializers.CharField(required=False, allow_blank=True)
    message = serializers.CharField(required=False, allow_blank=True, allow_null=True)


# --- Pagos ---

class PaymentAttachmentInputSerializer(serializers.Serializer):
    id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    url = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    invoiceId = serializers.CharField(source="invoice_id", required=False, allow_blank=True, allow_null=True)


class PaymentWriteSerializer(serializers.Serializer):
    clientId = serializers.IntegerField(source="client_id")
    reference = serializers.CharField(max_length=120, required=False, allow_blank=True, allow_null=True)
    value = serializers.CharField(max_length=40)
    status = serializers.CharField(max_length=120, required=False, allow_blank=True, allow_null=True)
    paidAt = serializers.CharField(source="paid_at", required=False, allow_blank=True, allow_null=True)
    methodId = serializers.IntegerField(source="method_id", required=False, allow_null=True)
    methodName = serializers.CharField(source="method_name", max_length=120, required=False, allow_blank=True, allow_null=True)
    type = serializers.CharField(max_length=60, required=False, allow_blank=True, allow_null=True)
    receiptUrl = serializers.CharField(source="receipt_url", max_length=500, required=False, allow_blank=True, allow_null=True)
    confirmed = serializers.BooleanField(required=False, allow_null=True)
    attachments = PaymentAttachmentInputSerializer(many=True, required=False)

    def validate_value(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("El valor del pago es obligatorio")
        return value
