# sales/views.py
from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import action

from catalog.mappers import map_service
from clients.mappers import map_client_summary
from clients.models import Client
from core.exceptions import ValidationFailed
from core.mixins import OrgScopedViewSet
from core.responses import ok
from .documents import ARTIFACT_FORMATS, build_invoice_artifact
from .mappers import (
    map_invoice,
    map_invoice_list_item,
    map_payment,
    map_payment_method,
    map_quote_detail,
    map_quote_summary,
)
from .models import Invoice, Payment, PaymentMethod, Quote
from .reminders import build_reminders
from .serializers import (
    InvoiceEmailSerializer,
    InvoiceWriteSerializer,
    PaymentWriteSerializer,
    QuoteEmailSerializer,
    QuoteWriteSerializer,
)
from . import services_invoice, services_payment, services_quote


class QuoteViewSet(OrgScopedViewSet):
    queryset = Quote.objects.all()
    filterset_fields = ["status", "client"]
    search_fields = ["description", "client__name"]
    ordering_fields = ["created_at", "updated_at", "value"]

    def get_queryset(self):
        return services_quote.quote_queryset(self.org)

    def list(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())
        return self.mapped_list(qs, map_quote_summary)

    def retrieve(self, request, pk=None, *args, **kwargs):
        return ok(map_quote_detail(services_quote.get_quote(self.org, pk)))

    def create(self, request, *args, **kwargs):
        ser = QuoteWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        quote = services_quote.create_quote(self.org, ser.validated_data)
        return ok(map_quote_detail(quote), status=status.HTTP_201_CREATED)

    def update(self, request, pk=None, *args, **kwargs):
        ser = QuoteWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        quote = services_quote.update_quote(self.org, pk, ser.validated_data)
        return ok(map_quote_detail(quote))

    def destroy(self, request, pk=None, *args, **kwargs):
        services_quote.delete_quote(self.org, pk)
        return ok(None, message="Cotización eliminada")

    @action(detail=True, methods=["post"])
    def pdf(self, request, pk=None, *args, **kwargs):
        return ok(services_quote.generate_quote_pdf(self.org, pk))

    @action(detail=True, methods=["post"])
    def email(self, request, pk=None, *args, **kwargs):
        ser = QuoteEmailSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = services_quote.send_quote_email(
            self.org, pk, ser.validated_data.get("recipients"), ser.validated_data.get("message")
        )
        return ok(result, message="Cotización enviada")

    @action(detail=True, methods=["post"])
    def convert(self, request, pk=None, *args, **kwargs):
        result = services_quote.convert_to_invoice(self.org, pk)
        code = status.HTTP_200_OK if result["alreadyConverted"] else status.HTTP_201_CREATED
        return ok(result, status=code)


class InvoiceViewSet(OrgScopedViewSet):
    queryset = Invoice.objects.all()
    filterset_fields = ["client", "service", "include_vat"]
    search_fields = ["description", "client__name", "service__name"]
    ordering_fields = ["created_at", "expiry", "total"]

    def get_queryset(self):
        return services_invoice.invoice_queryset(self.org)

    def list(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())
        # El estado se deriva en lectura; no se puede filtrar en SQL
        wanted = request.query_params.get("status")
        if wanted:
            items = [map_invoice_list_item(i) for i in qs]
            return ok([i for i in items if i["status"] == wanted])
        return self.mapped_list(qs, map_invoice_list_item)

    def retrieve(self, request, pk=None, *args, **kwargs):
        return ok(map_invoice(services_invoice.get_invoice(self.org, pk)))

    def create(self, request, *args, **kwargs):
        ser = InvoiceWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        invoice = services_invoice.create_invoice(self.org, ser.validated_data)
        return ok(map_invoice(invoice), status=status.HTTP_201_CREATED)

    def update(self, request, pk=None, *args, **kwargs):
        ser = InvoiceWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        invoice = services_invoice.update_invoice(self.org, pk, ser.validated_data)
        return ok(map_invoice(invoice))

    def destroy(self, request, pk=None, *args, **kwargs):
        services_invoice.delete_invoice(self.org, pk)
        return ok(None, message="Factura eliminada")

    @action(detail=True, methods=["post"])
    def email(self, request, pk=None, *args, **kwargs):
        ser = InvoiceEmailSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = services_invoice.send_invoice_email(
            self.org, pk, ser.validated_data.get("recipient"), ser.validated_data.get("message")
        )
        return ok(result, message=result["message"])

    @action(detail=True, methods=["get"], url_path=r"download/(?P<fmt>[a-z]+)")
    def download(self, request, pk=None, fmt=None, *args, **kwargs):
        if fmt not in ARTIFACT_FORMATS:
            raise ValidationFailed("Formato no soportado", code="UNSUPPORTED_FORMAT")
        record = map_invoice(services_invoice.get_invoice(self.org, pk))
        filename, content_type, content = build_invoice_artifact(record, fmt, org=self.org)
        response = HttpResponse(content, content_type=content_type)
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response

    @action(detail=False, methods=["get"])
    def catalog(self, request, *args, **kwargs):
        catalog = services_invoice.invoice_catalog(self.org)
        return ok({
            "clients": [map_client_summary(c) for c in catalog["clients"]],
            "services": [map_service(s) for s in catalog["services"]],
        })

    @action(detail=False, methods=["get"])
    def reminders(self, request, *args, **kwargs):
        invoices = Invoice.objects.filter(org=self.org).exclude(status=True)
        return ok(build_reminders(invoices))


class PaymentViewSet(OrgScopedViewSet):
    queryset = Payment.objects.all()
    filterset_fields = ["client", "status", "payment_method"]
    search_fields = ["code", "client__name", "method"]
    ordering_fields = ["created_at", "updated_at"]

    def get_queryset(self):
        return services_payment.payment_queryset(self.org)

    def _methods(self):
        return [map_payment_method(m) for m in services_payment.list_methods(self.org)]

    def list(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())
        clients = Client.objects.filter(org=self.org).order_by("name")
        return ok({
            "payments": [map_payment(p) for p in qs],
            "clients": [{"id": c.id, "name": c.name or "Cliente sin nombre"} for c in clients],
            "methods": self._methods(),
        })

    def retrieve(self, request, pk=None, *args, **kwargs):
        return ok(map_payment(services_payment.get_payment(self.org, pk)))

    def create(self, request, *args, **kwargs):
        ser = PaymentWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        payment = services_payment.create_payment(self.org, ser.validated_data)
        return ok({"payment": map_payment(payment), "methods": self._methods()}, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None, *args, **kwargs):
        ser = PaymentWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        payment = services_payment.update_payment(self.org, pk, ser.validated_data)
        return ok({"payment": map_payment(payment), "methods": self._methods()})

    def destroy(self, request, pk=None, *args, **kwargs):
        services_payment.delete_payment(self.org, pk)
        return ok(None, message="Pago eliminado")


class PaymentMethodViewSet(OrgScopedViewSet):
    queryset = PaymentMethod.objects.all()

    def list(self, request, *args, **kwargs):
        return ok([map_payment_method(m) for m in self.get_queryset()])
