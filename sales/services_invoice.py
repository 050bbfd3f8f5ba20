# sales/services_invoice.py
import logging
from decimal import Decimal
from smtplib import SMTPException
from django.db import transaction
from django.db.models import Prefetch
from django.utils import timezone

from catalog.models import Service
from clients.models import Client
from core.email_utils import send_org_email
from core.exceptions import ClientNotFound, EmailDeliveryFailed, InvoiceNotFound, ServiceNotFound, ValidationFailed
from core.normalizers import optional_text, parse_datetime_or_none, to_decimal_or_none
from .models import Invoice, InvoiceLine, PaymentAttachment, QuoteAttachment
from .pricing import calculate_invoice_totals, format_amount, invoice_status_flag

logger = logging.getLogger(__name__)


def invoice_queryset(org):
    return (
        Invoice.objects.filter(org=org)
        .select_related("client", "service__tax_one", "service__tax_two")
        .prefetch_related(Prefetch("lines", queryset=InvoiceLine.objects.select_related("service")))
    )


def get_invoice(org, invoice_id) -> Invoice:
    try:
        return invoice_queryset(org).get(pk=invoice_id)
    except (Invoice.DoesNotExist, ValueError, TypeError):
        raise InvoiceNotFound()


def _resolve_client(org, client_id):
    client = Client.objects.filter(org=org, pk=client_id).first() if client_id else None
    if client is None:
        raise ClientNotFound()
    return client


def _resolve_service(org, service_id):
    service = (
        Service.objects.filter(org=org, pk=service_id).select_related("tax_one", "tax_two").first()
        if service_id else None
    )
    if service is None:
        raise ServiceNotFound()
    return service


def _build_lines(org, invoice, details, fallback_service, fallback_total):
    """
    Líneas de la factura. Sin líneas válidas se crea una única línea con el
    servicio principal por el total de la factura.
    """
    service_ids = {d.get("service_id") for d in details or [] if d.get("service_id")}
    services = {s.id: s for s in Service.objects.filter(org=org, pk__in=service_ids)}

    lines = []
    for index, detail in enumerate(details or []):
        service = services.get(detail.get("service_id"))
        if service is None:
            continue
        item = detail.get("item")
        lines.append(InvoiceLine(
            invoice=invoice,
            service=service,
            item=item if item is not None else index + 1,
            quantity=to_decimal_or_none(detail.get("quantity")) or Decimal("0"),
            total_value=to_decimal_or_none(detail.get("total")) or Decimal("0"),
            status=True,
        ))

    if not lines and fallback_service is not None:
        lines.append(InvoiceLine(
            invoice=invoice,
            service=fallback_service,
            item=1,
            quantity=Decimal("1"),
            total_value=fallback_total,
            status=True,
        ))
    InvoiceLine.objects.bulk_create(lines)
    return lines


def _apply_totals(invoice, totals):
    invoice.value = format_amount(totals.total)
    invoice.subtotal = totals.subtotal
    invoice.tax_one = totals.tax_one
    invoice.tax_two = totals.tax_two
    invoice.total = totals.total


@transaction.atomic
def create_invoice(org, data: dict) -> Invoice:
    client = _resolve_client(org, data.get("client_id"))
    service = _resolve_service(org, data.get("service_id"))
    include_vat = bool(data.get("include_vat", False))
    totals = calculate_invoice_totals(
        service,
        include_vat,
        subtotal=data.get("subtotal"),
        tax_one=data.get("tax_one"),
        tax_two=data.get("tax_two"),
    )

    invoice = Invoice(
        org=org,
        client=client,
        service=service,
        description=data["number"].strip(),
        include_vat=include_vat,
        url=optional_text(data.get("url")),
        expiry=parse_datetime_or_none(data.get("due_at")),
        status=invoice_status_flag(data.get("status")),
        created_at=parse_datetime_or_none(data.get("issued_at")) or timezone.now(),
    )
    _apply_totals(invoice, totals)
    invoice.save()
    _build_lines(org, invoice, data.get("details"), service, totals.total)

    logger.info("Factura creada id=%s número=%s total=%s org=%s", invoice.id, invoice.description, totals.total, org.slug)
    return get_invoice(org, invoice.id)


@transaction.atomic
def update_invoice(org, invoice_id, data: dict) -> Invoice:
    invoice = get_invoice(org, invoice_id)
    client = _resolve_client(org, data.get("client_id"))
    service = _resolve_service(org, data.get("service_id"))

    include_vat = data.get("include_vat")
    if include_vat is None:
        include_vat = invoice.include_vat
    totals = calculate_invoice_totals(
        service,
        include_vat,
        subtotal=data.get("subtotal"),
        tax_one=data.get("tax_one"),
        tax_two=data.get("tax_two"),
    )

    invoice.client = client
    invoice.service = service
    invoice.description = data["number"].strip()
    invoice.include_vat = include_vat
    invoice.url = optional_text(data.get("url"))
    invoice.expiry = parse_datetime_or_none(data.get("due_at"))
    invoice.status = invoice_status_flag(data.get("status"))
    invoice.created_at = parse_datetime_or_none(data.get("issued_at")) or invoice.created_at
    _apply_totals(invoice, totals)
    invoice.save()

    InvoiceLine.objects.filter(invoice=invoice).delete()
    _build_lines(org, invoice, data.get("details"), service, totals.total)

    logger.info("Factura actualizada id=%s org=%s", invoice.id, org.slug)
    return get_invoice(org, invoice.id)


@transaction.atomic
def delete_invoice(org, invoice_id):
    invoice = get_invoice(org, invoice_id)
    InvoiceLine.objects.filter(invoice=invoice).delete()
    PaymentAttachment.objects.filter(invoice=invoice).delete()
    QuoteAttachment.objects.filter(invoice=invoice).delete()
    invoice.delete()
    logger.info("Factura eliminada id=%s org=%s", invoice_id, org.slug)


def recompute_invoices_for_service(service) -> int:
    """
    Recalcula subtotal, impuestos y total de TODAS las facturas del servicio
    con sus precios actuales. Se llama dentro de la transacción que actualiza
    el servicio. updated_at no se toca: es el vencimiento de respaldo.
    """
    invoices = list(Invoice.objects.filter(service=service))
    for invoice in invoices:
        _apply_totals(invoice, calculate_invoice_totals(service, invoice.include_vat))
    Invoice.objects.bulk_update(invoices, ["value", "subtotal", "tax_one", "tax_two", "total"])
    return len(invoices)


def send_invoice_email(org, invoice_id, recipient, message=None) -> dict:
    from .documents import render_invoice_pdf, invoice_filename
    from .mappers import map_invoice

    invoice = get_invoice(org, invoice_id)
    address = (recipient or "").strip()
    if not address:
        raise ValidationFailed("Destinatario inválido", code="RECIPIENT_REQUIRED")

    record = map_invoice(invoice)
    try:
        send_org_email(
            organization=org,
            to_emails=[address],
            subject=f"Factura {record['number']}",
            template_base_name="emails/invoice_sent",
            context={"invoice": record, "message": message},
            attachments=[(invoice_filename(record, "pdf"), render_invoice_pdf(record, org), "application/pdf")],
        )
    except (SMTPException, OSError) as e:
        logger.warning("Fallo enviando factura %s org=%s: %s", invoice.id, org.slug, e)
        raise EmailDeliveryFailed(str(e))
    return {"message": f"Factura {record['number']} enviada a {address}"}


def invoice_catalog(org):
    from catalog.services_catalog import service_queryset

    return {
        "clients": list(Client.objects.filter(org=org).order_by("name")),
        "services": list(service_queryset(org)),
    }
