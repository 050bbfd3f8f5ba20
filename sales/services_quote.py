# sales/services_quote.py
import logging
from decimal import Decimal
from smtplib import SMTPException
from django.db import transaction
from django.db.models import Prefetch
from django.utils import timezone

from catalog.models import Service
from clients.models import Client
from core.email_utils import send_org_email
from core.exceptions import ClientNotFound, EmailDeliveryFailed, QuoteNotFound, ValidationFailed
from core.normalizers import money, normalize_text, optional_text, quote_status, to_iso
from .mappers import quote_pdf_url
from .models import Invoice, InvoiceLine, Quote, QuoteAttachment, QuoteLine
from .pricing import format_amount, quote_total

logger = logging.getLogger(__name__)


def quote_queryset(org):
    return (
        Quote.objects.filter(org=org)
        .select_related("client", "conversion__invoice")
        .prefetch_related(Prefetch("lines", queryset=QuoteLine.objects.select_related("service")))
    )


def get_quote(org, quote_id) -> Quote:
    try:
        return quote_queryset(org).get(pk=quote_id)
    except (Quote.DoesNotExist, ValueError, TypeError):
        raise QuoteNotFound()


def _replace_lines(org, quote, lines):
    QuoteLine.objects.filter(quote=quote).delete()
    service_ids = {ln.get("service_id") for ln in lines or [] if ln.get("service_id")}
    services = {s.id: s for s in Service.objects.filter(org=org, pk__in=service_ids)}
    QuoteLine.objects.bulk_create([
        QuoteLine(
            quote=quote,
            service=services.get(ln.get("service_id")),
            quantity=ln.get("quantity"),
            total_value=ln.get("total"),
            status=True,
        )
        for ln in lines or []
    ])


def _apply(org, quote, data):
    client_id = data.get("client_id")
    client = Client.objects.filter(org=org, pk=client_id).first() if client_id else None
    if client_id and client is None:
        raise ClientNotFound()
    quote.client = client
    quote.description = optional_text(data.get("description"))
    quote.value = data.get("value") or Decimal("0")
    quote.url = optional_text(data.get("url"))
    if "status" in data:
        quote.status = quote_status.flag(data["status"])


@transaction.atomic
def create_quote(org, data: dict) -> Quote:
    quote = Quote(org=org)
    _apply(org, quote, data)
    quote.save()
    _replace_lines(org, quote, data.get("lines"))
    logger.info("Cotización creada id=%s org=%s", quote.id, org.slug)
    return get_quote(org, quote.id)


@transaction.atomic
def update_quote(org, quote_id, data: dict) -> Quote:
    quote = get_quote(org, quote_id)
    _apply(org, quote, data)
    quote.save()
    if "lines" in data:
        _replace_lines(org, quote, data["lines"])
    return get_quote(org, quote.id)


@transaction.atomic
def delete_quote(org, quote_id):
    quote = get_quote(org, quote_id)
    QuoteAttachment.objects.filter(quote=quote).delete()
    QuoteLine.objects.filter(quote=quote).delete()
    quote.delete()
    logger.info("Cotización eliminada id=%s org=%s", quote_id, org.slug)


@transaction.atomic
def generate_quote_pdf(org, quote_id) -> dict:
    quote = get_quote(org, quote_id)
    quote.url = quote_pdf_url(quote)
    quote.save(update_fields=["url", "updated_at"])
    return {"id": quote.id, "url": quote.url, "generatedAt": to_iso(quote.updated_at)}


def send_quote_email(org, quote_id, recipients, message=None) -> dict:
    quote = get_quote(org, quote_id)
    cleaned = [r.strip() for r in recipients or [] if isinstance(r, str) and r.strip()]
    if not cleaned:
        raise ValidationFailed("Debe proporcionar al menos un destinatario válido", code="RECIPIENT_REQUIRED")

    reference = normalize_text(quote.description, str(quote.id))
    subject = f"Cotización {reference}"
    try:
        send_org_email(
            organization=org,
            to_emails=cleaned,
            subject=subject,
            template_base_name="emails/quote_sent",
            context={
                "reference": reference,
                "amount": quote_total(quote),
                "pdf_url": quote_pdf_url(quote),
                "message": message,
            },
        )
    except (SMTPException, OSError) as e:
        logger.warning("Fallo enviando cotización %s org=%s: %s", quote.id, org.slug, e)
        raise EmailDeliveryFailed(str(e))
    now = timezone.now()
    Quote.objects.filter(pk=quote.pk).update(updated_at=now)
    return {
        "id": quote.id,
        "subject": subject,
        "recipients": cleaned,
        "message": message,
        "sentAt": to_iso(now),
    }


@transaction.atomic
def convert_to_invoice(org, quote_id) -> dict:
    """
    Convierte la cotización en factura. Idempotente: si ya hay factura
    enlazada se devuelve esa con alreadyConverted=True.
    """
    quote = get_quote(org, quote_id)

    existing = QuoteAttachment.objects.filter(quote=quote).first()
    if existing is not None:
        return {"invoiceId": existing.invoice_id, "alreadyConverted": True}

    lines = list(quote.lines.all())
    total = money(quote_total(quote, lines))

    invoice = Invoice.objects.create(
        org=org,
        client=quote.client,
        description=quote.description or f"Factura generada desde la cotización {quote.id}",
        value=format_amount(total),
        subtotal=total,
        tax_one=Decimal("0"),
        tax_two=Decimal("0"),
        total=total,
        url=quote.url,
        status=None,
    )
    InvoiceLine.objects.bulk_create([
        InvoiceLine(
            invoice=invoice,
            service=line.service,
            item=index + 1,
            quantity=line.quantity if line.quantity is not None else Decimal("1"),
            total_value=line.total_value if line.total_value is not None else total,
            status=line.status if line.status is not None else True,
        )
        for index, line in enumerate(lines)
    ])
    QuoteAttachment.objects.create(quote=quote, invoice=invoice)

    quote.status = True
    quote.save(update_fields=["status", "updated_at"])

    logger.info("Cotización %s convertida en factura %s", quote.id, invoice.id)
    return {
        "invoiceId": invoice.id,
        "alreadyConverted": False,
        "description": invoice.description,
        "amount": total,
        "createdAt": to_iso(invoice.created_at),
    }
