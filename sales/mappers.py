# sales/mappers.py
from django.conf import settings

from catalog.mappers import build_tax_line
from core.normalizers import (
    PAYMENT_STATUS_TABLE,
    classify_status,
    normalize_text,
    optional_text,
    parse_currency,
    quote_status,
    to_iso,
)
from .models import QuoteAttachment
from .pricing import invoice_amounts, invoice_status, quote_total

QUOTE_CONVERTED_REASON = "La cotización ya fue convertida en factura"


def _client_ref(client_id, client):
    return {
        "id": client_id,
        "name": normalize_text(client.name if client else None, "Cliente sin nombre"),
    }


def quote_pdf_url(quote):
    base = getattr(settings, "DOCUMENTS_BASE_URL", "https://docs.local").rstrip("/")
    return quote.url or f"{base}/quotes/{quote.id}.pdf"


# --- Cotizaciones ---

def map_quote_summary(quote):
    lines = list(quote.lines.all())
    return {
        "id": quote.id,
        "reference": normalize_text(quote.description, str(quote.id)),
        "client": _client_ref(quote.client_id, quote.client),
        "issuedAt": to_iso(quote.created_at),
        "updatedAt": to_iso(quote.updated_at),
        "status": quote_status.label(quote.status),
        "services": len(lines),
        "amount": quote_total(quote, lines),
        "pdfUrl": quote.url,
    }


def map_quote_line(line):
    service = line.service
    return {
        "id": line.id,
        "serviceId": line.service_id,
        "serviceName": normalize_text(service.name if service else None, "Servicio sin nombre"),
        "quantity": line.quantity if line.quantity is not None else 0,
        "unit": service.unit if service else None,
        "total": parse_currency(line.total_value),
        "status": quote_status.label(line.status),
    }


def _quote_conversion(quote):
    try:
        return quote.conversion
    except QuoteAttachment.DoesNotExist:
        return None


def map_quote_detail(quote):
    lines = list(quote.lines.all())
    conversion = _quote_conversion(quote)

    attachments = []
    if conversion is not None:
        invoice = conversion.invoice
        attachments.append({
            "id": conversion.id,
            "invoiceId": conversion.invoice_id,
            "invoiceNumber": normalize_text(invoice.description, str(invoice.id)),
            "invoiceStatus": invoice_status(invoice),
            "invoiceAmount": invoice_amounts(invoice).total,
            "invoiceUrl": invoice.url,
        })
    converted = bool(attachments)

    actions = [
        {
            "type": "pdf",
            "label": "Descargar PDF",
            "available": True,
            "url": quote_pdf_url(quote),
        },
        {
            "type": "email",
            "label": "Enviar por correo",
            "available": True,
        },
        {
            "type": "invoice",
            "label": "Convertir a factura",
            "available": not converted,
            "disabledReason": QUOTE_CONVERTED_REASON if converted else None,
        },
    ]

    return {
        "id": quote.id,
        "reference": normalize_text(quote.description, str(quote.id)),
        "description": quote.description,
        "status": quote_status.label(quote.status),
        "amount": quote_total(quote, lines),
        "issuedAt": to_iso(quote.created_at),
        "updatedAt": to_iso(quote.updated_at),
        "client": _client_ref(quote.client_id, quote.client),
        "services": [map_quote_line(line) for line in lines],
        "attachments": attachments,
        "actions": actions,
    }


# --- Facturas ---

def map_invoice_line(line, index):
    service = line.service
    return {
        "id": line.id,
        "item": line.item if line.item is not None else index + 1,
        "quantity": line.quantity if line.quantity is not None else 0,
        "total": parse_currency(line.total_value),
        "serviceId": line.service_id,
        "serviceName": normalize_text(service.name if service else None, "Servicio sin nombre"),
        "unit": service.unit if service else None,
    }


def invoice_attachments(invoice):
    base = normalize_text(invoice.description, f"Factura {invoice.id}")
    return [
        {"id": f"{invoice.id}-{kind}", "type": kind, "label": f"{base}.{kind}"}
        for kind in ("pdf", "xml", "zip")
    ]


def map_invoice(invoice, now=None):
    lines = list(invoice.lines.all())
    details = [map_invoice_line(line, index) for index, line in enumerate(lines)]
    details.sort(key=lambda d: d["item"])

    service = invoice.service
    if service is not None:
        service_name = normalize_text(service.name, "Servicio sin nombre")
    else:
        first = lines[0].service if lines else None
        service_name = normalize_text(first.name if first else None, "Servicio sin nombre")

    amounts = invoice_amounts(invoice)
    number = normalize_text(invoice.description, str(invoice.id))

    return {
        "id": invoice.id,
        "number": number,
        "description": number,
        "clientId": invoice.client_id,
        "clientName": normalize_text(invoice.client.name if invoice.client else None, "Cliente sin nombre"),
        "serviceId": invoice.service_id,
        "serviceName": service_name,
        "subtotal": amounts.subtotal,
        "taxOne": build_tax_line(service.tax_one if service else None, amounts.tax_one, "tax-one", "Impuesto 1"),
        "taxTwo": build_tax_line(service.tax_two if service else None, amounts.tax_two, "tax-two", "Impuesto 2"),
        "includeIva": invoice.include_vat,
        "ivaAmount": amounts.vat,
        "total": amounts.total,
        "amount": amounts.total,
        "issuedAt": to_iso(invoice.created_at),
        "dueAt": to_iso(invoice.expiry),
        "status": invoice_status(invoice, now=now),
        "url": invoice.url,
        "createdAt": to_iso(invoice.created_at),
        "updatedAt": to_iso(invoice.updated_at),
        "details": details,
        "attachments": invoice_attachments(invoice),
    }


LIST_ITEM_KEYS = (
    "id", "number", "clientId", "clientName", "serviceId", "serviceName",
    "subtotal", "taxOne", "taxTwo", "includeIva", "ivaAmount", "total",
    "amount", "issuedAt", "dueAt", "status",
)


def map_invoice_list_item(invoice, now=None):
    record = map_invoice(invoice, now=now)
    item = {key: record[key] for key in LIST_ITEM_KEYS}
    item["services"] = len(record["details"])
    return item


# --- Pagos ---

def map_payment_method(method):
    return {"id": method.id, "name": normalize_text(method.name, "Método sin nombre")}


def map_payment_attachment(attachment):
    return {
        "id": attachment.uid,
        "url": attachment.url or None,
        "invoiceId": attachment.invoice_id,
        "createdAt": to_iso(attachment.created_at),
        "updatedAt": to_iso(attachment.updated_at),
    }


def map_payment(payment):
    method = payment.payment_method
    return {
        "id": payment.id,
        "clientId": payment.client_id,
        "clientName": normalize_text(payment.client.name if payment.client else None, "Cliente sin nombre"),
        "reference": payment.code,
        "amount": parse_currency(payment.value),
        "amountRaw": payment.value,
        "status": classify_status(payment.status_pay, payment.status, PAYMENT_STATUS_TABLE),
        "statusRaw": payment.status_pay,
        "methodId": payment.payment_method_id,
        "methodName": optional_text(method.name if method else payment.method) or optional_text(payment.method),
        "type": payment.type,
        "receiptUrl": payment.url,
        "createdAt": to_iso(payment.created_at),
        "updatedAt": to_iso(payment.updated_at),
        "attachments": [map_payment_attachment(a) for a in payment.attachments.all()],
    }
