# clients/mappers.py
from core.normalizers import (
    PAYMENT_STATUS_TABLE,
    classify_status,
    client_status,
    normalize_text,
    parse_currency,
    quote_status,
    to_iso,
)
from sales.pricing import invoice_amounts, invoice_due_date, invoice_status, quote_total
from sales.reminders import build_reminders
from .choices import ClientType


def guess_client_type(details) -> str:
    """
    El tipo no es una columna: se deduce del primer detalle cuyo parámetro
    se llame "tipo"/"type". Por defecto, persona jurídica.
    """
    match = next(
        (
            d for d in details
            if "tipo" in (d.get("parameterName") or "").lower()
            or "type" in (d.get("parameterName") or "").lower()
        ),
        None,
    )
    raw = ((match or {}).get("value") or "").lower()
    if "nat" in raw:
        return ClientType.NATURAL
    if "jur" in raw:
        return ClientType.JURIDICA
    return ClientType.JURIDICA


def map_parameter(parameter):
    return {"id": parameter.id, "name": normalize_text(parameter.name, "Parámetro sin nombre")}


def map_detail(detail):
    return {
        "parameterId": detail.parameter_id,
        "parameterName": normalize_text(detail.parameter.name, "Parámetro sin nombre"),
        "value": detail.value or "",
    }


def map_assignment(assignment):
    service = assignment.service
    return {
        "id": assignment.id,
        "clientId": assignment.client_id,
        "serviceId": assignment.service_id,
        "name": normalize_text(service.name if service else None, "Servicio sin nombre"),
        "createdAt": to_iso(assignment.created_at),
        "updatedAt": to_iso(assignment.updated_at),
        "started": to_iso(assignment.started),
        "delivery": to_iso(assignment.delivery),
        "expiry": to_iso(assignment.expiry),
        "frequency": assignment.frequency,
        "unit": assignment.unit or (service.unit if service else None),
        "urlApi": assignment.url_api,
        "tokenApi": assignment.token_api,
    }


def map_audit_log(log):
    return {
        "id": log.id,
        "action": log.action,
        "user": log.user.email if log.user_id and log.user else None,
        "payload": log.payload or {},
        "createdAt": to_iso(log.created_at),
    }


def map_usage_log(log):
    return {
        "id": log.id,
        "assignmentId": log.assignment_id,
        "endpoint": log.endpoint,
        "units": log.units,
        "createdAt": to_iso(log.created_at),
    }


def _newest_first(rows):
    return sorted(rows, key=lambda r: (r.created_at, r.id), reverse=True)


def _map_client_quote(quote):
    return {
        "id": quote.id,
        "reference": normalize_text(quote.description, str(quote.id)),
        "issuedAt": to_iso(quote.created_at),
        "amount": quote_total(quote),
        "status": quote_status.label(quote.status),
    }


def _map_client_payment(payment):
    return {
        "id": payment.id,
        "reference": normalize_text(payment.code, str(payment.id)),
        "paidAt": to_iso(payment.updated_at or payment.created_at),
        "amount": parse_currency(payment.value),
        "method": normalize_text(payment.method, "desconocido"),
        "status": classify_status(payment.status_pay, payment.status, PAYMENT_STATUS_TABLE),
    }


def _map_client_invoice(invoice, now=None):
    return {
        "id": invoice.id,
        "number": normalize_text(invoice.description, str(invoice.id)),
        "issuedAt": to_iso(invoice.created_at),
        "dueAt": to_iso(invoice_due_date(invoice)),
        "amount": invoice_amounts(invoice).total,
        "status": invoice_status(invoice, now=now),
    }


def map_client_summary(client):
    details = [map_detail(d) for d in client.details.all()]
    services_count = getattr(client, "services_count", None)
    if services_count is None:
        services_count = len(client.assignments.all())
    return {
        "id": client.id,
        "name": normalize_text(client.name, "Cliente sin nombre"),
        "type": guess_client_type(details),
        "status": client_status.label(client.status),
        "createdAt": to_iso(client.created_at),
        "updatedAt": to_iso(client.updated_at),
        "servicesCount": services_count,
        "details": details,
    }


def map_client(client, now=None):
    """Ficha completa con colecciones derivadas (servicios, documentos, recordatorios)."""
    details = [map_detail(d) for d in client.details.all()]
    invoices = list(client.invoices.all())
    return {
        "id": client.id,
        "name": normalize_text(client.name, "Cliente sin nombre"),
        "type": guess_client_type(details),
        "status": client_status.label(client.status),
        "createdAt": to_iso(client.created_at),
        "updatedAt": to_iso(client.updated_at),
        "details": details,
        "services": [map_assignment(a) for a in _newest_first(client.assignments.all())],
        "quotes": [_map_client_quote(q) for q in client.quotes.all()],
        "payments": [_map_client_payment(p) for p in client.payments.all()],
        "invoices": [_map_client_invoice(i, now=now) for i in invoices],
        "reminders": build_reminders(invoices, now=now),
        "auditLogs": [map_audit_log(log) for log in _newest_first(client.audit_logs.all())],
        "usage": [map_usage_log(log) for log in _newest_first(client.usage_logs.all())],
    }
