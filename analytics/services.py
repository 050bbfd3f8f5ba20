# analytics/services.py
"""
Resumen del dashboard.

Los importes de pago son texto heredado: se interpretan en Python con
parse_currency y se clasifican con DASHBOARD_STATUS_TABLE, por eso los
totales no se agregan en SQL.
"""
from calendar import monthrange
from datetime import datetime, timedelta
from decimal import Decimal
from math import ceil
from typing import NamedTuple

from django.db.models import Count, Q
from django.utils import timezone

from catalog.models import Service
from clients.models import Client, ClientService
from core.normalizers import DASHBOARD_STATUS_TABLE, ZERO, classify_status, normalize_text, parse_currency, to_iso
from sales.models import Invoice, Payment
from sales.pricing import invoice_amounts

MAX_COMPARISON_MONTHS = 24
MAX_PERIOD_DAYS = 366


class Period(NamedTuple):
    start: datetime
    end: datetime

    def as_dict(self):
        return {"from": to_iso(self.start), "to": to_iso(self.end)}


def month_start(value: datetime) -> datetime:
    return value.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def add_months(value: datetime, months: int) -> datetime:
    """Suma meses conservando el día, recortado al último día del mes destino."""
    index = value.year * 12 + (value.month - 1) + months
    year, month = index // 12, index % 12 + 1
    return value.replace(year=year, month=month, day=min(value.day, monthrange(year, month)[1]))


def build_period(date_from=None, date_to=None) -> Period:
    """
    Periodo [inicio, fin). Por defecto el mes en curso; `date_to` es
    inclusivo (se suma un día). Máximo 366 días.
    """
    now = timezone.localtime()
    start = date_from or month_start(now)
    if date_to is not None:
        end = date_to + timedelta(days=1)
    else:
        end = add_months(month_start(start), 1)

    if start >= end:
        raise ValueError("La fecha de inicio debe ser menor a la fecha fin")
    if ceil((end - start).total_seconds() / 86400) > MAX_PERIOD_DAYS:
        raise ValueError("El rango seleccionado no puede superar los 12 meses")
    return Period(start, end)


def _payments_between(org, start, end):
    return Payment.objects.filter(org=org, created_at__gte=start, created_at__lt=end).only(
        "value", "status_pay", "status", "created_at"
    )


def billing_totals(org, period: Period) -> dict:
    billed = ZERO
    pending = ZERO
    for payment in _payments_between(org, period.start, period.end):
        amount = parse_currency(payment.value)
        label = classify_status(payment.status_pay, payment.status, DASHBOARD_STATUS_TABLE)
        if label == DASHBOARD_STATUS_TABLE.paid:
            billed += amount
        elif label == DASHBOARD_STATUS_TABLE.pending:
            pending += amount
    return {"billed": billed, "pendiente": pending, "total": billed + pending}


def upcoming_expirations(org, reference=None, months_ahead=1, period: Period = None) -> list:
    """
    Facturas abiertas que vencen en la ventana: el periodo si se da, si no
    desde `reference` hasta `months_ahead` meses después.
    """
    reference = reference or timezone.now()
    if period is not None:
        lower, upper = period.start, period.end
    else:
        lower = timezone.localtime(reference).replace(hour=0, minute=0, second=0, microsecond=0)
        upper = add_months(lower, max(1, months_ahead))
    if lower >= upper:
        upper = lower + timedelta(days=1)

    invoices = (
        Invoice.objects.filter(org=org, expiry__gte=lower, expiry__lt=upper)
        .exclude(status=True)
        .select_related("client")
        .order_by("expiry", "id")
    )

    items = []
    for invoice in invoices:
        seconds = (invoice.expiry - reference).total_seconds()
        items.append({
            "id": invoice.id,
            "clientId": invoice.client_id,
            "clientName": invoice.client.name if invoice.client else None,
            "invoiceNumber": normalize_text(invoice.description, str(invoice.id)),
            "amount": invoice_amounts(invoice).total,
            "expiry": to_iso(invoice.expiry),
            "daysUntilExpiry": ceil(seconds / 86400),
            "status": "vencida" if invoice.expiry < reference else "pendiente",
            "url": invoice.url,
        })
    return items


def client_status_overview(org) -> dict:
    counts = Client.objects.filter(org=org).aggregate(
        total=Count("id"),
        active=Count("id", filter=Q(status=True)),
        inactive=Count("id", filter=Q(status=False)),
    )
    counts["unknown"] = max(0, counts["total"] - counts["active"] - counts["inactive"])
    return counts


def top_services(org, period: Period, limit=5) -> list:
    rows = (
        ClientService.objects.filter(client__org=org, created_at__gte=period.start, created_at__lt=period.end)
        .values("service_id")
        .annotate(times=Count("id"))
        .order_by("-times", "service_id")[: max(1, limit)]
    )
    rows = list(rows)
    names = dict(
        Service.objects.filter(pk__in=[r["service_id"] for r in rows]).values_list("id", "name")
    )
    return [
        {"serviceId": r["service_id"], "serviceName": names.get(r["service_id"]), "timesSold": r["times"]}
        for r in rows
    ]


def monthly_comparison(org, end_date, months=6, start_date=None) -> list:
    """
    Cobrado/pendiente por mes natural. Nunca más de 24 cubos.
    """
    end = add_months(month_start(timezone.localtime(end_date)), 1)
    if start_date is not None:
        start = month_start(timezone.localtime(start_date))
        if start >= end:
            start = add_months(end, -1)
        span = (end.year - start.year) * 12 + (end.month - start.month)
        if span > MAX_COMPARISON_MONTHS:
            start = add_months(end, -MAX_COMPARISON_MONTHS)
    else:
        start = add_months(end, -min(max(months, 1), MAX_COMPARISON_MONTHS))

    buckets = {}
    cursor = start
    while cursor < end:
        key = f"{cursor.year}-{cursor.month:02d}"
        buckets[key] = {"month": key, "billed": Decimal("0"), "pendiente": Decimal("0")}
        cursor = add_months(cursor, 1)

    for payment in _payments_between(org, start, end):
        created = timezone.localtime(payment.created_at)
        bucket = buckets.get(f"{created.year}-{created.month:02d}")
        if bucket is None:
            continue
        amount = parse_currency(payment.value)
        label = classify_status(payment.status_pay, payment.status, DASHBOARD_STATUS_TABLE)
        if label == DASHBOARD_STATUS_TABLE.paid:
            bucket["billed"] += amount
        elif label == DASHBOARD_STATUS_TABLE.pending:
            bucket["pendiente"] += amount

    return sorted(buckets.values(), key=lambda b: b["month"])


def dashboard_summary(org, period: Period, top_limit=5, months_ahead=1, reference=None) -> dict:
    return {
        "period": period.as_dict(),
        "totals": billing_totals(org, period),
        "upcomingExpirations": upcoming_expirations(
            org, reference or period.start, months_ahead=months_ahead, period=period
        ),
        "clientStatus": client_status_overview(org),
        "topServices": top_services(org, period, top_limit),
        "monthlyComparison": monthly_comparison(org, period.end, start_date=period.start),
    }
