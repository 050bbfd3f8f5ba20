# sales/pricing.py
"""
Reglas de derivación de importes y estados.

Todo se calcula en lectura a partir de lo guardado: el estado "vencida" de
una factura o el total de una cotización no se persisten nunca, así que
cambian solos con el reloj o al editar las líneas.
"""
from decimal import Decimal
from typing import NamedTuple

from django.conf import settings
from django.utils import timezone

from core.normalizers import ZERO, money, parse_currency, parse_datetime_or_none, to_decimal_or_none

HUNDRED = Decimal("100")


class InvoiceStatus:
    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    WRITABLE = (PAID, PENDING, CANCELLED)


class InvoiceTotals(NamedTuple):
    subtotal: Decimal
    tax_one: Decimal
    tax_two: Decimal
    vat: Decimal
    total: Decimal


def vat_rate() -> Decimal:
    return Decimal(str(getattr(settings, "BILLING_VAT_RATE", "0.19")))


def _percentage(tax) -> Decimal:
    if tax is None:
        return ZERO
    return to_decimal_or_none(tax.percentage) or ZERO


def calculate_invoice_totals(
    service,
    include_vat: bool,
    subtotal=None,
    tax_one=None,
    tax_two=None,
) -> InvoiceTotals:
    """
    Totales canónicos de una factura: subtotal + impuesto 1 + impuesto 2 + IVA.

    subtotal/tax_one/tax_two son sobrescrituras explícitas; si llegan como
    None se derivan del servicio (subtotal, si no precio) y de los
    porcentajes de sus impuestos.
    """
    base = ZERO
    if service is not None:
        base = to_decimal_or_none(service.billing_subtotal) or ZERO

    sub = money(subtotal if subtotal is not None else base)

    if tax_one is None:
        tax_one = sub * _percentage(service.tax_one if service else None) / HUNDRED
    if tax_two is None:
        tax_two = sub * _percentage(service.tax_two if service else None) / HUNDRED
    t1 = money(tax_one)
    t2 = money(tax_two)

    vat = money(sub * vat_rate()) if include_vat else money(ZERO)
    total = money(sub + t1 + t2 + vat)
    return InvoiceTotals(sub, t1, t2, vat, total)


def format_amount(value) -> str:
    """Importe como texto para la columna heredada Invoice.value."""
    return f"{money(value):.2f}"


def invoice_due_date(invoice):
    """Vencimiento efectivo: expiry, si no updated_at, si no created_at."""
    for candidate in (invoice.expiry, invoice.updated_at, invoice.created_at):
        due = parse_datetime_or_none(candidate)
        if due is not None:
            return due
    return None


def invoice_status(invoice, now=None) -> str:
    if invoice.status is True:
        return InvoiceStatus.PAID
    if invoice.status is False:
        return InvoiceStatus.CANCELLED
    now = now or timezone.now()
    due = invoice_due_date(invoice)
    if due is not None and due < now:
        return InvoiceStatus.OVERDUE
    return InvoiceStatus.PENDING


def invoice_status_flag(label):
    """Estado escrito por el usuario -> booleano persistido."""
    if label == InvoiceStatus.PAID:
        return True
    if label == InvoiceStatus.CANCELLED:
        return False
    return None


def invoice_subtotal(invoice) -> Decimal:
    stored = to_decimal_or_none(invoice.subtotal)
    return stored if stored is not None else parse_currency(invoice.value)


def invoice_amounts(invoice) -> InvoiceTotals:
    """Importes para mostrar: lo guardado manda; el total se recalcula si falta."""
    sub = invoice_subtotal(invoice)
    t1 = to_decimal_or_none(invoice.tax_one) or ZERO
    t2 = to_decimal_or_none(invoice.tax_two) or ZERO
    vat = money(sub * vat_rate()) if invoice.include_vat else ZERO
    stored_total = to_decimal_or_none(invoice.total)
    total = stored_total if stored_total is not None else money(sub + t1 + t2 + vat)
    return InvoiceTotals(sub, t1, t2, vat, total)


def quote_total(quote, lines=None) -> Decimal:
    """
    Suma de las líneas si la cotización tiene alguna; si no, el valor plano guardado.
    """
    if lines is None:
        lines = list(quote.lines.all())
    if lines:
        return sum((parse_currency(line.total_value) for line in lines), ZERO)
    return parse_currency(quote.value)
