from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.test import override_settings
from django.utils import timezone

from catalog.models import Service, Tax
from sales.models import Invoice, Quote, QuoteLine
from sales.pricing import (
    calculate_invoice_totals,
    invoice_due_date,
    invoice_status,
    invoice_status_flag,
    quote_total,
)
from sales.reminders import build_reminders

pytestmark = pytest.mark.unit


def _service(price="100.00", subtotal=None, pct_one=None, pct_two=None):
    return Service(
        name="Soporte",
        price=Decimal(price),
        subtotal=Decimal(subtotal) if subtotal else None,
        tax_one=Tax(name="T1", percentage=Decimal(pct_one)) if pct_one else None,
        tax_two=Tax(name="T2", percentage=Decimal(pct_two)) if pct_two else None,
    )


class TestQuoteTotal:
    def test_lines_win_over_stored_value(self):
        quote = Quote(value=Decimal("999"))
        lines = [QuoteLine(total_value=Decimal("10")), QuoteLine(total_value=Decimal("15"))]
        assert quote_total(quote, lines) == Decimal("25")

    def test_stored_value_without_lines(self):
        quote = Quote(value=Decimal("999"))
        assert quote_total(quote, []) == Decimal("999")

    def test_missing_line_totals_count_as_zero(self):
        quote = Quote(value=Decimal("999"))
        lines = [QuoteLine(total_value=None), QuoteLine(total_value=Decimal("4.50"))]
        assert quote_total(quote, lines) == Decimal("4.50")


class TestInvoiceStatus:
    def setup_method(self):
        self.now = timezone.now()

    def test_open_and_past_expiry_is_overdue(self):
        invoice = Invoice(status=None, expiry=self.now - timedelta(days=1))
        assert invoice_status(invoice, now=self.now) == "overdue"

    def test_open_and_future_expiry_is_pending(self):
        invoice = Invoice(status=None, expiry=self.now + timedelta(days=1))
        assert invoice_status(invoice, now=self.now) == "pending"

    def test_paid_regardless_of_expiry(self):
        invoice = Invoice(status=True, expiry=self.now - timedelta(days=30))
        assert invoice_status(invoice, now=self.now) == "paid"

    def test_false_is_cancelled(self):
        invoice = Invoice(status=False, expiry=self.now - timedelta(days=30))
        assert invoice_status(invoice, now=self.now) == "cancelled"

    def test_due_date_falls_back_to_updated_then_created(self):
        created = self.now - timedelta(days=10)
        updated = self.now - timedelta(days=2)
        invoice = Invoice(expiry=None, created_at=created)
        invoice.updated_at = updated
        assert invoice_due_date(invoice) == updated
        invoice.updated_at = None
        assert invoice_due_date(invoice) == created

    def test_status_flag_from_label(self):
        assert invoice_status_flag("paid") is True
        assert invoice_status_flag("cancelled") is False
        assert invoice_status_flag("pending") is None


class TestInvoiceTotals:
    def test_subtotal_plus_taxes_plus_vat(self):
        totals = calculate_invoice_totals(_service(pct_one="10", pct_two="4"), include_vat=True)
        assert totals.subtotal == Decimal("100.00")
        assert totals.tax_one == Decimal("10.00")
        assert totals.tax_two == Decimal("4.00")
        assert totals.vat == Decimal("19.00")
        assert totals.total == Decimal("133.00")

    def test_without_vat(self):
        totals = calculate_invoice_totals(_service(pct_one="10"), include_vat=False)
        assert totals.vat == Decimal("0.00")
        assert totals.total == Decimal("110.00")

    def test_service_subtotal_preferred_over_price(self):
        totals = calculate_invoice_totals(_service(price="100", subtotal="80"), include_vat=False)
        assert totals.total == Decimal("80.00")

    def test_explicit_overrides_are_honoured(self):
        totals = calculate_invoice_totals(
            _service(pct_one="10"), include_vat=False, subtotal=Decimal("50"), tax_one=Decimal("1")
        )
        assert totals.tax_one == Decimal("1.00")
        assert totals.total == Decimal("51.00")

    def test_rounds_to_two_decimals(self):
        totals = calculate_invoice_totals(_service(price="33.33", pct_one="7.5"), include_vat=True)
        # 33.33 * 7.5% = 2.49975 ; 33.33 * 19% = 6.3327
        assert totals.tax_one == Decimal("2.50")
        assert totals.vat == Decimal("6.33")
        assert totals.total == Decimal("42.16")

    @override_settings(BILLING_VAT_RATE="0.21")
    def test_vat_rate_is_configurable(self):
        totals = calculate_invoice_totals(_service(), include_vat=True)
        assert totals.vat == Decimal("21.00")


class TestReminders:
    def test_projected_from_unpaid_invoices(self):
        now = timezone.now()
        paid = Invoice(id=1, status=True, expiry=now - timedelta(days=3), total=Decimal("10"))
        late = Invoice(id=2, status=None, expiry=now - timedelta(days=1), total=Decimal("20"))
        upcoming = Invoice(id=3, status=None, expiry=now + timedelta(days=5), total=Decimal("30"))

        reminders = build_reminders([upcoming, paid, late], now=now)

        assert [r["invoiceId"] for r in reminders] == [2, 3]
        assert reminders[0]["id"] == "reminder-2"
        assert reminders[0]["status"] == "enviado"
        assert reminders[1]["status"] == "pendiente"
        assert reminders[1]["amount"] == Decimal("30")

    def test_ordered_by_due_date_within_the_same_second(self):
        base = datetime(2026, 1, 1, 10, 0, 0, tzinfo=dt_timezone.utc)
        later = Invoice(id=1, status=None, expiry=base.replace(microsecond=500000))
        earlier = Invoice(id=2, status=None, expiry=base)
        undated = Invoice(id=3, status=None)

        reminders = build_reminders([undated, later, earlier], now=base)

        assert [r["invoiceId"] for r in reminders] == [2, 1, 3]
        assert reminders[2]["dueAt"] is None
