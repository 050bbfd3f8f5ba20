from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

import pytest

from core.normalizers import (
    DASHBOARD_STATUS_TABLE,
    PAYMENT_STATUS_TABLE,
    classify_status,
    client_status,
    guess_status_flag,
    money,
    normalize_text,
    parse_currency,
    parse_datetime_or_none,
    quote_status,
    to_decimal_or_none,
    to_iso,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1.234,56", Decimal("1234.56")),
        ("1,234.56", Decimal("1234.56")),
        ("$ 99,5", Decimal("99.5")),
        ("COP 2.500.000,00", Decimal("2500000.00")),
        ("42", Decimal("42")),
        (12, Decimal("12")),
        (Decimal("7.25"), Decimal("7.25")),
        (3.5, Decimal("3.5")),
    ],
)
def test_parse_currency_separator_heuristic(raw, expected):
    assert parse_currency(raw) == expected


@pytest.mark.parametrize("raw", ["not a number", "", None, "---", True, float("nan"), float("inf")])
def test_parse_currency_never_raises(raw):
    assert parse_currency(raw) == Decimal("0")


@pytest.mark.parametrize("raw", ["2.500.000", "COP 2.500.000", "1,234,567", "1.2.3", "5-", "-"])
def test_parse_currency_rejects_malformed_numbers(raw):
    # Varios separadores del mismo tipo no son un número completo
    assert parse_currency(raw) == Decimal("0")


def test_parse_currency_accepts_partial_decimals():
    assert parse_currency("5.") == Decimal("5")
    assert parse_currency(",5") == Decimal("0.5")
    assert parse_currency("-12,5") == Decimal("-12.5")


def test_to_decimal_or_none_is_strict():
    assert to_decimal_or_none("10.5") == Decimal("10.5")
    assert to_decimal_or_none("1.234,56") is None
    assert to_decimal_or_none(None) is None
    assert to_decimal_or_none("NaN") is None


def test_money_rounds_half_up():
    assert money(Decimal("2.345")) == Decimal("2.35")
    assert money(Decimal("2.344")) == Decimal("2.34")
    assert money(None) == Decimal("0.00")


def test_normalize_text_falls_back_on_blank():
    assert normalize_text("  ", "Cliente sin nombre") == "Cliente sin nombre"
    assert normalize_text(None, "x") == "x"
    assert normalize_text(" Ana ", "x") == "Ana"


class TestClassifyStatus:
    def test_keyword_match_wins_over_flag(self):
        assert classify_status("Pago Aprobado", False) == "pagado"
        assert classify_status("  PENDIENTE ", True) == "pendiente"
        assert classify_status("anulado por el banco", None) == "anulado"
        assert classify_status("transaction failed", None) == "fallido"

    def test_first_rule_in_order_wins(self):
        # "unpaid" contiene "paid", y la regla de pagado va primero
        assert classify_status("unpaid", None) == "pagado"

    def test_falls_back_to_flag(self):
        assert classify_status("", True) == "pagado"
        assert classify_status(None, False) == "pendiente"
        assert classify_status("xyz", True) == "pagado"

    def test_other_without_match_or_flag(self):
        assert classify_status("xyz", None) == "otro"
        assert classify_status(None, None) == "otro"

    def test_dashboard_table_shares_algorithm(self):
        assert classify_status("cobrado", None, DASHBOARD_STATUS_TABLE) == "paid"
        assert classify_status("en proceso", None, DASHBOARD_STATUS_TABLE) == "pendiente"
        assert classify_status("anulado", None, DASHBOARD_STATUS_TABLE) == "other"
        assert classify_status("", False, DASHBOARD_STATUS_TABLE) == "pendiente"


def test_guess_status_flag():
    assert guess_status_flag(PAYMENT_STATUS_TABLE.paid) is True
    assert guess_status_flag(PAYMENT_STATUS_TABLE.pending) is False
    assert guess_status_flag("anulado") is None
    assert guess_status_flag("pagado", explicit=False) is False


def test_tristate_labels():
    assert client_status.label(True) == "active"
    assert client_status.label(False) == "inactive"
    assert client_status.label(None) == "onboarding"
    assert quote_status.flag("rechazada") is False
    assert quote_status.flag("pendiente") is None


class TestDates:
    def test_to_iso_handles_all_inputs(self):
        dt = datetime(2024, 5, 1, 12, 30, tzinfo=dt_timezone.utc)
        assert to_iso(dt) == "2024-05-01T12:30:00Z"
        assert to_iso(date(2024, 5, 1)) == "2024-05-01T00:00:00Z"
        assert to_iso("2024-05-01T12:30:00+00:00") == "2024-05-01T12:30:00Z"
        assert to_iso(None) is None
        assert to_iso("no es fecha") is None
        assert to_iso("2024-13-45") is None

    def test_parse_datetime_returns_aware(self):
        value = parse_datetime_or_none("2024-01-02")
        assert value is not None
        assert value.tzinfo is not None
