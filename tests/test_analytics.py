from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.utils import timezone

from analytics import services as dashboard
from clients.models import Client, ClientService
from sales.models import Invoice, Payment

pytestmark = [pytest.mark.django_db, pytest.mark.integration]


def _payment(org, client, value, status_pay=None, status=None, when=None):
    payment = Payment.objects.create(org=org, client=client, value=value, status_pay=status_pay, status=status)
    if when is not None:
        Payment.objects.filter(pk=payment.pk).update(created_at=when)
    return payment


@pytest.mark.unit
def test_add_months_clamps_day():
    start = datetime(2024, 1, 31, tzinfo=dt_timezone.utc)
    assert dashboard.add_months(start, 1) == datetime(2024, 2, 29, tzinfo=dt_timezone.utc)
    assert dashboard.add_months(start, -2) == datetime(2023, 11, 30, tzinfo=dt_timezone.utc)


@pytest.mark.unit
def test_build_period_limits():
    start = datetime(2024, 1, 1, tzinfo=dt_timezone.utc)
    period = dashboard.build_period(start, datetime(2024, 1, 31, tzinfo=dt_timezone.utc))
    assert period.end == datetime(2024, 2, 1, tzinfo=dt_timezone.utc)
    with pytest.raises(ValueError):
        dashboard.build_period(start, datetime(2025, 6, 1, tzinfo=dt_timezone.utc))
    with pytest.raises(ValueError):
        dashboard.build_period(datetime(2024, 3, 1, tzinfo=dt_timezone.utc), datetime(2024, 1, 1, tzinfo=dt_timezone.utc))


def test_billing_totals_by_classification(org, client_row):
    now = timezone.now()
    period = dashboard.Period(now - timedelta(days=1), now + timedelta(days=1))
    _payment(org, client_row, "1.000,50", status_pay="Pagado")
    _payment(org, client_row, "200", status_pay="en proceso")
    _payment(org, client_row, "50", status=True)
    _payment(org, client_row, "999", status_pay="anulado")
    _payment(org, client_row, "70", status_pay="pagado", when=now - timedelta(days=10))

    totals = dashboard.billing_totals(org, period)
    assert totals["billed"] == Decimal("1050.50")
    assert totals["pendiente"] == Decimal("200")
    assert totals["total"] == Decimal("1250.50")


def test_client_status_overview(org):
    Client.objects.create(org=org, name="A", status=True)
    Client.objects.create(org=org, name="B", status=False)
    Client.objects.create(org=org, name="C", status=None)
    assert dashboard.client_status_overview(org) == {"total": 3, "active": 1, "inactive": 1, "unknown": 1}


def test_upcoming_expirations_only_open_invoices(org, client_row):
    now = timezone.now()
    soon = Invoice.objects.create(org=org, client=client_row, description="F-1", total=Decimal("10"),
                                  expiry=now + timedelta(days=3))
    Invoice.objects.create(org=org, client=client_row, description="F-2", status=True, expiry=now + timedelta(days=3))
    Invoice.objects.create(org=org, client=client_row, description="F-3", expiry=now + timedelta(days=90))

    items = dashboard.upcoming_expirations(org, reference=now, months_ahead=1)
    assert [i["id"] for i in items] == [soon.id]
    assert items[0]["daysUntilExpiry"] == 3
    assert items[0]["status"] == "pendiente"


def test_top_services_by_assignments(org, service):
    from catalog.models import Service

    other = Service.objects.create(org=org, name="Dominio")
    for name in ("A", "B"):
        client = Client.objects.create(org=org, name=name)
        ClientService.objects.create(client=client, service=service)
    ClientService.objects.create(client=Client.objects.create(org=org, name="C"), service=other)

    now = timezone.now()
    top = dashboard.top_services(org, dashboard.Period(now - timedelta(days=1), now + timedelta(days=1)), limit=1)
    assert top == [{"serviceId": service.id, "serviceName": "Hosting", "timesSold": 2}]


def test_monthly_comparison_never_exceeds_24_buckets(org):
    end = timezone.now()
    buckets = dashboard.monthly_comparison(org, end, start_date=end - timedelta(days=365 * 5))
    assert len(buckets) == 24
    assert buckets == sorted(buckets, key=lambda b: b["month"])


def test_monthly_comparison_buckets_payments(org, client_row):
    now = timezone.localtime()
    _payment(org, client_row, "100", status_pay="paid")
    _payment(org, client_row, "40", status=False)
    buckets = dashboard.monthly_comparison(org, now, months=3)
    assert len(buckets) == 3
    current = buckets[-1]
    assert current["month"] == f"{now.year}-{now.month:02d}"
    assert current["billed"] == Decimal("100")
    assert current["pendiente"] == Decimal("40")


def test_dashboard_endpoint(api_client, base_url):
    resp = api_client.get(f"{base_url}/analytics/dashboard/")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert set(data) == {"period", "totals", "upcomingExpirations", "clientStatus", "topServices", "monthlyComparison"}


def test_dashboard_rejects_bad_dates(api_client, base_url):
    resp = api_client.get(f"{base_url}/analytics/dashboard/", {"from": "no-date"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False
