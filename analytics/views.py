# analytics/views.py
from django.http import JsonResponse
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from core.mixins import OrgScopedAPIView
from core.normalizers import parse_datetime_or_none, to_iso
from core.responses import ok
from .services import (
    billing_totals,
    build_period,
    client_status_overview,
    dashboard_summary,
    monthly_comparison,
    top_services,
    upcoming_expirations,
)


def health(_request, org_slug=None):
    return JsonResponse({"app": "analytics", "status": "ok"})


class BaseAnalyticsView(OrgScopedAPIView):
    """
    Base para las vistas del dashboard: org, fechas y enteros acotados
    desde la query string.
    """

    def parse_date(self, field_name):
        raw = self.request.query_params.get(field_name)
        if not raw:
            return None
        value = parse_datetime_or_none(raw)
        if value is None:
            raise ValidationError({field_name: "Rango de fechas inválido"})
        return value

    def parse_int(self, field_name, default, minimum, maximum):
        raw = self.request.query_params.get(field_name)
        try:
            value = int(raw)
        except (TypeError, ValueError):
            value = default
        return min(max(value, minimum), maximum)

    def get_period(self):
        try:
            return build_period(self.parse_date("from"), self.parse_date("to"))
        except ValueError as exc:
            raise ValidationError(str(exc))


class DashboardSummaryView(BaseAnalyticsView):
    """
    GET /api/v1/t/{org_slug}/analytics/dashboard/?from=&to=&limit=&monthsAhead=&referenceDate=
    """

    def get(self, request, *args, **kwargs):
        period = self.get_period()
        return ok(dashboard_summary(
            self.org,
            period,
            top_limit=self.parse_int("limit", 5, 1, 50),
            months_ahead=self.parse_int("monthsAhead", 1, 1, 12),
            reference=self.parse_date("referenceDate"),
        ))


class BillingTotalsView(BaseAnalyticsView):
    def get(self, request, *args, **kwargs):
        period = self.get_period()
        return ok({"period": period.as_dict(), "totals": billing_totals(self.org, period)})


class UpcomingExpirationsView(BaseAnalyticsView):
    def get(self, request, *args, **kwargs):
        params = request.query_params
        period = self.get_period() if (params.get("from") or params.get("to")) else None
        reference = self.parse_date("referenceDate") or timezone.now()
        months_ahead = self.parse_int("monthsAhead", 1, 1, 12)
        return ok({
            "referenceDate": to_iso(reference),
            "monthsAhead": months_ahead,
            "period": period.as_dict() if period else None,
            "items": upcoming_expirations(self.org, reference, months_ahead, period),
        })


class ClientStatusView(BaseAnalyticsView):
    def get(self, request, *args, **kwargs):
        return ok(client_status_overview(self.org))


class TopServicesView(BaseAnalyticsView):
    def get(self, request, *args, **kwargs):
        period = self.get_period()
        limit = self.parse_int("limit", 5, 1, 50)
        return ok({"period": period.as_dict(), "items": top_services(self.org, period, limit)})


class MonthlyComparisonView(BaseAnalyticsView):
    def get(self, request, *args, **kwargs):
        end_date = self.parse_date("to") or timezone.now()
        months = self.parse_int("months", 6, 1, 24)
        return ok({
            "endDate": to_iso(end_date),
            "months": months,
            "items": monthly_comparison(self.org, end_date, months),
        })
