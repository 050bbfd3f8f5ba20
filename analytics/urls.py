# analytics/urls.py
from django.urls import path
from .views import (
    health, DashboardSummaryView, BillingTotalsView, UpcomingExpirationsView,
    ClientStatusView, TopServicesView, MonthlyComparisonView,
)

urlpatterns = [
    path("health/", health, name="analytics-health"),
    path("dashboard/", DashboardSummaryView.as_view(), name="analytics-dashboard"),
    path("billing-totals/", BillingTotalsView.as_view(), name="analytics-billing-totals"),
    path("upcoming-expirations/", UpcomingExpirationsView.as_view(), name="analytics-upcoming-expirations"),
    path("client-status/", ClientStatusView.as_view(), name="analytics-client-status"),
    path("top-services/", TopServicesView.as_view(), name="analytics-top-services"),
    path("monthly-comparison/", MonthlyComparisonView.as_view(), name="analytics-monthly-comparison"),
]
