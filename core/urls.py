from django.urls import path
from django.http import JsonResponse
from core.views import PingTenantView, OrgSettingsView, OrgEmailTestView


def health(_request, org_slug=None):
    return JsonResponse({"app": "core", "status": "ok"})


urlpatterns = [
    path("health/", health, name="core-health"),
    path("ping", PingTenantView.as_view(), name="core-ping"),
    path("settings/", OrgSettingsView.as_view(), name="org-settings"),
    path("settings/test-email/", OrgEmailTestView.as_view(), name="org-settings-test-email"),
]
