from django.urls import path, include
from django.http import JsonResponse
from rest_framework.routers import SimpleRouter

from .views import ClientViewSet

router = SimpleRouter()
router.register(r"", ClientViewSet, basename="clients")


def health(_request, org_slug=None):
    return JsonResponse({"app": "clients", "status": "ok"})


urlpatterns = [
    path("health/", health, name="clients-health"),
    path("", include(router.urls)),
]
