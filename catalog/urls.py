from django.urls import path, include
from django.http import JsonResponse
from rest_framework.routers import DefaultRouter

from .views import CategoryViewSet, ServiceViewSet, TaxViewSet

router = DefaultRouter()
router.register(r"services", ServiceViewSet, basename="catalog-service")
router.register(r"categories", CategoryViewSet, basename="catalog-category")
router.register(r"taxes", TaxViewSet, basename="catalog-tax")


def health(_request, org_slug=None):
    return JsonResponse({"app": "catalog", "status": "ok"})


urlpatterns = [
    path("health/", health, name="catalog-health"),
    path("", include(router.urls)),
]
