from django.urls import path, include
from django.http import JsonResponse
from rest_framework.routers import DefaultRouter

from .views import InvoiceViewSet, PaymentMethodViewSet, PaymentViewSet, QuoteViewSet

router = DefaultRouter()
router.register(r"quotes", QuoteViewSet, basename="sales-quote")
router.register(r"invoices", InvoiceViewSet, basename="sales-inv")
router.register(r"payments", PaymentViewSet, basename="sales-pay")
router.register(r"payment-methods", PaymentMethodViewSet, basename="sales-pay-method")


def health(_request, org_slug=None):
    return JsonResponse({"app": "sales", "status": "ok"})


urlpatterns = [
    path("health/", health, name="sales-health"),
    path("", include(router.urls)),
]
