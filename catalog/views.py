# catalog/views.py
from rest_framework import status

from core.mixins import OrgScopedViewSet
from core.responses import ok
from .mappers import map_category, map_service, map_service_detail, map_tax
from .models import Service, ServiceCategory, Tax
from .serializers import CategoryWriteSerializer, ServiceWriteSerializer, TaxWriteSerializer
from . import services_catalog


class ServiceViewSet(OrgScopedViewSet):
    queryset = Service.objects.all()
    filterset_fields = ["status", "category"]
    search_fields = ["name", "description"]
    ordering_fields = ["name", "created_at", "price"]

    def get_queryset(self):
        return services_catalog.service_queryset(self.org)

    def list(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())
        return self.mapped_list(qs, map_service)

    def retrieve(self, request, pk=None, *args, **kwargs):
        return ok(map_service_detail(services_catalog.get_service_detail(self.org, pk)))

    def create(self, request, *args, **kwargs):
        ser = ServiceWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        service = services_catalog.create_service(self.org, ser.validated_data)
        return ok(map_service(service), status=status.HTTP_201_CREATED)

    def update(self, request, pk=None, *args, **kwargs):
        ser = ServiceWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        service = services_catalog.update_service(self.org, pk, ser.validated_data)
        return ok(map_service(service))

    def destroy(self, request, pk=None, *args, **kwargs):
        services_catalog.delete_service(self.org, pk)
        return ok(None, message="Servicio eliminado")


class CategoryViewSet(OrgScopedViewSet):
    queryset = ServiceCategory.objects.all()

    def list(self, request, *args, **kwargs):
        return ok([map_category(c) for c in services_catalog.list_categories(self.org)])

    def create(self, request, *args, **kwargs):
        ser = CategoryWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        category = services_catalog.create_category(self.org, ser.validated_data)
        return ok(map_category(category), status=status.HTTP_201_CREATED)


class TaxViewSet(OrgScopedViewSet):
    queryset = Tax.objects.all()
    filterset_fields = ["active"]
    search_fields = ["name"]

    def list(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset())
        return self.mapped_list(qs, map_tax)

    def retrieve(self, request, pk=None, *args, **kwargs):
        return ok(map_tax(services_catalog.get_tax(self.org, pk)))

    def create(self, request, *args, **kwargs):
        ser = TaxWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        tax = services_catalog.create_tax(self.org, ser.validated_data)
        return ok(map_tax(tax), status=status.HTTP_201_CREATED)

    def update(self, request, pk=None, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        ser = TaxWriteSerializer(data=request.data, partial=partial)
        ser.is_valid(raise_exception=True)
        tax = services_catalog.update_tax(self.org, pk, ser.validated_data)
        return ok(map_tax(tax))

    def partial_update(self, request, *args, **kwargs):
        kwargs["partial"] = True
        return self.update(request, *args, **kwargs)
