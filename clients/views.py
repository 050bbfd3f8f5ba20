# clients/views.py
from rest_framework import status
from rest_framework.decorators import action

from catalog.mappers import map_service
from catalog.services_catalog import service_queryset
from core.mixins import OrgScopedViewSet
from core.responses import ok
from .mappers import map_assignment, map_client, map_client_summary, map_parameter, map_usage_log
from .models import Client
from .serializers import AssignServiceSerializer, ClientWriteSerializer, UsageSerializer
from . import services_client


class ClientViewSet(OrgScopedViewSet):
    queryset = Client.objects.all()
    filterset_fields = ["status"]
    search_fields = ["name", "details__value"]
    ordering_fields = ["name", "created_at", "updated_at"]

    def get_queryset(self):
        return services_client.client_queryset(self.org)

    def list(self, request, *args, **kwargs):
        qs = self.filter_queryset(self.get_queryset()).distinct()
        parameters = [map_parameter(p) for p in services_client.list_parameters(self.org)]
        return ok({
            "clients": [map_client_summary(c) for c in qs],
            "parameters": parameters,
        })

    def retrieve(self, request, pk=None, *args, **kwargs):
        client = services_client.get_client_detail(self.org, pk)
        return ok({
            "client": map_client(client),
            "parameters": [map_parameter(p) for p in services_client.list_parameters(self.org)],
            "serviceCatalog": [map_service(s) for s in service_queryset(self.org)],
        })

    def create(self, request, *args, **kwargs):
        ser = ClientWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        client = services_client.create_client(self.org, ser.validated_data, user=request.user)
        return ok(map_client(services_client.get_client_detail(self.org, client.pk)), status=status.HTTP_201_CREATED)

    def update(self, request, pk=None, *args, **kwargs):
        ser = ClientWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        client = services_client.update_client(self.org, pk, ser.validated_data, user=request.user)
        return ok(map_client(services_client.get_client_detail(self.org, client.pk)))

    def destroy(self, request, pk=None, *args, **kwargs):
        services_client.delete_client(self.org, pk)
        return ok(None, message="Cliente eliminado")

    @action(detail=True, methods=["post"], url_path="services")
    def assign_service(self, request, pk=None, *args, **kwargs):
        ser = AssignServiceSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        assignment = services_client.assign_service(self.org, pk, ser.validated_data, user=request.user)
        return ok(map_assignment(assignment), status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def usage(self, request, pk=None, *args, **kwargs):
        ser = UsageSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        log = services_client.record_usage(self.org, pk, ser.validated_data, user=request.user)
        return ok(map_usage_log(log), status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"])
    def parameters(self, request, *args, **kwargs):
        return ok([map_parameter(p) for p in services_client.list_parameters(self.org)])
