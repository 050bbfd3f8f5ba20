# clients/serializers.py
from decimal import Decimal
from rest_framework import serializers

from .choices import ClientStatus, ClientType


class ClientDetailInputSerializer(serializers.Serializer):
    parameterId = serializers.IntegerField(source="parameter_id")
    value = serializers.CharField(allow_blank=True, max_length=500)


class ClientWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    status = serializers.ChoiceField(
        choices=[c[0] for c in ClientStatus.CHOICES],
        error_messages={"invalid_choice": "El estado del cliente es inválido"},
    )
    type = serializers.ChoiceField(choices=[c[0] for c in ClientType.CHOICES], required=False, allow_null=True)
    details = ClientDetailInputSerializer(many=True, required=False)


class AssignServiceSerializer(serializers.Serializer):
    # serviceId se valida en el servicio para devolver SERVICE_ID_REQUIRED
    serviceId = serializers.CharField(source="service_id", required=False, allow_blank=True, allow_null=True)
    started = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    delivery = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    expiry = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    frequencyValue = serializers.CharField(source="frequency", required=False, allow_blank=True, allow_null=True)
    frequencyUnit = serializers.CharField(source="unit", required=False, allow_blank=True, allow_null=True)
    urlApi = serializers.CharField(source="url_api", required=False, allow_blank=True, allow_null=True)
    tokenApi = serializers.CharField(source="token_api", required=False, allow_blank=True, allow_null=True)

    def validate_serviceId(self, value):
        return value.strip() if isinstance(value, str) else value


class UsageSerializer(serializers.Serializer):
    serviceId = serializers.IntegerField(source="service_id", required=False, allow_null=True)
    endpoint = serializers.CharField(max_length=240, required=False, allow_blank=True)
    units = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0"), required=False)
