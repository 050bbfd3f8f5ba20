# catalog/serializers.py
# Validación de entrada; la salida la construyen los mappers.
from decimal import Decimal
from rest_framework import serializers

SERVICE_STATUS_CHOICES = ["active", "inactive"]


class ServiceWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    unit = serializers.CharField(max_length=40, required=False, allow_blank=True, allow_null=True)
    price = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)
    subtotal = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)
    frequency = serializers.CharField(max_length=40, required=False, allow_blank=True, allow_null=True)
    status = serializers.ChoiceField(choices=SERVICE_STATUS_CHOICES, default="active")
    categoryId = serializers.IntegerField(source="category_id", required=False, allow_null=True)
    categoryName = serializers.CharField(source="category_name", required=False, allow_blank=True, allow_null=True)
    taxOneId = serializers.IntegerField(source="tax_one_id", required=False, allow_null=True)
    taxTwoId = serializers.IntegerField(source="tax_two_id", required=False, allow_null=True)

    def validate(self, attrs):
        tax_one, tax_two = attrs.get("tax_one_id"), attrs.get("tax_two_id")
        if tax_one and tax_one == tax_two:
            raise serializers.ValidationError("Los dos impuestos del servicio deben ser distintos")
        return attrs


class CategoryWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)


class TaxWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)
    description = serializers.CharField(max_length=240, required=False, allow_blank=True, allow_null=True)
    percentage = serializers.DecimalField(
        max_digits=6, decimal_places=2, min_value=Decimal("0"), max_value=Decimal("100")
    )
    active = serializers.BooleanField(required=False, default=True)
