from rest_framework import serializers
from core.models import OrganizationSettings


class OrganizationSettingsSerializer(serializers.ModelSerializer):
    smtp_password = serializers.CharField(write_only=True, required=False, allow_blank=True)
    smtp_password_set = serializers.SerializerMethodField()

    class Meta:
        model = OrganizationSettings
        fields = [
            "from_name",
            "from_email",
            "reply_to_email",
            "bcc_on_outgoing",
            "smtp_host",
            "smtp_port",
            "smtp_user",
            "smtp_password",
            "smtp_password_set",
            "smtp_use_tls",
            "alerts_enabled",
            "alert_days_before_expiry",
            "alert_recipients",
            "company_name",
            "company_legal_id",
            "logo_url",
            "primary_color",
            "updated_at",
        ]
        read_only_fields = ["updated_at"]

    def get_smtp_password_set(self, obj):
        return bool(obj.smtp_password)

    def validate_alert_recipients(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Debe ser una lista de emails")
        field = serializers.EmailField()
        cleaned = []
        for item in value:
            email = field.run_validation(str(item).strip())
            if email not in cleaned:
                cleaned.append(email)
        return cleaned

    def validate_primary_color(self, value):
        if value and not (value.startswith("#") and len(value) in (4, 7, 9)):
            raise serializers.ValidationError("Color hexadecimal inválido")
        return value

    def update(self, instance, validated_data):
        # Password vacío = no cambiarla
        if not validated_data.get("smtp_password"):
            validated_data.pop("smtp_password", None)
        return super().update(instance, validated_data)
