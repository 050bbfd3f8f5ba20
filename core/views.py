import logging
from smtplib import SMTPException

from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from core.email_utils import send_org_email
from core.exceptions import EmailDeliveryFailed
from core.mixins import OrgScopedAPIView
from core.models import OrganizationSettings
from core.permissions import CanManageSettings, IsOrgMember
from core.responses import ok
from core.serializers import OrganizationSettingsSerializer

logger = logging.getLogger(__name__)


class PingTenantView(APIView):
    permission_classes = [IsOrgMember]

    def get(self, request, org_slug: str):
        return Response({
            "ok": True,
            "org": {"id": str(request.org.id), "slug": request.org.slug, "name": request.org.name},
        })


class OrgSettingsView(OrgScopedAPIView):
    permission_classes = [CanManageSettings]

    def get_settings(self):
        obj, _ = OrganizationSettings.objects.get_or_create(
            organization=self.org,
            defaults={"company_name": self.org.name},
        )
        return obj

    def get(self, request, org_slug: str):
        return ok(OrganizationSettingsSerializer(self.get_settings()).data)

    def put(self, request, org_slug: str):
        serializer = OrganizationSettingsSerializer(self.get_settings(), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info("Ajustes actualizados org=%s", self.org.slug)
        return ok(serializer.data)

    patch = put


class OrgEmailTestView(OrgScopedAPIView):
    permission_classes = [CanManageSettings]

    def post(self, request, org_slug: str):
        to_email = (self.get_payload().get("to") or request.user.email or "").strip()
        if not to_email:
            raise ValidationError("Debe indicar un destinatario")

        try:
            send_org_email(
                organization=self.org,
                to_emails=[to_email],
                subject="Correo de prueba de facturación",
                template_base_name="emails/org_email_test",
                context={"user": request.user},
            )
        except (SMTPException, OSError) as e:
            logger.warning("Fallo en email de prueba org=%s: %s", self.org.slug, e)
            raise EmailDeliveryFailed(str(e))

        return ok({"to": to_email}, message=f"Correo de prueba enviado a {to_email}")
