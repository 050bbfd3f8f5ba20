from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.tokens import AccessToken
from core.models import Membership


class TenantAwareTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Extiende el token para incluir:
      - org: {id, slug}
      - roles: roles del usuario en esa org
      - email, uid
    """
    # org_slug llega en el body de login si el usuario tiene varias orgs
    org_slug = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        data = super().validate(attrs)
        org_slug = self.initial_data.get("org_slug")

        memberships = list(Membership.objects.select_related("organization").filter(user=self.user))
        current = None
        if org_slug:
            current = next((m for m in memberships if m.organization.slug == org_slug), None)
        if not current and memberships:
            current = memberships[0]

        at = AccessToken(data["access"])
        at["uid"] = str(self.user.id)
        at["email"] = self.user.email
        if current:
            at["org"] = {"id": str(current.organization.id), "slug": current.organization.slug}
            at["roles"] = [current.role]
            data["org"] = {"slug": current.organization.slug, "name": current.organization.name, "role": current.role}
        data["access"] = str(at)
        return data
