from typing import Optional
from django.utils.deprecation import MiddlewareMixin
from django.db import connection
from django.http import HttpRequest
from core.models import Organization

PG_SETTING = "app.current_org"


def resolve_org_from_path(path: str) -> Optional[str]:
    # Esperamos rutas tipo /api/v1/t/{org_slug}/...
    parts = [p for p in path.split("/") if p]
    if "t" not in parts:
        return None
    idx = parts.index("t")
    return parts[idx + 1] if idx + 1 < len(parts) else None


class TenantMiddleware(MiddlewareMixin):
    def process_request(self, request: HttpRequest):
        org_slug = resolve_org_from_path(request.path)
        request.org = None
        if not org_slug:
            return
        org = Organization.objects.only("id", "slug", "name").filter(slug=org_slug).first()
        request.org = org
        # Sólo Postgres tiene la variable de sesión para RLS
        if org and connection.vendor == "postgresql":
            with connection.cursor() as c:
                c.execute("SELECT set_config(%s, %s, false)", [PG_SETTING, str(org.id)])
