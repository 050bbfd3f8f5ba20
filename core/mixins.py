from django.utils.functional import cached_property
from rest_framework import generics, viewsets
from rest_framework.exceptions import NotFound

from core.models import Organization
from core.permissions import IsOrgMember
from core.responses import ok


class OrgResolverMixin:
    """
    - Resuelve self.org (middleware o slug de la URL).
    - Exige membresía en la organización.
    - Filtra el queryset por organización.
    """
    permission_classes = [IsOrgMember]
    org_lookup = "org"
    queryset = None

    @cached_property
    def org(self):
        o = getattr(self.request, "org", None)
        if o:
            return o
        slug = self.kwargs.get("org_slug")
        org = Organization.objects.filter(slug=slug).first() if slug else None
        if org is None:
            raise NotFound("Organización no encontrada")
        return org

    def get_queryset(self):
        assert self.queryset is not None, f"{self.__class__.__name__} debe definir 'queryset'"
        return self.queryset.filter(**{self.org_lookup: self.org})

    def get_serializer_context(self):
        ctx = super().get_serializer_context()
        ctx["org"] = self.org
        return ctx

    def get_payload(self):
        data = self.request.data
        return data if isinstance(data, dict) else {}

    def mapped_list(self, queryset, mapper):
        """
        Lista mapeada dentro del sobre {success, data}.
        Sólo pagina si el cliente pide ?page=..., para no romper a quien espera la lista completa.
        """
        if self.paginator is not None and "page" in self.request.query_params:
            page = self.paginate_queryset(queryset)
            return ok({
                "count": self.paginator.page.paginator.count,
                "next": self.paginator.get_next_link(),
                "previous": self.paginator.get_previous_link(),
                "results": [mapper(obj) for obj in page],
            })
        return ok([mapper(obj) for obj in queryset])


class OrgScopedViewSet(OrgResolverMixin, viewsets.GenericViewSet):
    """
    ViewSet de tenant: las acciones delegan en services_* (escritura)
    y en mappers (lectura).
    """


class OrgScopedAPIView(OrgResolverMixin, generics.GenericAPIView):
    pass
