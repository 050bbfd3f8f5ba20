# config/pagination.py
from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """Sólo se aplica cuando el cliente pide ?page=... (ver OrgResolverMixin.mapped_list)."""
    page_size = 25
    page_size_query_param = "page_size"
    max_page_size = 200
