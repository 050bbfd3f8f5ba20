# catalog/services_catalog.py
import logging
from django.db import transaction
from django.db.models import Count, Q
from rest_framework.exceptions import ValidationError

from core.exceptions import (
    ServiceHasAssignments,
    ServiceHasInvoices,
    ServiceNotFound,
    TaxNotFound,
)
from core.normalizers import optional_text, service_status, to_decimal_or_none
from .models import Service, ServiceCategory, Tax

logger = logging.getLogger(__name__)

# Campos que obligan a recalcular las facturas del servicio
PRICE_FIELDS = ("price", "subtotal", "tax_one_id", "tax_two_id")


def service_queryset(org):
    return (
        Service.objects.filter(org=org)
        .select_related("category", "tax_one", "tax_two")
        .annotate(clients_count=Count("assignments", distinct=True))
    )


def get_service(org, service_id) -> Service:
    try:
        return service_queryset(org).get(pk=service_id)
    except (Service.DoesNotExist, ValueError, TypeError):
        raise ServiceNotFound()


def get_service_detail(org, service_id) -> Service:
    qs = service_queryset(org).prefetch_related("assignments__client", "assignments__service")
    try:
        return qs.get(pk=service_id)
    except (Service.DoesNotExist, ValueError, TypeError):
        raise ServiceNotFound()


def _resolve_tax(org, tax_id):
    if tax_id in (None, ""):
        return None
    tax = Tax.objects.filter(org=org, pk=tax_id).first()
    if tax is None:
        raise TaxNotFound()
    return tax


def _resolve_category(org, data):
    category_id = data.get("category_id")
    if category_id not in (None, ""):
        category = ServiceCategory.objects.filter(org=org, pk=category_id).first()
        if category is None:
            raise ValidationError({"categoryId": "Categoría no encontrada"})
        return category
    name = optional_text(data.get("category_name"))
    if name:
        category, _ = ServiceCategory.objects.get_or_create(org=org, name=name)
        return category
    return None


def _apply(service: Service, org, data: dict):
    name = optional_text(data.get("name"))
    if not name:
        raise ValidationError({"name": "El nombre es obligatorio"})
    service.name = name
    service.description = optional_text(data.get("description"))
    service.unit = optional_text(data.get("unit"))
    service.frequency = optional_text(data.get("frequency"))
    service.price = to_decimal_or_none(data.get("price"))
    service.subtotal = to_decimal_or_none(data.get("subtotal"))
    service.status = (data.get("status") or service_status.true_label) != service_status.false_label
    service.category = _resolve_category(org, data)
    service.tax_one = _resolve_tax(org, data.get("tax_one_id"))
    service.tax_two = _resolve_tax(org, data.get("tax_two_id"))


@transaction.atomic
def create_service(org, data: dict) -> Service:
    service = Service(org=org)
    _apply(service, org, data)
    service.save()
    logger.info("Servicio creado id=%s org=%s", service.id, org.slug)
    return get_service(org, service.id)


@transaction.atomic
def update_service(org, service_id, data: dict) -> Service:
    """
    Actualiza el servicio y, si cambian precio/subtotal/impuestos, recalcula
    TODAS las facturas que lo referencian en la misma transacción.
    """
    service = get_service(org, service_id)
    before = {f: getattr(service, f) for f in PRICE_FIELDS}
    _apply(service, org, data)
    service.save()

    changed = any(getattr(service, f) != before[f] for f in PRICE_FIELDS)
    if changed:
        from sales.services_invoice import recompute_invoices_for_service

        updated = recompute_invoices_for_service(service)
        logger.info("Servicio %s: precio propagado a %s facturas", service.id, updated)
    return get_service(org, service.id)


@transaction.atomic
def delete_service(org, service_id):
    service = get_service(org, service_id)

    assignments = service.assignments.count()
    if assignments:
        logger.warning("Borrado de servicio %s rechazado: %s asignaciones", service.id, assignments)
        raise ServiceHasAssignments()

    from sales.models import Invoice

    invoices = Invoice.objects.filter(Q(service=service) | Q(lines__service=service)).distinct().count()
    if invoices:
        logger.warning("Borrado de servicio %s rechazado: tiene facturas", service.id)
        raise ServiceHasInvoices()

    service.delete()
    logger.info("Servicio eliminado id=%s org=%s", service_id, org.slug)


def list_categories(org):
    return ServiceCategory.objects.filter(org=org)


@transaction.atomic
def create_category(org, data: dict) -> ServiceCategory:
    name = optional_text(data.get("name"))
    if not name:
        raise ValidationError({"name": "El nombre es obligatorio"})
    return ServiceCategory.objects.create(org=org, name=name)


# --- Impuestos ---

def get_tax(org, tax_id) -> Tax:
    try:
        return Tax.objects.get(org=org, pk=tax_id)
    except (Tax.DoesNotExist, ValueError, TypeError):
        raise TaxNotFound()


@transaction.atomic
def create_tax(org, data: dict) -> Tax:
    name = optional_text(data.get("name"))
    if not name:
        raise ValidationError({"name": "El nombre es obligatorio"})
    tax = Tax.objects.create(
        org=org,
        name=name,
        description=optional_text(data.get("description")),
        percentage=data["percentage"],
        active=data.get("active", True),
    )
    logger.info("Impuesto creado id=%s org=%s", tax.id, org.slug)
    return tax


@transaction.atomic
def update_tax(org, tax_id, data: dict) -> Tax:
    """
    Cambiar el porcentaje de un impuesto cambia el precio final de los
    servicios que lo usan, así que también se propaga a sus facturas.
    """
    tax = get_tax(org, tax_id)
    old_percentage = tax.percentage

    if "name" in data:
        name = optional_text(data.get("name"))
        if not name:
            raise ValidationError({"name": "El nombre es obligatorio"})
        tax.name = name
    if "description" in data:
        tax.description = optional_text(data.get("description"))
    if "percentage" in data:
        tax.percentage = data["percentage"]
    if "active" in data:
        tax.active = data["active"]
    tax.save()

    if tax.percentage != old_percentage:
        from sales.services_invoice import recompute_invoices_for_service

        services = Service.objects.filter(Q(tax_one=tax) | Q(tax_two=tax), org=org).select_related(
            "tax_one", "tax_two"
        )
        for service in services:
            recompute_invoices_for_service(service)
    return tax
