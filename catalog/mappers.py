from core.normalizers import (
    money,
    normalize_text,
    optional_text,
    service_status,
    to_iso,
    ZERO,
)


def map_category(category):
    if category is None:
        return None
    return {"id": category.id, "name": normalize_text(category.name, "Sin categoría")}


def map_tax(tax):
    return {
        "id": tax.id,
        "name": normalize_text(tax.name, "Impuesto sin nombre"),
        "description": optional_text(tax.description),
        "percentage": tax.percentage if tax.percentage is not None else ZERO,
        "active": bool(tax.active),
        "createdAt": to_iso(tax.created_at),
        "updatedAt": to_iso(tax.updated_at),
    }


def build_tax_line(tax, amount, fallback_id, fallback_name):
    """
    Línea de impuesto para facturas y catálogo.
    Sin impuesto configurado y con importe 0 no hay línea (None).
    """
    amount = money(amount or ZERO)
    if tax is None:
        if amount == ZERO:
            return None
        return {"id": fallback_id, "name": fallback_name, "percentage": ZERO, "amount": amount}
    return {
        "id": tax.id,
        "name": normalize_text(tax.name, fallback_name),
        "percentage": tax.percentage if tax.percentage is not None else ZERO,
        "amount": amount,
    }


def _clients_count(service):
    count = getattr(service, "clients_count", None)
    if count is None:
        count = service.assignments.count()
    return count


def map_service(service):
    return {
        "id": service.id,
        "name": normalize_text(service.name, "Servicio sin nombre"),
        "description": service.description,
        "unit": service.unit,
        "price": service.price,
        "subtotal": service.billing_subtotal,
        "frequency": service.frequency,
        "taxOne": build_tax_line(service.tax_one, ZERO, "tax-one", "Impuesto 1"),
        "taxTwo": build_tax_line(service.tax_two, ZERO, "tax-two", "Impuesto 2"),
        "status": service_status.label(service.status),
        "category": map_category(service.category),
        "createdAt": to_iso(service.created_at),
        "updatedAt": to_iso(service.updated_at),
        "clientsCount": _clients_count(service),
    }


def map_service_assignment(assignment):
    """Asignación vista desde el servicio (a qué cliente está asignado)."""
    client = assignment.client
    return {
        "id": assignment.id,
        "clientId": assignment.client_id,
        "clientName": normalize_text(client.name if client else None, "Cliente sin nombre"),
        "started": to_iso(assignment.started),
        "delivery": to_iso(assignment.delivery),
        "expiry": to_iso(assignment.expiry),
        "frequency": assignment.frequency,
        "unit": assignment.unit or assignment.service.unit,
        "urlApi": assignment.url_api,
        "tokenApi": assignment.token_api,
    }


def map_service_detail(service):
    data = map_service(service)
    assignments = sorted(
        service.assignments.all(),
        key=lambda a: (a.created_at, a.id),
        reverse=True,
    )
    data["clients"] = [map_service_assignment(a) for a in assignments]
    return data
