# clients/services_client.py
import logging
from django.db import IntegrityError, transaction
from django.db.models import Count, Prefetch, Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from catalog.models import Service
from core.exceptions import (
    ClientNotFound,
    ServiceAlreadyAssigned,
    ServiceNotFound,
    ValidationFailed,
)
from core.normalizers import client_status, optional_text, parse_datetime_or_none
from .choices import AuditAction, ClientType
from .models import (
    Client,
    ClientAuditLog,
    ClientDetail,
    ClientParameter,
    ClientService,
    ClientUsageLog,
)

logger = logging.getLogger(__name__)

TYPE_PARAMETER_NAME = "Tipo de cliente"


def client_queryset(org):
    return (
        Client.objects.filter(org=org)
        .prefetch_related(Prefetch("details", queryset=ClientDetail.objects.select_related("parameter")))
        .annotate(services_count=Count("assignments", distinct=True))
    )


def client_detail_queryset(org):
    from sales.models import Invoice, Payment, Quote

    return Client.objects.filter(org=org).prefetch_related(
        Prefetch("details", queryset=ClientDetail.objects.select_related("parameter")),
        Prefetch("assignments", queryset=ClientService.objects.select_related("service")),
        Prefetch("quotes", queryset=Quote.objects.prefetch_related("lines")),
        Prefetch("invoices", queryset=Invoice.objects.all()),
        Prefetch("payments", queryset=Payment.objects.all()),
        Prefetch("audit_logs", queryset=ClientAuditLog.objects.select_related("user")),
        "usage_logs",
    )


def get_client(org, client_id) -> Client:
    try:
        return Client.objects.get(org=org, pk=client_id)
    except (Client.DoesNotExist, ValueError, TypeError):
        raise ClientNotFound()


def get_client_detail(org, client_id) -> Client:
    try:
        return client_detail_queryset(org).get(pk=client_id)
    except (Client.DoesNotExist, ValueError, TypeError):
        raise ClientNotFound()


def list_parameters(org):
    return ClientParameter.objects.filter(org=org)


def audit(client, action, user=None, **payload):
    return ClientAuditLog.objects.create(
        client=client,
        user=user if getattr(user, "is_authenticated", False) else None,
        action=action,
        payload=payload,
    )


def _replace_details(org, client, details, client_type=None):
    """
    Los detalles se sustituyen en bloque. Si llega un tipo explícito y no hay
    ya un detalle de tipo, se guarda como detalle para que pueda deducirse.
    """
    parameters = {p.id: p for p in ClientParameter.objects.filter(org=org)}
    rows = []
    for detail in details or []:
        parameter = parameters.get(detail.get("parameter_id"))
        value = (detail.get("value") or "").strip()
        if parameter is None:
            raise ValidationError({"details": f"Parámetro {detail.get('parameter_id')} no encontrado"})
        if value:
            rows.append((parameter, value))

    has_type = any(
        "tipo" in (p.name or "").lower() or "type" in (p.name or "").lower() for p, _ in rows
    )
    if client_type and not has_type:
        parameter, _ = ClientParameter.objects.get_or_create(org=org, name=TYPE_PARAMETER_NAME)
        label = "Natural" if client_type == ClientType.NATURAL else "Jurídica"
        rows.append((parameter, label))

    ClientDetail.objects.filter(client=client).delete()
    ClientDetail.objects.bulk_create(
        [ClientDetail(client=client, parameter=p, value=v) for p, v in rows]
    )


def _apply(client, data):
    name = optional_text(data.get("name"))
    if not name:
        raise ValidationError({"name": "El nombre del cliente es obligatorio"})
    status = data.get("status")
    if status not in client_status.labels:
        raise ValidationError({"status": "El estado del cliente es inválido"})
    client.name = name
    client.status = client_status.flag(status)


@transaction.atomic
def create_client(org, data: dict, user=None) -> Client:
    client = Client(org=org)
    _apply(client, data)
    client.save()
    _replace_details(org, client, data.get("details"), data.get("type"))
    audit(client, AuditAction.CREATED, user, name=client.name)
    logger.info("Cliente creado id=%s org=%s", client.id, org.slug)
    return client


@transaction.atomic
def update_client(org, client_id, data: dict, user=None) -> Client:
    client = get_client(org, client_id)
    _apply(client, data)
    client.save()
    _replace_details(org, client, data.get("details"), data.get("type"))
    audit(client, AuditAction.UPDATED, user, name=client.name, status=data.get("status"))
    logger.info("Cliente actualizado id=%s org=%s", client.id, org.slug)
    return client


@transaction.atomic
def assign_service(org, client_id, payload: dict, user=None) -> ClientService:
    """
    Asigna un servicio a un cliente. Falla sin escribir nada si falta el
    servicio, no existe el cliente o el servicio, o ya estaba asignado.
    """
    service_id = payload.get("service_id")
    if service_id in (None, ""):
        raise ValidationFailed("El servicio es obligatorio", code="SERVICE_ID_REQUIRED")

    client = get_client(org, client_id)
    try:
        service = Service.objects.filter(org=org, pk=service_id).first()
    except (ValueError, TypeError):
        service = None
    if service is None:
        raise ServiceNotFound()

    if ClientService.objects.filter(client=client, service=service).exists():
        logger.warning("Servicio %s ya asignado al cliente %s", service.id, client.id)
        raise ServiceAlreadyAssigned()

    try:
        with transaction.atomic():
            assignment = ClientService.objects.create(
                client=client,
                service=service,
                started=parse_datetime_or_none(payload.get("started")),
                delivery=parse_datetime_or_none(payload.get("delivery")),
                expiry=parse_datetime_or_none(payload.get("expiry")),
                frequency=optional_text(payload.get("frequency")),
                unit=optional_text(payload.get("unit")),
                url_api=optional_text(payload.get("url_api")),
                token_api=optional_text(payload.get("token_api")),
            )
    except IntegrityError:
        # Otra petición lo asignó entre la comprobación y el insert
        raise ServiceAlreadyAssigned()

    Client.objects.filter(pk=client.pk).update(updated_at=timezone.now())
    audit(client, AuditAction.SERVICE_ASSIGNED, user, service_id=service.id, assignment_id=assignment.id)
    logger.info("Servicio %s asignado al cliente %s", service.id, client.id)
    return ClientService.objects.select_related("service").get(pk=assignment.pk)


@transaction.atomic
def record_usage(org, client_id, payload: dict, user=None) -> ClientUsageLog:
    client = get_client(org, client_id)
    assignment = None
    service_id = payload.get("service_id")
    if service_id not in (None, ""):
        assignment = ClientService.objects.filter(client=client, service_id=service_id).first()
        if assignment is None:
            raise ServiceNotFound("El servicio no está asignado al cliente")

    log = ClientUsageLog.objects.create(
        client=client,
        assignment=assignment,
        endpoint=optional_text(payload.get("endpoint")) or "",
        units=payload.get("units") or 1,
    )
    audit(client, AuditAction.USAGE_RECORDED, user, endpoint=log.endpoint, units=str(log.units))
    return log


@transaction.atomic
def delete_client(org, client_id):
    """
    Borra el cliente y todo lo que cuelga de él, hijos antes que padre.
    Las FK al cliente son PROTECT: si falta un paso el borrado falla entero.
    """
    from sales.models import (
        Invoice,
        InvoiceLine,
        Payment,
        PaymentAttachment,
        Quote,
        QuoteAttachment,
        QuoteLine,
    )

    client = get_client(org, client_id)

    invoices = Invoice.objects.filter(client=client)
    payments = Payment.objects.filter(client=client)
    quotes = Quote.objects.filter(client=client)

    ClientDetail.objects.filter(client=client).delete()
    ClientService.objects.filter(client=client).delete()
    ClientUsageLog.objects.filter(client=client).delete()
    InvoiceLine.objects.filter(invoice__in=invoices).delete()
    PaymentAttachment.objects.filter(Q(payment__in=payments) | Q(invoice__in=invoices)).delete()
    QuoteAttachment.objects.filter(Q(quote__in=quotes) | Q(invoice__in=invoices)).delete()
    QuoteLine.objects.filter(quote__in=quotes).delete()
    invoices.delete()
    payments.delete()
    quotes.delete()
    ClientAuditLog.objects.filter(client=client).delete()
    client.delete()
    logger.info("Cliente eliminado id=%s org=%s", client_id, org.slug)
