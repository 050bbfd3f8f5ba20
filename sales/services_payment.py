# sales/services_payment.py
import logging
import uuid
from django.db import transaction
from django.db.models import Prefetch
from django.utils import timezone

from clients.models import Client
from core.exceptions import ClientNotFound, PaymentNotFound
from core.normalizers import (
    PAYMENT_STATUS_TABLE,
    classify_status,
    guess_status_flag,
    optional_text,
    parse_datetime_or_none,
)
from .models import Invoice, Payment, PaymentAttachment, PaymentMethod

logger = logging.getLogger(__name__)


def payment_queryset(org):
    return (
        Payment.objects.filter(org=org)
        .select_related("client", "payment_method")
        .prefetch_related(Prefetch("attachments", queryset=PaymentAttachment.objects.all()))
    )


def get_payment(org, payment_id) -> Payment:
    try:
        return payment_queryset(org).get(pk=payment_id)
    except (Payment.DoesNotExist, ValueError, TypeError):
        raise PaymentNotFound()


def list_methods(org):
    return PaymentMethod.objects.filter(org=org)


def resolve_payment_method(org, method_id=None, method_name=None):
    """
    Método de pago por id; si no existe, por nombre; si tampoco, se crea.
    Devuelve (PaymentMethod | None, nombre).
    """
    if method_id not in (None, ""):
        existing = PaymentMethod.objects.filter(org=org, pk=method_id).first()
        if existing is not None:
            return existing, existing.name

    name = optional_text(method_name)
    if not name:
        return None, None

    method, created = PaymentMethod.objects.get_or_create(org=org, name=name)
    if created:
        logger.info("Método de pago creado '%s' org=%s", name, org.slug)
    return method, method.name


def sanitize_attachments(attachments):
    """
    Normaliza adjuntos: url recortada obligatoria, id generado si falta
    y sin ids repetidos (gana el primero).
    """
    seen = set()
    cleaned = []
    for attachment in attachments or []:
        uid = optional_text(attachment.get("id")) or str(uuid.uuid4())
        url = optional_text(attachment.get("url"))
        if not url or uid in seen:
            continue
        seen.add(uid)
        cleaned.append({
            "uid": uid,
            "url": url,
            "invoice_id": optional_text(attachment.get("invoice_id")),
        })
    return cleaned


def _save_attachments(org, payment, attachments):
    invoice_ids = {a["invoice_id"] for a in attachments if a["invoice_id"]}
    valid = {str(pk) for pk in Invoice.objects.filter(org=org, pk__in=_int_ids(invoice_ids)).values_list("pk", flat=True)}
    PaymentAttachment.objects.bulk_create([
        PaymentAttachment(
            payment=payment,
            uid=a["uid"],
            url=a["url"],
            invoice_id=int(a["invoice_id"]) if a["invoice_id"] in valid else None,
        )
        for a in attachments
    ])


def _int_ids(values):
    return [int(v) for v in values if str(v).isdigit()]


def _apply(org, payment, data, previous_flag=None):
    client = Client.objects.filter(org=org, pk=data.get("client_id")).first()
    if client is None:
        raise ClientNotFound()

    method, method_name = resolve_payment_method(org, data.get("method_id"), data.get("method_name"))
    confirmed = data.get("confirmed")
    fallback = confirmed if isinstance(confirmed, bool) else previous_flag
    label = classify_status(data.get("status"), fallback, PAYMENT_STATUS_TABLE)

    payment.client = client
    payment.code = optional_text(data.get("reference"))
    payment.value = data["value"]
    payment.status_pay = optional_text(data.get("status"))
    payment.method = method_name or optional_text(data.get("method_name"))
    payment.payment_method = method
    payment.type = optional_text(data.get("type"))
    payment.url = optional_text(data.get("receipt_url"))
    payment.status = guess_status_flag(label, fallback)


@transaction.atomic
def create_payment(org, data: dict) -> Payment:
    payment = Payment(org=org)
    _apply(org, payment, data)
    paid_at = parse_datetime_or_none(data.get("paid_at")) or timezone.now()
    payment.created_at = paid_at
    payment.save()
    # auto_now pisa updated_at en save(); se alinea con la fecha de pago
    Payment.objects.filter(pk=payment.pk).update(updated_at=paid_at)
    _save_attachments(org, payment, sanitize_attachments(data.get("attachments")))
    logger.info("Pago creado id=%s org=%s", payment.id, org.slug)
    return get_payment(org, payment.id)


@transaction.atomic
def update_payment(org, payment_id, data: dict) -> Payment:
    payment = get_payment(org, payment_id)
    _apply(org, payment, data, previous_flag=payment.status)
    payment.save()
    paid_at = parse_datetime_or_none(data.get("paid_at"))
    if paid_at:
        Payment.objects.filter(pk=payment.pk).update(updated_at=paid_at)

    PaymentAttachment.objects.filter(payment=payment).delete()
    _save_attachments(org, payment, sanitize_attachments(data.get("attachments")))
    logger.info("Pago actualizado id=%s org=%s", payment.id, org.slug)
    return get_payment(org, payment.id)


@transaction.atomic
def delete_payment(org, payment_id):
    payment = get_payment(org, payment_id)
    PaymentAttachment.objects.filter(payment=payment).delete()
    payment.delete()
    logger.info("Pago eliminado id=%s org=%s", payment_id, org.slug)
