import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


# --- No encontrado ---

class ClientNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Cliente no encontrado"
    default_code = "CLIENT_NOT_FOUND"


class ServiceNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Servicio no encontrado"
    default_code = "SERVICE_NOT_FOUND"


class QuoteNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Cotización no encontrada"
    default_code = "QUOTE_NOT_FOUND"


class InvoiceNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Factura no encontrada"
    default_code = "INVOICE_NOT_FOUND"


class PaymentNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Pago no encontrado"
    default_code = "PAYMENT_NOT_FOUND"


class TaxNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Impuesto no encontrado"
    default_code = "TAX_NOT_FOUND"


# --- Conflictos ---

class ServiceAlreadyAssigned(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "El servicio ya está asignado al cliente"
    default_code = "SERVICE_ALREADY_ASSIGNED"


class ServiceHasDependents(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "El servicio tiene registros dependientes"
    default_code = "SERVICE_HAS_DEPENDENTS"


class ServiceHasAssignments(ServiceHasDependents):
    default_detail = "El servicio tiene clientes asignados"
    default_code = "SERVICE_HAS_ASSIGNMENTS"


class ServiceHasInvoices(ServiceHasDependents):
    default_detail = "El servicio tiene facturas asociadas"
    default_code = "SERVICE_HAS_INVOICES"


# --- Correo ---

class EmailDeliveryFailed(APIException):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "No se pudo enviar el correo"
    default_code = "EMAIL_FAILED"


# --- Validación ---

class ValidationFailed(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Datos inválidos"
    default_code = "VALIDATION_ERROR"


def _first_message(detail):
    if isinstance(detail, dict):
        for key, value in detail.items():
            msg = _first_message(value)
            if key in ("detail", "non_field_errors"):
                return msg
            return f"{key}: {msg}"
        return ""
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ""
    return str(detail)


def envelope_exception_handler(exc, context):
    """
    Envuelve los errores de DRF en {success: false, message, code}.
    Si hay errores por campo se devuelven también en "errors".
    """
    response = exception_handler(exc, context)
    if response is None:
        view = context.get("view")
        logger.exception("Error no controlado en %s", view.__class__.__name__ if view else "?")
        return None

    codes = exc.get_codes() if isinstance(exc, APIException) else None
    if isinstance(codes, (dict, list)):
        code = "VALIDATION_ERROR"
    else:
        code = str(codes or "ERROR")
        if code == "invalid":
            code = "VALIDATION_ERROR"

    body = {
        "success": False,
        "message": _first_message(response.data),
        "code": code,
    }
    if isinstance(response.data, dict) and "detail" not in response.data:
        body["errors"] = response.data
    response.data = body
    return response
