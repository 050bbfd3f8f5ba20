"""
Normalización de importes y estados heredados.

Todo lo de este módulo está en la ruta de lectura: un registro histórico mal
formado no debe tumbar un listado, así que ninguna función lanza excepciones y
siempre se devuelve un valor por defecto (0, None o la etiqueta "otro").
"""
import re
from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

ZERO = Decimal("0")
TWOPLACES = Decimal("0.01")

_CURRENCY_STRIP = re.compile(r"[^0-9,.\-]")
# El texto normalizado completo debe ser un número; si no, vale 0
_NUMERIC_TEXT = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


def money(x) -> Decimal:
    """Redondeo a 2 decimales (half-up), el que se usa al persistir."""
    if not isinstance(x, Decimal):
        x = Decimal(str(x or 0))
    return x.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _finite_or_zero(value: Decimal) -> Decimal:
    return value if value.is_finite() else ZERO


def parse_currency(raw) -> Decimal:
    """
    Convierte importes libres ("$ 1.234,56", "1,234.56", 99.5) en Decimal.

    - Se eliminan todos los caracteres salvo dígitos, coma, punto y signo.
    - Si aparecen coma y punto, el separador que aparece más tarde es el
      decimal y el otro se descarta como separador de miles.
    - Si sólo hay coma, la coma es el decimal.
    - Entrada vacía o no numérica -> Decimal("0"). Sólo vale la cadena
      entera: "2.500.000" o "1,234,567" no son números y dan 0.
    """
    if raw is None or isinstance(raw, bool):
        return ZERO
    if isinstance(raw, Decimal):
        return _finite_or_zero(raw)
    if isinstance(raw, (int, float)):
        try:
            return _finite_or_zero(Decimal(str(raw)))
        except InvalidOperation:
            return ZERO

    text = _CURRENCY_STRIP.sub("", str(raw))
    if not text:
        return ZERO

    last_comma = text.rfind(",")
    last_dot = text.rfind(".")
    if last_comma >= 0 and last_dot >= 0:
        if last_comma > last_dot:
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif last_comma >= 0:
        text = text.replace(",", ".")

    if not _NUMERIC_TEXT.fullmatch(text):
        return ZERO
    try:
        return _finite_or_zero(Decimal(text))
    except InvalidOperation:
        return ZERO


def to_decimal_or_none(raw):
    """Coerción estricta para columnas decimales: None si falta o no es número."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else None
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    return value if value.is_finite() else None


def normalize_text(value, fallback: str) -> str:
    if value is None:
        return fallback
    trimmed = str(value).strip()
    return trimmed or fallback


def optional_text(value):
    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed or None


def parse_datetime_or_none(raw):
    """datetime aware a partir de datetime/date/str; None si no se puede."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, date):
        value = datetime(raw.year, raw.month, raw.day)
    else:
        text = str(raw).strip()
        try:
            value = parse_datetime(text)
            if value is None:
                d = parse_date(text)
                value = datetime(d.year, d.month, d.day) if d else None
        except ValueError:
            value = None
        if value is None:
            return None
    if timezone.is_naive(value):
        value = timezone.make_aware(value, dt_timezone.utc)
    return value


def to_iso(value):
    """ISO-8601 en UTC o None. Nunca devuelve cadenas de fecha inválida."""
    dt = parse_datetime_or_none(value)
    if dt is None:
        return None
    return dt.astimezone(dt_timezone.utc).isoformat().replace("+00:00", "Z")


# --- Estados por palabras clave -------------------------------------------

class StatusTable:
    """
    Vocabulario de clasificación: reglas ordenadas (etiqueta, palabras clave)
    más las etiquetas a usar cuando se cae al booleano o no hay coincidencia.
    """

    def __init__(self, rules, paid, pending, other):
        self.rules = tuple((label, tuple(keywords)) for label, keywords in rules)
        self.paid = paid
        self.pending = pending
        self.other = other


PAYMENT_STATUS_TABLE = StatusTable(
    rules=[
        ("pagado", ["paid", "pag", "aprob", "complet", "success", "cobrad"]),
        ("pendiente", ["pend", "proces", "waiting", "hold", "due", "unpaid", "por cobrar"]),
        ("anulado", ["cancel", "anul", "void", "rechaz", "declin"]),
        ("fallido", ["fail", "error", "fall", "deneg", "reject"]),
    ],
    paid="pagado",
    pending="pendiente",
    other="otro",
)

DASHBOARD_STATUS_TABLE = StatusTable(
    rules=[
        ("paid", ["paid", "pagado", "aprob", "complet", "success", "cobrad"]),
        ("pendiente", ["pend", "proces", "waiting", "hold", "due", "unpaid", "por cobrar"]),
    ],
    paid="paid",
    pending="pendiente",
    other="other",
)


def classify_status(raw_text, flag, table: StatusTable = PAYMENT_STATUS_TABLE) -> str:
    text = (str(raw_text) if raw_text is not None else "").strip().lower()
    if text:
        for label, keywords in table.rules:
            if any(keyword in text for keyword in keywords):
                return label
    if flag is True:
        return table.paid
    if flag is False:
        return table.pending
    return table.other


def guess_status_flag(status_label, explicit=None):
    """Booleano a guardar en Payment.status cuando el cliente no lo envía."""
    if isinstance(explicit, bool):
        return explicit
    if status_label == PAYMENT_STATUS_TABLE.paid:
        return True
    if status_label == PAYMENT_STATUS_TABLE.pending:
        return False
    return None


# --- Booleanos de tres estados --------------------------------------------

class TriState:
    """Traduce un booleano nullable a una etiqueta y viceversa."""

    def __init__(self, true_label, false_label, none_label):
        self.true_label = true_label
        self.false_label = false_label
        self.none_label = none_label

    def label(self, value):
        if value is True:
            return self.true_label
        if value is False:
            return self.false_label
        return self.none_label

    def flag(self, label):
        if label == self.true_label:
            return True
        if label == self.false_label:
            return False
        return None

    @property
    def labels(self):
        return (self.true_label, self.false_label, self.none_label)


client_status = TriState("active", "inactive", "onboarding")
quote_status = TriState("aprobada", "rechazada", "pendiente")
# Un servicio sin estado explícito se considera activo
service_status = TriState("active", "inactive", "active")
