# sales/reminders.py
from django.utils import timezone

from core.normalizers import normalize_text, to_iso
from .pricing import invoice_amounts, invoice_due_date


class ReminderStatus:
    SENT = "enviado"
    PENDING = "pendiente"


def build_reminders(invoices, now=None):
    """
    Recordatorios de cobro proyectados desde las facturas no pagadas.
    No se guardan: aparecen y desaparecen según el estado de la factura y la hora.
    """
    now = now or timezone.now()
    rows = []
    for invoice in invoices:
        if invoice.status is True:
            continue
        due = invoice_due_date(invoice)
        rows.append((due, {
            "id": f"reminder-{invoice.id}",
            "invoiceId": invoice.id,
            "invoiceNumber": normalize_text(invoice.description, str(invoice.id)),
            "clientId": invoice.client_id,
            "amount": invoice_amounts(invoice).total,
            "dueAt": to_iso(due),
            "status": ReminderStatus.SENT if due is not None and due < now else ReminderStatus.PENDING,
        }))
    # Por fecha real de vencimiento; las facturas sin fecha al final
    rows.sort(key=lambda row: (row[0] is None, row[0] or now))
    return [reminder for _, reminder in rows]
