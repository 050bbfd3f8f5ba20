from datetime import timedelta
from decimal import Decimal
from smtplib import SMTPException

import pytest
from django.core import mail
from django.utils import timezone

from sales import services_invoice, services_payment, services_quote
from sales.models import Invoice, InvoiceLine, Payment, PaymentAttachment, PaymentMethod, Quote, QuoteAttachment, QuoteLine

pytestmark = [pytest.mark.django_db, pytest.mark.integration]


@pytest.fixture
def quote(org, client_row, service):
    quote = Quote.objects.create(org=org, client=client_row, description="COT-1", value=Decimal("999"))
    QuoteLine.objects.create(quote=quote, service=service, quantity=Decimal("1"), total_value=Decimal("10"))
    QuoteLine.objects.create(quote=quote, service=service, quantity=Decimal("2"), total_value=Decimal("15"))
    return quote


class TestQuotes:
    def test_total_is_recomputed_from_lines(self, org, quote):
        detail = services_quote.get_quote(org, quote.id)
        from sales.mappers import map_quote_detail

        data = map_quote_detail(detail)
        assert data["amount"] == Decimal("25")
        assert [a["type"] for a in data["actions"]] == ["pdf", "email", "invoice"]
        assert data["actions"][2]["available"] is True

    def test_quote_without_lines_uses_stored_value(self, org, client_row):
        quote = services_quote.create_quote(org, {"client_id": client_row.id, "value": Decimal("999")})
        from sales.pricing import quote_total

        assert quote_total(quote) == Decimal("999")

    def test_conversion_is_idempotent(self, org, quote):
        first = services_quote.convert_to_invoice(org, quote.id)
        second = services_quote.convert_to_invoice(org, quote.id)

        assert first["alreadyConverted"] is False
        assert second == {"invoiceId": first["invoiceId"], "alreadyConverted": True}
        assert QuoteAttachment.objects.filter(quote=quote).count() == 1
        assert Invoice.objects.filter(quote_attachments__quote=quote).count() == 1

        invoice = Invoice.objects.get(pk=first["invoiceId"])
        assert invoice.total == Decimal("25.00")
        assert invoice.status is None
        assert list(invoice.lines.values_list("item", flat=True)) == [1, 2]
        quote.refresh_from_db()
        assert quote.status is True

    def test_failed_conversion_leaves_no_invoice(self, org, quote, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("fallo enlazando")

        monkeypatch.setattr(QuoteAttachment.objects, "create", boom)
        with pytest.raises(RuntimeError):
            services_quote.convert_to_invoice(org, quote.id)

        assert Invoice.objects.count() == 0
        assert InvoiceLine.objects.count() == 0
        quote.refresh_from_db()
        assert quote.status is not True

    def test_converted_quote_disables_invoice_action(self, org, quote):
        from sales.mappers import QUOTE_CONVERTED_REASON, map_quote_detail

        services_quote.convert_to_invoice(org, quote.id)
        data = map_quote_detail(services_quote.get_quote(org, quote.id))
        action = data["actions"][2]
        assert action["available"] is False
        assert action["disabledReason"] == QUOTE_CONVERTED_REASON
        assert data["attachments"][0]["invoiceNumber"] == "COT-1"

    def test_send_email_requires_recipients(self, org, quote):
        from core.exceptions import ValidationFailed

        with pytest.raises(ValidationFailed):
            services_quote.send_quote_email(org, quote.id, ["  "])
        assert mail.outbox == []

    def test_send_email(self, org, quote):
        result = services_quote.send_quote_email(org, quote.id, [" ana@cliente.test "], "Quedamos atentos")
        assert result["recipients"] == ["ana@cliente.test"]
        assert len(mail.outbox) == 1
        assert mail.outbox[0].subject == "Cotización COT-1"
        assert "Quedamos atentos" in mail.outbox[0].body

    def test_send_email_failure_is_reported(self, org, quote, monkeypatch):
        from core.exceptions import EmailDeliveryFailed

        def refuse(**kwargs):
            raise ConnectionRefusedError("conexión rechazada")

        monkeypatch.setattr(services_quote, "send_org_email", refuse)
        with pytest.raises(EmailDeliveryFailed) as exc:
            services_quote.send_quote_email(org, quote.id, ["ana@cliente.test"])
        assert exc.value.get_codes() == "EMAIL_FAILED"


class TestInvoices:
    def test_create_builds_fallback_line(self, org, client_row, service):
        invoice = services_invoice.create_invoice(org, {
            "client_id": client_row.id, "service_id": service.id, "number": " F-10 ",
        })
        assert invoice.description == "F-10"
        line = invoice.lines.get()
        assert line.service_id == service.id
        assert line.total_value == Decimal("110.00")

    def test_update_replaces_lines(self, org, client_row, service):
        invoice = services_invoice.create_invoice(org, {
            "client_id": client_row.id, "service_id": service.id, "number": "F-11",
        })
        services_invoice.update_invoice(org, invoice.id, {
            "client_id": client_row.id,
            "service_id": service.id,
            "number": "F-11",
            "status": "paid",
            "details": [
                {"service_id": service.id, "quantity": 1, "total": Decimal("60"), "item": 2},
                {"service_id": service.id, "quantity": 1, "total": Decimal("50"), "item": 1},
            ],
        })
        invoice = services_invoice.get_invoice(org, invoice.id)
        assert invoice.status is True
        assert [line.item for line in invoice.lines.all()] == [1, 2]

    def test_delete_removes_links(self, org, quote):
        result = services_quote.convert_to_invoice(org, quote.id)
        services_invoice.delete_invoice(org, result["invoiceId"])
        assert not Invoice.objects.exists()
        assert not QuoteAttachment.objects.exists()
        assert Quote.objects.filter(pk=quote.pk).exists()


class TestPayments:
    def test_method_resolved_by_name_and_reused(self, org, client_row):
        first = services_payment.create_payment(org, {
            "client_id": client_row.id, "value": "1.000,50", "method_name": " Transferencia ",
        })
        second = services_payment.create_payment(org, {
            "client_id": client_row.id, "value": "20", "method_name": "Transferencia",
        })
        assert first.payment_method_id == second.payment_method_id
        assert PaymentMethod.objects.filter(org=org).count() == 1

    def test_status_flag_guessed_from_text(self, org, client_row):
        payment = services_payment.create_payment(org, {
            "client_id": client_row.id, "value": "10", "status": "Aprobado",
        })
        assert payment.status is True
        pending = services_payment.create_payment(org, {
            "client_id": client_row.id, "value": "10", "status": "en proceso",
        })
        assert pending.status is False

    def test_update_keeps_flag_when_not_confirmed(self, org, client_row):
        payment = services_payment.create_payment(org, {
            "client_id": client_row.id, "value": "10", "confirmed": True,
        })
        updated = services_payment.update_payment(org, payment.id, {
            "client_id": client_row.id, "value": "10", "status": "rechazado",
        })
        assert updated.status is True
        assert updated.status_pay == "rechazado"

    def test_attachments_sanitised(self, org, client_row, service):
        invoice = services_invoice.create_invoice(org, {
            "client_id": client_row.id, "service_id": service.id, "number": "F-20",
        })
        payment = services_payment.create_payment(org, {
            "client_id": client_row.id,
            "value": "10",
            "attachments": [
                {"id": "a1", "url": " https://files/1.pdf ", "invoice_id": str(invoice.id)},
                {"id": "a1", "url": "https://files/dup.pdf"},
                {"url": "   "},
                {"url": "https://files/2.pdf"},
            ],
        })
        attachments = list(PaymentAttachment.objects.filter(payment=payment).order_by("id"))
        assert [a.url for a in attachments] == ["https://files/1.pdf", "https://files/2.pdf"]
        assert attachments[0].uid == "a1"
        assert attachments[0].invoice_id == invoice.id
        assert attachments[1].uid

    def test_paid_at_sets_dates(self, org, client_row):
        paid_at = timezone.now() - timedelta(days=40)
        payment = services_payment.create_payment(org, {
            "client_id": client_row.id, "value": "10", "paid_at": paid_at.isoformat(),
        })
        payment = Payment.objects.get(pk=payment.pk)
        assert payment.created_at == paid_at
        assert payment.updated_at == paid_at


class TestSalesApi:
    def test_invoice_list_and_status_filter(self, api_client, base_url, org, client_row, service):
        services_invoice.create_invoice(org, {
            "client_id": client_row.id, "service_id": service.id, "number": "F-30",
            "due_at": (timezone.now() - timedelta(days=2)).isoformat(),
        })
        services_invoice.create_invoice(org, {
            "client_id": client_row.id, "service_id": service.id, "number": "F-31",
            "due_at": (timezone.now() + timedelta(days=2)).isoformat(),
        })
        resp = api_client.get(f"{base_url}/sales/invoices/")
        assert resp.status_code == 200
        assert len(resp.json()["data"]) == 2

        overdue = api_client.get(f"{base_url}/sales/invoices/", {"status": "overdue"}).json()["data"]
        assert [i["number"] for i in overdue] == ["F-30"]
        assert overdue[0]["total"] == 110.0

    def test_create_invoice_validates_status(self, api_client, base_url, client_row, service):
        resp = api_client.post(f"{base_url}/sales/invoices/", {
            "clientId": client_row.id, "serviceId": service.id, "number": "F-32", "status": "overdue",
        }, format="json")
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_convert_twice_over_http(self, api_client, base_url, quote):
        url = f"{base_url}/sales/quotes/{quote.id}/convert/"
        first = api_client.post(url)
        second = api_client.post(url)
        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()["data"]["alreadyConverted"] is True
        assert second.json()["data"]["invoiceId"] == first.json()["data"]["invoiceId"]

    @pytest.mark.parametrize("fmt, content_type", [("pdf", "application/pdf"), ("xml", "application/xml"), ("zip", "application/zip")])
    def test_invoice_download(self, api_client, base_url, org, client_row, service, fmt, content_type):
        invoice = services_invoice.create_invoice(org, {
            "client_id": client_row.id, "service_id": service.id, "number": "F-40",
        })
        resp = api_client.get(f"{base_url}/sales/invoices/{invoice.id}/download/{fmt}/")
        assert resp.status_code == 200
        assert resp["Content-Type"] == content_type
        assert f'filename="F-40.{fmt}"' in resp["Content-Disposition"]

    def test_invoice_email_with_pdf(self, api_client, base_url, org, client_row, service):
        invoice = services_invoice.create_invoice(org, {
            "client_id": client_row.id, "service_id": service.id, "number": "F-41",
        })
        resp = api_client.post(
            f"{base_url}/sales/invoices/{invoice.id}/email/", {"recipient": "pagos@cliente.test"}, format="json"
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["message"] == "Factura F-41 enviada a pagos@cliente.test"
        assert mail.outbox[0].attachments[0][0] == "F-41.pdf"

    def test_invoice_email_smtp_failure_uses_envelope(self, api_client, base_url, org, client_row, service, monkeypatch):
        invoice = services_invoice.create_invoice(org, {
            "client_id": client_row.id, "service_id": service.id, "number": "F-42",
        })

        def refuse(**kwargs):
            raise SMTPException("servidor SMTP no disponible")

        monkeypatch.setattr(services_invoice, "send_org_email", refuse)
        resp = api_client.post(
            f"{base_url}/sales/invoices/{invoice.id}/email/", {"recipient": "pagos@cliente.test"}, format="json"
        )
        assert resp.status_code == 502
        assert resp.json() == {
            "success": False, "message": "servidor SMTP no disponible", "code": "EMAIL_FAILED",
        }

    def test_payments_list_payload(self, api_client, base_url, org, client_row):
        services_payment.create_payment(org, {"client_id": client_row.id, "value": "$ 50", "method_name": "Efectivo"})
        data = api_client.get(f"{base_url}/sales/payments/").json()["data"]
        assert data["payments"][0]["amount"] == 50.0
        assert data["payments"][0]["methodName"] == "Efectivo"
        assert data["clients"][0]["id"] == client_row.id
        assert data["methods"][0]["name"] == "Efectivo"

    def test_reminders_endpoint(self, api_client, base_url, org, client_row):
        Invoice.objects.create(org=org, client=client_row, description="F-50", total=Decimal("5"),
                               expiry=timezone.now() - timedelta(days=1))
        Invoice.objects.create(org=org, client=client_row, description="F-51", status=True)
        data = api_client.get(f"{base_url}/sales/invoices/reminders/").json()["data"]
        assert [r["invoiceNumber"] for r in data] == ["F-50"]
        assert data[0]["status"] == "enviado"
