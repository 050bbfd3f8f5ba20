from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from clients import services_client
from clients.models import Client, ClientAuditLog, ClientDetail, ClientParameter, ClientService, ClientUsageLog
from core.exceptions import ClientNotFound, ServiceAlreadyAssigned, ServiceNotFound, ValidationFailed
from sales.models import (
    Invoice,
    InvoiceLine,
    Payment,
    PaymentAttachment,
    Quote,
    QuoteAttachment,
    QuoteLine,
)

pytestmark = [pytest.mark.django_db, pytest.mark.integration]


class TestAssignService:
    def test_failed_audit_leaves_no_assignment(self, org, client_row, service, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("auditoría caída")

        monkeypatch.setattr(services_client, "audit", boom)
        with pytest.raises(RuntimeError):
            services_client.assign_service(org, client_row.id, {"service_id": service.id})

        assert not ClientService.objects.filter(client=client_row).exists()

    def test_assigns_and_writes_audit(self, org, user, client_row, service):
        assignment = services_client.assign_service(
            org, client_row.id, {"service_id": str(service.id), "frequency": "1", "unit": "mes"}, user=user
        )
        assert assignment.client_id == client_row.id
        assert assignment.service_id == service.id
        assert ClientAuditLog.objects.filter(client=client_row, action="service_assigned").count() == 1

    def test_second_assignment_conflicts_without_side_effects(self, org, user, client_row, service):
        services_client.assign_service(org, client_row.id, {"service_id": service.id}, user=user)
        past = timezone.now() - timedelta(days=3)
        Client.objects.filter(pk=client_row.pk).update(updated_at=past)

        with pytest.raises(ServiceAlreadyAssigned):
            services_client.assign_service(org, client_row.id, {"service_id": service.id}, user=user)

        assert ClientService.objects.filter(client=client_row, service=service).count() == 1
        client_row.refresh_from_db()
        assert client_row.updated_at == past

    def test_missing_service_id(self, org, client_row):
        with pytest.raises(ValidationFailed) as exc:
            services_client.assign_service(org, client_row.id, {"service_id": ""})
        assert exc.value.get_codes() == "SERVICE_ID_REQUIRED"

    def test_unknown_client_or_service(self, org, client_row, service):
        with pytest.raises(ClientNotFound):
            services_client.assign_service(org, 999999, {"service_id": service.id})
        with pytest.raises(ServiceNotFound):
            services_client.assign_service(org, client_row.id, {"service_id": "abc"})

    def test_client_of_another_tenant_is_not_found(self, other_org, client_row, service):
        with pytest.raises(ClientNotFound):
            services_client.assign_service(other_org, client_row.id, {"service_id": service.id})


class TestCreateUpdate:
    def test_type_is_stored_as_detail(self, org):
        client = services_client.create_client(org, {"name": " Ana ", "status": "onboarding", "type": "natural"})
        assert client.name == "Ana"
        assert client.status is None
        detail = ClientDetail.objects.select_related("parameter").get(client=client)
        assert detail.parameter.name == "Tipo de cliente"
        assert detail.value == "Natural"

    def test_details_replaced_as_unit(self, org):
        email = ClientParameter.objects.create(org=org, name="Email")
        phone = ClientParameter.objects.create(org=org, name="Teléfono")
        client = services_client.create_client(org, {
            "name": "Beta",
            "status": "active",
            "details": [{"parameter_id": email.id, "value": "a@b.c"}, {"parameter_id": phone.id, "value": "1"}],
        })
        services_client.update_client(org, client.id, {
            "name": "Beta",
            "status": "inactive",
            "details": [{"parameter_id": phone.id, "value": "2"}],
        })
        client.refresh_from_db()
        assert client.status is False
        assert list(ClientDetail.objects.filter(client=client).values_list("value", flat=True)) == ["2"]


class TestDeleteClient:
    def test_removes_every_dependent_row(self, org, user, client_row, service):
        assignment = services_client.assign_service(org, client_row.id, {"service_id": service.id}, user=user)
        services_client.record_usage(org, client_row.id, {"service_id": service.id, "units": Decimal("2")})
        parameter = ClientParameter.objects.create(org=org, name="Email")
        ClientDetail.objects.create(client=client_row, parameter=parameter, value="x@y.z")

        invoice = Invoice.objects.create(org=org, client=client_row, service=service, description="F-1")
        InvoiceLine.objects.create(invoice=invoice, service=service, item=1)
        payment = Payment.objects.create(org=org, client=client_row, value="10")
        PaymentAttachment.objects.create(payment=payment, invoice=invoice, url="https://files/x.pdf")
        quote = Quote.objects.create(org=org, client=client_row, value=Decimal("5"))
        QuoteLine.objects.create(quote=quote, service=service, total_value=Decimal("5"))
        QuoteAttachment.objects.create(quote=quote, invoice=invoice)

        services_client.delete_client(org, client_row.id)

        with pytest.raises(ClientNotFound):
            services_client.get_client(org, client_row.id)
        assert not ClientService.objects.filter(pk=assignment.pk).exists()
        assert not ClientUsageLog.objects.exists()
        assert not ClientDetail.objects.exists()
        assert not ClientAuditLog.objects.exists()
        assert not Invoice.objects.exists()
        assert not InvoiceLine.objects.exists()
        assert not Payment.objects.exists()
        assert not PaymentAttachment.objects.exists()
        assert not Quote.objects.exists()
        assert not QuoteLine.objects.exists()
        assert not QuoteAttachment.objects.exists()
        # El parámetro es de la organización, no del cliente
        assert ClientParameter.objects.filter(pk=parameter.pk).exists()

    def test_missing_client(self, org):
        with pytest.raises(ClientNotFound):
            services_client.delete_client(org, 424242)

    def test_failure_on_last_step_keeps_every_row(self, org, client_row, service, monkeypatch):
        services_client.assign_service(org, client_row.id, {"service_id": service.id})
        invoice = Invoice.objects.create(org=org, client=client_row, service=service, description="F-1")
        InvoiceLine.objects.create(invoice=invoice, service=service, item=1)

        def boom(*args, **kwargs):
            raise RuntimeError("fallo al borrar")

        monkeypatch.setattr(Client, "delete", boom)
        with pytest.raises(RuntimeError):
            services_client.delete_client(org, client_row.id)

        assert Client.objects.filter(pk=client_row.pk).exists()
        assert ClientService.objects.filter(client=client_row).count() == 1
        assert InvoiceLine.objects.filter(invoice=invoice).count() == 1
        assert ClientAuditLog.objects.filter(client=client_row).exists()


class TestClientApi:
    def test_assign_twice_returns_conflict_envelope(self, api_client, base_url, client_row, service):
        url = f"{base_url}/clients/{client_row.id}/services/"
        first = api_client.post(url, {"serviceId": str(service.id)}, format="json")
        assert first.status_code == 201
        assert first.json()["data"]["serviceId"] == service.id

        second = api_client.post(url, {"serviceId": str(service.id)}, format="json")
        assert second.status_code == 409
        body = second.json()
        assert body["success"] is False
        assert body["code"] == "SERVICE_ALREADY_ASSIGNED"

    def test_detail_includes_derived_sections(self, api_client, base_url, org, client_row, service):
        Invoice.objects.create(
            org=org, client=client_row, service=service, description="F-9",
            total=Decimal("50"), expiry=timezone.now() - timedelta(days=1),
        )
        resp = api_client.get(f"{base_url}/clients/{client_row.id}/")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["client"]["status"] == "active"
        assert data["client"]["invoices"][0]["status"] == "overdue"
        assert data["client"]["reminders"][0]["status"] == "enviado"
        assert data["serviceCatalog"][0]["id"] == service.id

    def test_deleted_client_is_not_found(self, api_client, base_url, client_row):
        assert api_client.delete(f"{base_url}/clients/{client_row.id}/").status_code == 200
        resp = api_client.get(f"{base_url}/clients/{client_row.id}/")
        assert resp.status_code == 404
        assert resp.json()["code"] == "CLIENT_NOT_FOUND"

    def test_requires_membership(self, base_url, client_row):
        from rest_framework.test import APIClient

        from accounts.models import User

        stranger = User.objects.create_user(email="x@otra.test", password="secret-pass-123")
        api = APIClient()
        api.force_authenticate(user=stranger)
        assert api.get(f"{base_url}/clients/").status_code == 403
