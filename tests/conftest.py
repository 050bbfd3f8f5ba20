"""
Fixtures compartidas: organización, usuario miembro y cliente de API
autenticado contra las rutas del tenant.
"""
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from accounts.models import User
from catalog.models import Service, Tax
from clients.models import Client
from core.models import Membership, Organization


@pytest.fixture
def org(db):
    return Organization.objects.create(name="Acme", slug="acme")


@pytest.fixture
def other_org(db):
    return Organization.objects.create(name="Otra", slug="otra")


@pytest.fixture
def user(org):
    user = User.objects.create_user(email="owner@acme.test", password="secret-pass-123")
    Membership.objects.create(organization=org, user=user, role="owner")
    return user


@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def base_url(org):
    return f"/api/v1/t/{org.slug}"


@pytest.fixture
def tax(org):
    return Tax.objects.create(org=org, name="Retención", percentage=Decimal("10.00"))


@pytest.fixture
def service(org, tax):
    return Service.objects.create(
        org=org,
        name="Hosting",
        unit="mes",
        price=Decimal("100.00"),
        tax_one=tax,
    )


@pytest.fixture
def client_row(org):
    return Client.objects.create(org=org, name="Cliente Uno", status=True)
