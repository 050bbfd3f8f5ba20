import uuid
from django.db import models
from django.utils import timezone
from django.core.validators import RegexValidator
from django.conf import settings

slug_validator = RegexValidator(
    regex=r"^[a-z0-9]+(?:-[a-z0-9]+)*$",
    message="Solo minúsculas, números y guiones medios; no empezar/terminar por '-'"
)


class TimeStampedModel(models.Model):
    # created_at editable: facturas y pagos heredados traen su propia fecha de emisión
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Organization(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=120)
    slug = models.SlugField(unique=True, validators=[slug_validator], max_length=40)

    def __str__(self):
        return f"{self.name} ({self.slug})"


class OrgScopedModel(models.Model):
    org = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="%(class)ss",
    )

    class Meta:
        abstract = True


ROLE_CHOICES = [
    ("owner", "Owner"),
    ("admin", "Admin"),
    ("manager", "Manager"),
    ("member", "Member"),
    ("viewer", "Viewer"),
]


class Membership(TimeStampedModel):
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="memberships")
    user = models.ForeignKey("accounts.User", on_delete=models.CASCADE, related_name="memberships")
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default="member")

    class Meta:
        unique_together = [("organization", "user")]


class OrganizationSettings(models.Model):
    """
    Ajustes por tenant: identidad SMTP, alertas de vencimiento y marca.
    """
    organization = models.OneToOneField(
        "core.Organization",
        on_delete=models.CASCADE,
        related_name="app_settings",
    )

    # SMTP
    from_name = models.CharField(max_length=200, default="Facturación")
    from_email = models.EmailField(blank=True, null=True)      # si vacío, DEFAULT_FROM_EMAIL
    reply_to_email = models.EmailField(blank=True, null=True)
    bcc_on_outgoing = models.EmailField(blank=True, null=True)
    smtp_host = models.CharField(max_length=200, blank=True, default="")
    smtp_port = models.PositiveIntegerField(null=True, blank=True)
    smtp_user = models.CharField(max_length=200, blank=True, default="")
    smtp_password = models.CharField(max_length=200, blank=True, default="")
    smtp_use_tls = models.BooleanField(default=True)

    # Alertas
    alerts_enabled = models.BooleanField(default=True)
    alert_days_before_expiry = models.PositiveSmallIntegerField(default=7)
    alert_recipients = models.JSONField(default=list, blank=True)

    # Marca
    company_name = models.CharField(max_length=200, blank=True, default="")
    company_legal_id = models.CharField(max_length=40, blank=True, default="")
    logo_url = models.URLField(blank=True, default="")
    primary_color = models.CharField(max_length=9, blank=True, default="#1f2937")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def get_from_address(self):
        email = self.from_email or getattr(settings, "DEFAULT_FROM_EMAIL", "no-reply@facturacion.local")
        name = self.from_name or self.company_name or "Facturación"
        return f"{name} <{email}>"

    def __str__(self):
        return f"Settings({self.organization.slug})"
