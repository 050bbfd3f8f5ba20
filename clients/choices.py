from django.utils.translation import gettext_lazy as _


class ClientStatus:
    ACTIVE = "active"
    INACTIVE = "inactive"
    ONBOARDING = "onboarding"
    CHOICES = (
        (ACTIVE, _("Activo")),
        (INACTIVE, _("Inactivo")),
        (ONBOARDING, _("En alta")),
    )


class ClientType:
    NATURAL = "natural"
    JURIDICA = "juridica"
    CHOICES = (
        (NATURAL, _("Persona natural")),
        (JURIDICA, _("Persona jurídica")),
    )


class AuditAction:
    CREATED = "created"
    UPDATED = "updated"
    SERVICE_ASSIGNED = "service_assigned"
    USAGE_RECORDED = "usage_recorded"
    CHOICES = (
        (CREATED, _("Alta")),
        (UPDATED, _("Modificación")),
        (SERVICE_ASSIGNED, _("Servicio asignado")),
        (USAGE_RECORDED, _("Consumo registrado")),
    )
