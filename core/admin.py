from django.contrib import admin
from core.models import Organization, Membership, OrganizationSettings


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "created_at")
    search_fields = ("name", "slug")


@admin.register(Membership)
class MembershipAdmin(admin.ModelAdmin):
    list_display = ("organization", "user", "role", "created_at")
    search_fields = ("organization__name", "organization__slug", "user__email")


@admin.register(OrganizationSettings)
class OrganizationSettingsAdmin(admin.ModelAdmin):
    list_display = ("organization", "from_email", "smtp_host", "alerts_enabled")
    exclude = ("smtp_password",)
