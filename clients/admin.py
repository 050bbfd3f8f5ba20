from django.contrib import admin
from .models import Client, ClientAuditLog, ClientDetail, ClientParameter, ClientService, ClientUsageLog


class ClientDetailInline(admin.TabularInline):
    model = ClientDetail
    extra = 0


class ClientServiceInline(admin.TabularInline):
    model = ClientService
    extra = 0


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ("name", "status", "org", "created_at")
    list_filter = ("status",)
    search_fields = ("name",)
    inlines = [ClientDetailInline, ClientServiceInline]


@admin.register(ClientParameter)
class ClientParameterAdmin(admin.ModelAdmin):
    list_display = ("name", "org")


@admin.register(ClientAuditLog)
class ClientAuditLogAdmin(admin.ModelAdmin):
    list_display = ("client", "action", "user", "created_at")
    list_filter = ("action",)


@admin.register(ClientUsageLog)
class ClientUsageLogAdmin(admin.ModelAdmin):
    list_display = ("client", "endpoint", "units", "created_at")
