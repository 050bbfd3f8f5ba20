from django.contrib import admin
from .models import Service, ServiceCategory, Tax


@admin.register(Tax)
class TaxAdmin(admin.ModelAdmin):
    list_display = ("name", "percentage", "active", "org")
    list_filter = ("active",)
    search_fields = ("name",)


@admin.register(ServiceCategory)
class ServiceCategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "org")
    search_fields = ("name",)


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("name", "price", "subtotal", "tax_one", "tax_two", "status", "org")
    list_filter = ("status", "category")
    search_fields = ("name", "description")
