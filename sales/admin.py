from django.contrib import admin
from .models import Invoice, InvoiceLine, Payment, PaymentAttachment, PaymentMethod, Quote, QuoteLine


class QuoteLineInline(admin.TabularInline):
    model = QuoteLine
    extra = 0


@admin.register(Quote)
class QuoteAdmin(admin.ModelAdmin):
    list_display = ("id", "description", "client", "value", "status", "org")
    list_filter = ("status",)
    search_fields = ("description", "client__name")
    inlines = [QuoteLineInline]


class InvoiceLineInline(admin.TabularInline):
    model = InvoiceLine
    extra = 0


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("description", "client", "service", "total", "status", "expiry", "org")
    list_filter = ("status", "include_vat")
    search_fields = ("description", "client__name")
    inlines = [InvoiceLineInline]


class PaymentAttachmentInline(admin.TabularInline):
    model = PaymentAttachment
    extra = 0


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("code", "client", "value", "status_pay", "status", "method", "org")
    list_filter = ("status",)
    search_fields = ("code", "client__name")
    inlines = [PaymentAttachmentInline]


admin.site.register(PaymentMethod)
