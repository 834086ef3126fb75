# invoicing/admin.py

from django.contrib import admin

from invoicing.models import Customer, Invoice, Supplier, Voucher


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "email", "balance", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "phone", "email")
    ordering = ("name",)


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "email", "balance", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "phone", "email")
    ordering = ("name",)


# ============================================================
# INVOICES / VOUCHERS
# Money fields move only through the services, so the admin
# shows them read-only.
# ============================================================


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "invoice_type",
        "is_return",
        "date",
        "due_date",
        "total",
        "paid_amount",
        "payment_status",
    )
    list_filter = ("invoice_type", "payment_status", "payment_method", "is_return")
    search_fields = ("invoice_number", "customer__name", "supplier__name")
    ordering = ("-date", "-id")
    readonly_fields = (
        "invoice_number",
        "invoice_type",
        "is_return",
        "original_invoice",
        "customer",
        "supplier",
        "subtotal",
        "discount_amount",
        "vat_amount",
        "total",
        "initial_paid_amount",
        "paid_amount",
        "payment_status",
        "payment_method",
        "payment_bank_account",
        "date",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Voucher)
class VoucherAdmin(admin.ModelAdmin):
    list_display = ("voucher_number", "voucher_type", "date", "amount", "invoice", "cash_account")
    list_filter = ("voucher_type", "date")
    search_fields = ("voucher_number", "invoice__invoice_number", "customer__name", "supplier__name")
    ordering = ("-date", "-id")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
