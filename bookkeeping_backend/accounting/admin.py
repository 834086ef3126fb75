# accounting/admin.py

from django.contrib import admin

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.ledger import JournalLine

# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "account_type",
        "parent_code",
        "linked_entity_type",
        "linked_entity_id",
        "is_active",
    )
    list_filter = ("account_type", "is_active", "linked_entity_type")
    search_fields = ("code", "name", "parent_code")
    ordering = ("code",)
    readonly_fields = ("created_at", "updated_at")

    fieldsets = (
        ("Account Identity", {"fields": ("code", "name", "account_type", "parent_code")}),
        ("Linked Entity", {"fields": ("linked_entity_type", "linked_entity_id")}),
        ("Status", {"fields": ("is_active",)}),
        ("System Fields", {"fields": ("created_at", "updated_at")}),
    )


# ============================================================
# JOURNAL (READ-ONLY, APPEND-ONLY)
# ============================================================


class JournalLineInline(admin.TabularInline):
    model = JournalLine
    extra = 0
    can_delete = False
    readonly_fields = ("account", "debit", "credit", "description")

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(JournalEntry)
class JournalEntryAdmin(admin.ModelAdmin):
    list_display = (
        "entry_number",
        "date",
        "entry_type",
        "reference",
        "description",
        "created_at",
    )
    list_filter = ("entry_type", "date")
    search_fields = ("description", "reference")
    ordering = ("-date", "-entry_number")
    inlines = (JournalLineInline,)

    readonly_fields = (
        "entry_number",
        "date",
        "description",
        "reference",
        "entry_type",
        "related_voucher_id",
        "original_entry",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
