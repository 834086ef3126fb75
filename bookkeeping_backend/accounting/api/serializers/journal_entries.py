# accounting/api/serializers/journal_entries.py

from rest_framework import serializers

from accounting.models.journal import JournalEntry
from accounting.models.ledger import JournalLine


class JournalLineSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = JournalLine
        fields = (
            "id",
            "journal_entry",
            "account",
            "account_code",
            "account_name",
            "debit",
            "credit",
            "description",
        )
        read_only_fields = fields


class JournalEntrySerializer(serializers.ModelSerializer):
    lines = JournalLineSerializer(many=True, read_only=True)
    is_posting_failure = serializers.BooleanField(read_only=True)

    class Meta:
        model = JournalEntry
        fields = (
            "id",
            "entry_number",
            "date",
            "description",
            "reference",
            "entry_type",
            "related_voucher_id",
            "original_entry",
            "is_posting_failure",
            "lines",
            "created_at",
        )
        read_only_fields = fields


class ManualLineSerializer(serializers.Serializer):
    account_id = serializers.IntegerField(required=False)
    account_code = serializers.CharField(required=False, allow_blank=True)
    debit = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=0)
    credit = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=0)
    description = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if not attrs.get("account_id") and not (attrs.get("account_code") or "").strip():
            raise serializers.ValidationError("account_id or account_code is required")
        return attrs


class ManualJournalEntrySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    description = serializers.CharField()
    reference = serializers.CharField(required=False, allow_blank=True, default="")
    lines = ManualLineSerializer(many=True)

    def validate_lines(self, value):
        if len(value) < 2:
            raise serializers.ValidationError("A journal entry needs at least two lines")
        return value
