# accounting/api/serializers/accounts.py

from rest_framework import serializers

from accounting.models.account import Account


class AccountListSerializer(serializers.ModelSerializer):
    """
    Read-only serializer for listing the chart of accounts.
    UI needs: code, name, type, hierarchy + entity link (and id for keys).
    """

    class Meta:
        model = Account
        fields = (
            "id",
            "code",
            "name",
            "account_type",
            "parent_code",
            "linked_entity_type",
            "linked_entity_id",
            "is_active",
        )
        read_only_fields = fields


class AccountCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Account
        fields = ("id", "code", "name", "account_type", "parent_code", "is_active")
        read_only_fields = ("id",)

    def validate_parent_code(self, value):
        value = (value or "").strip() or None
        if value and not Account.objects.filter(code=value).exists():
            raise serializers.ValidationError(f"Parent account {value} does not exist")
        return value
