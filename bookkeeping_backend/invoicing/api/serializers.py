# invoicing/api/serializers.py

from rest_framework import serializers

from invoicing.models import (
    Customer,
    Invoice,
    InvoiceType,
    PaymentMethod,
    Supplier,
    Voucher,
    VoucherType,
)


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = "__all__"
        read_only_fields = ("id", "created_at")


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = "__all__"
        read_only_fields = ("id", "created_at")


class InvoiceSerializer(serializers.ModelSerializer):
    remaining_amount = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    entity_name = serializers.SerializerMethodField()

    class Meta:
        model = Invoice
        fields = "__all__"

    def get_entity_name(self, obj):
        entity = obj.entity
        return getattr(entity, "name", "")


class InvoiceCreateSerializer(serializers.Serializer):
    invoice_type = serializers.ChoiceField(choices=InvoiceType.choices)
    customer_id = serializers.IntegerField(required=False, allow_null=True)
    supplier_id = serializers.IntegerField(required=False, allow_null=True)

    subtotal = serializers.DecimalField(max_digits=14, decimal_places=2)
    discount_amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)
    vat_amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)
    total = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)
    paid_amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)

    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    payment_bank_account_id = serializers.IntegerField(required=False, allow_null=True)

    is_return = serializers.BooleanField(default=False)
    original_invoice_id = serializers.IntegerField(required=False, allow_null=True)

    date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class VoucherSerializer(serializers.ModelSerializer):
    invoice_number = serializers.CharField(source="invoice.invoice_number", read_only=True, default=None)
    cash_account_code = serializers.CharField(source="cash_account.code", read_only=True)

    class Meta:
        model = Voucher
        fields = "__all__"


class VoucherCreateSerializer(serializers.Serializer):
    voucher_type = serializers.ChoiceField(choices=VoucherType.choices)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    cash_account_id = serializers.IntegerField()
    customer_id = serializers.IntegerField(required=False, allow_null=True)
    supplier_id = serializers.IntegerField(required=False, allow_null=True)
    invoice_id = serializers.IntegerField(required=False, allow_null=True)
    date = serializers.DateField(required=False)
    description = serializers.CharField(required=False, allow_blank=True, default="")
