from decimal import Decimal

from rest_framework import serializers

from common.utils import to_money
from core.entities import EntryType
from inventory.serializers import ProductSerializer


def _money_field(**kwargs):
    return serializers.DecimalField(max_digits=14, decimal_places=2, **kwargs)


class SaleRecordSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    product = ProductSerializer(read_only=True)
    date_sold = serializers.DateTimeField(read_only=True)
    profit = _money_field(read_only=True)


class CashSaleSerializer(serializers.Serializer):
    product_id = serializers.CharField()


class CreditSaleSerializer(serializers.Serializer):
    product_id = serializers.CharField()
    customer_id = serializers.CharField()
    condition = serializers.CharField(required=False, allow_blank=True, default="")


class CustomerSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=64, required=False, allow_blank=True, allow_null=True)
    photo = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    balance = serializers.SerializerMethodField()

    def get_balance(self, obj):
        balances = self.context.get("balances") or {}
        return str(to_money(balances.get(obj.id, Decimal("0"))))


class KhataEntrySerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    customer_id = serializers.CharField(read_only=True)
    type = serializers.ChoiceField(choices=EntryType.choices)
    amount = _money_field(min_value=Decimal("0.01"))
    description = serializers.CharField(max_length=255)
    date = serializers.DateTimeField(read_only=True)
    product_name = serializers.CharField(read_only=True, allow_null=True)
    condition = serializers.CharField(required=False, allow_blank=True, default="")


class CreditSaleResultSerializer(serializers.Serializer):
    sale = SaleRecordSerializer()
    entry = KhataEntrySerializer()


class StatementRowSerializer(serializers.Serializer):
    entry_id = serializers.CharField()
    date = serializers.DateTimeField()
    type = serializers.CharField()
    description = serializers.CharField()
    credit = _money_field()
    debit = _money_field()
    balance = _money_field()
    product_name = serializers.CharField(allow_null=True)
    condition = serializers.CharField(allow_null=True)


class ProfitSummarySerializer(serializers.Serializer):
    units_sold = serializers.IntegerField()
    total_revenue = _money_field()
    total_cost = _money_field()
    total_profit = _money_field()
    display = serializers.DictField(child=serializers.CharField(), required=False)


class PortfolioSummarySerializer(serializers.Serializer):
    total_customers = serializers.IntegerField()
    customers_with_due = serializers.IntegerField()
    total_receivable = _money_field()
