from decimal import Decimal

from rest_framework import serializers


class ProductSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    category = serializers.CharField(max_length=100)
    brand = serializers.CharField(max_length=100)
    model = serializers.CharField(max_length=200)
    identifier = serializers.CharField(max_length=128, required=False, allow_blank=True, allow_null=True)
    purchase_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))
    selling_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))
    quantity = serializers.IntegerField(min_value=1)
    date_added = serializers.DateTimeField(read_only=True)
    photo = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    display_name = serializers.CharField(read_only=True)


class StockSummarySerializer(serializers.Serializer):
    product_count = serializers.IntegerField()
    unit_count = serializers.IntegerField()
    purchase_value = serializers.DecimalField(max_digits=14, decimal_places=2)
    selling_value = serializers.DecimalField(max_digits=14, decimal_places=2)
    potential_profit = serializers.DecimalField(max_digits=14, decimal_places=2)


class StockSuggestionsSerializer(serializers.Serializer):
    categories = serializers.ListField(child=serializers.CharField())
    brands = serializers.ListField(child=serializers.CharField())
    models = serializers.ListField(child=serializers.CharField())
    identifiers = serializers.ListField(child=serializers.CharField())
