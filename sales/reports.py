from datetime import datetime, time
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.utils import timezone
from rest_framework import serializers
from rest_framework.response import Response
from rest_framework.views import APIView

from common.utils import format_currency
from core.views import RepositoryMixin
from sales.ledger import compute_balances, compute_portfolio_summary
from sales.serializers import PortfolioSummarySerializer, ProfitSummarySerializer


def _in_window(sale, start, end):
    if start and sale.date_sold < start:
        return False
    if end and sale.date_sold > end:
        return False
    return True


def sales_history(sales, start=None, end=None):
    return sorted(
        (sale for sale in sales if _in_window(sale, start, end)),
        key=lambda sale: sale.date_sold,
        reverse=True,
    )


def profit_summary(sales, start=None, end=None):
    total_revenue = Decimal("0.00")
    total_cost = Decimal("0.00")
    total_profit = Decimal("0.00")
    units_sold = 0
    for sale in sales:
        if not _in_window(sale, start, end):
            continue
        total_revenue += sale.product.selling_price
        total_cost += sale.product.purchase_price
        # Stored profit, never recomputed from today's prices.
        total_profit += sale.profit
        units_sold += 1
    return {
        "units_sold": units_sold,
        "total_revenue": total_revenue,
        "total_cost": total_cost,
        "total_profit": total_profit,
    }


class DateWindowSerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    timezone = serializers.CharField(required=False, allow_blank=True)

    def validate_timezone(self, value):
        if not value:
            return None
        try:
            return ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise serializers.ValidationError("Invalid IANA timezone.")

    def validate(self, attrs):
        date_from = attrs.get("date_from")
        date_to = attrs.get("date_to")
        if (date_from is None) != (date_to is None):
            raise serializers.ValidationError({"date_range": "Both date_from and date_to are required."})
        if date_from and date_from > date_to:
            raise serializers.ValidationError({"date_range": "date_from must be before or equal to date_to."})
        return attrs


def parse_date_window(query_params):
    """Inclusive local-day window from `date_from` / `date_to` query params."""
    params = {name: value for name, value in query_params.items() if name in {"date_from", "date_to", "timezone"} and value != ""}
    serializer = DateWindowSerializer(data=params)
    serializer.is_valid(raise_exception=True)
    window = serializer.validated_data
    if "date_from" not in window:
        return None, None

    tz = window.get("timezone") or timezone.get_current_timezone()
    start = datetime.combine(window["date_from"], time.min).replace(tzinfo=tz)
    end = datetime.combine(window["date_to"], time.max).replace(tzinfo=tz)
    return start, end


class ProfitSummaryView(RepositoryMixin, APIView):
    def get(self, request):
        start, end = parse_date_window(request.query_params)
        summary = profit_summary(self.get_repository().sales, start, end)
        summary["display"] = {name: format_currency(summary[name]) for name in ("total_revenue", "total_cost", "total_profit")}
        return Response(ProfitSummarySerializer(summary).data)


class KhataSummaryView(RepositoryMixin, APIView):
    def get(self, request):
        repository = self.get_repository()
        summary = compute_portfolio_summary(repository.customers, compute_balances(repository.khata_entries))
        data = PortfolioSummarySerializer(summary).data
        data["total_receivable_display"] = format_currency(summary.total_receivable)
        return Response(data)
