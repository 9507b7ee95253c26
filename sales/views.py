from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from core.views import RepositoryMixin
from sales.ledger import compute_balances, customer_statement, search_customers
from sales.reports import parse_date_window, sales_history
from sales.serializers import (
    CashSaleSerializer,
    CreditSaleResultSerializer,
    CreditSaleSerializer,
    CustomerSerializer,
    KhataEntrySerializer,
    SaleRecordSerializer,
    StatementRowSerializer,
)
from sales.services import (
    add_customer,
    add_khata_entry,
    apply_customer_changes,
    delete_customer,
    sell_cash,
    sell_on_credit,
    update_customer,
)


class SaleViewSet(RepositoryMixin, viewsets.GenericViewSet):
    serializer_class = SaleRecordSerializer

    def get_queryset(self):
        start, end = parse_date_window(self.request.query_params)
        return sales_history(self.get_repository().sales, start, end)

    def list(self, request):
        sales = self.get_queryset()
        page = self.paginate_queryset(sales)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(sales, many=True).data)

    def create(self, request):
        serializer = CashSaleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        sale = sell_cash(self.get_repository(), serializer.validated_data["product_id"])
        if sale is None:
            raise NotFound("Product is no longer in stock.")
        return Response(self.get_serializer(sale).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"], url_path="credit")
    def credit(self, request):
        serializer = CreditSaleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = sell_on_credit(
            self.get_repository(),
            serializer.validated_data["product_id"],
            serializer.validated_data["customer_id"],
            serializer.validated_data.get("condition", ""),
        )
        if result is None:
            raise NotFound("Product or customer was not found.")
        return Response(CreditSaleResultSerializer(result).data, status=status.HTTP_201_CREATED)


class CustomerViewSet(RepositoryMixin, viewsets.GenericViewSet):
    serializer_class = CustomerSerializer

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context["balances"] = compute_balances(self.get_repository().khata_entries)
        return context

    def get_queryset(self):
        return search_customers(self.get_repository().customers, self.request.query_params.get("search"))

    def get_object(self):
        customer = self.get_repository().get_customer(self.kwargs["pk"])
        if customer is None:
            raise NotFound("Customer was not found.")
        return customer

    def list(self, request):
        customers = self.get_queryset()
        page = self.paginate_queryset(customers)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(customers, many=True).data)

    def create(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        customer = add_customer(self.get_repository(), serializer.validated_data)
        return Response(self.get_serializer(customer).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return Response(self.get_serializer(self.get_object()).data)

    def update(self, request, pk=None):
        return self._save(request, partial=False)

    def partial_update(self, request, pk=None):
        return self._save(request, partial=True)

    def destroy(self, request, pk=None):
        if not delete_customer(self.get_repository(), pk):
            raise NotFound("Customer was not found.")
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["get", "post"], url_path="entries", pagination_class=None)
    def entries(self, request, pk=None):
        customer = self.get_object()
        repository = self.get_repository()

        if request.method == "POST":
            serializer = KhataEntrySerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            entry = add_khata_entry(
                repository,
                customer.id,
                serializer.validated_data["type"],
                serializer.validated_data["amount"],
                serializer.validated_data["description"],
                condition=serializer.validated_data.get("condition", ""),
            )
            if entry is None:
                raise NotFound("Customer was not found.")
            return Response(KhataEntrySerializer(entry).data, status=status.HTTP_201_CREATED)

        rows = customer_statement(repository.khata_entries, customer.id)
        return Response(
            {
                "customer": self.get_serializer(customer).data,
                "balance": str(rows[-1].balance if rows else "0.00"),
                "entries": StatementRowSerializer(rows, many=True).data,
            }
        )

    def _save(self, request, *, partial):
        customer = self.get_object()
        serializer = self.get_serializer(customer, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        changed = apply_customer_changes(customer, serializer.validated_data, full=not partial)
        updated = update_customer(self.get_repository(), changed)
        if updated is None:
            raise NotFound("Customer was not found.")
        return Response(self.get_serializer(updated).data)
