from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from core.views import RepositoryMixin
from inventory.serializers import ProductSerializer, StockSuggestionsSerializer, StockSummarySerializer
from inventory.services import (
    add_product,
    apply_product_changes,
    delete_product,
    search_stock,
    stock_suggestions,
    stock_summary,
    update_product,
)


class ProductViewSet(RepositoryMixin, viewsets.GenericViewSet):
    serializer_class = ProductSerializer

    def get_queryset(self):
        return search_stock(self.get_repository().products, self.request.query_params.get("search"))

    def get_object(self):
        product = self.get_repository().get_product(self.kwargs["pk"])
        if product is None:
            raise NotFound("Product was not found.")
        return product

    def list(self, request):
        products = self.get_queryset()
        page = self.paginate_queryset(products)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(products, many=True).data)

    def create(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = add_product(self.get_repository(), serializer.validated_data)
        return Response(self.get_serializer(product).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return Response(self.get_serializer(self.get_object()).data)

    def update(self, request, pk=None):
        return self._save(request, partial=False)

    def partial_update(self, request, pk=None):
        return self._save(request, partial=True)

    def destroy(self, request, pk=None):
        if not delete_product(self.get_repository(), pk):
            raise NotFound("Product was not found.")
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"], url_path="summary", pagination_class=None)
    def summary(self, request):
        return Response(StockSummarySerializer(stock_summary(self.get_repository().products)).data)

    @action(detail=False, methods=["get"], url_path="suggestions", pagination_class=None)
    def suggestions(self, request):
        suggestions = stock_suggestions(
            self.get_repository().products,
            category=request.query_params.get("category"),
            brand=request.query_params.get("brand"),
        )
        return Response(StockSuggestionsSerializer(suggestions).data)

    def _save(self, request, *, partial):
        product = self.get_object()
        serializer = self.get_serializer(product, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        changed = apply_product_changes(product, serializer.validated_data, full=not partial)
        updated = update_product(self.get_repository(), changed)
        if updated is None:
            raise NotFound("Product was not found.")
        return Response(self.get_serializer(updated).data)
