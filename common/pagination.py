from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """Page numbers over the in-memory stock, sales and customer lists.

    `?page_size=` is honoured up to `max_page_size`; a shop rarely needs more
    than one page of customers but the sales history grows without bound.
    """

    page_size_query_param = "page_size"
    max_page_size = 500
