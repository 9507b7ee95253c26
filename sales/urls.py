from django.urls import path
from rest_framework.routers import DefaultRouter

from sales.reports import KhataSummaryView, ProfitSummaryView
from sales.views import CustomerViewSet, SaleViewSet

router = DefaultRouter()
router.register(r"sales", SaleViewSet, basename="sale")
router.register(r"customers", CustomerViewSet, basename="customer")

urlpatterns = [
    path("sales/summary/", ProfitSummaryView.as_view(), name="report-profit-summary"),
    path("khata/summary/", KhataSummaryView.as_view(), name="report-khata-summary"),
] + router.urls
