# invoicing/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from invoicing.api.views import CustomerViewSet, InvoiceViewSet, SupplierViewSet, VoucherViewSet

router = DefaultRouter()
router.register("customers", CustomerViewSet, basename="customer")
router.register("suppliers", SupplierViewSet, basename="supplier")
router.register("invoices", InvoiceViewSet, basename="invoice")
router.register("vouchers", VoucherViewSet, basename="voucher")

urlpatterns = [
    path("", include(router.urls)),
]
