"""Sale URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.sales.views import SaleViewSet

router = DefaultRouter(trailing_slash=True)
router.register("ventas", SaleViewSet, basename="venta")

urlpatterns = router.urls
