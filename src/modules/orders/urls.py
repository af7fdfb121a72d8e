"""Manufacturer order URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.orders.views import ManufacturerOrderViewSet

router = DefaultRouter(trailing_slash=True)
router.register("orders", ManufacturerOrderViewSet, basename="manufacturer-order")

urlpatterns = router.urls
