"""Manufacturer order API views.

Exposes ``OrderLifecycleService`` via HTTP using a DRF ViewSet.
Lifecycle exceptions and malformed single-order request bodies are
translated into HTTP status codes; every error body carries the order's
current status and version.  The view never swallows generic exceptions.
"""

from __future__ import annotations

from typing import Any, Dict

from django.conf import settings
from django.utils.module_loading import import_string
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.serializers import Serializer
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.orders.constants import OrderStatus
from modules.orders.dtos import TransitionRequestDTO
from modules.orders.exceptions import (
    VALIDATION_ERRORS,
    ConcurrentModification,
    OrderLifecycleError,
    OrderNotFound,
    RepositoryUnavailable,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    BulkStatusTransitionSerializer,
    CancelOrderSerializer,
    StatusTransitionSerializer,
)
from modules.orders.services import OrderLifecycleService
from shared.infrastructure.bus import event_bus


def error_status_code(exc: OrderLifecycleError) -> int:
    if isinstance(exc, OrderNotFound):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ConcurrentModification):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, RepositoryUnavailable):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, VALIDATION_ERRORS):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def build_lifecycle_service() -> OrderLifecycleService:
    sink_class = import_string(settings.ORDERS_NOTIFICATION_SINK)
    return OrderLifecycleService(
        order_repository=OrderDjangoRepository(),
        notification_sink=sink_class(),
        event_bus=event_bus,
    )


class ManufacturerOrderViewSet(GenericViewSet):
    """Seller-scoped order endpoints.

    Uses ``OrderLifecycleService`` with injected collaborators (DIP).
    Does **not** extend ``ModelViewSet``: status changes only go through
    the lifecycle's conditional update.
    """

    queryset = Order.objects.none()
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "updated_at", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_lifecycle_service()

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttle scopes per action."""
        throttle_scope: str | None
        if self.action in {"status_transition", "cancel", "bulk_status"}:
            throttle_scope = "order_status_update"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_orders(self.request.user.pk)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/manufacturer/orders/"""
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        data = [
            {
                "id": str(order.id),
                "order_number": order.order_number,
                "buyer_id": order.buyer_id,
                "status": order.status,
                "version": order.version,
                "payment_status": order.payment_status,
                "total_amount": str(order.total_amount),
                "currency": order.currency,
                "created_at": order.created_at.isoformat(),
            }
            for order in page
        ]
        return paginator.get_paginated_response(data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/manufacturer/orders/{pk}/"""
        try:
            order = self._service.get_order(str(pk), request.user.pk)
        except OrderLifecycleError as exc:
            return self._error_response(exc)
        return Response(order.model_dump(mode="json"))

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    @extend_schema(request=StatusTransitionSerializer, responses=OpenApiTypes.OBJECT)
    @action(detail=True, methods=["patch"], url_path="status")
    def status_transition(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/manufacturer/orders/{pk}/status/"""
        return self._transition(request, pk, StatusTransitionSerializer(data=request.data))

    @extend_schema(request=CancelOrderSerializer, responses=OpenApiTypes.OBJECT)
    @action(detail=True, methods=["patch"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/manufacturer/orders/{pk}/cancel/"""
        serializer = CancelOrderSerializer(data=request.data)
        return self._transition(
            request, pk, serializer, status=OrderStatus.CANCELLED.value
        )

    @extend_schema(request=BulkStatusTransitionSerializer, responses=OpenApiTypes.OBJECT)
    @action(detail=False, methods=["patch"], url_path="bulk/status")
    def bulk_status(self, request: Request) -> Response:
        """PATCH /api/v1/manufacturer/orders/bulk/status/

        Each order is validated and written independently; the response
        lists one outcome per order.
        """
        serializer = BulkStatusTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        order_ids = data.pop("order_ids")

        template = self._build_dto(request, "", data)
        outcomes = self._service.bulk_transition(order_ids, template)
        updated = sum(1 for outcome in outcomes if outcome["success"])
        return Response(
            {
                "updated_count": updated,
                "failed_count": len(outcomes) - updated,
                "results": outcomes,
            }
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _transition(
        self,
        request: Request,
        pk: str | None,
        serializer: Serializer,
        **overrides: Any,
    ) -> Response:
        try:
            if not serializer.is_valid():
                raise self._service.reject_request(
                    str(pk), request.user.pk, serializer.errors
                )
            data = {**serializer.validated_data, **overrides}
            dto = self._build_dto(request, str(pk), data)
            result = self._service.transition_order_status(dto)
        except OrderLifecycleError as exc:
            return self._error_response(exc)
        return Response(result.model_dump(mode="json"))

    @staticmethod
    def _build_dto(request: Request, order_id: str, data: Dict[str, Any]) -> TransitionRequestDTO:
        forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
        source_ip = forwarded.split(",")[0].strip() or request.META.get("REMOTE_ADDR")
        return TransitionRequestDTO(
            order_id=order_id,
            status=data["status"],
            actor_id=request.user.pk,
            note=data.get("note", ""),
            reason=data.get("reason", ""),
            notify_customer=data.get("notify_customer", False),
            estimated_delivery_date=data.get("estimated_delivery_date"),
            source_ip=source_ip,
            user_agent=request.META.get("HTTP_USER_AGENT"),
        )

    @staticmethod
    def _error_response(exc: OrderLifecycleError) -> Response:
        return Response(exc.to_dict(), status=error_status_code(exc))
