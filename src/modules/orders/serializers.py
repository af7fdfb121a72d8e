"""Order DRF serializers for API input.

The serializer operates at the Interface layer (API Views): it checks
shapes and lengths only.  Status membership and transition legality are
lifecycle rules enforced by the Service Layer, which receives Pydantic
DTOs from ``dtos.py``; responses are rendered from those DTOs.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import (
    BULK_STATUS_MAX_ORDERS,
    NOTE_MAX_LENGTH,
    REASON_MAX_LENGTH,
)


class StatusTransitionSerializer(serializers.Serializer):
    """Validates ``PATCH /orders/{id}/status/``."""

    status = serializers.CharField()
    note = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=NOTE_MAX_LENGTH
    )
    reason = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=REASON_MAX_LENGTH
    )
    notify_customer = serializers.BooleanField(required=False, default=False)
    estimated_delivery_date = serializers.DateField(required=False, allow_null=True)


class CancelOrderSerializer(serializers.Serializer):
    """Validates ``PATCH /orders/{id}/cancel/``.

    A blank reason passes here on purpose: the lifecycle reports it as
    ``cancellation_reason_required`` with the order's current state.
    """

    reason = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=REASON_MAX_LENGTH
    )
    note = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=NOTE_MAX_LENGTH
    )
    notify_customer = serializers.BooleanField(required=False, default=False)


class BulkStatusTransitionSerializer(StatusTransitionSerializer):
    """Validates ``PATCH /orders/bulk/status/``."""

    order_ids = serializers.ListField(
        child=serializers.UUIDField(),
        allow_empty=False,
        max_length=BULK_STATUS_MAX_ORDERS,
    )
