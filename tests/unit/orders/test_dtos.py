"""Unit tests for Order DTOs."""

from __future__ import annotations

from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.orders.constants import NOTE_MAX_LENGTH, REASON_MAX_LENGTH, OrderStatus
from modules.orders.dtos import OrderOutputDTO, TransitionRequestDTO
from modules.orders.models import OrderStatusHistory

pytestmark = pytest.mark.unit


class TestTransitionRequestDTO:
    def test_order_id_coerced_to_string(self):
        order_id = uuid4()
        dto = TransitionRequestDTO(order_id=order_id, status="confirmed", actor_id=1)
        assert dto.order_id == str(order_id)

    def test_defaults(self):
        dto = TransitionRequestDTO(order_id="x", status="confirmed", actor_id=1)
        assert dto.note == ""
        assert dto.reason == ""
        assert dto.notify_customer is False
        assert dto.estimated_delivery_date is None

    def test_none_reason_becomes_empty(self):
        dto = TransitionRequestDTO(
            order_id="x", status="cancelled", actor_id=1, reason=None, note=None
        )
        assert dto.reason == ""
        assert dto.note == ""

    def test_unknown_status_is_not_a_schema_error(self):
        dto = TransitionRequestDTO(order_id="x", status="archived", actor_id=1)
        assert dto.status == "archived"

    def test_note_too_long(self):
        with pytest.raises(ValidationError):
            TransitionRequestDTO(
                order_id="x",
                status="confirmed",
                actor_id=1,
                note="n" * (NOTE_MAX_LENGTH + 1),
            )

    def test_reason_too_long(self):
        with pytest.raises(ValidationError):
            TransitionRequestDTO(
                order_id="x",
                status="cancelled",
                actor_id=1,
                reason="r" * (REASON_MAX_LENGTH + 1),
            )

    def test_is_frozen(self):
        dto = TransitionRequestDTO(order_id="x", status="confirmed", actor_id=1)
        with pytest.raises(ValidationError):
            dto.status = "shipped"


class TestOrderOutputDTO:
    def test_from_entity(self, make_order):
        order = make_order(OrderStatus.PENDING)
        entry = OrderStatusHistory.objects.create(
            order=order,
            old_status=OrderStatus.DRAFT,
            new_status=OrderStatus.PENDING,
            note="Submitted by buyer",
        )

        dto = OrderOutputDTO.from_entity(order, [entry])

        assert dto.id == order.id
        assert dto.order_number.startswith("ORD-")
        assert dto.buyer_id == order.buyer_id
        assert dto.seller_id == order.seller_id
        assert dto.payment == {"status": "pending", "paid_date": None, "refund_date": None}
        assert dto.analytics == {"delivery_time": None, "processing_time": None}
        assert dto.cancellation is None
        assert dto.dispute is None
        assert dto.history[0].note == "Submitted by buyer"

    def test_json_dump(self, make_order):
        order = make_order(OrderStatus.PENDING)
        data = OrderOutputDTO.from_entity(order, []).model_dump(mode="json")
        assert data["id"] == str(order.id)
        assert data["history"] == []
        assert data["timestamps"]["confirmed_at"] is None
