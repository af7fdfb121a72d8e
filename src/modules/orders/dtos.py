"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``TransitionRequestDTO``: input of ``transition_order_status``.
- ``StatusHistoryDTO``: output for a status history record.
- ``OrderOutputDTO``: document-shaped order with recent history.
- ``TransitionResultDTO``: ``OrderOutputDTO`` plus transition metadata.

``status`` is deliberately a plain string: membership in ``OrderStatus``
is a lifecycle rule reported as ``InvalidStatusValue``, not a schema
error.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.orders.constants import NOTE_MAX_LENGTH, REASON_MAX_LENGTH

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class TransitionRequestDTO(BaseModel):
    """Immutable request to move one order to a new status.

    ``actor_id`` is the authenticated seller; ``source_ip`` and
    ``user_agent`` are carried only for the audit record.
    """

    model_config = ConfigDict(frozen=True)

    order_id: str
    status: str
    actor_id: Any
    note: str = Field(default="", max_length=NOTE_MAX_LENGTH)
    reason: str = Field(default="", max_length=REASON_MAX_LENGTH)
    notify_customer: bool = False
    estimated_delivery_date: Optional[date] = None
    source_ip: Optional[str] = None
    user_agent: Optional[str] = None

    @field_validator("order_id", mode="before")
    @classmethod
    def order_id_as_string(cls, v: Any) -> str:
        return str(v)

    @field_validator("note", "reason", mode="before")
    @classmethod
    def none_as_empty(cls, v: Optional[str]) -> str:
        return "" if v is None else v


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class StatusHistoryDTO(BaseModel):
    """Immutable DTO for order status history API responses."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    old_status: Optional[str]
    new_status: str
    actor_id: Optional[Any]
    note: str
    reason: str
    created_at: datetime

    @classmethod
    def from_entity(cls, history: OrderStatusHistory) -> StatusHistoryDTO:
        return cls(
            id=history.id,
            old_status=history.old_status,
            new_status=history.new_status,
            actor_id=history.actor_id,
            note=history.note,
            reason=history.reason,
            created_at=history.created_at,
        )


class OrderOutputDTO(BaseModel):
    """Immutable DTO for order API responses (document shape)."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    order_number: str
    buyer_id: Optional[Any]
    seller_id: Any
    status: str
    version: int
    created_at: datetime
    updated_at: datetime
    timestamps: Dict[str, Optional[str]]
    shipping: Dict[str, Optional[str]]
    payment: Dict[str, Optional[str]]
    analytics: Dict[str, Optional[int]]
    cancellation: Optional[Dict[str, Any]] = None
    dispute: Optional[Dict[str, Any]] = None
    history: List[StatusHistoryDTO]

    @classmethod
    def _entity_fields(
        cls, order: Order, history: Sequence[OrderStatusHistory]
    ) -> Dict[str, Any]:
        return {
            "id": order.id,
            "order_number": order.order_number,
            "buyer_id": order.buyer_id,
            "seller_id": order.seller_id,
            "status": order.status,
            "version": order.version,
            "created_at": order.created_at,
            "updated_at": order.updated_at,
            "timestamps": order.timestamps,
            "shipping": order.shipping,
            "payment": order.payment,
            "analytics": order.analytics,
            "cancellation": order.cancellation,
            "dispute": order.dispute,
            "history": [StatusHistoryDTO.from_entity(h) for h in history],
        }

    @classmethod
    def from_entity(
        cls, order: Order, history: Sequence[OrderStatusHistory]
    ) -> OrderOutputDTO:
        return cls(**cls._entity_fields(order, history))


class NotificationOutcomeDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    customer_notified: bool = False


class TransitionResultDTO(OrderOutputDTO):
    """Successful transition: the new order state plus request metadata."""

    previous_status: str
    notifications: NotificationOutcomeDTO
    processing_time_ms: float

    @classmethod
    def from_transition(
        cls,
        order: Order,
        history: Sequence[OrderStatusHistory],
        *,
        previous_status: str,
        customer_notified: bool,
        processing_time_ms: float,
    ) -> TransitionResultDTO:
        return cls(
            **cls._entity_fields(order, history),
            previous_status=previous_status,
            notifications=NotificationOutcomeDTO(customer_notified=customer_notified),
            processing_time_ms=processing_time_ms,
        )
