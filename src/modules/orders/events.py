"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class OrderStatusChanged(DomainEvent):
    """Raised after a status transition is committed."""

    previous_status: str
    new_status: str
    version: int
    actor_id: Any = None


@dataclass(frozen=True, kw_only=True)
class OrderCancelled(DomainEvent):
    """Raised after an order is committed as cancelled."""

    previous_status: str
    reason: str
    actor_id: Any = None


@dataclass(frozen=True, kw_only=True)
class OrderDelivered(DomainEvent):
    """Raised after delivery is committed; carries the delivery analytics."""

    delivery_time_hours: Optional[int] = None
