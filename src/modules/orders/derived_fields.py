"""Derived-field computation for accepted transitions.

``compute_derived_fields`` is a pure function of the requested status:
it returns the column patch written alongside ``status`` in the same
conditional update.  Callers never set these columns directly.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Dict, Optional

from modules.orders.constants import MILLISECONDS_PER_HOUR, OrderStatus, PaymentStatus


def hours_between(start: datetime, end: datetime) -> int:
    """Whole hours from *start* to *end*, never negative.

    The two timestamps come from different clock reads, so a skewed
    ``end < start`` is clamped to ``0``.
    """
    delta_ms = int((end - start).total_seconds() * 1000)
    if delta_ms <= 0:
        return 0
    return delta_ms // MILLISECONDS_PER_HOUR


def _confirmed(now: datetime, **_: Any) -> Dict[str, Any]:
    return {"confirmed_at": now, "payment_status": PaymentStatus.PENDING}


def _processing(now: datetime, **_: Any) -> Dict[str, Any]:
    return {"processing_started_at": now}


def _manufacturing(now: datetime, **_: Any) -> Dict[str, Any]:
    return {"manufacturing_started_at": now}


def _ready_to_ship(now: datetime, **_: Any) -> Dict[str, Any]:
    return {"ready_to_ship_at": now}


def _shipped(
    now: datetime, estimated_delivery: Optional[date] = None, **_: Any
) -> Dict[str, Any]:
    patch: Dict[str, Any] = {"shipped_at": now}
    if estimated_delivery is not None:
        patch["estimated_delivery"] = estimated_delivery
    return patch


def _out_for_delivery(now: datetime, **_: Any) -> Dict[str, Any]:
    return {"out_for_delivery_at": now}


def _in_transit(now: datetime, **_: Any) -> Dict[str, Any]:
    return {"in_transit_at": now}


def _delivered(now: datetime, created_at: datetime, **_: Any) -> Dict[str, Any]:
    return {
        "delivered_at": now,
        "actual_delivery": now,
        "payment_status": PaymentStatus.PAID,
        "paid_date": now,
        "delivery_time_hours": hours_between(created_at, now),
    }


def _completed(now: datetime, created_at: datetime, **_: Any) -> Dict[str, Any]:
    return {
        "completed_at": now,
        "processing_time_hours": hours_between(created_at, now),
    }


def _cancelled(
    now: datetime, actor_id: Any = None, reason: Optional[str] = None, **_: Any
) -> Dict[str, Any]:
    return {
        "cancelled_at": now,
        "cancellation_reason": reason or "",
        "cancelled_by_id": actor_id,
    }


def _refunded(now: datetime, **_: Any) -> Dict[str, Any]:
    return {
        "refunded_at": now,
        "payment_status": PaymentStatus.REFUNDED,
        "refund_date": now,
    }


def _disputed(
    now: datetime, actor_id: Any = None, reason: Optional[str] = None, **_: Any
) -> Dict[str, Any]:
    return {
        "disputed_at": now,
        "dispute_reason": reason or "",
        "disputed_by_id": actor_id,
    }


_RULES: Dict[str, Callable[..., Dict[str, Any]]] = {
    OrderStatus.CONFIRMED: _confirmed,
    OrderStatus.PROCESSING: _processing,
    OrderStatus.MANUFACTURING: _manufacturing,
    OrderStatus.READY_TO_SHIP: _ready_to_ship,
    OrderStatus.SHIPPED: _shipped,
    OrderStatus.OUT_FOR_DELIVERY: _out_for_delivery,
    OrderStatus.IN_TRANSIT: _in_transit,
    OrderStatus.DELIVERED: _delivered,
    OrderStatus.COMPLETED: _completed,
    OrderStatus.CANCELLED: _cancelled,
    OrderStatus.REFUNDED: _refunded,
    OrderStatus.DISPUTED: _disputed,
}


def compute_derived_fields(
    requested: str,
    *,
    now: datetime,
    created_at: datetime,
    actor_id: Any = None,
    reason: Optional[str] = None,
    estimated_delivery: Optional[date] = None,
) -> Dict[str, Any]:
    """Return the column writes implied by moving into *requested*.

    ``draft`` and ``pending`` imply no bookkeeping and yield ``{}``.
    """
    rule = _RULES.get(requested)
    if rule is None:
        return {}
    return rule(
        now=now,
        created_at=created_at,
        actor_id=actor_id,
        reason=reason,
        estimated_delivery=estimated_delivery,
    )
