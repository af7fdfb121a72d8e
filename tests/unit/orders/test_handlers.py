"""Unit tests for Orders event handlers and in-memory bus."""

from __future__ import annotations

import logging
from uuid import uuid4

import pytest

from modules.orders.events import OrderCancelled, OrderDelivered, OrderStatusChanged
from modules.orders.handlers import (
    OrderCancelledHandler,
    OrderDeliveredHandler,
    OrderStatusChangedHandler,
)
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit


def _messages(caplog):
    return [record.getMessage() for record in caplog.records]


def test_order_status_changed_handler_logs(caplog):
    event = OrderStatusChanged(
        aggregate_id=uuid4(),
        previous_status="pending",
        new_status="confirmed",
        version=1,
    )

    with caplog.at_level(logging.INFO, logger="modules.orders.handlers"):
        OrderStatusChangedHandler().handle(event)

    assert any("order.event.status_changed" in m for m in _messages(caplog))


def test_order_cancelled_handler_logs(caplog):
    event = OrderCancelled(
        aggregate_id=uuid4(), previous_status="confirmed", reason="Duplicate"
    )

    with caplog.at_level(logging.INFO, logger="modules.orders.handlers"):
        OrderCancelledHandler().handle(event)

    assert any("order.event.cancelled" in m for m in _messages(caplog))


def test_order_delivered_handler_logs(caplog):
    event = OrderDelivered(aggregate_id=uuid4(), delivery_time_hours=12)

    with caplog.at_level(logging.INFO, logger="modules.orders.handlers"):
        OrderDeliveredHandler().handle(event)

    assert any("order.event.delivered" in m for m in _messages(caplog))


def test_in_memory_event_bus_routes_events():
    bus = InMemoryEventBus()
    handled = []

    class CapturingHandler:
        def handle(self, event) -> None:
            handled.append(event)

    handler = CapturingHandler()
    event = OrderDelivered(aggregate_id=uuid4())

    bus.subscribe(OrderDelivered, handler)
    bus.subscribe(OrderDelivered, handler)
    bus.publish(event)

    assert handled == [event]


def test_failing_handler_does_not_stop_others(caplog):
    bus = InMemoryEventBus()
    handled = []

    class BrokenHandler:
        def handle(self, event) -> None:
            raise RuntimeError("handler exploded")

    class CapturingHandler:
        def handle(self, event) -> None:
            handled.append(event)

    events = [
        OrderCancelled(aggregate_id=uuid4(), previous_status="pending", reason="r"),
        OrderCancelled(aggregate_id=uuid4(), previous_status="draft", reason="r"),
    ]
    bus.subscribe(OrderCancelled, BrokenHandler())
    bus.subscribe(OrderCancelled, CapturingHandler())

    with caplog.at_level(logging.ERROR, logger="shared.infrastructure.bus"):
        bus.publish_all(events)

    assert handled == events
    assert any("event_bus.handler_failed" in m for m in _messages(caplog))
