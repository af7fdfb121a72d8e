"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import OrderCancelled, OrderDelivered, OrderStatusChanged
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=str(event.aggregate_id),
            previous_status=event.previous_status,
            new_status=event.new_status,
            version=event.version,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info(
            "order.event.cancelled",
            order_id=str(event.aggregate_id),
            previous_status=event.previous_status,
            reason=event.reason,
        )


class OrderDeliveredHandler(IEventHandler[OrderDelivered]):
    def handle(self, event: OrderDelivered) -> None:
        logger.info(
            "order.event.delivered",
            order_id=str(event.aggregate_id),
            delivery_time_hours=event.delivery_time_hours,
        )


order_status_changed_handler = OrderStatusChangedHandler()
order_cancelled_handler = OrderCancelledHandler()
order_delivered_handler = OrderDeliveredHandler()
