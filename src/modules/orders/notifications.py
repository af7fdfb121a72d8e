"""Customer notification dispatch for status transitions.

Notifications are a best-effort side effect attached *after* the
transition commits: a sink failure is reported as
``customer_notified = False`` and never rolls the transition back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from django.db import DatabaseError

from modules.orders.constants import (
    NOTIFICATION_PRIORITIES,
    NotificationPriority,
    OrderStatus,
)
from modules.orders.exceptions import NotificationDeliveryFailed

logger = structlog.get_logger(__name__)


def get_notification_priority(status: str) -> NotificationPriority:
    """Map a new order status to the urgency of the buyer notification."""
    return NotificationPriority(
        NOTIFICATION_PRIORITIES.get(status, NotificationPriority.LOW)
    )


@dataclass(frozen=True)
class OrderStatusNotification:
    """Message describing one committed transition, addressed to the buyer."""

    recipient_id: Any
    order_id: Any
    order_number: str
    previous_status: str
    new_status: str
    priority: NotificationPriority
    note: str = ""

    @property
    def title(self) -> str:
        return f"Order {self.order_number} is now {OrderStatus(self.new_status).label}"

    @property
    def message(self) -> str:
        text = (
            f"Your order {self.order_number} moved from "
            f"{OrderStatus(self.previous_status).label} to "
            f"{OrderStatus(self.new_status).label}."
        )
        if self.note:
            text = f"{text} {self.note}"
        return text[:1000]


class INotificationSink(ABC):
    """Delivery channel for order notifications."""

    @abstractmethod
    def send(self, notification: OrderStatusNotification) -> None:
        """Deliver *notification* or raise ``NotificationDeliveryFailed``."""


class DjangoNotificationSink(INotificationSink):
    """Stores an ``OrderNotification`` and hands it to Celery for delivery."""

    def send(self, notification: OrderStatusNotification) -> None:
        from modules.orders.models import OrderNotification
        from modules.orders.tasks import deliver_order_notification

        log = logger.bind(
            order_id=str(notification.order_id),
            recipient_id=str(notification.recipient_id),
            priority=str(notification.priority),
        )
        try:
            record = OrderNotification.objects.create(
                recipient_id=notification.recipient_id,
                order_id=notification.order_id,
                title=notification.title,
                message=notification.message,
                priority=notification.priority,
            )
        except DatabaseError as exc:
            log.warning("order.notification_store_failed", error=str(exc))
            raise NotificationDeliveryFailed(str(exc)) from exc

        try:
            deliver_order_notification.delay(str(record.id))
        except Exception as exc:
            # Broker errors surface as kombu/redis exceptions.
            record.mark_as_failed(str(exc))
            log.warning("order.notification_enqueue_failed", error=str(exc))
            raise NotificationDeliveryFailed(str(exc)) from exc

        log.info("order.notification_queued", notification_id=str(record.id))


class LoggingNotificationSink(INotificationSink):
    """Sink that only records the notification in the log stream."""

    def send(self, notification: OrderStatusNotification) -> None:
        logger.info(
            "order.notification_logged",
            order_id=str(notification.order_id),
            recipient_id=str(notification.recipient_id),
            new_status=notification.new_status,
            priority=str(notification.priority),
        )


def build_notification(
    order: Any, previous_status: str, note: str = ""
) -> Optional[OrderStatusNotification]:
    """Build the notification for *order*, or ``None`` without a buyer."""
    if order.buyer_id is None:
        return None
    return OrderStatusNotification(
        recipient_id=order.buyer_id,
        order_id=order.id,
        order_number=order.order_number,
        previous_status=previous_status,
        new_status=order.status,
        priority=get_notification_priority(order.status),
        note=note,
    )


def dispatch_notification(
    sink: INotificationSink, notification: OrderStatusNotification
) -> bool:
    """Send *notification*; ``True`` only if the sink accepted it.

    Any sink error is logged and swallowed here: the transition it
    describes is already committed.
    """
    try:
        sink.send(notification)
    except Exception:
        logger.warning(
            "order.notification_failed",
            order_id=str(notification.order_id),
            new_status=notification.new_status,
            exc_info=True,
        )
        return False
    return True
