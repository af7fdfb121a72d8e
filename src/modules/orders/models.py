"""Order, OrderStatusHistory and OrderNotification models.

Lifecycle rules implemented around these models:
- ``status`` only ever holds an ``OrderStatus`` value.
- ``version`` is the optimistic-concurrency token: every accepted
  status write is ``UPDATE ... WHERE version = <expected>`` and bumps it
  by one (see ``OrderDjangoRepository.conditional_update``).
- Each accepted write appends exactly one ``OrderStatusHistory`` row in
  the same transaction.
- Derived bookkeeping columns (timestamps, payment, analytics,
  cancellation, dispute) are written only by the transition protocol.
- Orders are never deleted; completed/refunded orders are final.

The columns are flat; ``shipping``, ``payment``, ``analytics``,
``cancellation`` and ``dispute`` re-nest them into the document shape
exposed by the API.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    NotificationPriority,
    OrderStatus,
    PaymentStatus,
)
from shared.domain.events import DomainEventMixin


def _iso(value: Any) -> Optional[str]:
    return value.isoformat() if value is not None else None


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root, owned jointly by a buyer and a seller.

    Only the seller (manufacturer) drives status transitions.  ``buyer``
    is nullable: an order with no resolvable buyer simply cannot be
    notified.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    buyer: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchase_orders",
    )
    seller: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="sales_orders",
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    version: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    total_amount: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    currency: models.CharField = models.CharField(max_length=3, default="USD")

    # Lifecycle timestamps
    confirmed_at = models.DateTimeField(null=True, blank=True)
    processing_started_at = models.DateTimeField(null=True, blank=True)
    manufacturing_started_at = models.DateTimeField(null=True, blank=True)
    ready_to_ship_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    disputed_at = models.DateTimeField(null=True, blank=True)

    # Shipping
    shipped_at = models.DateTimeField(null=True, blank=True)
    estimated_delivery = models.DateField(null=True, blank=True)
    out_for_delivery_at = models.DateTimeField(null=True, blank=True)
    in_transit_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    actual_delivery = models.DateTimeField(null=True, blank=True)

    # Payment
    payment_status: models.CharField = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    paid_date = models.DateTimeField(null=True, blank=True)
    refund_date = models.DateTimeField(null=True, blank=True)

    # Analytics (hours)
    delivery_time_hours = models.PositiveIntegerField(null=True, blank=True)
    processing_time_hours = models.PositiveIntegerField(null=True, blank=True)

    # Cancellation / dispute
    cancellation_reason: models.TextField = models.TextField(blank=True, default="")
    cancelled_by: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    dispute_reason: models.TextField = models.TextField(blank=True, default="")
    disputed_by: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["seller", "status"], name="orders_seller_status_idx"),
            models.Index(fields=["buyer", "status"], name="orders_buyer_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    # ------------------------------------------------------------------
    # Document-shaped views
    # ------------------------------------------------------------------

    @property
    def shipping(self) -> Dict[str, Optional[str]]:
        return {
            "shipped_at": _iso(self.shipped_at),
            "estimated_delivery": _iso(self.estimated_delivery),
            "out_for_delivery_at": _iso(self.out_for_delivery_at),
            "in_transit_at": _iso(self.in_transit_at),
            "delivered_at": _iso(self.delivered_at),
            "actual_delivery": _iso(self.actual_delivery),
        }

    @property
    def payment(self) -> Dict[str, Optional[str]]:
        return {
            "status": self.payment_status,
            "paid_date": _iso(self.paid_date),
            "refund_date": _iso(self.refund_date),
        }

    @property
    def analytics(self) -> Dict[str, Optional[int]]:
        return {
            "delivery_time": self.delivery_time_hours,
            "processing_time": self.processing_time_hours,
        }

    @property
    def cancellation(self) -> Optional[Dict[str, Any]]:
        if self.cancelled_at is None:
            return None
        return {
            "reason": self.cancellation_reason,
            "cancelled_by": self.cancelled_by_id,
            "cancelled_date": _iso(self.cancelled_at),
        }

    @property
    def dispute(self) -> Optional[Dict[str, Any]]:
        if self.disputed_at is None:
            return None
        return {
            "reason": self.dispute_reason,
            "disputed_by": self.disputed_by_id,
            "disputed_date": _iso(self.disputed_at),
        }

    @property
    def timestamps(self) -> Dict[str, Optional[str]]:
        return {
            "confirmed_at": _iso(self.confirmed_at),
            "processing_started_at": _iso(self.processing_started_at),
            "manufacturing_started_at": _iso(self.manufacturing_started_at),
            "ready_to_ship_at": _iso(self.ready_to_ship_at),
            "completed_at": _iso(self.completed_at),
            "cancelled_at": _iso(self.cancelled_at),
            "refunded_at": _iso(self.refunded_at),
            "disputed_at": _iso(self.disputed_at),
        }

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _attempt in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status} v{self.version})"


class OrderStatusHistory(BaseModel):
    """Append-only log of committed status transitions.

    Rows are ordered by commit (UUIDv7 ``id`` and ``created_at``), never
    updated and never deleted.  ``actor`` is nullable so that history
    survives the removal of a user account.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    actor: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    note: models.TextField = models.TextField(blank=True, default="")
    reason: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["order", "created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} : {self.old_status} -> {self.new_status}"


class NotificationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"


class OrderNotification(BaseModel):
    """In-app notification addressed to the buyer of an order.

    Rows are created by ``DjangoNotificationSink``; the Celery task
    ``orders.deliver_order_notification`` moves them out of ``pending``.
    """

    recipient: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="order_notifications",
    )
    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    type: models.CharField = models.CharField(max_length=30, default="order_status")
    title: models.CharField = models.CharField(max_length=200)
    message: models.TextField = models.TextField(max_length=1000)
    priority: models.CharField = models.CharField(
        max_length=10,
        choices=NotificationPriority.choices,
        default=NotificationPriority.LOW,
    )
    status: models.CharField = models.CharField(
        max_length=10,
        choices=NotificationStatus.choices,
        default=NotificationStatus.PENDING,
    )
    sent_at = models.DateTimeField(null=True, blank=True)
    error_message: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["recipient", "status"],
                name="onotif_recipient_status_idx",
            ),
        ]

    def mark_as_sent(self) -> None:
        self.status = NotificationStatus.SENT
        self.sent_at = timezone.now()
        self.save(update_fields=["status", "sent_at"])

    def mark_as_failed(self, error: str) -> None:
        self.status = NotificationStatus.FAILED
        self.error_message = error
        self.save(update_fields=["status", "error_message"])

    def __str__(self) -> str:
        return f"{self.title} [{self.status}] -> {self.recipient_id}"
