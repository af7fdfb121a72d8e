"""Order domain constants.

Defines status choices and valid status transitions for the B2B order
state machine, plus the payment and notification enumerations derived
from it.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PROCESSING = "processing", "Processing"
    MANUFACTURING = "manufacturing", "Manufacturing"
    READY_TO_SHIP = "ready_to_ship", "Ready to ship"
    SHIPPED = "shipped", "Shipped"
    OUT_FOR_DELIVERY = "out_for_delivery", "Out for delivery"
    IN_TRANSIT = "in_transit", "In transit"
    DELIVERED = "delivered", "Delivered"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"
    DISPUTED = "disputed", "Disputed"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PARTIAL = "partial", "Partial"
    PAID = "paid", "Paid"
    OVERDUE = "overdue", "Overdue"
    REFUNDED = "refunded", "Refunded"


class NotificationPriority(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.DRAFT: {OrderStatus.PENDING, OrderStatus.CANCELLED},
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.MANUFACTURING, OrderStatus.CANCELLED},
    OrderStatus.MANUFACTURING: {OrderStatus.READY_TO_SHIP, OrderStatus.CANCELLED},
    OrderStatus.READY_TO_SHIP: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.IN_TRANSIT,
        OrderStatus.DELIVERED,
    },
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.IN_TRANSIT: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),
    # Reactivation of a cancelled order is kept as-is pending product review.
    OrderStatus.CANCELLED: {OrderStatus.PENDING},
    OrderStatus.REFUNDED: set(),
    OrderStatus.DISPUTED: {OrderStatus.CANCELLED, OrderStatus.COMPLETED},
}

TERMINAL_STATES: set[str] = {OrderStatus.COMPLETED, OrderStatus.REFUNDED}

NOTIFICATION_PRIORITIES: dict[str, str] = {
    OrderStatus.CANCELLED: NotificationPriority.HIGH,
    OrderStatus.DISPUTED: NotificationPriority.HIGH,
    OrderStatus.REFUNDED: NotificationPriority.HIGH,
    OrderStatus.DELIVERED: NotificationPriority.MEDIUM,
    OrderStatus.SHIPPED: NotificationPriority.MEDIUM,
    OrderStatus.COMPLETED: NotificationPriority.MEDIUM,
}

NOTE_MAX_LENGTH = 1000
REASON_MAX_LENGTH = 500
RECENT_HISTORY_LIMIT = 5
BULK_STATUS_MAX_ORDERS = 100
ORDER_NUMBER_MAX_RETRIES = 5

MILLISECONDS_PER_HOUR = 3_600_000
