"""Asynchronous delivery of order notifications."""

import structlog
from celery import shared_task

logger = structlog.get_logger(__name__)


@shared_task(name="orders.deliver_order_notification")
def deliver_order_notification(notification_id: str) -> dict:
    """Mark a stored notification as delivered to the buyer's inbox.

    External channels (e-mail, SMS) hook in here; the in-app inbox only
    needs the status change.
    """
    from modules.orders.models import NotificationStatus, OrderNotification

    notification = OrderNotification.objects.filter(id=notification_id).first()
    if notification is None:
        logger.warning("notification.missing", notification_id=notification_id)
        return {"status": "missing", "notification_id": notification_id}
    if notification.status == NotificationStatus.SENT:
        return {"status": "already_sent", "notification_id": notification_id}

    notification.mark_as_sent()
    logger.info(
        "notification.delivered",
        notification_id=notification_id,
        recipient_id=str(notification.recipient_id),
        priority=notification.priority,
    )
    return {"status": "sent", "notification_id": notification_id}
