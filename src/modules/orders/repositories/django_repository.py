"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.

Concurrency control on status updates is optimistic: the write is a
single ``UPDATE orders SET ..., version = version + 1 WHERE id = %s AND
version = %s``.  A zero row count means another transition committed
after the caller read the order; nothing is written in that case.  The
history insert shares the same ``transaction.atomic()`` block, so a
status change never lands without its history entry.

``DatabaseError`` is translated into ``RepositoryUnavailable``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from modules.orders.exceptions import RepositoryUnavailable
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.repositories.interfaces import HistoryEntry, IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with its parties eager-loaded.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_related("buyer", "seller")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None
        except DatabaseError as exc:
            logger.error("order.repository_unavailable", order_id=str(id))
            raise RepositoryUnavailable("Order store is unavailable.") from exc

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """List orders with optional filters.

        Supported filter keys are any ORM lookups on ``Order``, e.g.
        ``status``, ``seller_id``, ``created_at__range``.
        """
        queryset = Order.objects.select_related("buyer", "seller")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def list_for_seller(self, seller_id: Any) -> QuerySet:
        return self.list({"seller_id": seller_id})

    def recent_history(self, order_id: Any, limit: int) -> List[OrderStatusHistory]:
        try:
            latest = list(
                OrderStatusHistory.objects.filter(order_id=order_id).order_by(
                    "-created_at", "-id"
                )[:limit]
            )
        except DatabaseError as exc:
            raise RepositoryUnavailable("Order store is unavailable.") from exc
        latest.reverse()
        return latest

    # ------------------------------------------------------------------
    # Conditional write
    # ------------------------------------------------------------------

    def conditional_update(
        self,
        order_id: Any,
        expected_version: int,
        new_status: str,
        patch: Dict[str, Any],
        history: HistoryEntry,
    ) -> Optional[Order]:
        """Compare-and-swap on ``version``; see ``IOrderRepository``."""
        log = logger.bind(
            order_id=str(order_id),
            expected_version=expected_version,
            new_status=new_status,
        )
        try:
            with transaction.atomic():
                matched = Order.objects.filter(
                    id=order_id, version=expected_version
                ).update(
                    status=new_status,
                    version=F("version") + 1,
                    updated_at=timezone.now(),
                    **patch,
                )
                if matched == 0:
                    log.info("order.cas_miss")
                    return None

                OrderStatusHistory.objects.create(
                    order_id=order_id,
                    old_status=history.old_status,
                    new_status=history.new_status,
                    actor_id=history.actor_id,
                    note=history.note,
                    reason=history.reason,
                )
        except DatabaseError as exc:
            log.error("order.repository_unavailable")
            raise RepositoryUnavailable(
                "Order store is unavailable; the outcome of the update is unknown."
            ) from exc

        log.info("order.cas_committed", version=expected_version + 1)
        return self.get_by_id(order_id)
