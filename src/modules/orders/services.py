"""Order lifecycle service layer (Use Cases).

Orchestrates a status transition for one order:

1. Read the order (``status`` and ``version`` become the CAS token).
2. Validate the transition against the state machine.
3. Compute derived bookkeeping fields.
4. Conditional write: status + derived fields + one history entry,
   only if ``version`` is still the one read in step 1.
5. Best-effort buyer notification, audit record, domain events.

Rejections in steps 1-2 never write.  A lost race in step 4 raises
``ConcurrentModification`` and also writes nothing; the service never
retries on its own because the retry must be re-validated by the caller
against the new state.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

import structlog
from django.utils import timezone

from modules.orders.audit import IAuditSink, OrderAuditRecord, StructlogAuditSink
from modules.orders.constants import RECENT_HISTORY_LIMIT, OrderStatus
from modules.orders.derived_fields import compute_derived_fields
from modules.orders.dtos import OrderOutputDTO, TransitionRequestDTO, TransitionResultDTO
from modules.orders.events import OrderCancelled, OrderDelivered, OrderStatusChanged
from modules.orders.exceptions import (
    ConcurrentModification,
    InvalidRequestData,
    OrderLifecycleError,
    OrderNotFound,
)
from modules.orders.notifications import (
    INotificationSink,
    build_notification,
    dispatch_notification,
)
from modules.orders.repositories.interfaces import HistoryEntry
from modules.orders.state_machine import validate_transition

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


class OrderLifecycleService:
    """Application service for order status transitions.

    Receives its collaborators via constructor injection (DIP).  Holds
    no per-order state, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        notification_sink: Optional[INotificationSink] = None,
        audit_sink: Optional[IAuditSink] = None,
        event_bus: Optional[IEventBus] = None,
    ) -> None:
        self._order_repo = order_repository
        self._notification_sink = notification_sink
        self._audit_sink = audit_sink or StructlogAuditSink()
        self._event_bus = event_bus

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def transition_order_status(self, dto: TransitionRequestDTO) -> TransitionResultDTO:
        """Move one order to ``dto.status``.

        Raises:
            OrderNotFound: unknown order, or not owned by ``dto.actor_id``.
            InvalidStatusValue: ``dto.status`` is not an ``OrderStatus``.
            CancellationReasonRequired: cancellation without a reason.
            OrderFinalized: the order is completed or refunded.
            InvalidTransition: not reachable from the current status.
            ConcurrentModification: another transition committed first.
            RepositoryUnavailable: the store failed; outcome unknown.
        """
        started = time.monotonic()
        log = logger.bind(
            order_id=dto.order_id,
            actor_id=str(dto.actor_id),
            requested_status=dto.status,
        )

        # 1. Read
        order = self._get_owned_order(dto.order_id, dto.actor_id)
        expected_status = order.status
        expected_version = order.version
        log = log.bind(current_status=expected_status, version=expected_version)

        # 2. Validate
        try:
            validate_transition(
                expected_status,
                dto.status,
                dto.reason,
                current_version=expected_version,
            )
        except OrderLifecycleError as exc:
            log.warning("order.invalid_transition", error=exc.code)
            raise

        # 3. Derived fields
        patch = compute_derived_fields(
            dto.status,
            now=timezone.now(),
            created_at=order.created_at,
            actor_id=dto.actor_id,
            reason=dto.reason,
            estimated_delivery=dto.estimated_delivery_date,
        )

        # 4. Conditional write
        updated = self._order_repo.conditional_update(
            order.id,
            expected_version,
            dto.status,
            patch,
            HistoryEntry(
                old_status=expected_status,
                new_status=dto.status,
                actor_id=dto.actor_id,
                note=dto.note,
                reason=dto.reason,
            ),
        )
        if updated is None:
            raise self._concurrent_modification(order.id, expected_version, log)

        log.info("order.status_updated", new_version=updated.version)

        # 5. Side effects (after commit)
        customer_notified = False
        if dto.notify_customer:
            customer_notified = self._notify_customer(updated, expected_status, dto.note)

        processing_time_ms = round((time.monotonic() - started) * 1000, 2)
        self._record_audit(
            OrderAuditRecord(
                order_id=str(updated.id),
                actor_id=str(dto.actor_id) if dto.actor_id is not None else None,
                previous_status=expected_status,
                new_status=updated.status,
                reason=dto.reason,
                note=dto.note,
                notification_sent=customer_notified,
                processing_time_ms=processing_time_ms,
                source_ip=dto.source_ip,
                user_agent=dto.user_agent,
            )
        )
        self._dispatch_status_events(updated, expected_status, dto)

        history = self._order_repo.recent_history(updated.id, RECENT_HISTORY_LIMIT)
        return TransitionResultDTO.from_transition(
            updated,
            history,
            previous_status=expected_status,
            customer_notified=customer_notified,
            processing_time_ms=processing_time_ms,
        )

    def bulk_transition(
        self, order_ids: Iterable[Any], template: TransitionRequestDTO
    ) -> List[Dict[str, Any]]:
        """Apply ``template`` to each order independently.

        Every order goes through the full read/validate/CAS protocol; a
        rejection of one order does not affect the others.  Returns one
        outcome per order id, in input order.
        """
        outcomes: List[Dict[str, Any]] = []
        for order_id in order_ids:
            dto = template.model_copy(update={"order_id": str(order_id)})
            try:
                result = self.transition_order_status(dto)
            except OrderLifecycleError as exc:
                outcomes.append({"order_id": str(order_id), "success": False, **exc.to_dict()})
            else:
                outcomes.append(
                    {
                        "order_id": str(order_id),
                        "success": True,
                        "status": result.status,
                        "version": result.version,
                    }
                )
        succeeded = sum(1 for outcome in outcomes if outcome["success"])
        logger.info(
            "order.bulk_transition",
            requested_status=template.status,
            total=len(outcomes),
            succeeded=succeeded,
        )
        return outcomes

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str, seller_id: Any) -> OrderOutputDTO:
        """Retrieve one of the seller's orders with its recent history.

        Raises:
            OrderNotFound: unknown order, or owned by another seller.
        """
        order = self._get_owned_order(order_id, seller_id)
        history = self._order_repo.recent_history(order.id, RECENT_HISTORY_LIMIT)
        return OrderOutputDTO.from_entity(order, history)

    def reject_request(
        self, order_id: str, seller_id: Any, errors: Dict[str, Any]
    ) -> InvalidRequestData:
        """Build the error for a malformed request against one order.

        The error carries the order's current status and version like
        every other rejection.

        Raises:
            OrderNotFound: unknown order, or owned by another seller.
        """
        order = self._get_owned_order(order_id, seller_id)
        logger.info(
            "order.invalid_request",
            order_id=str(order.id),
            fields=sorted(errors),
        )
        return InvalidRequestData(
            "Request body is invalid.",
            errors=errors,
            current_status=order.status,
            current_version=order.version,
        )

    def list_orders(self, seller_id: Any) -> QuerySet:
        """Return the seller's orders (unfiltered queryset)."""
        return self._order_repo.list_for_seller(seller_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_owned_order(self, order_id: str, seller_id: Any) -> Order:
        order = self._order_repo.get_by_id(order_id)
        if order is None or str(order.seller_id) != str(seller_id):
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def _concurrent_modification(
        self, order_id: Any, expected_version: int, log: Any
    ) -> ConcurrentModification:
        current = self._order_repo.get_by_id(str(order_id))
        log.warning(
            "order.concurrent_modification",
            stored_version=current.version if current else None,
        )
        return ConcurrentModification(
            f"Order {order_id} changed since version {expected_version}; "
            "re-fetch and retry.",
            current_status=current.status if current else None,
            current_version=current.version if current else None,
        )

    def _notify_customer(self, order: Order, previous_status: str, note: str) -> bool:
        if self._notification_sink is None:
            logger.info("order.notification_skipped", reason="no_sink")
            return False
        notification = build_notification(order, previous_status, note)
        if notification is None:
            logger.info(
                "order.notification_skipped",
                order_id=str(order.id),
                reason="no_buyer",
            )
            return False
        return dispatch_notification(self._notification_sink, notification)

    def _record_audit(self, record: OrderAuditRecord) -> None:
        # The write is committed; a failing sink must not fail the request.
        try:
            self._audit_sink.append(record)
        except Exception:
            logger.warning(
                "order.audit_failed",
                order_id=record.order_id,
                new_status=record.new_status,
                exc_info=True,
            )

    def _dispatch_status_events(
        self, order: Order, previous_status: str, dto: TransitionRequestDTO
    ) -> None:
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                previous_status=previous_status,
                new_status=order.status,
                version=order.version,
                actor_id=dto.actor_id,
            )
        )
        if order.status == OrderStatus.CANCELLED:
            order.add_domain_event(
                OrderCancelled(
                    aggregate_id=order.id,
                    previous_status=previous_status,
                    reason=dto.reason,
                    actor_id=dto.actor_id,
                )
            )
        elif order.status == OrderStatus.DELIVERED:
            order.add_domain_event(
                OrderDelivered(
                    aggregate_id=order.id,
                    delivery_time_hours=order.delivery_time_hours,
                )
            )

        events = order.pull_domain_events()
        if self._event_bus is not None:
            self._event_bus.publish_all(events)
