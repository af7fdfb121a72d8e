"""Order lifecycle exceptions.

Raised by the Service Layer when a status transition is rejected.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.

Every error carries the authoritative ``current_status`` and
``current_version`` of the order (when known) so the client can
reconcile its local view without a second read.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional


class OrderLifecycleError(Exception):
    """Base class for every rejected transition request."""

    code = "order_lifecycle_error"

    def __init__(
        self,
        message: str,
        *,
        current_status: Optional[str] = None,
        current_version: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.current_status = current_status
        self.current_version = current_version

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "detail": str(self),
            "current_status": self.current_status,
            "current_version": self.current_version,
        }


class OrderNotFound(OrderLifecycleError):
    """The order does not exist or is not owned by the acting seller."""

    code = "order_not_found"


class InvalidStatusValue(OrderLifecycleError):
    """The requested status is not a member of ``OrderStatus``."""

    code = "invalid_status_value"


class CancellationReasonRequired(OrderLifecycleError):
    """A cancellation was requested without a reason."""

    code = "cancellation_reason_required"


class OrderFinalized(OrderLifecycleError):
    """The order is completed or refunded and cannot move any further."""

    code = "order_finalized"


class InvalidTransition(OrderLifecycleError):
    """The requested status is not reachable from the current one."""

    code = "invalid_transition"

    def __init__(
        self,
        message: str,
        *,
        allowed: Iterable[str] = (),
        current_status: Optional[str] = None,
        current_version: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            current_status=current_status,
            current_version=current_version,
        )
        self.allowed: List[str] = list(allowed)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["allowed"] = self.allowed
        return data


class InvalidRequestData(OrderLifecycleError):
    """The request body failed shape checks (missing field, too long)."""

    code = "invalid_request"

    def __init__(
        self,
        message: str,
        *,
        errors: Optional[Dict[str, Any]] = None,
        current_status: Optional[str] = None,
        current_version: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            current_status=current_status,
            current_version=current_version,
        )
        self.errors: Dict[str, Any] = dict(errors or {})

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["fields"] = self.errors
        return data


class ConcurrentModification(OrderLifecycleError):
    """Another writer committed a transition since the order was read.

    The caller must re-fetch and decide whether to retry.
    """

    code = "concurrent_modification"


class RepositoryUnavailable(OrderLifecycleError):
    """The order store could not be reached.

    The outcome of an in-flight write is unknown: callers must re-read
    ``status``/``version`` before resubmitting.
    """

    code = "repository_unavailable"


class NotificationDeliveryFailed(Exception):
    """A notification sink could not deliver a message.

    Never propagated past the service: it is downgraded to
    ``customer_notified = False`` in the transition result.
    """


VALIDATION_ERRORS = (
    InvalidRequestData,
    InvalidStatusValue,
    CancellationReasonRequired,
    OrderFinalized,
    InvalidTransition,
)
