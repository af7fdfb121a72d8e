"""Order status state machine.

Pure validation of ``(current -> requested)`` pairs against
``VALID_TRANSITIONS``.  No I/O: the service runs this between the
order read and the conditional write.

Check order:
1. ``requested`` must be a known ``OrderStatus``.
2. Cancellation requires a non-blank reason.
3. Completed/refunded orders only accept the statuses a disputed
   order could move to; everything else is ``OrderFinalized``.
4. The adjacency list decides the rest.
"""

from __future__ import annotations

from typing import List, Optional

from modules.orders.constants import TERMINAL_STATES, VALID_TRANSITIONS, OrderStatus
from modules.orders.exceptions import (
    CancellationReasonRequired,
    InvalidStatusValue,
    InvalidTransition,
    OrderFinalized,
)


def is_valid_status(value: object) -> bool:
    return isinstance(value, str) and value in OrderStatus.values


def allowed_transitions(status: str) -> List[str]:
    """Return the statuses reachable from *status*, sorted for stable output."""
    return sorted(str(s) for s in VALID_TRANSITIONS.get(status, set()))


def validate_transition(
    current: str,
    requested: str,
    reason: Optional[str] = None,
    *,
    current_version: Optional[int] = None,
) -> None:
    """Raise if *current* may not move to *requested*; return ``None`` otherwise."""
    context = {"current_status": current, "current_version": current_version}

    if not is_valid_status(requested):
        raise InvalidStatusValue(f"Unknown order status: {requested!r}.", **context)

    if requested == OrderStatus.CANCELLED and not (reason or "").strip():
        raise CancellationReasonRequired(
            "A reason is required to cancel an order.", **context
        )

    if (
        current in TERMINAL_STATES
        and requested not in VALID_TRANSITIONS[OrderStatus.DISPUTED]
    ):
        raise OrderFinalized(
            f"Order is {current} and can no longer change status.", **context
        )

    allowed = VALID_TRANSITIONS.get(current, set())
    if requested not in allowed:
        raise InvalidTransition(
            f"Cannot transition from {current} to {requested}.",
            allowed=allowed_transitions(current),
            **context,
        )
