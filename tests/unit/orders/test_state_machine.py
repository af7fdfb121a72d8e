"""Unit tests for the Order status state machine.

Covers:
- Every (current, requested) pair against the adjacency list.
- Cancellation reason rule, checked before adjacency.
- Completed/refunded orders reject everything a disputed order could not do.
- Error payloads carry the current status, version and allowed list.
"""

from __future__ import annotations

import itertools

import pytest

from modules.orders.constants import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
)
from modules.orders.exceptions import (
    CancellationReasonRequired,
    InvalidStatusValue,
    InvalidTransition,
    OrderFinalized,
)
from modules.orders.state_machine import (
    allowed_transitions,
    is_valid_status,
    validate_transition,
)

pytestmark = pytest.mark.unit

ALL_STATUSES = [str(s) for s in OrderStatus.values]

VALID_PAIRS = [
    (current, requested)
    for current, targets in VALID_TRANSITIONS.items()
    for requested in targets
]

INVALID_PAIRS = [
    (current, requested)
    for current, requested in itertools.product(ALL_STATUSES, ALL_STATUSES)
    if requested not in VALID_TRANSITIONS[current]
    and current not in TERMINAL_STATES
]


# ===========================================================================
# Transition table
# ===========================================================================


class TestTransitionTable:
    def test_every_status_has_an_entry(self):
        assert set(VALID_TRANSITIONS) == set(ALL_STATUSES)

    def test_targets_are_known_statuses(self):
        for targets in VALID_TRANSITIONS.values():
            assert targets <= set(ALL_STATUSES)

    def test_terminal_states_have_no_outbound_transitions(self):
        for status in TERMINAL_STATES:
            assert VALID_TRANSITIONS[status] == set()

    def test_reactivation_from_cancelled_is_allowed(self):
        assert VALID_TRANSITIONS[OrderStatus.CANCELLED] == {OrderStatus.PENDING}

    def test_allowed_transitions_sorted(self):
        assert allowed_transitions(OrderStatus.SHIPPED) == [
            "delivered",
            "in_transit",
            "out_for_delivery",
        ]

    def test_allowed_transitions_unknown_status_is_empty(self):
        assert allowed_transitions("archived") == []


# ===========================================================================
# validate_transition: happy path
# ===========================================================================


class TestValidTransitions:
    @pytest.mark.parametrize(("current", "requested"), VALID_PAIRS)
    def test_pair_in_adjacency_list_is_accepted(self, current, requested):
        assert validate_transition(current, requested, reason="Buyer request") is None

    def test_pending_to_confirmed_without_reason(self):
        assert validate_transition(OrderStatus.PENDING, OrderStatus.CONFIRMED) is None


# ===========================================================================
# validate_transition: rejections
# ===========================================================================


class TestInvalidTransitions:
    @pytest.mark.parametrize(("current", "requested"), INVALID_PAIRS)
    def test_pair_outside_adjacency_list_is_rejected(self, current, requested):
        with pytest.raises(InvalidTransition) as exc_info:
            validate_transition(current, requested, reason="Buyer request")
        assert exc_info.value.allowed == allowed_transitions(current)

    def test_draft_to_shipped_lists_allowed_states(self):
        with pytest.raises(InvalidTransition) as exc_info:
            validate_transition(OrderStatus.DRAFT, OrderStatus.SHIPPED, current_version=0)

        error = exc_info.value
        assert error.allowed == ["cancelled", "pending"]
        assert error.to_dict() == {
            "error": "invalid_transition",
            "detail": "Cannot transition from draft to shipped.",
            "current_status": "draft",
            "current_version": 0,
            "allowed": ["cancelled", "pending"],
        }

    def test_self_transition_is_rejected(self):
        with pytest.raises(InvalidTransition):
            validate_transition(OrderStatus.CONFIRMED, OrderStatus.CONFIRMED)


class TestStatusValue:
    @pytest.mark.parametrize("value", ["archived", "", "CONFIRMED", None, 3])
    def test_unknown_status_is_rejected(self, value):
        with pytest.raises(InvalidStatusValue):
            validate_transition(OrderStatus.PENDING, value)

    def test_unknown_status_checked_before_finalized(self):
        with pytest.raises(InvalidStatusValue):
            validate_transition(OrderStatus.COMPLETED, "archived")

    def test_is_valid_status(self):
        assert is_valid_status("ready_to_ship")
        assert not is_valid_status("ready-to-ship")


class TestCancellationReason:
    @pytest.mark.parametrize("reason", [None, "", "   ", "\n\t"])
    def test_cancel_without_reason_is_rejected(self, reason):
        with pytest.raises(CancellationReasonRequired):
            validate_transition(OrderStatus.PENDING, OrderStatus.CANCELLED, reason)

    def test_shipped_cancel_without_reason_reports_reason_first(self):
        # shipped -> cancelled is not in the table either
        with pytest.raises(CancellationReasonRequired):
            validate_transition(OrderStatus.SHIPPED, OrderStatus.CANCELLED)

    def test_reason_checked_before_finalized(self):
        with pytest.raises(CancellationReasonRequired):
            validate_transition(OrderStatus.REFUNDED, OrderStatus.CANCELLED, "")

    def test_cancel_with_reason_is_accepted(self):
        assert (
            validate_transition(
                OrderStatus.CONFIRMED, OrderStatus.CANCELLED, "Out of raw material"
            )
            is None
        )


class TestFinalizedOrders:
    @pytest.mark.parametrize("current", sorted(TERMINAL_STATES))
    @pytest.mark.parametrize(
        "requested",
        [
            s
            for s in ALL_STATUSES
            if s not in VALID_TRANSITIONS[OrderStatus.DISPUTED]
        ],
    )
    def test_terminal_order_is_finalized(self, current, requested):
        with pytest.raises(OrderFinalized) as exc_info:
            validate_transition(current, requested, current_version=7)
        assert exc_info.value.current_status == current
        assert exc_info.value.current_version == 7

    def test_completed_to_processing_is_finalized(self):
        with pytest.raises(OrderFinalized):
            validate_transition(OrderStatus.COMPLETED, OrderStatus.PROCESSING)

    @pytest.mark.parametrize("current", sorted(TERMINAL_STATES))
    @pytest.mark.parametrize("requested", sorted(VALID_TRANSITIONS[OrderStatus.DISPUTED]))
    def test_dispute_exits_fall_through_to_adjacency(self, current, requested):
        with pytest.raises(InvalidTransition) as exc_info:
            validate_transition(current, requested, reason="Chargeback")
        assert exc_info.value.allowed == []

    def test_rejection_is_repeatable(self):
        errors = []
        for _ in range(2):
            with pytest.raises(OrderFinalized) as exc_info:
                validate_transition(OrderStatus.COMPLETED, OrderStatus.SHIPPED)
            errors.append(exc_info.value.code)
        assert errors == ["order_finalized", "order_finalized"]

