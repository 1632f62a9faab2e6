"""
Transition engine tests.

The graph is open between non-terminal statuses, closed after a terminal
status, and `pending` can never be re-entered.
"""
from datetime import datetime, timezone

import pytest

from hr_requests.core.errors import InvalidTransitionError, NoOpTransitionError, ValidationError
from hr_requests.core.time import frozen_clock
from hr_requests.domain.workflow import (
    INITIAL_STATUS,
    OPEN_STATUSES,
    STATUSES,
    TERMINAL_STATUSES,
    TRANSITIONS,
    decide_transition,
)


class TestTransitionTable:
    def test_every_status_has_an_entry(self):
        assert set(TRANSITIONS) == set(STATUSES)

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES))
    def test_terminal_states_have_no_outgoing_edges(self, status):
        assert TRANSITIONS[status] == frozenset()

    @pytest.mark.parametrize("status", sorted(OPEN_STATUSES))
    def test_open_states_reach_every_other_state_but_pending(self, status):
        expected = set(STATUSES) - {status, INITIAL_STATUS}
        assert TRANSITIONS[status] == expected

    def test_pending_is_never_a_target(self):
        assert all(INITIAL_STATUS not in targets for targets in TRANSITIONS.values())


class TestDecideTransition:
    def test_accepts_open_edge_and_builds_history_entry(self):
        instant = datetime(2025, 1, 2, 9, 30, tzinfo=timezone.utc)
        with frozen_clock(instant):
            decision = decide_transition("pending", "approved-manager", actor_name="Sara", actor_role="manager")

        assert decision.current == "pending"
        assert decision.target == "approved-manager"
        assert decision.history_entry.action == "status changed to approved-manager"
        assert decision.history_entry.author == "Sara"
        assert decision.history_entry.timestamp == instant

    @pytest.mark.parametrize("current", sorted(TERMINAL_STATUSES))
    @pytest.mark.parametrize("target", ["under-review", "approved-ceo", "rejected-manager"])
    def test_terminal_source_is_rejected(self, current, target):
        if current == target:
            pytest.skip("same-status moves are no-ops")
        with pytest.raises(InvalidTransitionError) as excinfo:
            decide_transition(current, target, actor_name="x", actor_role="admin")
        assert excinfo.value.current == current
        assert excinfo.value.attempted == target

    @pytest.mark.parametrize("status", STATUSES)
    def test_same_status_is_a_no_op(self, status):
        with pytest.raises(NoOpTransitionError) as excinfo:
            decide_transition(status, status, actor_name="x", actor_role="admin")
        assert excinfo.value.status == status

    def test_back_to_pending_is_rejected(self):
        with pytest.raises(InvalidTransitionError):
            decide_transition("under-review", "pending", actor_name="x", actor_role="admin")

    def test_unknown_status_is_a_validation_error(self):
        with pytest.raises(ValidationError) as excinfo:
            decide_transition("pending", "archived", actor_name="x", actor_role="admin")
        assert "status" in excinfo.value.fields

    def test_target_is_normalized(self):
        decision = decide_transition("pending", "  Under-Review ", actor_name="x", actor_role="employee")
        assert decision.target == "under-review"


class TestRoleGates:
    def test_gates_are_off_by_default(self):
        decision = decide_transition("pending", "approved-ceo", actor_name="Ali", actor_role="employee")
        assert decision.target == "approved-ceo"

    @pytest.mark.parametrize(
        "target,role",
        [
            ("approved-manager", "employee"),
            ("rejected-manager", "ceo"),
            ("approved-ceo", "manager"),
            ("rejected-ceo", "employee"),
        ],
    )
    def test_gated_targets_reject_other_roles(self, target, role):
        with pytest.raises(InvalidTransitionError):
            decide_transition("pending", target, actor_name="x", actor_role=role, enforce_role_gates=True)

    @pytest.mark.parametrize(
        "target,role",
        [
            ("approved-manager", "manager"),
            ("rejected-manager", "admin"),
            ("approved-ceo", "ceo"),
            ("rejected-ceo", "admin"),
            ("under-review", "employee"),
        ],
    )
    def test_gated_targets_accept_listed_roles(self, target, role):
        decision = decide_transition("pending", target, actor_name="x", actor_role=role, enforce_role_gates=True)
        assert decision.target == target
