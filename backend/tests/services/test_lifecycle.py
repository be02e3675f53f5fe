"""
Lifecycle Service Unit Tests
============================

Transition tables and the derived incident statuses.
"""

from datetime import datetime, UTC
from types import SimpleNamespace

import pytest

from storesafe.core.enums import ActionStatus, IncidentStatus, InvestigationStatus
from storesafe.core.exceptions import InvalidTransitionError
from storesafe.services.lifecycle_service import (
    apply_action_status,
    apply_incident_status,
    apply_initial_investigation_status,
    apply_investigation_status,
    can_transition,
    status_after_action_created,
    status_after_actions_resolved,
    status_after_investigator_assigned,
    validate_transition,
)

pytestmark = pytest.mark.unit

NOW = datetime(2026, 4, 1, 9, 30, tzinfo=UTC)


class TestValidateTransition:
    """Tests for the transition tables."""

    @pytest.mark.parametrize(
        "current,requested",
        [
            ("open", "under_investigation"),
            ("open", "cancelled"),
            ("under_investigation", "actions_in_progress"),
            ("actions_in_progress", "closed"),
            ("cancelled", "open"),
        ],
    )
    def test_allowed_incident_moves(self, current, requested):
        assert can_transition("incident", current, requested)

    def test_closed_incident_is_terminal(self):
        with pytest.raises(InvalidTransitionError):
            validate_transition("incident", "closed", "open")

    def test_cancelled_incident_cannot_close(self):
        assert not can_transition("incident", "cancelled", "closed")

    def test_same_status_is_a_no_op(self):
        # Act / Assert - no exception
        validate_transition("action", "complete", "complete")

    def test_complete_action_only_reopens_to_in_progress(self):
        assert can_transition("action", "complete", "in_progress")
        assert not can_transition("action", "complete", "open")

    def test_investigation_cannot_skip_back_to_not_started(self):
        assert not can_transition("investigation", "in_progress", "not_started")

    def test_unknown_status_raises_value_error(self):
        with pytest.raises(ValueError):
            validate_transition("action", "open", "archived")

    def test_error_carries_conflict_status(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_transition("incident", "closed", "cancelled")

        assert exc_info.value.status_code == 409


class TestDerivedIncidentStatus:
    """Tests for status implied by side effects."""

    def test_assigning_investigator_starts_investigation(self):
        result = status_after_investigator_assigned(IncidentStatus.OPEN, True)
        assert result == IncidentStatus.UNDER_INVESTIGATION

    def test_clearing_investigator_keeps_status(self):
        result = status_after_investigator_assigned(IncidentStatus.UNDER_INVESTIGATION, False)
        assert result == IncidentStatus.UNDER_INVESTIGATION

    def test_assigning_investigator_leaves_actions_in_progress(self):
        result = status_after_investigator_assigned(IncidentStatus.ACTIONS_IN_PROGRESS, True)
        assert result == IncidentStatus.ACTIONS_IN_PROGRESS

    @pytest.mark.parametrize("current", [IncidentStatus.OPEN, IncidentStatus.UNDER_INVESTIGATION])
    def test_action_created_moves_to_actions_in_progress(self, current):
        assert status_after_action_created(current) == IncidentStatus.ACTIONS_IN_PROGRESS

    def test_action_created_on_cancelled_incident_keeps_status(self):
        assert status_after_action_created(IncidentStatus.CANCELLED) == IncidentStatus.CANCELLED

    def test_resolved_actions_return_to_investigation(self):
        result = status_after_actions_resolved(
            IncidentStatus.ACTIONS_IN_PROGRESS,
            True,
            [ActionStatus.COMPLETE, ActionStatus.CANCELLED],
        )
        assert result == IncidentStatus.UNDER_INVESTIGATION

    def test_resolved_actions_without_investigator_return_to_open(self):
        result = status_after_actions_resolved(
            IncidentStatus.ACTIONS_IN_PROGRESS, False, [ActionStatus.COMPLETE]
        )
        assert result == IncidentStatus.OPEN

    def test_one_open_action_keeps_actions_in_progress(self):
        result = status_after_actions_resolved(
            IncidentStatus.ACTIONS_IN_PROGRESS,
            True,
            [ActionStatus.COMPLETE, ActionStatus.BLOCKED],
        )
        assert result == IncidentStatus.ACTIONS_IN_PROGRESS

    def test_no_actions_keeps_status(self):
        result = status_after_actions_resolved(IncidentStatus.ACTIONS_IN_PROGRESS, True, [])
        assert result == IncidentStatus.ACTIONS_IN_PROGRESS


class TestDerivedStatusesAreAllowedMoves:
    """Every status a side effect implies must be reachable in the table."""

    @pytest.mark.parametrize("current", list(IncidentStatus))
    @pytest.mark.parametrize("assigned", [True, False])
    def test_investigator_assignment(self, current, assigned):
        result = status_after_investigator_assigned(current, assigned)

        assert can_transition("incident", current, result)

    @pytest.mark.parametrize("current", list(IncidentStatus))
    def test_action_created(self, current):
        assert can_transition("incident", current, status_after_action_created(current))

    @pytest.mark.parametrize("current", list(IncidentStatus))
    @pytest.mark.parametrize("has_investigator", [True, False])
    @pytest.mark.parametrize(
        "statuses",
        [
            [],
            [ActionStatus.COMPLETE],
            [ActionStatus.CANCELLED, ActionStatus.COMPLETE],
            [ActionStatus.COMPLETE, ActionStatus.OPEN],
        ],
    )
    def test_actions_resolved(self, current, has_investigator, statuses):
        result = status_after_actions_resolved(current, has_investigator, statuses)

        assert can_transition("incident", current, result)


class TestTimestampSideEffects:
    """Tests for started_at / completed_at stamping."""

    def test_completing_action_stamps_completed_at(self):
        # Arrange
        action = SimpleNamespace(status=ActionStatus.IN_PROGRESS, completed_at=None)

        # Act
        apply_action_status(action, ActionStatus.COMPLETE, now=NOW)

        # Assert
        assert action.status == ActionStatus.COMPLETE
        assert action.completed_at == NOW

    def test_reopening_action_clears_completed_at(self):
        action = SimpleNamespace(status=ActionStatus.COMPLETE, completed_at=NOW)

        apply_action_status(action, ActionStatus.IN_PROGRESS)

        assert action.completed_at is None

    def test_invalid_action_move_leaves_row_untouched(self):
        action = SimpleNamespace(status=ActionStatus.CANCELLED, completed_at=None)

        with pytest.raises(InvalidTransitionError):
            apply_action_status(action, ActionStatus.COMPLETE)

        assert action.status == ActionStatus.CANCELLED

    def test_starting_investigation_keeps_first_started_at(self):
        # Arrange
        earlier = datetime(2026, 3, 1, tzinfo=UTC)
        investigation = SimpleNamespace(
            status=InvestigationStatus.AWAITING_ACTIONS,
            started_at=earlier,
            completed_at=None,
        )

        # Act
        apply_investigation_status(investigation, InvestigationStatus.IN_PROGRESS, now=NOW)

        # Assert
        assert investigation.started_at == earlier

    def test_completing_investigation_stamps_completed_at(self):
        investigation = SimpleNamespace(
            status=InvestigationStatus.IN_PROGRESS, started_at=NOW, completed_at=None
        )

        apply_investigation_status(investigation, InvestigationStatus.COMPLETE, now=NOW)

        assert investigation.completed_at == NOW

    def test_initial_complete_status_stamps_both(self):
        investigation = SimpleNamespace(status=None, started_at=None, completed_at=None)

        apply_initial_investigation_status(investigation, InvestigationStatus.COMPLETE, now=NOW)

        assert investigation.started_at == NOW
        assert investigation.completed_at == NOW

    def test_apply_incident_status_returns_previous(self):
        incident = SimpleNamespace(status=IncidentStatus.OPEN)

        previous = apply_incident_status(incident, IncidentStatus.CANCELLED)

        assert previous == IncidentStatus.OPEN
        assert incident.status == IncidentStatus.CANCELLED
