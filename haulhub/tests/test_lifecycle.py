from __future__ import annotations

import itertools

import pytest

from haulhub.errors import InvalidAssignment, InvalidTransition, LifecycleError
from haulhub.lifecycle import (
    TERMINAL_STATUSES,
    HaulAction,
    HaulStatus,
    allowed_actions,
    is_terminal,
    transition,
)

LEGAL = {
    (HaulStatus.PENDING, HaulAction.ASSIGN): HaulStatus.ASSIGNED,
    (HaulStatus.PENDING, HaulAction.START): HaulStatus.IN_PROGRESS,
    (HaulStatus.IN_PROGRESS, HaulAction.COMPLETE): HaulStatus.COMPLETED,
    (HaulStatus.PENDING, HaulAction.CANCEL): HaulStatus.CANCELLED,
    (HaulStatus.ASSIGNED, HaulAction.CANCEL): HaulStatus.CANCELLED,
}


@pytest.mark.parametrize("status,action", list(itertools.product(HaulStatus, HaulAction)))
def test_transition_succeeds_only_for_table_entries(status: HaulStatus, action: HaulAction) -> None:
    if (status, action) in LEGAL:
        assert transition(status, action, driver_id=7) is LEGAL[(status, action)]
    else:
        with pytest.raises(InvalidTransition) as excinfo:
            transition(status, action, driver_id=7)
        assert excinfo.value.current_status == status.value
        assert excinfo.value.action == action.value


@pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES))
@pytest.mark.parametrize("action", list(HaulAction))
def test_terminal_statuses_accept_nothing(status: HaulStatus, action: HaulAction) -> None:
    with pytest.raises(InvalidTransition):
        transition(status, action, driver_id=1)
    assert allowed_actions(status) == []
    assert is_terminal(status)


def test_start_and_replay() -> None:
    assert transition("pending", "start") is HaulStatus.IN_PROGRESS
    with pytest.raises(InvalidTransition):
        transition("in_progress", "start")


def test_cancel_before_work_starts_only() -> None:
    assert transition("assigned", "cancel") is HaulStatus.CANCELLED
    with pytest.raises(InvalidTransition):
        transition("in_progress", "cancel")


def test_assign_requires_driver() -> None:
    with pytest.raises(InvalidAssignment) as excinfo:
        transition(HaulStatus.PENDING, HaulAction.ASSIGN)
    assert excinfo.value.current_status == "pending"
    assert isinstance(excinfo.value, LifecycleError)


def test_assign_checks_status_before_driver() -> None:
    with pytest.raises(InvalidTransition):
        transition(HaulStatus.COMPLETED, HaulAction.ASSIGN)


def test_assigned_haul_cannot_be_started() -> None:
    with pytest.raises(InvalidTransition):
        transition(HaulStatus.ASSIGNED, HaulAction.START)


def test_unknown_values_are_invalid_transitions() -> None:
    with pytest.raises(InvalidTransition) as excinfo:
        transition("archived", "start")
    assert excinfo.value.current_status == "archived"
    with pytest.raises(InvalidTransition):
        transition("pending", "teleport")


def test_allowed_actions() -> None:
    assert allowed_actions("pending") == [HaulAction.ASSIGN, HaulAction.START, HaulAction.CANCEL]
    assert allowed_actions("assigned") == [HaulAction.CANCEL]
    assert allowed_actions("in_progress") == [HaulAction.COMPLETE]
    assert allowed_actions("bogus") == []
    assert not is_terminal("pending")
    assert not is_terminal("bogus")
