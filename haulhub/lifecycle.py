"""Haul status state machine.

A haul moves pending -> assigned/in_progress -> completed, or is cancelled
before work starts. ``transition`` only decides legality; persisting the new
status and stamping ``updated_at`` belong to the caller's store.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from .errors import InvalidAssignment, InvalidTransition


class HaulStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class HaulAction(str, Enum):
    ASSIGN = "assign"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


TERMINAL_STATUSES: FrozenSet[HaulStatus] = frozenset({HaulStatus.COMPLETED, HaulStatus.CANCELLED})

# action -> (statuses the action is legal from, resulting status)
TRANSITIONS: Dict[HaulAction, Tuple[FrozenSet[HaulStatus], HaulStatus]] = {
    HaulAction.ASSIGN: (frozenset({HaulStatus.PENDING}), HaulStatus.ASSIGNED),
    HaulAction.START: (frozenset({HaulStatus.PENDING}), HaulStatus.IN_PROGRESS),
    HaulAction.COMPLETE: (frozenset({HaulStatus.IN_PROGRESS}), HaulStatus.COMPLETED),
    HaulAction.CANCEL: (
        frozenset({HaulStatus.PENDING, HaulStatus.ASSIGNED}),
        HaulStatus.CANCELLED,
    ),
}

StatusLike = Union[HaulStatus, str]
ActionLike = Union[HaulAction, str]


def _raw(value: Union[Enum, str, None]) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _coerce(current: StatusLike, action: ActionLike) -> Tuple[HaulStatus, HaulAction]:
    try:
        return HaulStatus(current), HaulAction(action)
    except ValueError:
        raise InvalidTransition(_raw(current), _raw(action)) from None


def transition(
    current: StatusLike,
    action: ActionLike,
    driver_id: Optional[int] = None,
) -> HaulStatus:
    """Return the status a haul moves to when *action* is applied from *current*.

    Raises ``InvalidTransition`` when the action is not legal from the current
    status (terminal statuses accept nothing) and ``InvalidAssignment`` when an
    otherwise legal ``assign`` carries no driver.
    """
    status, act = _coerce(current, action)
    sources, result = TRANSITIONS[act]
    if status not in sources:
        raise InvalidTransition(status.value, act.value)
    if act is HaulAction.ASSIGN and driver_id is None:
        raise InvalidAssignment(status.value)
    return result


def allowed_actions(current: StatusLike) -> List[HaulAction]:
    try:
        status = HaulStatus(current)
    except ValueError:
        return []
    return [action for action, (sources, _) in TRANSITIONS.items() if status in sources]


def is_terminal(status: StatusLike) -> bool:
    try:
        return HaulStatus(status) in TERMINAL_STATUSES
    except ValueError:
        return False


__all__ = [
    "HaulAction",
    "HaulStatus",
    "TERMINAL_STATUSES",
    "TRANSITIONS",
    "allowed_actions",
    "is_terminal",
    "transition",
]
