"""Lifecycle of follow-trajectory goals for one controller."""
from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, List, Optional, Tuple

from arm_controller.errors import ErrorCode, ProtocolError
from arm_controller.messages import JointTrajectory
from arm_controller.transport.interfaces import CancelResponse, GoalResponse
from arm_controller.utils.logging_utils import get_logger


class GoalStatus(Enum):
    PENDING = 'pending'
    ACTIVE = 'active'
    PREEMPTED = 'preempted'
    SUCCEEDED = 'succeeded'
    ABORTED = 'aborted'
    CANCELED = 'canceled'

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({
    GoalStatus.PREEMPTED,
    GoalStatus.SUCCEEDED,
    GoalStatus.ABORTED,
    GoalStatus.CANCELED,
})

_ALLOWED = {
    GoalStatus.PENDING: {GoalStatus.ACTIVE, GoalStatus.CANCELED, GoalStatus.PREEMPTED},
    GoalStatus.ACTIVE: {GoalStatus.SUCCEEDED, GoalStatus.ABORTED, GoalStatus.CANCELED, GoalStatus.PREEMPTED},
}


@dataclass
class Goal:
    goal_id: str
    trajectory: JointTrajectory
    source: str = 'action'
    status: GoalStatus = GoalStatus.PENDING
    status_text: str = ''
    error_code: Optional[ErrorCode] = None
    created_at: float = field(default_factory=time.time)
    accepted_at: Optional[float] = None

    @property
    def joint_names(self) -> List[str]:
        return list(self.trajectory.joint_names)

    def transition(self, new_status: GoalStatus, text: str = '') -> bool:
        """Move to ``new_status`` if allowed; terminal goals never change again."""
        if new_status not in _ALLOWED.get(self.status, ()):
            return False
        self.status = new_status
        if text:
            self.status_text = text
        if new_status is GoalStatus.ACTIVE:
            self.accepted_at = time.time()
        return True


class GoalStateMachine:
    """Owns the pending/current goal; every reader goes through this object.

    Submissions are latched and only become ACTIVE in ``activate_pending``,
    which the controller calls at a tick boundary. Cancellation is cooperative:
    it flips status immediately and the executor notices on its next tick.
    """

    def __init__(self, *, preempt_active_goal: bool = True):
        self._lock = threading.Lock()
        self._preempt = preempt_active_goal
        self._accepting = False
        self._pending: Optional[Goal] = None
        self._current: Optional[Goal] = None
        self._finished: Deque[Goal] = deque()
        self._last_rejection: Optional[ProtocolError] = None
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------ getters
    @property
    def current_goal(self) -> Optional[Goal]:
        with self._lock:
            return self._current

    @property
    def pending_goal(self) -> Optional[Goal]:
        with self._lock:
            return self._pending

    @property
    def status(self) -> Optional[GoalStatus]:
        with self._lock:
            return self._current.status if self._current else None

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._current is not None and self._current.status is GoalStatus.ACTIVE

    @property
    def last_rejection(self) -> Optional[ProtocolError]:
        """Most recent refused goal or cancel request, if any."""
        return self._last_rejection

    @property
    def accepting(self) -> bool:
        return self._accepting

    def set_accepting(self, accepting: bool) -> None:
        with self._lock:
            self._accepting = accepting

    # ------------------------------------------------------------------ requests
    def submit_goal(self, goal: Goal) -> GoalResponse:
        with self._lock:
            if not self._accepting:
                self._reject(ErrorCode.GOAL_WHILE_STOPPED, f'goal {goal.goal_id}')
                return GoalResponse.REJECT
            busy = self._pending is not None or (
                self._current is not None and self._current.status is GoalStatus.ACTIVE
            )
            if busy and not self._preempt:
                self._reject(ErrorCode.GOAL_WHILE_BUSY, f'goal {goal.goal_id}')
                return GoalResponse.REJECT
            if self._pending is not None:
                self._finish(self._pending, GoalStatus.PREEMPTED, f'Superseded by goal {goal.goal_id}')
            goal.status = GoalStatus.PENDING
            self._pending = goal
        self._logger.info('Goal %s latched (%d points, source=%s)',
                          goal.goal_id, len(goal.trajectory.points), goal.source)
        return GoalResponse.ACCEPT

    def cancel(self, goal_id: Optional[str] = None) -> CancelResponse:
        """Cancel the pending/active goal (or only ``goal_id``); answered synchronously."""
        canceled: List[str] = []
        with self._lock:
            if self._pending is not None and goal_id in (None, self._pending.goal_id):
                self._finish(self._pending, GoalStatus.CANCELED, 'Canceled before activation')
                canceled.append(self._pending.goal_id)
                self._pending = None
            current = self._current
            if (
                current is not None
                and current.status is GoalStatus.ACTIVE
                and goal_id in (None, current.goal_id)
            ):
                self._finish(current, GoalStatus.CANCELED, 'Canceled by client')
                canceled.append(current.goal_id)

        if not canceled:
            self._reject(ErrorCode.CANCEL_WITHOUT_GOAL, f'cancel {goal_id or "<any>"}')
            return CancelResponse.REJECT
        self._logger.info('Cancel accepted for %s', ', '.join(canceled))
        return CancelResponse.ACCEPT

    # ------------------------------------------------------------------ tick-side
    def activate_pending(self) -> Tuple[Optional[Goal], Optional[Goal]]:
        """Promote the latched goal to ACTIVE; returns ``(activated, preempted)``."""
        with self._lock:
            goal = self._pending
            if goal is None:
                return None, None
            self._pending = None
            preempted = None
            if self._current is not None and self._current.status is GoalStatus.ACTIVE:
                preempted = self._current
                self._finish(preempted, GoalStatus.PREEMPTED, f'Preempted by goal {goal.goal_id}')
            goal.transition(GoalStatus.ACTIVE)
            self._current = goal
        return goal, preempted

    def succeed(self, goal: Goal, text: str = '') -> bool:
        return self._end(goal, GoalStatus.SUCCEEDED, text)

    def abort(self, goal: Goal, text: str = '', code: Optional[ErrorCode] = None) -> bool:
        if code is not None:
            goal.error_code = code
        return self._end(goal, GoalStatus.ABORTED, text)

    def abort_all(self, text: str) -> None:
        """Terminate everything outstanding, e.g. when the controller stops."""
        with self._lock:
            if self._pending is not None:
                self._finish(self._pending, GoalStatus.CANCELED, text)
                self._pending = None
            if self._current is not None and self._current.status is GoalStatus.ACTIVE:
                self._finish(self._current, GoalStatus.ABORTED, text)

    def acknowledge_terminal(self) -> List[Goal]:
        """Drain goals that reached a terminal state and still need a result."""
        with self._lock:
            finished = list(self._finished)
            self._finished.clear()
        return finished

    # ------------------------------------------------------------------ helpers
    def _reject(self, code: ErrorCode, detail: str) -> None:
        self._last_rejection = ProtocolError(code, detail)
        self._logger.warning('Rejected: %s', self._last_rejection)

    def _end(self, goal: Goal, status: GoalStatus, text: str) -> bool:
        with self._lock:
            if goal is not self._current:
                self._logger.debug('Ignoring %s for stale goal %s', status.value, goal.goal_id)
                return False
            return self._finish(goal, status, text)

    def _finish(self, goal: Goal, status: GoalStatus, text: str) -> bool:
        previous = goal.status
        if not goal.transition(status, text):
            self._logger.debug('Goal %s: %s -> %s refused', goal.goal_id, previous.value, status.value)
            return False
        self._finished.append(goal)
        self._logger.info('Goal %s: %s -> %s %s', goal.goal_id, previous.value, status.value, text)
        return True


__all__ = ['Goal', 'GoalStatus', 'GoalStateMachine']
