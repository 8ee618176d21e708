"""State, feedback and result publishing for the arm controller."""
from __future__ import annotations

import copy
from typing import Optional

from arm_controller.control.diagnostics import DiagnosticsReporter
from arm_controller.control.goal_state_machine import Goal, GoalStatus
from arm_controller.errors import ErrorCode
from arm_controller.messages import (
    DiagnosticStatus,
    FollowJointTrajectoryFeedback,
    FollowJointTrajectoryResult,
    Header,
    JointTrajectoryControllerState,
)
from arm_controller.utils.logging_utils import get_logger

SUCCESS_TEXT = 'Finished arm control movement'

_JOINT_CONFIG_CODES = frozenset({
    ErrorCode.JOINT_NAME_MISMATCH,
    ErrorCode.JOINT_ARRAY_LENGTH_MISMATCH,
    ErrorCode.JOINT_UNRESOLVED,
})


def build_result(goal: Goal) -> FollowJointTrajectoryResult:
    """Map a terminal goal onto the FollowJointTrajectory result codes."""
    result = FollowJointTrajectoryResult()
    if goal.status is GoalStatus.SUCCEEDED:
        result.error_code = FollowJointTrajectoryResult.SUCCESSFUL
        result.error_string = goal.status_text or SUCCESS_TEXT
    elif goal.status is GoalStatus.ABORTED:
        if goal.error_code in _JOINT_CONFIG_CODES:
            result.error_code = FollowJointTrajectoryResult.INVALID_JOINTS
        else:
            result.error_code = FollowJointTrajectoryResult.INVALID_GOAL
        result.error_string = goal.status_text
    else:
        # Preempted or canceled mid-motion: the path was not followed to the end.
        result.error_code = FollowJointTrajectoryResult.PATH_TOLERANCE_VIOLATED
        result.error_string = goal.status_text
    return result


class StatePublisher:
    def __init__(
        self,
        transport,
        endpoint,
        state_topic: str,
        diagnostics: Optional[DiagnosticsReporter] = None,
    ):
        self._transport = transport
        self._endpoint = endpoint
        self._state_topic = state_topic
        self._diagnostics = diagnostics
        self._logger = get_logger(__name__)
        self._header = Header()
        self._published = 0
        self._failures = 0

    @property
    def state_topic(self) -> str:
        return self._state_topic

    @property
    def published_count(self) -> int:
        return self._published

    @property
    def failure_count(self) -> int:
        return self._failures

    def publish_state(self, state: JointTrajectoryControllerState) -> bool:
        """Publish one state sample; failures are logged and never raised."""
        self._header.update()
        state.header = copy.copy(self._header)
        try:
            self._transport.publish(self._state_topic, state)
        except Exception as exc:
            self._failures += 1
            self._logger.warning('State publish on %s failed: %s', self._state_topic, exc)
            if self._diagnostics is not None:
                self._diagnostics.report(
                    'state_publisher', DiagnosticStatus.WARN, 'state publish failed',
                    topic=self._state_topic, failures=self._failures, error=exc,
                )
            return False
        self._published += 1
        return True

    def publish_feedback(self, goal: Goal, state: JointTrajectoryControllerState) -> bool:
        if goal.source != 'action':
            return False
        feedback = FollowJointTrajectoryFeedback(
            header=copy.copy(state.header),
            joint_names=list(state.joint_names),
            desired=copy.deepcopy(state.desired),
            actual=copy.deepcopy(state.actual),
            error=copy.deepcopy(state.error),
        )
        try:
            self._endpoint.publish_feedback(goal.goal_id, feedback)
        except Exception as exc:
            self._logger.warning('Feedback for goal %s failed: %s', goal.goal_id, exc)
            return False
        return True

    def publish_result(self, goal: Goal) -> bool:
        """Deliver the terminal result of ``goal`` once; topic goals are only logged."""
        if goal.source != 'action':
            self._logger.info('Command %s finished: %s %s', goal.goal_id, goal.status.value, goal.status_text)
            return False

        result = build_result(goal)
        setter = {
            GoalStatus.SUCCEEDED: self._endpoint.set_succeeded,
            GoalStatus.ABORTED: self._endpoint.set_aborted,
            GoalStatus.CANCELED: self._endpoint.set_canceled,
            GoalStatus.PREEMPTED: self._endpoint.set_preempted,
        }.get(goal.status)
        if setter is None:
            self._logger.error('Goal %s is not terminal (%s); no result sent', goal.goal_id, goal.status.value)
            return False
        try:
            setter(goal.goal_id, result, result.error_string)
        except Exception as exc:
            self._logger.warning('Result for goal %s failed: %s', goal.goal_id, exc)
            return False
        return True
