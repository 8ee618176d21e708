"""Step-wise waypoint tracking on a fixed control period."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import numpy as np

from arm_controller.control.goal_state_machine import Goal
from arm_controller.errors import ConfigurationError, ErrorCode
from arm_controller.hardware.joint_interface import JointSet
from arm_controller.messages import JointTrajectory, JointTrajectoryControllerState, JointTrajectoryPoint


class StepOutcome(Enum):
    IDLE = 'idle'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    FAILED = 'failed'


@dataclass
class StepResult:
    outcome: StepOutcome
    state: JointTrajectoryControllerState
    waypoint_index: Optional[int] = None
    error: Optional[ConfigurationError] = None

    @property
    def message(self) -> str:
        return self.error.to_error_message() if self.error else ''


class TrajectoryExecutor:
    """Drives a joint set through the waypoints of one goal.

    Each ``step`` selects the first remaining waypoint whose ``time_from_start``
    is at or after the goal clock, slams every joint to that waypoint (no
    interpolation) and then advances the clock by one period. Joint state is
    read before the new targets are written.
    """

    def __init__(self, joints: JointSet, period: float):
        if period <= 0.0:
            raise ValueError(f'period must be positive, got {period}')
        self._joints = joints
        self._period = float(period)
        self._goal: Optional[Goal] = None
        self._goal_time = 0.0
        self._cursor = 0
        self._order: List[int] = []
        self._done = False
        self._validation_error: Optional[ConfigurationError] = None
        self._desired = np.array([joint.position for joint in joints], dtype=float)
        self._desired_vel = np.zeros(len(joints))
        self._desired_acc = np.zeros(len(joints))
        self._state = JointTrajectoryControllerState.sized(joints.names)

    # ------------------------------------------------------------------ getters
    @property
    def period(self) -> float:
        return self._period

    @property
    def goal(self) -> Optional[Goal]:
        return self._goal

    @property
    def goal_time(self) -> float:
        return self._goal_time

    @property
    def waypoint_index(self) -> int:
        return self._cursor

    @property
    def done(self) -> bool:
        return self._done

    @property
    def state(self) -> JointTrajectoryControllerState:
        return self._state

    # ------------------------------------------------------------------ lifecycle
    def start(self, goal: Goal) -> None:
        """Bind ``goal`` and reset the goal-relative clock to zero."""
        self._goal = goal
        self._goal_time = 0.0
        self._cursor = 0
        self._done = False
        self._order = []
        self._validation_error = None
        try:
            self._order = self._validate(goal.trajectory)
        except ConfigurationError as exc:
            self._validation_error = exc

    def clear(self) -> None:
        self._goal = None
        self._done = True

    def step(self) -> StepResult:
        if self._goal is None or self._done:
            return StepResult(StepOutcome.IDLE, self.observe())

        points = self._goal.trajectory.points
        if not points:
            self._done = True
            return StepResult(StepOutcome.COMPLETED, self.observe())

        if self._validation_error is not None:
            self._done = True
            return StepResult(StepOutcome.FAILED, self.observe(), error=self._validation_error)

        index = self._select_waypoint(self._goal_time)
        if index is None:
            self._done = True
            return StepResult(StepOutcome.COMPLETED, self.observe())

        self._cursor = index
        self._apply(points[index])
        self._goal_time += self._period
        return StepResult(StepOutcome.IN_PROGRESS, self._state, waypoint_index=index)

    def observe(self) -> JointTrajectoryControllerState:
        """Refresh the snapshot from the joints without writing any target."""
        actual, actual_vel = self._read_joints()
        self._state = self._snapshot(actual, actual_vel, time_from_start=self._goal_time)
        return self._state

    # ------------------------------------------------------------------ helpers
    def _validate(self, trajectory: JointTrajectory) -> List[int]:
        names = list(trajectory.joint_names)
        if len(set(names)) != len(names):
            raise ConfigurationError(ErrorCode.JOINT_NAME_MISMATCH, f'duplicate names in {names}')
        unknown = [name for name in names if name not in self._joints]
        missing = [name for name in self._joints.names if name not in names]
        if unknown or missing:
            raise ConfigurationError(
                ErrorCode.JOINT_NAME_MISMATCH,
                f'unknown={unknown} missing={missing}',
            )
        count = len(names)
        for idx, point in enumerate(trajectory.points):
            if len(point.positions) != count:
                raise ConfigurationError(
                    ErrorCode.JOINT_ARRAY_LENGTH_MISMATCH,
                    f'point {idx} has {len(point.positions)} positions for {count} joints',
                )
            for label, values in (('velocities', point.velocities), ('accelerations', point.accelerations)):
                if values and len(values) != count:
                    raise ConfigurationError(
                        ErrorCode.JOINT_ARRAY_LENGTH_MISMATCH,
                        f'point {idx} has {len(values)} {label} for {count} joints',
                    )
        return [self._joints.index_of(name) for name in names]

    def _select_waypoint(self, goal_time: float) -> Optional[int]:
        points = self._goal.trajectory.points
        for idx in range(self._cursor, len(points)):
            if goal_time <= points[idx].time_from_start:
                return idx
        return None

    def _apply(self, point: JointTrajectoryPoint) -> None:
        order = np.asarray(self._order, dtype=np.intp)
        desired = np.zeros(len(self._joints))
        desired_vel = np.zeros(len(self._joints))
        desired_acc = np.zeros(len(self._joints))
        desired[order] = point.positions
        if point.velocities:
            desired_vel[order] = point.velocities
        if point.accelerations:
            desired_acc[order] = point.accelerations

        actual, actual_vel = self._read_joints()

        for idx in self._order:
            self._joints[idx].set_position(float(desired[idx]))

        self._desired = desired
        self._desired_vel = desired_vel
        self._desired_acc = desired_acc
        self._state = self._snapshot(actual, actual_vel, time_from_start=point.time_from_start)

    def _read_joints(self):
        actual = np.array([joint.position for joint in self._joints], dtype=float)
        actual_vel = np.array([joint.velocity for joint in self._joints], dtype=float)
        return actual, actual_vel

    def _snapshot(self, actual, actual_vel, *, time_from_start: float) -> JointTrajectoryControllerState:
        count = len(self._joints)
        state = JointTrajectoryControllerState(joint_names=self._joints.names)
        state.desired = JointTrajectoryPoint(
            positions=self._desired.tolist(),
            velocities=self._desired_vel.tolist(),
            accelerations=self._desired_acc.tolist(),
            time_from_start=time_from_start,
        )
        state.actual = JointTrajectoryPoint(
            positions=actual.tolist(),
            velocities=actual_vel.tolist(),
            accelerations=[0.0] * count,
            time_from_start=self._goal_time,
        )
        state.error = JointTrajectoryPoint(
            positions=(actual - self._desired).tolist(),
            velocities=(actual_vel - self._desired_vel).tolist(),
            accelerations=[0.0] * count,
            time_from_start=self._goal_time,
        )
        return state
