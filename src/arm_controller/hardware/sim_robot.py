"""In-memory simulated robot used as the physics stand-in for controllers."""
from __future__ import annotations

import threading
from typing import List, Optional

from arm_controller import constants
from arm_controller.config.robot_description_loader import JointSpec, RobotDescription
from arm_controller.utils.logging_utils import get_logger


class SimulatedJoint:
    """Kinematic joint: targets written by a controller are reached on the next ``step``."""

    def __init__(
        self,
        name: str,
        *,
        joint_type: str = constants.DEFAULT_JOINT_TYPE,
        position: float = 0.0,
        min_position: Optional[float] = None,
        max_position: Optional[float] = None,
    ):
        self._name = name
        self._type = joint_type
        self._lock = threading.Lock()
        self._position = float(position)
        self._velocity = 0.0
        self._target: Optional[float] = None
        self._min = min_position
        self._max = max_position
        self.write_count = 0

    @classmethod
    def from_spec(cls, spec: JointSpec) -> 'SimulatedJoint':
        return cls(
            spec.name,
            joint_type=spec.joint_type,
            position=spec.initial_position,
            min_position=spec.min_position,
            max_position=spec.max_position,
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def joint_type(self) -> str:
        return self._type

    @property
    def position(self) -> float:
        with self._lock:
            return self._position

    @property
    def velocity(self) -> float:
        with self._lock:
            return self._velocity

    @property
    def target(self) -> Optional[float]:
        with self._lock:
            return self._target

    def set_position(self, value: float) -> None:
        with self._lock:
            self._target = float(value)
            self.write_count += 1

    def step(self, dt: float) -> None:
        with self._lock:
            if self._target is None:
                self._velocity = 0.0
                return
            new_position = self._clamp(self._target)
            self._velocity = (new_position - self._position) / dt if dt > 0.0 else 0.0
            self._position = new_position

    def _clamp(self, value: float) -> float:
        if self._min is not None and value < self._min:
            return self._min
        if self._max is not None and value > self._max:
            return self._max
        return value


class SimulatedRobot:
    """Per-robot host: its joints plus the controller managers attached to it."""

    def __init__(self, name: str = 'robot', joints: Optional[List[SimulatedJoint]] = None):
        self.name = name
        self._joints: List[SimulatedJoint] = list(joints or [])
        self._controller_managers: list = []
        self._logger = get_logger(__name__)

    @classmethod
    def from_description(cls, description: RobotDescription) -> 'SimulatedRobot':
        joints = [SimulatedJoint.from_spec(spec) for spec in description.iter_joints()]
        return cls(description.name or 'robot', joints)

    @property
    def joints(self) -> List[SimulatedJoint]:
        return list(self._joints)

    def joint(self, name: str) -> Optional[SimulatedJoint]:
        for joint in self._joints:
            if joint.name == name:
                return joint
        return None

    @property
    def controller_managers(self) -> list:
        return list(self._controller_managers)

    def attach_controller_manager(self, manager) -> None:
        self._controller_managers.append(manager)
        if len(self._controller_managers) > 1:
            self._logger.warning(
                'Robot %s now has %d controller managers; controllers will refuse to start',
                self.name,
                len(self._controller_managers),
            )

    def step(self, dt: float) -> None:
        """Advance the simulation by ``dt`` seconds."""
        for joint in self._joints:
            joint.step(dt)
