"""
Message definitions exchanged with the transport layer.

Plain dataclasses mirroring the structure of:
- trajectory_msgs/JointTrajectory, JointTrajectoryPoint
- control_msgs/JointTrajectoryControllerState
- control_msgs/FollowJointTrajectory feedback and result
- controller_manager_msgs/ControllerState
- diagnostic_msgs/DiagnosticArray

Field names are kept identical to the ROS definitions so that ``to_dict``
output stays compatible with existing tooling.
"""
from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping

# === Primitives ===


@dataclass
class Header:
    seq: int = 0
    stamp: float = 0.0
    frame_id: str = ''

    def update(self) -> None:
        """Bump the sequence number and restamp with the current time."""
        self.seq += 1
        self.stamp = time.time()


# === Trajectory messages ===


@dataclass
class JointTrajectoryPoint:
    positions: List[float] = field(default_factory=list)
    velocities: List[float] = field(default_factory=list)
    accelerations: List[float] = field(default_factory=list)
    effort: List[float] = field(default_factory=list)
    time_from_start: float = 0.0  # seconds

    @classmethod
    def sized(cls, count: int) -> 'JointTrajectoryPoint':
        zeros = [0.0] * count
        return cls(positions=zeros[:], velocities=zeros[:], accelerations=zeros[:])

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'JointTrajectoryPoint':
        return cls(
            positions=[float(v) for v in data.get('positions', []) or []],
            velocities=[float(v) for v in data.get('velocities', []) or []],
            accelerations=[float(v) for v in data.get('accelerations', []) or []],
            effort=[float(v) for v in data.get('effort', []) or []],
            time_from_start=_duration_to_float(data.get('time_from_start', 0.0)),
        )


@dataclass
class JointTrajectory:
    header: Header = field(default_factory=Header)
    joint_names: List[str] = field(default_factory=list)
    points: List[JointTrajectoryPoint] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'JointTrajectory':
        if 'trajectory' in data:
            data = data['trajectory']
        return cls(
            joint_names=[str(name) for name in data.get('joint_names', []) or []],
            points=[JointTrajectoryPoint.from_dict(p) for p in data.get('points', []) or []],
        )


# === Controller state / action messages ===


@dataclass
class JointTrajectoryControllerState:
    header: Header = field(default_factory=Header)
    joint_names: List[str] = field(default_factory=list)
    desired: JointTrajectoryPoint = field(default_factory=JointTrajectoryPoint)
    actual: JointTrajectoryPoint = field(default_factory=JointTrajectoryPoint)
    error: JointTrajectoryPoint = field(default_factory=JointTrajectoryPoint)

    @classmethod
    def sized(cls, joint_names: List[str]) -> 'JointTrajectoryControllerState':
        count = len(joint_names)
        return cls(
            joint_names=list(joint_names),
            desired=JointTrajectoryPoint.sized(count),
            actual=JointTrajectoryPoint.sized(count),
            error=JointTrajectoryPoint.sized(count),
        )


@dataclass
class FollowJointTrajectoryFeedback(JointTrajectoryControllerState):
    """Action feedback; same layout as the controller state."""


@dataclass
class FollowJointTrajectoryResult:
    # Constants
    SUCCESSFUL = 0
    INVALID_GOAL = -1
    INVALID_JOINTS = -2
    OLD_HEADER_TIMESTAMP = -3
    PATH_TOLERANCE_VIOLATED = -4
    GOAL_TOLERANCE_VIOLATED = -5

    error_code: int = SUCCESSFUL
    error_string: str = ''


# === Controller manager messages ===


@dataclass
class HardwareInterfaceResources:
    hardware_interface: str = ''
    resources: List[str] = field(default_factory=list)


@dataclass
class ControllerStateInfo:
    name: str = ''
    state: str = ''
    type: str = ''
    claimed_resources: List[HardwareInterfaceResources] = field(default_factory=list)


# === Diagnostics ===


@dataclass
class DiagnosticStatus:
    OK = 0
    WARN = 1
    ERROR = 2
    STALE = 3

    level: int = OK
    name: str = ''
    message: str = ''
    hardware_id: str = ''
    values: Dict[str, str] = field(default_factory=dict)


@dataclass
class DiagnosticArray:
    header: Header = field(default_factory=Header)
    status: List[DiagnosticStatus] = field(default_factory=list)


def to_dict(message) -> Dict[str, Any]:
    """Convert any message dataclass into plain dict/list values."""
    return asdict(message)


def _duration_to_float(value) -> float:
    if isinstance(value, Mapping):
        sec = value.get('sec', value.get('secs', 0))
        nanosec = value.get('nanosec', value.get('nsecs', 0))
        return float(sec) + float(nanosec) / 1e9
    return float(value or 0.0)
