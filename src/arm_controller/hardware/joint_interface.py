"""Uniform accessor over simulated joint actuators."""
from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Protocol, Sequence, Tuple

from arm_controller import constants
from arm_controller.errors import ConfigurationError, ErrorCode


class JointInterface(Protocol):
    """Single actuator as seen by a controller.

    ``set_position`` is a direct kinematic write of the target; the simulation
    is expected to reach it before the next read.
    """

    @property
    def name(self) -> str: ...

    @property
    def joint_type(self) -> str: ...

    @property
    def position(self) -> float: ...

    @property
    def velocity(self) -> float: ...

    def set_position(self, value: float) -> None: ...


class JointSet:
    """Resolved, immutable set of actuated joints owned by one controller."""

    def __init__(self, joints: Sequence[JointInterface]):
        self._joints: Tuple[JointInterface, ...] = tuple(joints)
        self._names: Tuple[str, ...] = tuple(joint.name for joint in self._joints)
        self._index: Dict[str, int] = {}
        for idx, name in enumerate(self._names):
            if name in self._index:
                raise ConfigurationError(ErrorCode.DUPLICATE_JOINT_NAME, name)
            self._index[name] = idx

    @property
    def names(self) -> List[str]:
        return list(self._names)

    def index_of(self, name: str) -> int:
        try:
            return self._index[name]
        except KeyError:
            raise ConfigurationError(ErrorCode.JOINT_UNRESOLVED, name) from None

    def joint(self, name: str) -> JointInterface:
        return self._joints[self.index_of(name)]

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self._joints)

    def __iter__(self) -> Iterator[JointInterface]:
        return iter(self._joints)

    def __getitem__(self, idx: int) -> JointInterface:
        return self._joints[idx]


def is_actuated(joint: JointInterface) -> bool:
    return joint.joint_type not in constants.FIXED_JOINT_TYPES


def resolve_joints(candidates: Iterable[JointInterface]) -> JointSet:
    """Filter out fixed/non-actuated joints and freeze the remaining order."""
    return JointSet([joint for joint in candidates if is_actuated(joint)])
