"""Parameter parsing helpers for sim_arm_controller."""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from arm_controller import constants
from arm_controller.utils.path_utils import resolve_relative_path


@dataclass
class ControllerParameters:
    controller_name: str = constants.CONTROLLER_NAME
    manager_name: str = ''
    update_rate_hz: float = constants.DEFAULT_UPDATE_RATE_HZ
    action_name: str = constants.ACTION_NAME
    command_topic_suffix: str = constants.COMMAND_TOPIC_SUFFIX
    state_topic_suffix: str = constants.STATE_TOPIC_SUFFIX
    diagnostics_topic: str = constants.DIAGNOSTICS_TOPIC
    diagnostics_rate: float = constants.DEFAULT_DIAGNOSTICS_RATE_HZ
    robot_description_file: str = 'robot_description.yaml'
    log_dir: str = 'log/arm_controller'
    preempt_active_goal: bool = True

    def __post_init__(self) -> None:
        self.update_rate_hz = float(self.update_rate_hz)
        self.diagnostics_rate = float(self.diagnostics_rate)
        self.preempt_active_goal = _to_bool(self.preempt_active_goal)
        if self.update_rate_hz <= 0.0:
            raise ValueError(f'update_rate_hz must be positive, got {self.update_rate_hz}')
        if self.diagnostics_rate <= 0.0:
            raise ValueError(f'diagnostics_rate must be positive, got {self.diagnostics_rate}')

    @property
    def period(self) -> float:
        """Control period in seconds."""
        return 1.0 / self.update_rate_hz

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'ControllerParameters':
        """Build parameters from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


def load_parameters(path_str: str) -> ControllerParameters:
    """Load ``ControllerParameters`` from a YAML file.

    Accepts a flat mapping, an ``arm_controller:`` section, or the ROS 2
    ``<node>: {ros__parameters: {...}}`` layout. Missing keys keep defaults.
    """
    path = resolve_relative_path(path_str, must_exist=True)
    data = yaml.safe_load(Path(path).read_text()) or {}
    return ControllerParameters.from_mapping(_unwrap(data))


def declare_and_get_parameters(node) -> ControllerParameters:
    """Declare ROS params (with defaults) and bundle them into ``ControllerParameters``."""
    defaults = ControllerParameters()

    def _declare(name: str, default):
        return node.declare_parameter(name, default).value

    values = {f.name: _declare(f.name, getattr(defaults, f.name)) for f in fields(ControllerParameters)}
    return ControllerParameters(**values)


def _unwrap(data: Mapping[str, Any]) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError('controller parameter file must contain a mapping')
    if constants.CONTROLLER_NAME in data and isinstance(data[constants.CONTROLLER_NAME], Mapping):
        data = data[constants.CONTROLLER_NAME]
    if 'ros__parameters' in data:
        return data['ros__parameters'] or {}
    # ``<node_name>: {ros__parameters: ...}`` with an arbitrary node name.
    if len(data) == 1:
        (only,) = data.values()
        if isinstance(only, Mapping) and 'ros__parameters' in only:
            return only['ros__parameters'] or {}
    return data


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {'1', 'true', 'yes', 'on'}
    return bool(value)
