"""Robot description loader for the simulated joint layout."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

import yaml

from arm_controller import constants
from arm_controller.utils.logging_utils import get_logger
from arm_controller.utils.path_utils import resolve_relative_path


@dataclass
class JointSpec:
    name: str
    joint_type: str = constants.DEFAULT_JOINT_TYPE
    min_position: Optional[float] = None
    max_position: Optional[float] = None
    initial_position: float = 0.0


@dataclass
class RobotDescription:
    """Structured robot description data parsed from YAML."""

    name: str = ''
    joints: List[JointSpec] = field(default_factory=list)
    controller_managers: List[str] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)

    def joint(self, joint_name: str) -> Optional[JointSpec]:
        for spec in self.joints:
            if spec.name == joint_name:
                return spec
        return None

    def joint_names(self) -> List[str]:
        return [spec.name for spec in self.joints]

    def iter_joints(self) -> Iterator[JointSpec]:
        return iter(self.joints)

    def __bool__(self) -> bool:
        return bool(self.joints)


class RobotDescriptionLoader:
    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    def load(self, path_str: str) -> RobotDescription:
        if not path_str:
            self._logger.warning('robot_description_file not configured, returning empty description')
            return RobotDescription()

        # The description is the base of the joint layout: fail fast when the
        # file cannot be found instead of starting a controller with no joints.
        try:
            path = resolve_relative_path(path_str, must_exist=True)
        except FileNotFoundError:
            self._logger.error(
                'Robot description file %s not found; please check the robot_description_file parameter.',
                path_str,
            )
            raise

        data = yaml.safe_load(path.read_text()) or {}
        description = self.parse(data)
        if description.joints:
            self._logger.info('Loaded robot_description (%d joints) from %s', len(description.joints), path)
        else:
            self._logger.warning('robot_description %s does not define any joints', path)
        return description

    def parse(self, data: dict) -> RobotDescription:
        robot_meta = data.get('robot', {}) or {}
        name = str(robot_meta.get('name', ''))
        managers = robot_meta.get('controller_managers')
        if managers is None:
            managers = [name or 'robot']
        elif isinstance(managers, str):
            managers = [managers]
        return RobotDescription(
            name=name,
            joints=self._parse_joints(data.get('joints', {}) or {}),
            controller_managers=[str(m) for m in managers],
            metadata=robot_meta,
        )

    def _parse_joints(self, joint_section) -> List[JointSpec]:
        entries = []
        if isinstance(joint_section, dict):
            for key, value in joint_section.items():
                if isinstance(value, dict):
                    if 'name' not in value:
                        value = dict(value)
                        value['name'] = key
                    entries.append(value)
        elif isinstance(joint_section, list):
            entries = [entry for entry in joint_section if isinstance(entry, dict)]

        joints: List[JointSpec] = []
        for entry in entries:
            raw_name = entry.get('name')
            if not raw_name:
                continue
            min_pos, max_pos = _extract_range(entry.get('position_limits_rad'))
            joints.append(
                JointSpec(
                    name=str(raw_name).strip(),
                    joint_type=str(entry.get('type', constants.DEFAULT_JOINT_TYPE)),
                    min_position=min_pos,
                    max_position=max_pos,
                    initial_position=_to_float(entry.get('initial_position')) or 0.0,
                )
            )
        return joints


def _extract_range(value) -> Tuple[Optional[float], Optional[float]]:
    if value is None:
        return None, None
    if isinstance(value, (list, tuple)):
        if len(value) >= 2:
            return _to_float(value[0]), _to_float(value[1])
        if len(value) == 1:
            return _to_float(value[0]), None
    if isinstance(value, dict):
        lower = value.get('min')
        if lower is None:
            lower = value.get('lower')
        upper = value.get('max')
        if upper is None:
            upper = value.get('upper')
        return _to_float(lower), _to_float(upper)
    return None, None


def _to_float(value) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None

