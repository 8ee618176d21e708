"""Replay a trajectory file against the simulated arm without ROS 2."""
from __future__ import annotations

import argparse
import math
import sys
from pathlib import Path
from typing import Optional, Sequence

import yaml

from arm_controller.config.parameter_schema import ControllerParameters, load_parameters
from arm_controller.config.robot_description_loader import RobotDescriptionLoader
from arm_controller.control.arm_controller import ArmController
from arm_controller.control.control_loop import ControlLoop, SimulationStep
from arm_controller.control.controller_manager import ControllerManager
from arm_controller.errors import ConfigurationError
from arm_controller.hardware.sim_robot import SimulatedRobot
from arm_controller.messages import JointTrajectory
from arm_controller.transport.interfaces import GoalResponse
from arm_controller.transport.local_bus import LocalActionEndpoint, LocalTransport
from arm_controller.utils.logging_utils import get_logger
from arm_controller.utils.path_utils import resolve_relative_path

LOGGER = get_logger(__name__)

# Ticks granted past the last waypoint before the replay gives up.
_EXTRA_TICKS = 10


def load_trajectory(path_str: str) -> JointTrajectory:
    path = resolve_relative_path(path_str, must_exist=True)
    data = yaml.safe_load(Path(path).read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError(f'{path} does not contain a trajectory mapping')
    return JointTrajectory.from_dict(data)


def _tick_budget(trajectory: JointTrajectory, period: float) -> int:
    last = max((point.time_from_start for point in trajectory.points), default=0.0)
    return int(math.ceil(last / period)) + _EXTRA_TICKS


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Replay a joint trajectory on the simulated arm')
    parser.add_argument('trajectory', help='Trajectory YAML with joint_names and points')
    parser.add_argument('--robot-description', default='robot_description.yaml',
                        help='Robot description YAML (joints and controller managers)')
    parser.add_argument('--params', help='Optional controller parameter YAML')
    parser.add_argument('--rate', type=float, help='Override update_rate_hz')
    parser.add_argument('--max-ticks', type=int, default=0,
                        help='Tick limit (default: trajectory duration plus a margin)')
    parser.add_argument('--summary', action='store_true', help='Print the joint readout after every tick')
    return parser.parse_args(argv)


def _main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        params = load_parameters(args.params) if args.params else ControllerParameters()
        if args.rate is not None:
            params = ControllerParameters(**{**params.to_dict(), 'update_rate_hz': args.rate})
        description = RobotDescriptionLoader().load(args.robot_description)
        trajectory = load_trajectory(args.trajectory)
    except (FileNotFoundError, ValueError) as exc:
        LOGGER.error('Replay setup failed: %s', exc)
        return 1

    robot = SimulatedRobot.from_description(description)
    for name in description.controller_managers:
        robot.attach_controller_manager(ControllerManager(name))
    endpoint = LocalActionEndpoint(params.action_name)
    controller = ArmController(robot.joints, robot.controller_managers, LocalTransport(), endpoint, params)
    try:
        controller.start()
    except ConfigurationError as exc:
        LOGGER.error('Controller refused to start: %s', exc)
        return 1

    try:
        goal_id, response = endpoint.send_goal(trajectory)
        if response is not GoalResponse.ACCEPT:
            LOGGER.error('Goal %s rejected', goal_id)
            return 1

        loop = ControlLoop(SimulationStep(robot, [controller], params.period), params.period, name='replay')
        budget = args.max_ticks or _tick_budget(trajectory, params.period)
        record = None
        for _ in range(budget):
            loop.run_ticks(1)
            if args.summary:
                print(controller.status_summary())
            record = endpoint.result_for(goal_id)
            if record is not None:
                break

        if record is None:
            LOGGER.warning('Goal %s still running after %d ticks; canceling', goal_id, budget)
            controller.cancel(goal_id)
            loop.run_ticks(1)
            record = endpoint.result_for(goal_id)

        print(controller.status_summary())
        if record is None:
            print(f'{goal_id}: no result')
            return 1
        print(f'{goal_id}: {record.status} (error_code={record.result.error_code}) {record.text}')
        return 0 if record.status == 'succeeded' else 1
    finally:
        controller.destroy()


def main() -> None:
    raise SystemExit(_main(sys.argv[1:]))


if __name__ == '__main__':
    main()
