"""Joint trajectory controller for a simulated arm."""
from __future__ import annotations

import itertools
import math
import queue
import threading
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from arm_controller import constants
from arm_controller.config.parameter_schema import ControllerParameters
from arm_controller.control.controller_manager import ControllerManager, single_manager
from arm_controller.control.diagnostics import DiagnosticsReporter
from arm_controller.control.goal_state_machine import Goal, GoalStateMachine, GoalStatus
from arm_controller.control.state_publisher import SUCCESS_TEXT, StatePublisher
from arm_controller.control.trajectory_executor import StepOutcome, TrajectoryExecutor
from arm_controller.errors import ConfigurationError, ErrorCode, ProtocolError
from arm_controller.hardware.joint_interface import JointInterface, JointSet, resolve_joints
from arm_controller.messages import (
    ControllerStateInfo,
    DiagnosticStatus,
    HardwareInterfaceResources,
    JointTrajectory,
    JointTrajectoryControllerState,
)
from arm_controller.transport.interfaces import CancelResponse, GoalResponse
from arm_controller.utils.logging_utils import get_logger

ManagerSource = Union[Sequence[ControllerManager], Callable[[], Iterable[ControllerManager]]]


class ControllerLifecycleState(Enum):
    STOPPED = 'stopped'
    INITIALIZING = 'initializing'
    RUNNING = 'running'


class ArmController:
    """Follows joint trajectories on a resolved set of simulated joints.

    The joint set is resolved once here; fixed joints are dropped.
    ``controller_managers`` is either the host's manager list or a callable
    returning it, read when the controller starts. All joint writes happen
    inside ``tick``; goal and cancel requests from other threads are latched
    and picked up at the next tick boundary.
    """

    def __init__(
        self,
        joints: Union[JointSet, Iterable[JointInterface]],
        controller_managers: ManagerSource,
        transport,
        action_endpoint,
        params: Optional[ControllerParameters] = None,
        *,
        diagnostics: Optional[DiagnosticsReporter] = None,
    ):
        self._params = params or ControllerParameters()
        self._joints = joints if isinstance(joints, JointSet) else resolve_joints(joints)
        self._manager_source = controller_managers
        self._transport = transport
        self._endpoint = action_endpoint
        self._logger = get_logger(__name__)
        self._diagnostics = diagnostics or DiagnosticsReporter(
            self._params.controller_name,
            topic=self._params.diagnostics_topic,
            period=1.0 / self._params.diagnostics_rate,
        )

        self._tick_lock = threading.RLock()
        self._lifecycle = ControllerLifecycleState.STOPPED
        self._goals = GoalStateMachine(preempt_active_goal=self._params.preempt_active_goal)
        self._executor = TrajectoryExecutor(self._joints, self._params.period)
        self._commands: 'queue.Queue[JointTrajectory]' = queue.Queue()
        self._command_ids = itertools.count(1)
        self._goal_ids = itertools.count(1)
        self._manager: Optional[ControllerManager] = None
        self._command_topic = ''
        self._state_topic = ''
        self._publisher: Optional[StatePublisher] = None
        self._startup_error: Optional[ConfigurationError] = None
        self._last_state = self._executor.state
        self._tick_count = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], joints, controller_managers, transport, action_endpoint,
                  **kwargs) -> 'ArmController':
        """Build a controller from the record written by ``to_dict``."""
        return cls(joints, controller_managers, transport, action_endpoint,
                   cls.parameters_from_dict(data), **kwargs)

    @staticmethod
    def parameters_from_dict(data: Mapping[str, Any],
                             base: Optional[ControllerParameters] = None) -> ControllerParameters:
        record_type = data.get('type', constants.SERIALIZATION_TYPE)
        if record_type != constants.SERIALIZATION_TYPE:
            raise ValueError(f'unexpected controller record type {record_type!r}')
        values = (base or ControllerParameters()).to_dict()
        if 'name' in data:
            values['controller_name'] = str(data['name'])
        if 'update_rate_hz' in data:
            values['update_rate_hz'] = data['update_rate_hz']
        return ControllerParameters(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.controller_name,
            'type': constants.SERIALIZATION_TYPE,
            'update_rate_hz': self._params.update_rate_hz,
        }

    # ------------------------------------------------------------------ getters
    @property
    def params(self) -> ControllerParameters:
        return self._params

    @property
    def controller_name(self) -> str:
        return self._params.controller_name

    @property
    def controller_type(self) -> str:
        return constants.CONTROLLER_TYPE

    @property
    def hardware_interface(self) -> str:
        return constants.HARDWARE_INTERFACE

    @property
    def joints(self) -> JointSet:
        return self._joints

    @property
    def joint_names(self) -> List[str]:
        return self._joints.names

    @property
    def claimed_resources(self) -> List[HardwareInterfaceResources]:
        return [HardwareInterfaceResources(hardware_interface=self.hardware_interface,
                                           resources=self.joint_names)]

    @property
    def lifecycle_state(self) -> ControllerLifecycleState:
        return self._lifecycle

    @property
    def is_running(self) -> bool:
        return self._lifecycle is ControllerLifecycleState.RUNNING

    @property
    def controller_state_info(self) -> ControllerStateInfo:
        return ControllerStateInfo(
            name=self.controller_name,
            state=self._lifecycle.value,
            type=self.controller_type,
            claimed_resources=self.claimed_resources,
        )

    @property
    def manager(self) -> Optional[ControllerManager]:
        return self._manager

    @property
    def command_topic(self) -> str:
        return self._command_topic

    @property
    def state_topic(self) -> str:
        return self._state_topic

    @property
    def diagnostics(self) -> DiagnosticsReporter:
        return self._diagnostics

    @property
    def current_goal(self) -> Optional[Goal]:
        return self._goals.current_goal

    @property
    def goal_status(self) -> Optional[GoalStatus]:
        return self._goals.status

    @property
    def goal_time(self) -> float:
        return self._executor.goal_time

    @property
    def startup_error(self) -> Optional[ConfigurationError]:
        return self._startup_error

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def last_state(self) -> JointTrajectoryControllerState:
        return self._last_state

    # ------------------------------------------------------------------ lifecycle
    def start(self) -> bool:
        """Register with the robot's controller manager and bring up the transport.

        Returns True once RUNNING, False while waiting for the transport.
        Raises ``ConfigurationError`` when the robot does not host exactly one
        controller manager; the controller then stays STOPPED.
        """
        with self._tick_lock:
            if self._lifecycle is not ControllerLifecycleState.STOPPED:
                return self.is_running

            managers = list(self._manager_source() if callable(self._manager_source) else self._manager_source)
            manager = single_manager(managers)
            try:
                if manager is None:
                    raise ConfigurationError(
                        ErrorCode.MANAGER_COUNT_INVALID,
                        f'{self.controller_name} found {len(managers)} controller managers',
                    )
                manager.register_controller(self)
            except ConfigurationError as exc:
                self._startup_error = exc
                self._diagnostics.report('startup', DiagnosticStatus.ERROR, exc.to_error_message())
                self._publish_startup_error()
                raise

            self._startup_error = None
            self._diagnostics.clear('startup')
            self._manager = manager
            self._command_topic = manager.name + self._params.command_topic_suffix
            self._state_topic = manager.name + self._params.state_topic_suffix
            self._executor = TrajectoryExecutor(self._joints, self._params.period)
            self._last_state = self._executor.state
            self._publisher = StatePublisher(self._transport, self._endpoint, self._state_topic, self._diagnostics)
            self._lifecycle = ControllerLifecycleState.INITIALIZING
            self._logger.info('%s initializing on %s with joints %s',
                              self.controller_name, manager.name, self.joint_names)

            if self._transport.is_available():
                self._initialize()
            else:
                self._logger.info('%s waiting for transport', self.controller_name)
            return self.is_running

    def load(self) -> bool:
        return self.start()

    def unload(self) -> None:
        self.stop()

    def stop(self) -> None:
        """Abort outstanding goals, release transport resources and go STOPPED."""
        with self._tick_lock:
            if self._lifecycle is ControllerLifecycleState.STOPPED:
                return
            self._goals.set_accepting(False)
            self._goals.abort_all('Controller stopped')
            self._flush_results()
            self._executor.clear()
            self._drain_queue()
            self._teardown_transport()
            self._diagnostics.detach()
            self._lifecycle = ControllerLifecycleState.STOPPED
            self._logger.info('%s stopped', self.controller_name)

    def destroy(self) -> None:
        self.stop()
        self._diagnostics.detach()
        if self._manager is not None:
            self._manager.unregister_controller(self.controller_name)
            self._manager = None

    def on_transport_connected(self) -> bool:
        with self._tick_lock:
            if self._lifecycle is ControllerLifecycleState.INITIALIZING:
                self._initialize()
            return self.is_running

    def on_transport_disconnected(self) -> None:
        self._logger.warning('%s lost its transport', self.controller_name)
        self.stop()

    # ------------------------------------------------------------------ requests
    def submit_goal(self, trajectory: JointTrajectory, goal_id: Optional[str] = None,
                    *, source: str = 'action') -> GoalResponse:
        """Submit a goal directly, bypassing the action endpoint client."""
        goal_id = goal_id or f'{self.controller_name}_goal_{next(self._goal_ids)}'
        return self._on_goal(goal_id, trajectory, source)

    def cancel(self, goal_id: Optional[str] = None) -> CancelResponse:
        return self._goals.cancel(goal_id)

    def _on_goal_received(self, goal_id: str, trajectory: JointTrajectory) -> GoalResponse:
        return self._on_goal(goal_id, trajectory, 'action')

    def _on_cancel_received(self, goal_id: Optional[str]) -> CancelResponse:
        return self._goals.cancel(goal_id)

    def _on_command_received(self, trajectory: JointTrajectory) -> None:
        if not trajectory.points:
            self._logger.warning('[E%d] Ignoring command on %s: trajectory has no points',
                                 ErrorCode.EMPTY_COMMAND, self._command_topic)
            return
        self._commands.put(trajectory)

    def _on_goal(self, goal_id: str, trajectory: JointTrajectory, source: str) -> GoalResponse:
        if not self.is_running:
            error = ProtocolError(ErrorCode.GOAL_WHILE_STOPPED,
                                  f'goal {goal_id}: {self.controller_name} is {self._lifecycle.value}')
            self._logger.warning('Rejected: %s', error)
            return GoalResponse.REJECT
        return self._goals.submit_goal(Goal(goal_id=goal_id, trajectory=trajectory, source=source))

    # ------------------------------------------------------------------ control loop
    def tick(self) -> bool:
        """Run one control period; returns False when the controller is not RUNNING."""
        with self._tick_lock:
            if self._lifecycle is ControllerLifecycleState.INITIALIZING and self._transport.is_available():
                self._initialize()
            if self._lifecycle is not ControllerLifecycleState.RUNNING:
                if self._startup_error is not None:
                    if not self._diagnostics.attached and self._transport.is_available():
                        self._diagnostics.attach(self._transport)
                    self._diagnostics.publish()
                return False
            self._tick_count += 1

            self._drain_commands()
            activated, _preempted = self._goals.activate_pending()
            if activated is not None:
                self._executor.start(activated)
                if activated.source == 'action':
                    self._accept_on_endpoint(activated)
            self._flush_results()

            goal = self._goals.current_goal
            was_active = goal is not None and goal.status is GoalStatus.ACTIVE
            if was_active and self._executor.goal is goal:
                state = self._step(goal)
            else:
                if self._executor.goal is not None:
                    self._executor.clear()
                state = self._executor.observe()

            self._last_state = state
            self._publisher.publish_state(state)
            if was_active and goal.status is GoalStatus.ACTIVE:
                self._publisher.publish_feedback(goal, state)
            self._flush_results()
            self._diagnostics.publish()
            return True

    def _step(self, goal: Goal) -> JointTrajectoryControllerState:
        result = self._executor.step()
        if result.outcome is StepOutcome.COMPLETED:
            self._goals.succeed(goal, SUCCESS_TEXT)
            self._diagnostics.report('goal', DiagnosticStatus.OK, f'goal {goal.goal_id} succeeded',
                                     goal_time=f'{self._executor.goal_time:.3f}')
        elif result.outcome is StepOutcome.FAILED:
            self._goals.abort(goal, result.message, result.error.code if result.error else None)
            self._diagnostics.report('goal', DiagnosticStatus.WARN,
                                     f'goal {goal.goal_id} aborted: {result.message}')
        return result.state

    def _drain_commands(self) -> None:
        for trajectory in self._drain_queue():
            goal_id = f'command_{next(self._command_ids)}'
            self._goals.submit_goal(Goal(goal_id=goal_id, trajectory=trajectory, source='topic'))

    def _drain_queue(self) -> List[JointTrajectory]:
        drained = []
        while True:
            try:
                drained.append(self._commands.get_nowait())
            except queue.Empty:
                return drained

    def _flush_results(self) -> None:
        for goal in self._goals.acknowledge_terminal():
            self._publisher.publish_result(goal)

    def _accept_on_endpoint(self, goal: Goal) -> None:
        try:
            self._endpoint.accept_new_goal(goal.goal_id)
        except Exception as exc:
            self._logger.warning('Endpoint failed to accept goal %s: %s', goal.goal_id, exc)

    # ------------------------------------------------------------------ transport
    def _initialize(self) -> bool:
        try:
            self._endpoint.on_goal_received(self._on_goal_received)
            self._endpoint.on_cancel_received(self._on_cancel_received)
            self._endpoint.initialize()
            self._transport.subscribe(self._command_topic, JointTrajectory, self._on_command_received)
            self._transport.advertise(self._state_topic, JointTrajectoryControllerState)
        except Exception as exc:
            self._logger.warning('[E%d] %s transport setup failed: %s',
                                 ErrorCode.SUBSCRIBE_FAILED, self.controller_name, exc)
            self._diagnostics.report('transport', DiagnosticStatus.WARN, f'transport setup failed: {exc}')
            self._teardown_transport()
            return False

        self._diagnostics.clear('transport')
        self._diagnostics.attach(self._transport)
        self._goals.set_accepting(True)
        self._lifecycle = ControllerLifecycleState.RUNNING
        self._logger.info('%s running (command=%s state=%s period=%.3fs)',
                          self.controller_name, self._command_topic, self._state_topic, self._params.period)
        return True

    def _publish_startup_error(self) -> None:
        # A controller that failed to start still owns the diagnostics channel.
        if self._transport.is_available():
            self._diagnostics.attach(self._transport)
            self._diagnostics.publish(force=True)

    def _teardown_transport(self) -> None:
        for action, topic in ((self._transport.unsubscribe, self._command_topic),
                              (self._transport.unadvertise, self._state_topic)):
            try:
                action(topic)
            except Exception as exc:
                self._logger.warning('Failed to release %s: %s', topic, exc)
        try:
            self._endpoint.terminate()
        except Exception as exc:
            self._logger.warning('Failed to terminate action endpoint: %s', exc)

    # ------------------------------------------------------------------ operator readout
    def status_summary(self) -> str:
        goal = self._goals.current_goal
        if goal is None:
            goal_line = 'goal: none'
        else:
            goal_line = f'goal: {goal.goal_id} [{goal.status.value}] t={self.goal_time:.2f}s'
            if goal.status_text:
                goal_line += f' ({goal.status_text})'
        lines = [f'{self.controller_name} [{self._lifecycle.value}]', goal_line]

        state = self._last_state
        for idx, name in enumerate(state.joint_names):
            actual = math.degrees(_value(state.actual.positions, idx))
            desired = math.degrees(_value(state.desired.positions, idx))
            error = math.degrees(_value(state.error.positions, idx))
            lines.append(f'  {name}: actual={actual:8.2f} desired={desired:8.2f} error={error:8.2f} deg')
        return '\n'.join(lines)


def _value(values: Sequence[float], idx: int) -> float:
    return values[idx] if idx < len(values) else 0.0
