"""rclpy implementation of the transport and action endpoint protocols."""
from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import rclpy
from builtin_interfaces.msg import Duration
from control_msgs.action import FollowJointTrajectory
from control_msgs.msg import JointTrajectoryControllerState as RosControllerState
from diagnostic_msgs.msg import DiagnosticArray as RosDiagnosticArray
from diagnostic_msgs.msg import DiagnosticStatus as RosDiagnosticStatus
from diagnostic_msgs.msg import KeyValue
from rclpy.action import ActionServer
from rclpy.action import CancelResponse as RosCancelResponse
from rclpy.action import GoalResponse as RosGoalResponse
from rclpy.callback_groups import ReentrantCallbackGroup
from trajectory_msgs.msg import JointTrajectory as RosJointTrajectory
from trajectory_msgs.msg import JointTrajectoryPoint as RosJointTrajectoryPoint

from arm_controller.errors import ErrorCode, TransportError
from arm_controller.messages import (
    DiagnosticArray,
    FollowJointTrajectoryFeedback,
    FollowJointTrajectoryResult,
    JointTrajectory,
    JointTrajectoryControllerState,
    JointTrajectoryPoint,
)
from arm_controller.transport.interfaces import CancelHandler, CancelResponse, GoalHandler, GoalResponse
from arm_controller.utils.logging_utils import get_logger

_QOS_DEPTH = 10
_RESULT_POLL_S = 0.1


# ------------------------------------------------------------------ conversion
def duration_to_float(duration: Duration) -> float:
    if duration is None:
        return 0.0
    return float(duration.sec) + float(duration.nanosec) / 1e9


def float_to_duration(value: float) -> Duration:
    msg = Duration()
    if value <= 0.0 or not math.isfinite(value):
        return msg
    msg.sec = int(value)
    msg.nanosec = int((value - msg.sec) * 1e9)
    return msg


def point_from_ros(msg: RosJointTrajectoryPoint) -> JointTrajectoryPoint:
    return JointTrajectoryPoint(
        positions=list(msg.positions),
        velocities=list(msg.velocities),
        accelerations=list(msg.accelerations),
        effort=list(msg.effort),
        time_from_start=duration_to_float(msg.time_from_start),
    )


def point_to_ros(point: JointTrajectoryPoint) -> RosJointTrajectoryPoint:
    msg = RosJointTrajectoryPoint()
    msg.positions = [float(v) for v in point.positions]
    msg.velocities = [float(v) for v in point.velocities]
    msg.accelerations = [float(v) for v in point.accelerations]
    msg.effort = [float(v) for v in point.effort]
    msg.time_from_start = float_to_duration(point.time_from_start)
    return msg


def trajectory_from_ros(msg: RosJointTrajectory) -> JointTrajectory:
    trajectory = JointTrajectory(joint_names=list(msg.joint_names))
    trajectory.header.frame_id = msg.header.frame_id
    trajectory.points = [point_from_ros(p) for p in msg.points]
    return trajectory


def trajectory_to_ros(trajectory: JointTrajectory) -> RosJointTrajectory:
    msg = RosJointTrajectory()
    msg.header.frame_id = trajectory.header.frame_id
    msg.joint_names = list(trajectory.joint_names)
    msg.points = [point_to_ros(p) for p in trajectory.points]
    return msg


def _fill_state(msg, state: JointTrajectoryControllerState, stamp) -> Any:
    msg.header.stamp = stamp
    msg.header.frame_id = state.header.frame_id
    msg.joint_names = list(state.joint_names)
    # Newer control_msgs renamed desired/actual to reference/feedback.
    if hasattr(msg, 'desired'):
        msg.desired = point_to_ros(state.desired)
        msg.actual = point_to_ros(state.actual)
    else:
        msg.reference = point_to_ros(state.desired)
        msg.feedback = point_to_ros(state.actual)
    msg.error = point_to_ros(state.error)
    return msg


def diagnostics_to_ros(array: DiagnosticArray, stamp) -> RosDiagnosticArray:
    msg = RosDiagnosticArray()
    msg.header.stamp = stamp
    for status in array.status:
        ros_status = RosDiagnosticStatus()
        ros_status.level = bytes([status.level])
        ros_status.name = status.name
        ros_status.message = status.message
        ros_status.hardware_id = status.hardware_id
        ros_status.values = [KeyValue(key=key, value=value) for key, value in status.values.items()]
        msg.status.append(ros_status)
    return msg


# ------------------------------------------------------------------ transport
class RosTransport:
    """Topics on an rclpy node; dataclass messages are converted at the boundary."""

    _ROS_TYPES = {
        JointTrajectory: RosJointTrajectory,
        JointTrajectoryControllerState: RosControllerState,
        DiagnosticArray: RosDiagnosticArray,
    }

    def __init__(self, node, *, qos_depth: int = _QOS_DEPTH):
        self._node = node
        self._qos_depth = qos_depth
        self._subscriptions: Dict[str, Any] = {}
        self._publishers: Dict[str, Any] = {}
        self._logger = get_logger(__name__)

    def is_available(self) -> bool:
        return rclpy.ok()

    def subscribe(self, topic: str, msg_type: type, handler) -> None:
        if msg_type is not JointTrajectory:
            raise TransportError(ErrorCode.SUBSCRIBE_FAILED, f'unsupported type {msg_type.__name__} for {topic}')
        self.unsubscribe(topic)

        def _callback(msg: RosJointTrajectory) -> None:
            handler(trajectory_from_ros(msg))

        self._subscriptions[topic] = self._node.create_subscription(
            RosJointTrajectory, topic, _callback, self._qos_depth,
        )
        self._logger.info('Subscribed to %s', topic)

    def unsubscribe(self, topic: str) -> None:
        subscription = self._subscriptions.pop(topic, None)
        if subscription is not None:
            self._node.destroy_subscription(subscription)

    def advertise(self, topic: str, msg_type: type) -> None:
        ros_type = self._ROS_TYPES.get(msg_type)
        if ros_type is None:
            raise TransportError(ErrorCode.SUBSCRIBE_FAILED, f'unsupported type {msg_type.__name__} for {topic}')
        if topic not in self._publishers:
            self._publishers[topic] = self._node.create_publisher(ros_type, topic, self._qos_depth)

    def unadvertise(self, topic: str) -> None:
        publisher = self._publishers.pop(topic, None)
        if publisher is not None:
            self._node.destroy_publisher(publisher)

    def publish(self, topic: str, message: Any) -> None:
        publisher = self._publishers.get(topic)
        if publisher is None:
            raise TransportError(ErrorCode.PUBLISH_FAILED, f'topic {topic} not advertised')
        stamp = self._node.get_clock().now().to_msg()
        if isinstance(message, JointTrajectoryControllerState):
            ros_msg = _fill_state(RosControllerState(), message, stamp)
        elif isinstance(message, DiagnosticArray):
            ros_msg = diagnostics_to_ros(message, stamp)
        elif isinstance(message, JointTrajectory):
            ros_msg = trajectory_to_ros(message)
        else:
            raise TransportError(ErrorCode.PUBLISH_FAILED, f'unsupported message {type(message).__name__}')
        publisher.publish(ros_msg)


# ------------------------------------------------------------------ action endpoint
@dataclass
class _ActiveGoal:
    goal_handle: Any
    done: threading.Event = field(default_factory=threading.Event)
    status: str = ''
    result: Optional[FollowJointTrajectoryResult] = None
    text: str = ''


class RosActionEndpoint:
    """``control_msgs/FollowJointTrajectory`` server bridged to the tick loop.

    The execute callback hands the goal to the controller and then blocks its
    executor thread until the controller reports a terminal result.
    """

    def __init__(self, node, action_name: str, *, callback_group=None):
        self._node = node
        self._action_name = action_name
        self._callback_group = callback_group or ReentrantCallbackGroup()
        self._server: Optional[ActionServer] = None
        self._goal_handler: Optional[GoalHandler] = None
        self._cancel_handler: Optional[CancelHandler] = None
        self._goals: Dict[str, _ActiveGoal] = {}
        self._lock = threading.Lock()
        self._logger = get_logger(__name__)

    @property
    def action_name(self) -> str:
        return self._action_name

    def on_goal_received(self, handler: GoalHandler) -> None:
        self._goal_handler = handler

    def on_cancel_received(self, handler: CancelHandler) -> None:
        self._cancel_handler = handler

    def initialize(self) -> None:
        if self._server is not None:
            return
        self._server = ActionServer(
            self._node,
            FollowJointTrajectory,
            self._action_name,
            execute_callback=self._execute,
            goal_callback=self._goal_callback,
            cancel_callback=self._cancel_callback,
            callback_group=self._callback_group,
        )
        self._logger.info('Action server %s ready', self._action_name)

    def terminate(self) -> None:
        with self._lock:
            waiting = list(self._goals.values())
        for entry in waiting:
            if not entry.done.is_set():
                result = FollowJointTrajectoryResult(FollowJointTrajectoryResult.INVALID_GOAL, 'Action server terminated')
                self._finish(entry, 'aborted', result, result.error_string)
        server, self._server = self._server, None
        if server is not None:
            server.destroy()
            self._logger.info('Action server %s destroyed', self._action_name)
        self._goal_handler = None
        self._cancel_handler = None

    def accept_new_goal(self, goal_id: str) -> None:
        self._logger.debug('Goal %s active on %s', goal_id, self._action_name)

    def publish_feedback(self, goal_id: str, feedback: FollowJointTrajectoryFeedback) -> None:
        with self._lock:
            entry = self._goals.get(goal_id)
        if entry is None:
            return
        stamp = self._node.get_clock().now().to_msg()
        msg = _fill_state(FollowJointTrajectory.Feedback(), feedback, stamp)
        entry.goal_handle.publish_feedback(msg)

    def set_succeeded(self, goal_id: str, result: FollowJointTrajectoryResult, text: str = '') -> None:
        self._set_terminal(goal_id, 'succeeded', result, text)

    def set_aborted(self, goal_id: str, result: FollowJointTrajectoryResult, text: str = '') -> None:
        self._set_terminal(goal_id, 'aborted', result, text)

    def set_canceled(self, goal_id: str, result: FollowJointTrajectoryResult, text: str = '') -> None:
        self._set_terminal(goal_id, 'canceled', result, text)

    def set_preempted(self, goal_id: str, result: FollowJointTrajectoryResult, text: str = '') -> None:
        self._set_terminal(goal_id, 'preempted', result, text)

    # ------------------------------------------------------------------ callbacks
    def _goal_callback(self, _goal_request) -> RosGoalResponse:
        # Accept here; the controller decides once the goal id is known.
        if self._goal_handler is None:
            return RosGoalResponse.REJECT
        return RosGoalResponse.ACCEPT

    def _cancel_callback(self, goal_handle) -> RosCancelResponse:
        if self._cancel_handler is None:
            return RosCancelResponse.REJECT
        response = self._cancel_handler(_goal_id(goal_handle))
        return RosCancelResponse.ACCEPT if response is CancelResponse.ACCEPT else RosCancelResponse.REJECT

    def _execute(self, goal_handle) -> FollowJointTrajectory.Result:
        goal_id = _goal_id(goal_handle)
        entry = _ActiveGoal(goal_handle=goal_handle)
        with self._lock:
            self._goals[goal_id] = entry

        try:
            handler = self._goal_handler
            response = handler(goal_id, trajectory_from_ros(goal_handle.request.trajectory)) if handler else GoalResponse.REJECT
            if response is not GoalResponse.ACCEPT:
                goal_handle.abort()
                return _result_to_ros(FollowJointTrajectoryResult(
                    FollowJointTrajectoryResult.INVALID_GOAL, 'Goal rejected by controller'))

            while not entry.done.wait(_RESULT_POLL_S):
                if not rclpy.ok():
                    goal_handle.abort()
                    return _result_to_ros(FollowJointTrajectoryResult(
                        FollowJointTrajectoryResult.INVALID_GOAL, 'Shutting down'))

            if entry.status == 'succeeded':
                goal_handle.succeed()
            elif entry.status == 'canceled' and goal_handle.is_cancel_requested:
                goal_handle.canceled()
            else:
                goal_handle.abort()
            return _result_to_ros(entry.result)
        finally:
            with self._lock:
                self._goals.pop(goal_id, None)

    # ------------------------------------------------------------------ helpers
    def _set_terminal(self, goal_id: str, status: str, result: FollowJointTrajectoryResult, text: str) -> None:
        with self._lock:
            entry = self._goals.get(goal_id)
        if entry is None:
            self._logger.debug('Result %s for unknown goal %s dropped', status, goal_id)
            return
        self._finish(entry, status, result, text)

    @staticmethod
    def _finish(entry: _ActiveGoal, status: str, result: FollowJointTrajectoryResult, text: str) -> None:
        entry.status = status
        entry.result = result
        entry.text = text
        entry.done.set()


def _goal_id(goal_handle) -> str:
    return bytes(goal_handle.goal_id.uuid).hex()


def _result_to_ros(result: Optional[FollowJointTrajectoryResult]) -> FollowJointTrajectory.Result:
    msg = FollowJointTrajectory.Result()
    if result is not None:
        msg.error_code = int(result.error_code)
        msg.error_string = result.error_string
    return msg
