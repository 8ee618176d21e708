"""
In-process publish/subscribe bus and action endpoint.

Synchronous delivery on the publisher's thread, mirroring the middleware
contract closely enough to run controllers without ROS 2 (tests, replay CLI).
"""
from __future__ import annotations

import itertools
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from arm_controller.errors import ErrorCode, TransportError
from arm_controller.messages import (
    FollowJointTrajectoryFeedback,
    FollowJointTrajectoryResult,
    JointTrajectory,
)
from arm_controller.transport.interfaces import (
    CancelHandler,
    CancelResponse,
    GoalHandler,
    GoalResponse,
    MessageHandler,
)
from arm_controller.utils.logging_utils import get_logger


class MessageBus:
    def __init__(self):
        self._subscribers: Dict[str, List[MessageHandler]] = defaultdict(list)
        self._lock = threading.Lock()
        self._logger = get_logger(__name__)

    def subscribe(self, topic: str, callback: MessageHandler) -> None:
        """Subscribe to a topic."""
        with self._lock:
            self._subscribers[topic].append(callback)

    def unsubscribe(self, topic: str, callback: MessageHandler) -> None:
        with self._lock:
            callbacks = self._subscribers.get(topic, [])
            if callback in callbacks:
                callbacks.remove(callback)

    def publish(self, topic: str, message: Any) -> None:
        """Publish a message to a topic (synchronous delivery)."""
        with self._lock:
            # Copy list to avoid modification during iteration
            callbacks = list(self._subscribers.get(topic, []))

        for callback in callbacks:
            try:
                callback(message)
            except Exception as exc:
                self._logger.error('Exception in callback for %s: %s', topic, exc)


class LocalTransport:
    """Bus-backed implementation of the ``Transport`` protocol."""

    def __init__(self, bus: Optional[MessageBus] = None, *, available: bool = True):
        self.bus = bus or MessageBus()
        self.available = available
        self._subscriptions: Dict[str, MessageHandler] = {}
        self._advertised: Dict[str, type] = {}

    def is_available(self) -> bool:
        return self.available

    @property
    def subscribed_topics(self) -> List[str]:
        return list(self._subscriptions)

    @property
    def advertised_topics(self) -> List[str]:
        return list(self._advertised)

    def subscribe(self, topic: str, msg_type: type, handler: MessageHandler) -> None:
        self._require_available()
        if topic in self._subscriptions:
            self.bus.unsubscribe(topic, self._subscriptions[topic])
        self._subscriptions[topic] = handler
        self.bus.subscribe(topic, handler)

    def unsubscribe(self, topic: str) -> None:
        handler = self._subscriptions.pop(topic, None)
        if handler is not None:
            self.bus.unsubscribe(topic, handler)

    def advertise(self, topic: str, msg_type: type) -> None:
        self._require_available()
        self._advertised[topic] = msg_type

    def unadvertise(self, topic: str) -> None:
        self._advertised.pop(topic, None)

    def publish(self, topic: str, message: Any) -> None:
        self._require_available()
        if topic not in self._advertised:
            raise TransportError(ErrorCode.PUBLISH_FAILED, f'topic {topic} not advertised')
        self.bus.publish(topic, message)

    def _require_available(self) -> None:
        if not self.available:
            raise TransportError(ErrorCode.TRANSPORT_UNAVAILABLE)


@dataclass
class ActionResultRecord:
    goal_id: str
    status: str
    result: FollowJointTrajectoryResult
    text: str


class LocalActionEndpoint:
    """In-process action server endpoint with small client helpers."""

    def __init__(self, name: str = 'arm_controller'):
        self.name = name
        self._goal_handler: Optional[GoalHandler] = None
        self._cancel_handler: Optional[CancelHandler] = None
        self._initialized = False
        self._ids = itertools.count(1)
        self.accepted: List[str] = []
        self.feedback: List[Tuple[str, FollowJointTrajectoryFeedback]] = []
        self.results: List[ActionResultRecord] = []
        self._logger = get_logger(__name__)

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------ server side
    def on_goal_received(self, handler: GoalHandler) -> None:
        self._goal_handler = handler

    def on_cancel_received(self, handler: CancelHandler) -> None:
        self._cancel_handler = handler

    def initialize(self) -> None:
        self._initialized = True
        self._logger.info('Action endpoint %s initialized', self.name)

    def terminate(self) -> None:
        if self._initialized:
            self._logger.info('Action endpoint %s terminated', self.name)
        self._initialized = False
        self._goal_handler = None
        self._cancel_handler = None

    def accept_new_goal(self, goal_id: str) -> None:
        self.accepted.append(goal_id)

    def publish_feedback(self, goal_id: str, feedback: FollowJointTrajectoryFeedback) -> None:
        if not self._initialized:
            raise TransportError(ErrorCode.TRANSPORT_UNAVAILABLE, f'action {self.name} not initialized')
        self.feedback.append((goal_id, feedback))

    def set_succeeded(self, goal_id: str, result: FollowJointTrajectoryResult, text: str = '') -> None:
        self._record(goal_id, 'succeeded', result, text)

    def set_aborted(self, goal_id: str, result: FollowJointTrajectoryResult, text: str = '') -> None:
        self._record(goal_id, 'aborted', result, text)

    def set_canceled(self, goal_id: str, result: FollowJointTrajectoryResult, text: str = '') -> None:
        self._record(goal_id, 'canceled', result, text)

    def set_preempted(self, goal_id: str, result: FollowJointTrajectoryResult, text: str = '') -> None:
        self._record(goal_id, 'preempted', result, text)

    def result_for(self, goal_id: str) -> Optional[ActionResultRecord]:
        for record in self.results:
            if record.goal_id == goal_id:
                return record
        return None

    # ------------------------------------------------------------------ client side
    def send_goal(self, trajectory: JointTrajectory, goal_id: Optional[str] = None) -> Tuple[str, GoalResponse]:
        goal_id = goal_id or f'goal_{next(self._ids)}'
        if not self._initialized or self._goal_handler is None:
            self._logger.warning('Goal %s sent to uninitialized action %s', goal_id, self.name)
            return goal_id, GoalResponse.REJECT
        return goal_id, self._goal_handler(goal_id, trajectory)

    def cancel_goal(self, goal_id: Optional[str] = None) -> CancelResponse:
        if not self._initialized or self._cancel_handler is None:
            return CancelResponse.REJECT
        return self._cancel_handler(goal_id)

    def _record(self, goal_id: str, status: str, result: FollowJointTrajectoryResult, text: str) -> None:
        self.results.append(ActionResultRecord(goal_id=goal_id, status=status, result=result, text=text))
