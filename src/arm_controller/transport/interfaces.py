"""Narrow interfaces to the messaging collaborator.

The controller core only talks to these protocols; ``local_bus`` provides an
in-process implementation and ``ros_transport`` the rclpy one.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Optional, Protocol

from arm_controller.messages import (
    FollowJointTrajectoryFeedback,
    FollowJointTrajectoryResult,
    JointTrajectory,
)


class GoalResponse(Enum):
    ACCEPT = 'accept'
    REJECT = 'reject'


class CancelResponse(Enum):
    ACCEPT = 'accept'
    REJECT = 'reject'


MessageHandler = Callable[[Any], None]
GoalHandler = Callable[[str, JointTrajectory], GoalResponse]
CancelHandler = Callable[[Optional[str]], CancelResponse]


class Transport(Protocol):
    def is_available(self) -> bool: ...

    def subscribe(self, topic: str, msg_type: type, handler: MessageHandler) -> None: ...

    def unsubscribe(self, topic: str) -> None: ...

    def advertise(self, topic: str, msg_type: type) -> None: ...

    def unadvertise(self, topic: str) -> None: ...

    def publish(self, topic: str, message: Any) -> None: ...


class ActionEndpoint(Protocol):
    """Server side of the follow-trajectory action."""

    def on_goal_received(self, handler: GoalHandler) -> None: ...

    def on_cancel_received(self, handler: CancelHandler) -> None: ...

    def initialize(self) -> None: ...

    def terminate(self) -> None: ...

    def accept_new_goal(self, goal_id: str) -> None: ...

    def publish_feedback(self, goal_id: str, feedback: FollowJointTrajectoryFeedback) -> None: ...

    def set_succeeded(self, goal_id: str, result: FollowJointTrajectoryResult, text: str = '') -> None: ...

    def set_aborted(self, goal_id: str, result: FollowJointTrajectoryResult, text: str = '') -> None: ...

    def set_canceled(self, goal_id: str, result: FollowJointTrajectoryResult, text: str = '') -> None: ...

    def set_preempted(self, goal_id: str, result: FollowJointTrajectoryResult, text: str = '') -> None: ...
