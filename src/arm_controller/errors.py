"""
Controller error codes.

Code layout: [EXXXX] description
- 1xxx: configuration errors (startup / goal acceptance)
- 2xxx: transport errors (publish / subscribe)
- 3xxx: protocol errors (requests that do not fit the current state)
- 9xxx: internal errors
"""

from enum import IntEnum
from typing import Optional


class ErrorCode(IntEnum):
    """Error code enumeration."""

    # 1xxx - configuration
    MANAGER_COUNT_INVALID = 1001            # not exactly one controller manager on the robot
    JOINT_NAME_MISMATCH = 1002              # goal joints do not match the controller joint set
    JOINT_ARRAY_LENGTH_MISMATCH = 1003      # waypoint array length differs from joint_names
    JOINT_UNRESOLVED = 1004                 # joint name could not be resolved
    DUPLICATE_JOINT_NAME = 1005             # two actuated joints share a name
    DUPLICATE_CONTROLLER = 1006             # controller name already registered
    CONTROLLER_NOT_REGISTERED = 1007        # manager has no such controller

    # 2xxx - transport
    TRANSPORT_UNAVAILABLE = 2001            # transport not connected
    PUBLISH_FAILED = 2002                   # publish raised
    SUBSCRIBE_FAILED = 2003                 # subscribe/advertise raised

    # 3xxx - protocol
    CANCEL_WITHOUT_GOAL = 3001              # cancel received with no pending/active goal
    GOAL_WHILE_STOPPED = 3002               # goal received while controller is not running
    GOAL_WHILE_BUSY = 3003                  # goal rejected because one is active and preemption is off
    EMPTY_COMMAND = 3004                    # command trajectory without points

    # 9xxx - internal
    INTERNAL_ERROR = 9001


ERROR_MESSAGES = {
    ErrorCode.MANAGER_COUNT_INVALID: 'exactly one controller manager is required per robot',
    ErrorCode.JOINT_NAME_MISMATCH: 'goal joint names do not match the controller joints',
    ErrorCode.JOINT_ARRAY_LENGTH_MISMATCH: 'waypoint array length does not match joint_names',
    ErrorCode.JOINT_UNRESOLVED: 'joint could not be resolved',
    ErrorCode.DUPLICATE_JOINT_NAME: 'duplicate joint name',
    ErrorCode.DUPLICATE_CONTROLLER: 'controller already registered',
    ErrorCode.CONTROLLER_NOT_REGISTERED: 'controller not registered',
    ErrorCode.TRANSPORT_UNAVAILABLE: 'transport unavailable',
    ErrorCode.PUBLISH_FAILED: 'publish failed',
    ErrorCode.SUBSCRIBE_FAILED: 'subscribe/advertise failed',
    ErrorCode.CANCEL_WITHOUT_GOAL: 'cancel received without a pending or active goal',
    ErrorCode.GOAL_WHILE_STOPPED: 'goal received while the controller is not running',
    ErrorCode.GOAL_WHILE_BUSY: 'goal rejected while another goal is active',
    ErrorCode.EMPTY_COMMAND: 'command trajectory has no points',
    ErrorCode.INTERNAL_ERROR: 'internal error',
}


class ControllerError(Exception):
    """Base exception carrying an :class:`ErrorCode`."""

    def __init__(self, code: ErrorCode, detail: Optional[str] = None):
        self.code = code
        self.detail = detail
        self.message = self._format_message()
        super().__init__(self.message)

    def _format_message(self) -> str:
        base_msg = ERROR_MESSAGES.get(self.code, 'unknown error')
        formatted = f'[E{self.code.value}] {base_msg}'
        if self.detail:
            formatted += f': {self.detail}'
        return formatted

    def to_error_message(self) -> str:
        """Return the string used in result/diagnostic messages."""
        return self.message


class ConfigurationError(ControllerError):
    """Startup or goal-acceptance configuration problem; halts only the affected controller."""


class TransportError(ControllerError):
    """Publish/subscribe failure; logged and never fatal to the control loop."""


class ProtocolError(ControllerError):
    """Request that does not fit the current state; rejected without a state change."""


__all__ = [
    'ErrorCode',
    'ERROR_MESSAGES',
    'ControllerError',
    'ConfigurationError',
    'TransportError',
    'ProtocolError',
]
