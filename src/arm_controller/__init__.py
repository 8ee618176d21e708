"""
Simulated arm controller core.

Provides:
- joint abstraction over simulated actuators
- follow-trajectory goal lifecycle (accept / preempt / cancel / result)
- step-wise trajectory execution on a fixed control period
- state, feedback and diagnostics publishing over a pluggable transport
"""

from arm_controller.control.arm_controller import ArmController, ControllerLifecycleState
from arm_controller.control.controller_manager import ControllerManager
from arm_controller.control.goal_state_machine import Goal, GoalStatus
from arm_controller.errors import ConfigurationError, ControllerError, ErrorCode

__version__ = '0.1.0'
__all__ = [
    'ArmController',
    'ControllerLifecycleState',
    'ControllerManager',
    'Goal',
    'GoalStatus',
    'ControllerError',
    'ConfigurationError',
    'ErrorCode',
]
