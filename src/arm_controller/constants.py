"""
Controller-wide constants.

Names, type tags and topic suffixes are a compatibility surface with the
external controller-manager and MoveIt tooling; keep them stable.
"""

# =============================================================================
# Controller identity
# =============================================================================
CONTROLLER_NAME = 'arm_controller'
CONTROLLER_TYPE = 'position_controllers/JointTrajectoryController'
HARDWARE_INTERFACE = 'hardware_interface::PositionJointInterface'
SERIALIZATION_TYPE = 'controller.arm_controller'

# =============================================================================
# Topics / action names (prefixed with the controller manager name)
# =============================================================================
COMMAND_TOPIC_SUFFIX = '/arm_controller/command'
STATE_TOPIC_SUFFIX = '/arm_controller/state'
ACTION_NAME = '/arm_controller/follow_joint_trajectory'
DIAGNOSTICS_TOPIC = '/diagnostics'

# =============================================================================
# Joints
# =============================================================================
FIXED_JOINT_TYPES = frozenset({
    'joint.fixed',
    'joint.articulated_body.fixedjoint',
})
DEFAULT_JOINT_TYPE = 'joint.hinge'

# =============================================================================
# Timing
# =============================================================================
DEFAULT_UPDATE_RATE_HZ = 50.0
DEFAULT_DIAGNOSTICS_RATE_HZ = 1.0
