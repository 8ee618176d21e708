"""Unit tests for diagnostics and state/result publishing."""
import unittest

from arm_controller.control.diagnostics import DiagnosticsReporter
from arm_controller.control.goal_state_machine import Goal, GoalStatus
from arm_controller.control.state_publisher import StatePublisher, build_result
from arm_controller.errors import ErrorCode
from arm_controller.messages import (
    DiagnosticStatus,
    FollowJointTrajectoryResult,
    JointTrajectory,
    JointTrajectoryControllerState,
)
from arm_controller.transport.local_bus import LocalActionEndpoint, LocalTransport


class _Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def _goal(status, source='action', code=None, text=''):
    goal = Goal(goal_id='g1', trajectory=JointTrajectory(), source=source)
    goal.status = status
    goal.error_code = code
    goal.status_text = text
    return goal


class TestBuildResult(unittest.TestCase):
    def test_success(self):
        """Test SUCCEEDED maps to SUCCESSFUL."""
        result = build_result(_goal(GoalStatus.SUCCEEDED))
        self.assertEqual(result.error_code, FollowJointTrajectoryResult.SUCCESSFUL)
        self.assertEqual(result.error_string, 'Finished arm control movement')

    def test_joint_errors_map_to_invalid_joints(self):
        """Test joint configuration aborts map to INVALID_JOINTS."""
        result = build_result(_goal(GoalStatus.ABORTED, code=ErrorCode.JOINT_ARRAY_LENGTH_MISMATCH))
        self.assertEqual(result.error_code, FollowJointTrajectoryResult.INVALID_JOINTS)

    def test_other_aborts_map_to_invalid_goal(self):
        result = build_result(_goal(GoalStatus.ABORTED, text='Controller stopped'))
        self.assertEqual(result.error_code, FollowJointTrajectoryResult.INVALID_GOAL)
        self.assertEqual(result.error_string, 'Controller stopped')

    def test_preempted_and_canceled(self):
        """Preempted and canceled goals report PATH_TOLERANCE_VIOLATED."""
        for status in (GoalStatus.PREEMPTED, GoalStatus.CANCELED):
            result = build_result(_goal(status))
            self.assertEqual(result.error_code, FollowJointTrajectoryResult.PATH_TOLERANCE_VIOLATED)


class TestStatePublisher(unittest.TestCase):
    def setUp(self):
        self.transport = LocalTransport()
        self.transport.advertise('state', JointTrajectoryControllerState)
        self.endpoint = LocalActionEndpoint()
        self.endpoint.initialize()
        self.diagnostics = DiagnosticsReporter('arm_controller')
        self.publisher = StatePublisher(self.transport, self.endpoint, 'state', self.diagnostics)

    def test_publish_failure_is_reported(self):
        self.transport.unadvertise('state')

        self.assertFalse(self.publisher.publish_state(JointTrajectoryControllerState()))

        self.assertEqual(self.publisher.failure_count, 1)
        self.assertEqual(self.diagnostics.status('state_publisher').level, DiagnosticStatus.WARN)

    def test_sequence_increments(self):
        """Test state header sequence increases per publish."""
        received = []
        self.transport.bus.subscribe('state', received.append)

        self.publisher.publish_state(JointTrajectoryControllerState())
        self.publisher.publish_state(JointTrajectoryControllerState())

        self.assertEqual([msg.header.seq for msg in received], [1, 2])
        self.assertEqual(self.publisher.published_count, 2)

    def test_feedback_only_for_action_goals(self):
        """Test topic goals get no action feedback."""
        state = JointTrajectoryControllerState.sized(['j0'])

        self.assertTrue(self.publisher.publish_feedback(_goal(GoalStatus.ACTIVE), state))
        self.assertFalse(self.publisher.publish_feedback(_goal(GoalStatus.ACTIVE, source='topic'), state))

        goal_id, feedback = self.endpoint.feedback[0]
        self.assertEqual(goal_id, 'g1')
        self.assertEqual(feedback.joint_names, ['j0'])
        self.assertIsNot(feedback.desired, state.desired)

    def test_result_routed_by_status(self):
        self.assertTrue(self.publisher.publish_result(_goal(GoalStatus.CANCELED, text='Canceled by client')))
        self.assertFalse(self.publisher.publish_result(_goal(GoalStatus.ACTIVE)))
        self.assertFalse(self.publisher.publish_result(_goal(GoalStatus.SUCCEEDED, source='topic')))

        self.assertEqual(len(self.endpoint.results), 1)
        self.assertEqual(self.endpoint.results[0].status, 'canceled')
        self.assertEqual(self.endpoint.results[0].text, 'Canceled by client')


class TestDiagnosticsReporter(unittest.TestCase):
    def setUp(self):
        self.clock = _Clock()
        self.reporter = DiagnosticsReporter('arm_controller', topic='/diagnostics', period=1.0, clock=self.clock)
        self.transport = LocalTransport()
        self.received = []
        self.transport.bus.subscribe('/diagnostics', self.received.append)

    def test_report_keeps_latest_per_key(self):
        self.reporter.report('goal', DiagnosticStatus.OK, 'first')
        status = self.reporter.report('goal', DiagnosticStatus.WARN, 'second', goal_id='g1')

        self.assertEqual(self.reporter.statuses, [status])
        self.assertEqual(status.name, 'arm_controller/goal')
        self.assertEqual(status.values, {'goal_id': 'g1'})

    def test_publish_is_latched(self):
        """Test diagnostics publish at most once per period unless forced."""
        self.reporter.report('goal', DiagnosticStatus.OK, 'ok')
        self.assertFalse(self.reporter.publish())

        self.reporter.attach(self.transport)
        self.assertTrue(self.reporter.publish())
        self.assertFalse(self.reporter.publish())
        self.assertTrue(self.reporter.publish(force=True))

        self.clock.now += 1.0
        self.assertTrue(self.reporter.publish())
        self.assertEqual(len(self.received), 3)
        self.assertEqual(self.received[-1].status[0].message, 'ok')

    def test_attach_twice_keeps_latch(self):
        """Re-attaching the same transport does not reset the publish latch."""
        self.reporter.attach(self.transport)
        self.assertTrue(self.reporter.publish())

        self.reporter.attach(self.transport)

        self.assertTrue(self.reporter.attached)
        self.assertFalse(self.reporter.publish())
        self.assertEqual(len(self.received), 1)

    def test_detach_and_failed_publish(self):
        self.reporter.attach(self.transport)
        self.transport.available = False

        self.assertFalse(self.reporter.publish())

        self.transport.available = True
        self.reporter.detach()
        self.assertNotIn('/diagnostics', self.transport.advertised_topics)
        self.assertFalse(self.reporter.publish())


if __name__ == '__main__':
    unittest.main()
