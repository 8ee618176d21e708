"""Unit tests for the in-process transport."""
import unittest

from arm_controller.errors import ErrorCode, TransportError
from arm_controller.messages import FollowJointTrajectoryResult, JointTrajectory, JointTrajectoryControllerState
from arm_controller.transport.interfaces import CancelResponse, GoalResponse
from arm_controller.transport.local_bus import LocalActionEndpoint, LocalTransport, MessageBus


class TestMessageBus(unittest.TestCase):
    def test_failing_callback_does_not_block_others(self):
        """One raising subscriber does not starve the rest."""
        bus = MessageBus()
        received = []

        def _broken(_msg):
            raise RuntimeError('boom')

        bus.subscribe('topic', _broken)
        bus.subscribe('topic', received.append)
        bus.publish('topic', 'hello')

        self.assertEqual(received, ['hello'])

    def test_unsubscribe(self):
        bus = MessageBus()
        received = []
        bus.subscribe('topic', received.append)
        bus.unsubscribe('topic', received.append)
        bus.publish('topic', 'hello')
        self.assertEqual(received, [])


class TestLocalTransport(unittest.TestCase):
    def setUp(self):
        self.transport = LocalTransport()

    def test_publish_requires_advertise(self):
        """Test publishing on an unadvertised topic raises."""
        with self.assertRaises(TransportError) as ctx:
            self.transport.publish('state', JointTrajectoryControllerState())
        self.assertEqual(ctx.exception.code, ErrorCode.PUBLISH_FAILED)

    def test_unavailable_transport_raises(self):
        self.transport.available = False
        with self.assertRaises(TransportError) as ctx:
            self.transport.advertise('state', JointTrajectoryControllerState)
        self.assertEqual(ctx.exception.code, ErrorCode.TRANSPORT_UNAVAILABLE)

    def test_subscribe_replaces_handler(self):
        first, second = [], []
        self.transport.subscribe('cmd', JointTrajectory, first.append)
        self.transport.subscribe('cmd', JointTrajectory, second.append)

        self.transport.bus.publish('cmd', 'msg')

        self.assertEqual(first, [])
        self.assertEqual(second, ['msg'])

    def test_round_trip(self):
        received = []
        self.transport.advertise('state', JointTrajectoryControllerState)
        self.transport.bus.subscribe('state', received.append)
        message = JointTrajectoryControllerState(joint_names=['j0'])

        self.transport.publish('state', message)
        self.transport.unadvertise('state')

        self.assertEqual(received, [message])
        self.assertEqual(self.transport.advertised_topics, [])


class TestLocalActionEndpoint(unittest.TestCase):
    def setUp(self):
        self.endpoint = LocalActionEndpoint()

    def test_uninitialized_endpoint_rejects(self):
        _, response = self.endpoint.send_goal(JointTrajectory())
        self.assertEqual(response, GoalResponse.REJECT)
        self.assertEqual(self.endpoint.cancel_goal(), CancelResponse.REJECT)
        with self.assertRaises(TransportError):
            self.endpoint.publish_feedback('g1', None)

    def test_handlers_receive_requests(self):
        """Test goal and cancel requests reach the installed handlers."""
        goals = []
        self.endpoint.on_goal_received(lambda goal_id, traj: goals.append(goal_id) or GoalResponse.ACCEPT)
        self.endpoint.on_cancel_received(lambda goal_id: CancelResponse.ACCEPT)
        self.endpoint.initialize()

        goal_id, response = self.endpoint.send_goal(JointTrajectory())

        self.assertEqual(response, GoalResponse.ACCEPT)
        self.assertEqual(goals, [goal_id])
        self.assertEqual(self.endpoint.cancel_goal(goal_id), CancelResponse.ACCEPT)

    def test_results_are_recorded(self):
        """Test endpoint records terminal results per goal."""
        result = FollowJointTrajectoryResult(FollowJointTrajectoryResult.SUCCESSFUL, 'ok')
        self.endpoint.set_succeeded('g1', result, 'ok')
        self.endpoint.set_aborted('g2', result)

        self.assertEqual(self.endpoint.result_for('g1').status, 'succeeded')
        self.assertEqual(self.endpoint.result_for('g2').status, 'aborted')
        self.assertIsNone(self.endpoint.result_for('g3'))

    def test_terminate_drops_handlers(self):
        self.endpoint.on_goal_received(lambda goal_id, traj: GoalResponse.ACCEPT)
        self.endpoint.initialize()
        self.endpoint.terminate()

        _, response = self.endpoint.send_goal(JointTrajectory())
        self.assertEqual(response, GoalResponse.REJECT)
