"""Unit tests for the controller registry."""
import json
import unittest

from arm_controller.control.controller_manager import ControllerManager, single_manager
from arm_controller.errors import ConfigurationError, ErrorCode
from arm_controller.messages import ControllerStateInfo


class _StubController:
    def __init__(self, name, fail_load=False):
        self.controller_name = name
        self.calls = []
        self._fail_load = fail_load

    @property
    def controller_state_info(self):
        return ControllerStateInfo(name=self.controller_name, state='stopped', type='stub')

    def load(self):
        self.calls.append('load')
        if self._fail_load:
            raise ConfigurationError(ErrorCode.MANAGER_COUNT_INVALID)
        return True

    def unload(self):
        self.calls.append('unload')


class TestControllerManager(unittest.TestCase):
    def setUp(self):
        self.manager = ControllerManager('robot')

    def test_requires_name(self):
        with self.assertRaises(ValueError):
            ControllerManager('')

    def test_register_and_lookup(self):
        """Test registering and looking up a controller."""
        controller = _StubController('arm_controller')
        self.manager.register_controller(controller)
        self.manager.register_controller(controller)

        self.assertIs(self.manager.get_controller('arm_controller'), controller)
        self.assertEqual(self.manager.controller_names, ['arm_controller'])

    def test_duplicate_name_is_configuration_error(self):
        """Registering a second controller under one name fails."""
        self.manager.register_controller(_StubController('arm_controller'))

        with self.assertRaises(ConfigurationError) as ctx:
            self.manager.register_controller(_StubController('arm_controller'))
        self.assertEqual(ctx.exception.code, ErrorCode.DUPLICATE_CONTROLLER)

    def test_unknown_controller(self):
        with self.assertRaises(ConfigurationError) as ctx:
            self.manager.get_controller('gripper')
        self.assertEqual(ctx.exception.code, ErrorCode.CONTROLLER_NOT_REGISTERED)
        self.assertFalse(self.manager.load_controller('gripper'))
        self.assertFalse(self.manager.unregister_controller('gripper'))

    def test_list_controllers_json(self):
        """Test the JSON listing used by the list_controllers service."""
        self.manager.register_controller(_StubController('arm_controller'))

        payload = json.loads(self.manager.list_controllers_json())

        self.assertEqual(payload['manager'], 'robot')
        self.assertEqual(payload['controllers'][0]['name'], 'arm_controller')
        self.assertEqual(payload['controllers'][0]['state'], 'stopped')

    def test_switch_controllers(self):
        arm, gripper = _StubController('arm'), _StubController('gripper')
        self.manager.register_controller(arm)
        self.manager.register_controller(gripper)

        self.assertTrue(self.manager.switch_controllers(start=['arm'], stop=['gripper']))
        self.assertEqual(arm.calls, ['load'])
        self.assertEqual(gripper.calls, ['unload'])

    def test_failed_load_reports_false(self):
        self.manager.register_controller(_StubController('arm', fail_load=True))

        self.assertFalse(self.manager.switch_controllers(start=['arm']))

    def test_single_manager(self):
        """Test single_manager returns a manager only when exactly one exists."""
        self.assertIs(single_manager([self.manager]), self.manager)
        self.assertIsNone(single_manager([]))
        self.assertIsNone(single_manager([self.manager, ControllerManager('other')]))


if __name__ == '__main__':
    unittest.main()
