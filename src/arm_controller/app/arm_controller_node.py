"""ROS 2 entry point for sim_arm_controller."""
from __future__ import annotations

import rclpy
from rclpy.callback_groups import MutuallyExclusiveCallbackGroup, ReentrantCallbackGroup
from rclpy.executors import MultiThreadedExecutor
from rclpy.node import Node
from std_srvs.srv import Trigger

from arm_controller.config.parameter_schema import ControllerParameters, declare_and_get_parameters
from arm_controller.config.robot_description_loader import RobotDescriptionLoader
from arm_controller.control.arm_controller import ArmController
from arm_controller.control.control_loop import SimulationStep
from arm_controller.control.controller_manager import ControllerManager
from arm_controller.control.diagnostics import DiagnosticsReporter
from arm_controller.errors import ConfigurationError
from arm_controller.hardware.sim_robot import SimulatedRobot
from arm_controller.transport.ros_transport import RosActionEndpoint, RosTransport
from arm_controller.utils.logging_utils import get_logger


class ArmControllerNode(Node):
    def __init__(self) -> None:
        super().__init__('arm_controller')
        self._params: ControllerParameters = declare_and_get_parameters(self)
        self._logger = get_logger('arm_controller_node', log_dir=self._params.log_dir)

        description = RobotDescriptionLoader().load(self._params.robot_description_file)
        self._robot = SimulatedRobot.from_description(description)
        managers = description.controller_managers
        if self._params.manager_name:
            managers = [self._params.manager_name]
        for name in managers:
            self._robot.attach_controller_manager(ControllerManager(name))

        self._transport = RosTransport(self)
        self._endpoint = RosActionEndpoint(
            self,
            self._action_name(),
            callback_group=ReentrantCallbackGroup(),
        )
        self._controller = ArmController(
            self._robot.joints,
            lambda: self._robot.controller_managers,
            self._transport,
            self._endpoint,
            self._params,
            diagnostics=DiagnosticsReporter(
                self._params.controller_name,
                topic=self._params.diagnostics_topic,
                period=1.0 / self._params.diagnostics_rate,
            ),
        )
        try:
            self._controller.start()
        except ConfigurationError as exc:
            # Only this controller is halted; its ticks keep publishing the error on diagnostics.
            self._logger.error('Controller %s failed to start: %s', self._params.controller_name, exc)

        self._step = SimulationStep(self._robot, [self._controller], self._params.period)
        self._timer = self.create_timer(
            self._params.period,
            self._step,
            callback_group=MutuallyExclusiveCallbackGroup(),
        )
        self._list_service = self.create_service(
            Trigger,
            '~/list_controllers',
            self._handle_list_controllers,
            callback_group=ReentrantCallbackGroup(),
        )
        self._logger.info('arm_controller node ready: %d joints, period %.3fs',
                          len(self._controller.joint_names), self._params.period)

    def _action_name(self) -> str:
        if self._params.manager_name:
            return self._params.manager_name + self._params.action_name
        managers = self._robot.controller_managers
        prefix = managers[0].name if len(managers) == 1 else ''
        return prefix + self._params.action_name

    def _handle_list_controllers(self, _request: Trigger.Request, response: Trigger.Response):
        manager = self._controller.manager
        if manager is None:
            response.success = False
            error = self._controller.startup_error
            response.message = error.to_error_message() if error else 'controller not registered'
            return response
        response.success = True
        response.message = manager.list_controllers_json()
        return response

    def destroy_node(self):
        self._timer.cancel()
        self._controller.destroy()
        return super().destroy_node()


def main(args=None):
    rclpy.init(args=args)
    node = ArmControllerNode()
    executor = MultiThreadedExecutor()
    executor.add_node(node)
    try:
        executor.spin()
    except KeyboardInterrupt:
        pass
    finally:
        executor.shutdown()
        node.destroy_node()
        if rclpy.ok():
            rclpy.shutdown()


if __name__ == '__main__':
    main()
