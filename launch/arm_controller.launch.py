from pathlib import Path

from ament_index_python.packages import get_package_share_directory
from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument, OpaqueFunction
from launch.substitutions import LaunchConfiguration
from launch_ros.actions import Node


def generate_launch_description():
    package_share = Path(get_package_share_directory('sim_arm_controller'))
    default_params = package_share / 'config' / 'arm_controller_config.yaml'

    rate_arg = DeclareLaunchArgument('update_rate_hz', default_value='50.0', description='Control loop rate in Hz')
    preempt_arg = DeclareLaunchArgument(
        'preempt_active_goal',
        default_value='true',
        description='Let a new goal preempt the active one instead of being rejected',
    )
    params_arg = DeclareLaunchArgument(
        'params',
        default_value=str(default_params),
        description='Full path to arm_controller parameter YAML file',
    )

    def launch_setup(_context):
        params_file = Path(LaunchConfiguration('params').perform(_context))
        if not params_file.exists():
            raise FileNotFoundError(f'Parameter file not found: {params_file}')

        node = Node(
            package='sim_arm_controller',
            executable='arm_controller_node',
            name='arm_controller',
            output='screen',
            parameters=[
                params_file,
                {
                    'update_rate_hz': float(LaunchConfiguration('update_rate_hz').perform(_context)),
                    'preempt_active_goal': LaunchConfiguration('preempt_active_goal').perform(_context) == 'true',
                },
            ],
        )
        return [node]

    return LaunchDescription([
        rate_arg,
        preempt_arg,
        params_arg,
        OpaqueFunction(function=launch_setup),
    ])
