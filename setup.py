#!/usr/bin/env python3
from setuptools import setup, find_packages

package_name = 'sim_arm_controller'

setup(
    name=package_name,
    version='0.1.0',
    packages=find_packages('src'),
    package_dir={'': 'src'},
    data_files=[
        ('share/ament_index/resource_index/packages', ['resource/sim_arm_controller']),
        ('share/' + package_name, ['package.xml', 'robot_description.yaml']),
        ('share/' + package_name + '/config', ['config/arm_controller_config.yaml']),
        ('share/' + package_name + '/launch', ['launch/arm_controller.launch.py']),
    ],
    install_requires=['setuptools', 'numpy', 'PyYAML'],
    extras_require={
        'test': ['pytest'],
    },
    zip_safe=False,
    maintainer='L2 Driver Team',
    maintainer_email='support@example.com',
    description='Simulated arm trajectory controller exposing FollowJointTrajectory over ROS 2.',
    license='Apache-2.0',
    tests_require=['pytest'],
    entry_points={
        'console_scripts': [
            'arm_controller_node = arm_controller.app.arm_controller_node:main',
            'trajectory_replay = arm_controller.app.trajectory_replay:main',
        ],
    },
)
