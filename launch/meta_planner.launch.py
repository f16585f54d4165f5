#!/usr/bin/env python3
"""
Meta Planner Launch File
========================

Launch file for meta-planned tracking in a simulated obstacle field.

This launches:
- Simulator node (near-hover quadrotor, broadcasts the tracker frame)
- Sensor node (reports obstacles near the tracker)
- Tracker node (meta planner and tracking controller)

Usage:
    ros2 launch meta_planner meta_planner.launch.py
    ros2 launch meta_planner meta_planner.launch.py config_file:=/path/to/config.yaml
"""

from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument, TimerAction
from launch.substitutions import LaunchConfiguration
from launch_ros.actions import Node
from ament_index_python.packages import get_package_share_directory
import os


def generate_launch_description():
    # Get package share directory
    pkg_share = get_package_share_directory('meta_planner')

    # Declare launch arguments
    use_sim_time = LaunchConfiguration('use_sim_time', default='false')
    config_file = LaunchConfiguration('config_file')

    use_sim_time_arg = DeclareLaunchArgument(
        'use_sim_time',
        default_value='false',
        description='Use simulation time'
    )

    config_file_arg = DeclareLaunchArgument(
        'config_file',
        default_value=os.path.join(pkg_share, 'config', 'meta_planner.yaml'),
        description='Meta planner configuration file'
    )

    simulator_node = Node(
        package='meta_planner',
        executable='simulator_node',
        name='simulator',
        output='screen',
        parameters=[{
            'use_sim_time': use_sim_time,
            'config_file': config_file,
            'disturbance': 0.05,
        }]
    )

    sensor_node = Node(
        package='meta_planner',
        executable='sensor_node',
        name='sensor',
        output='screen',
        parameters=[{
            'use_sim_time': use_sim_time,
            'config_file': config_file,
        }]
    )

    tracker_node = Node(
        package='meta_planner',
        executable='tracker_node',
        name='tracker',
        output='screen',
        parameters=[{
            'use_sim_time': use_sim_time,
            'config_file': config_file,
        }]
    )

    return LaunchDescription([
        use_sim_time_arg,
        config_file_arg,
        simulator_node,
        sensor_node,
        # Delay the tracker so the tracker frame is available
        TimerAction(
            period=0.5,
            actions=[tracker_node]
        ),
    ])
