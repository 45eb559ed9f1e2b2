#!/usr/bin/env python3
"""
Launch file for the thruster controller node.
"""
from launch import LaunchDescription
from launch_ros.actions import Node
from launch.actions import DeclareLaunchArgument
from launch.substitutions import LaunchConfiguration


def generate_launch_description():
    # Declare arguments
    vehicle_file_arg = DeclareLaunchArgument(
        'vehicle_file',
        default_value='vehicle.yaml',
        description='Vehicle YAML file name (in the package config directory)'
    )

    geometry_source_arg = DeclareLaunchArgument(
        'geometry_source',
        default_value='tf',
        description='Thruster positions from the tf tree (tf) or the vehicle file (config)'
    )

    reference_frame_arg = DeclareLaunchArgument(
        'reference_frame',
        default_value='base_link',
        description='Frame thruster positions are resolved against'
    )

    lookup_timeout_arg = DeclareLaunchArgument(
        'lookup_timeout',
        default_value='10.0',
        description='Wait per frame lookup at startup [s]'
    )

    log_level_arg = DeclareLaunchArgument(
        'log_level',
        default_value='info',
        description='Controller log level: debug, info, warn, error'
    )

    # Controller node
    controller_node = Node(
        package='thruster_controller',
        executable='thruster_controller_node',
        name='thruster_controller',
        output='screen',
        parameters=[{
            'vehicle_file': LaunchConfiguration('vehicle_file'),
            'geometry_source': LaunchConfiguration('geometry_source'),
            'reference_frame': LaunchConfiguration('reference_frame'),
            'lookup_timeout': LaunchConfiguration('lookup_timeout'),
            'log_level': LaunchConfiguration('log_level'),
        }]
    )

    return LaunchDescription([
        vehicle_file_arg,
        geometry_source_arg,
        reference_frame_arg,
        lookup_timeout_arg,
        log_level_arg,
        controller_node,
    ])
