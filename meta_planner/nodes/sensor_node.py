#!/usr/bin/env python3
"""
Sensor Node
===========

ROS2 node simulating a range sensor over a known obstacle field.

Every sensor period the node looks up the tracker position and publishes
each configured obstacle that touches the sensing sphere.

Publishers:
    <topics.sensor> (geometry_msgs/Quaternion): Obstacle centre in x/y/z,
        radius in w

Parameters:
    config_file: Path to the YAML configuration
"""

import os

import rclpy
from rclpy.node import Node
from rclpy.qos import QoSProfile
from rclpy.time import Time

from ament_index_python.packages import get_package_share_directory
from geometry_msgs.msg import Quaternion

import tf2_ros

from ..config.loader import load_config
from ..environment.balls_in_box import BallsInBox


class SensorNode(Node):
    """
    ROS2 node publishing sensed obstacles.
    """

    def __init__(self):
        super().__init__('sensor')

        default_config = os.path.join(
            get_package_share_directory('meta_planner'), 'config', 'meta_planner.yaml')
        self.declare_parameter('config_file', default_config)
        config = load_config(self.get_parameter('config_file').value)

        self.frames = config.frames
        self.sensor_radius = config.sensor.radius

        # Ground-truth obstacle field
        self.world = BallsInBox()
        for obstacle in config.sensor.obstacles:
            self.world.add_obstacle(obstacle.center, obstacle.radius)

        self.tf_buffer = tf2_ros.Buffer()
        self.tf_listener = tf2_ros.TransformListener(self.tf_buffer, self)

        qos = QoSProfile(depth=10)
        self.sensor_pub = self.create_publisher(Quaternion, config.topics.sensor, qos)

        self.timer = self.create_timer(1.0 / config.sensor.rate, self.timer_callback)

        self.get_logger().info(
            f"Sensor initialized: {self.world.num_obstacles} obstacles, "
            f"radius={self.sensor_radius}m"
        )

    def timer_callback(self):
        """Publish every obstacle within sensing range."""
        try:
            tf = self.tf_buffer.lookup_transform(
                self.frames.fixed, self.frames.tracker, Time())
        except tf2_ros.TransformException as e:
            self.get_logger().warning(f"Could not determine tracker position: {e}")
            return

        t = tf.transform.translation
        found, positions, radii = self.world.sense_obstacles(
            [t.x, t.y, t.z], self.sensor_radius)
        if not found:
            return

        for position, radius in zip(positions, radii):
            self.sensor_pub.publish(Quaternion(
                x=float(position[0]), y=float(position[1]), z=float(position[2]),
                w=float(radius)))


def main(args=None):
    rclpy.init(args=args)
    node = SensorNode()

    try:
        rclpy.spin(node)
    except KeyboardInterrupt:
        pass
    finally:
        node.destroy_node()
        rclpy.shutdown()


if __name__ == '__main__':
    main()
