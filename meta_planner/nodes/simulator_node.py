#!/usr/bin/env python3
"""
Simulator Node
==============

ROS2 node that flies a simulated near-hover quadrotor.

Subscribers:
    <topics.control> (geometry_msgs/Vector3): Control [pitch, roll, thrust]

TF:
    Broadcasts the simulated position as <frames.tracker> in <frames.fixed>.

Parameters:
    config_file: Path to the YAML configuration
    disturbance: Maximum uniform acceleration disturbance per axis (m/s^2)
"""

import os

import rclpy
from rclpy.node import Node
from rclpy.qos import QoSProfile

from ament_index_python.packages import get_package_share_directory
from geometry_msgs.msg import TransformStamped, Vector3

import tf2_ros

import numpy as np

from ..config.loader import load_config
from ..models.near_hover_quad import NearHoverQuadNoYaw


class SimulatorNode(Node):
    """
    ROS2 node integrating the quadrotor model at the control rate.
    """

    def __init__(self):
        super().__init__('simulator')

        default_config = os.path.join(
            get_package_share_directory('meta_planner'), 'config', 'meta_planner.yaml')
        self.declare_parameter('config_file', default_config)
        self.declare_parameter('disturbance', 0.05)
        config = load_config(self.get_parameter('config_file').value)
        self.disturbance = float(self.get_parameter('disturbance').value)

        self.frames = config.frames
        self.dt = config.control.time_step
        self.quad = NearHoverQuadNoYaw(lower_u=config.control.lower,
                                       upper_u=config.control.upper)
        self.rng = np.random.default_rng()

        # Same start as the tracker
        state_lower = np.array(config.state.lower)
        state_upper = np.array(config.state.upper)
        if config.state.start is not None:
            start = np.array(config.state.start)
        else:
            start = self.quad.puncture(0.5 * (state_lower + state_upper))
        self.state = np.zeros(self.quad.X_DIM)
        for axis in range(self.quad.P_DIM):
            self.state[self.quad.spatial_dimension(axis)] = start[axis]

        self.control = self.quad.hover_control()

        self.tf_broadcaster = tf2_ros.TransformBroadcaster(self)

        qos = QoSProfile(depth=10)
        self.control_sub = self.create_subscription(
            Vector3, config.topics.control, self.control_callback, qos)

        self.timer = self.create_timer(self.dt, self.timer_callback)

        self.get_logger().info(f"Simulator initialized at {start.tolist()}")

    def control_callback(self, msg: Vector3):
        """Store the latest control command."""
        self.control = np.array([msg.x, msg.y, msg.z])

    def timer_callback(self):
        """Integrate one step and broadcast the tracker frame."""
        disturbance = self.rng.uniform(-self.disturbance, self.disturbance, self.quad.P_DIM)
        self.state = self.quad.simulate_step(self.state, self.control, self.dt,
                                             disturbance=disturbance, method='rk4')

        position = self.quad.puncture(self.state)
        tf = TransformStamped()
        tf.header.stamp = self.get_clock().now().to_msg()
        tf.header.frame_id = self.frames.fixed
        tf.child_frame_id = self.frames.tracker
        tf.transform.translation.x = float(position[0])
        tf.transform.translation.y = float(position[1])
        tf.transform.translation.z = float(position[2])
        tf.transform.rotation.w = 1.0
        self.tf_broadcaster.sendTransform(tf)


def main(args=None):
    rclpy.init(args=args)
    node = SimulatorNode()

    try:
        rclpy.spin(node)
    except KeyboardInterrupt:
        pass
    finally:
        node.destroy_node()
        rclpy.shutdown()


if __name__ == '__main__':
    main()
