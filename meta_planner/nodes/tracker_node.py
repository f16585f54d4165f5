#!/usr/bin/env python3
"""
Tracker Node
============

ROS2 node that runs the meta-planning tracker.

Subscribers:
    <topics.sensor> (geometry_msgs/Quaternion): Sensed obstacle, centre in
        x/y/z and radius in w

Publishers:
    <topics.control> (geometry_msgs/Vector3): Control [pitch, roll, thrust]
    <topics.known_environment> (visualization_msgs/Marker): Box and obstacles
    <topics.traj> (visualization_msgs/Marker): Planned trajectory
    <topics.tracking_bound> (visualization_msgs/Marker): Tracking bound box

TF:
    Looks up <frames.tracker> in <frames.fixed> every tick and broadcasts
    the reference position as <frames.planner>.

Parameters:
    config_file: Path to the YAML configuration (defaults to the installed
        config/meta_planner.yaml)
"""

import os

import rclpy
from rclpy.node import Node
from rclpy.qos import QoSProfile
from rclpy.time import Time

from ament_index_python.packages import get_package_share_directory
from geometry_msgs.msg import Point, Quaternion, TransformStamped, Vector3
from std_msgs.msg import ColorRGBA
from visualization_msgs.msg import Marker as MarkerMsg

import tf2_ros

import numpy as np

from ..config.loader import load_config
from ..exceptions import LocalizationError
from ..logging.tracking_logger import TrackingLogger
from ..tracking.tracker import Tracker
from ..utils.markers import CUBE, LINE_STRIP, SPHERE, Marker


MARKER_TYPES = {
    CUBE: MarkerMsg.CUBE,
    SPHERE: MarkerMsg.SPHERE,
    LINE_STRIP: MarkerMsg.LINE_STRIP,
}


def _color(rgba) -> ColorRGBA:
    return ColorRGBA(r=float(rgba[0]), g=float(rgba[1]), b=float(rgba[2]), a=float(rgba[3]))


class MarkerPublisher:
    """Converts marker descriptions to visualization_msgs/Marker."""

    def __init__(self, node: Node, publisher):
        self._node = node
        self._publisher = publisher

    def get_subscription_count(self) -> int:
        return self._publisher.get_subscription_count()

    def publish(self, marker: Marker) -> None:
        msg = MarkerMsg()
        msg.header.frame_id = marker.frame_id
        msg.header.stamp = self._node.get_clock().now().to_msg()
        msg.ns = marker.ns
        msg.id = marker.id
        msg.type = MARKER_TYPES[marker.type]
        msg.action = MarkerMsg.ADD

        msg.pose.position.x = float(marker.position[0])
        msg.pose.position.y = float(marker.position[1])
        msg.pose.position.z = float(marker.position[2])
        msg.pose.orientation.w = 1.0

        msg.scale.x = float(marker.scale[0])
        msg.scale.y = float(marker.scale[1])
        msg.scale.z = float(marker.scale[2])
        msg.color = _color(marker.color)

        msg.points = [Point(x=float(p[0]), y=float(p[1]), z=float(p[2])) for p in marker.points]
        msg.colors = [_color(c) for c in marker.colors]

        self._publisher.publish(msg)


class ControlPublisher:
    """Publishes control vectors as geometry_msgs/Vector3."""

    def __init__(self, publisher):
        self._publisher = publisher

    def publish(self, control: np.ndarray) -> None:
        self._publisher.publish(Vector3(
            x=float(control[0]), y=float(control[1]), z=float(control[2])))


class TrackerNode(Node):
    """
    ROS2 node wrapping the Tracker.
    """

    def __init__(self):
        super().__init__('tracker')

        default_config = os.path.join(
            get_package_share_directory('meta_planner'), 'config', 'meta_planner.yaml')
        self.declare_parameter('config_file', default_config)
        config_file = self.get_parameter('config_file').value

        self.config = load_config(config_file)
        topics = self.config.topics
        self.frames = self.config.frames

        self.logger = TrackingLogger(
            log_dir=self.config.logging.directory,
            log_level=self.config.logging.level,
            node_name='tracker',
            max_history=self.config.logging.max_history
        )

        # TF
        self.tf_buffer = tf2_ros.Buffer()
        self.tf_listener = tf2_ros.TransformListener(self.tf_buffer, self)
        self.tf_broadcaster = tf2_ros.TransformBroadcaster(self)

        # QoS
        qos = QoSProfile(depth=10)

        # Publishers
        self.control_pub = self.create_publisher(Vector3, topics.control, qos)
        self.environment_pub = self.create_publisher(MarkerMsg, topics.known_environment, qos)
        self.traj_pub = self.create_publisher(MarkerMsg, topics.traj, qos)
        self.bound_pub = self.create_publisher(MarkerMsg, topics.tracking_bound, qos)

        self.tracker = Tracker(
            self.config,
            pose_source=self.lookup_position,
            clock=self.now_seconds,
            control_sink=ControlPublisher(self.control_pub),
            environment_sink=MarkerPublisher(self, self.environment_pub),
            trajectory_sink=MarkerPublisher(self, self.traj_pub),
            bound_sink=MarkerPublisher(self, self.bound_pub),
            logger=self.logger,
        )
        self.tracker.initialize()

        # Subscribers
        self.sensor_sub = self.create_subscription(
            Quaternion, topics.sensor, self.sensor_callback, qos)

        # Control timer
        self.control_timer = self.create_timer(
            self.config.control.time_step, self.timer_callback)

        self.get_logger().info(
            f"Tracker initialized: {len(self.tracker.planners)} planners, "
            f"dt={self.config.control.time_step}s, config={config_file}"
        )

    def now_seconds(self) -> float:
        return self.get_clock().now().nanoseconds * 1e-9

    def lookup_position(self) -> np.ndarray:
        """Latest tracker position in the fixed frame."""
        try:
            tf = self.tf_buffer.lookup_transform(
                self.frames.fixed, self.frames.tracker, Time())
        except tf2_ros.TransformException as e:
            raise LocalizationError(str(e)) from e

        translation = tf.transform.translation
        return np.array([translation.x, translation.y, translation.z])

    def sensor_callback(self, msg: Quaternion):
        """Handle a sensed obstacle [x, y, z, radius]."""
        if self.tracker.sensor_callback(np.array([msg.x, msg.y, msg.z]), msg.w):
            self.get_logger().info(
                f"New obstacle at ({msg.x:.2f}, {msg.y:.2f}, {msg.z:.2f}) r={msg.w:.2f}")

    def timer_callback(self):
        """Run one control tick and broadcast the planner frame."""
        tick = self.tracker.timer_callback()
        if tick is None:
            return

        position = self.tracker.dynamics.puncture(tick.reference)
        tf = TransformStamped()
        tf.header.stamp = self.get_clock().now().to_msg()
        tf.header.frame_id = self.frames.fixed
        tf.child_frame_id = self.frames.planner
        tf.transform.translation.x = float(position[0])
        tf.transform.translation.y = float(position[1])
        tf.transform.translation.z = float(position[2])
        tf.transform.rotation.w = 1.0
        self.tf_broadcaster.sendTransform(tf)


def main(args=None):
    rclpy.init(args=args)
    node = TrackerNode()

    try:
        rclpy.spin(node)
    except KeyboardInterrupt:
        pass
    finally:
        node.tracker.shutdown()
        node.logger.finalize()
        node.destroy_node()
        rclpy.shutdown()


if __name__ == '__main__':
    main()
