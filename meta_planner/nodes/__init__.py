"""ROS2 Nodes - Tracker, simulated sensor and simulated quadrotor."""
