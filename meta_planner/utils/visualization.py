"""
Visualization Utilities
=======================

Provides plotting functions for offline tracking runs.
"""

import os
from typing import List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.patches import Circle


AXIS_LABELS = ('x', 'y', 'z')


class Visualizer:
    """
    Visualization utilities for meta-planned trajectory tracking.

    Provides methods for:
    - Planned vs. flown path in 3D and in the x-y projection
    - Per-axis tracking error against the tracking bound
    - Control inputs against their bounds
    """

    def __init__(self, output_dir: str = "outputs"):
        """
        Initialize visualizer.

        Args:
            output_dir: Directory to save output figures
        """
        self.output_dir = output_dir
        os.makedirs(output_dir, exist_ok=True)

        plt.style.use('default')
        self.colors = {
            'reference': '#2E86AB',      # Blue
            'actual': '#E94F37',         # Red
            'bound': '#9C27B0',          # Purple
            'obstacle': '#9E9E9E',       # Gray
            'box': '#4CAF50',            # Green
        }

    def _save(self, fig: plt.Figure, save_path: Optional[str]) -> None:
        if save_path:
            fig.savefig(save_path, dpi=150, bbox_inches='tight')

    def plot_trajectory_3d(self, positions: np.ndarray, reference: np.ndarray,
                           obstacles: Sequence[Tuple[np.ndarray, float]] = (),
                           lower: Optional[np.ndarray] = None,
                           upper: Optional[np.ndarray] = None,
                           title: str = "Meta-Planned Trajectory",
                           save_path: str = None) -> plt.Figure:
        """
        Plot flown and planned paths in 3D with obstacle spheres.

        Args:
            positions: Flown positions (N, 3)
            reference: Planned reference positions (M, 3)
            obstacles: (centre, radius) pairs
            lower, upper: Optional box corners to set the axis limits
            title: Plot title
            save_path: Optional path to save figure

        Returns:
            Matplotlib figure object
        """
        fig = plt.figure(figsize=(10, 8))
        ax = fig.add_subplot(111, projection='3d')

        u, v = np.mgrid[0:2 * np.pi:20j, 0:np.pi:10j]
        for center, radius in obstacles:
            ax.plot_wireframe(center[0] + radius * np.cos(u) * np.sin(v),
                              center[1] + radius * np.sin(u) * np.sin(v),
                              center[2] + radius * np.cos(v),
                              color=self.colors['obstacle'], linewidth=0.5, alpha=0.6)

        ax.plot(reference[:, 0], reference[:, 1], reference[:, 2], '--',
                color=self.colors['reference'], linewidth=2, label='Reference')
        ax.plot(positions[:, 0], positions[:, 1], positions[:, 2], '-',
                color=self.colors['actual'], linewidth=1.5, label='Actual')

        ax.scatter(*positions[0], color='g', s=60, label='Start')
        ax.scatter(*reference[-1], color='r', marker='s', s=60, label='Goal')

        if lower is not None and upper is not None:
            ax.set_xlim(lower[0], upper[0])
            ax.set_ylim(lower[1], upper[1])
            ax.set_zlim(lower[2], upper[2])

        ax.set_xlabel('X Position (m)')
        ax.set_ylabel('Y Position (m)')
        ax.set_zlabel('Z Position (m)')
        ax.set_title(title, fontsize=14)
        ax.legend(loc='best')

        plt.tight_layout()
        self._save(fig, save_path)
        return fig

    def plot_projection(self, positions: np.ndarray, reference: np.ndarray,
                        obstacles: Sequence[Tuple[np.ndarray, float]] = (),
                        tracking_bound: Optional[float] = None,
                        title: str = "Trajectory (x-y projection)",
                        save_path: str = None) -> plt.Figure:
        """
        Plot the x-y projection with obstacles and their inflated outlines.

        Args:
            positions: Flown positions (N, 3)
            reference: Planned reference positions (M, 3)
            obstacles: (centre, radius) pairs
            tracking_bound: Optional inflation drawn around each obstacle
            title: Plot title
            save_path: Optional path to save figure

        Returns:
            Matplotlib figure object
        """
        fig, ax = plt.subplots(1, 1, figsize=(10, 8))

        for center, radius in obstacles:
            if tracking_bound is not None:
                ax.add_patch(Circle((center[0], center[1]), radius + tracking_bound,
                                    color=self.colors['bound'], alpha=0.15))
            ax.add_patch(Circle((center[0], center[1]), radius,
                                color=self.colors['obstacle'], alpha=0.8))

        ax.plot(reference[:, 0], reference[:, 1], '--',
                color=self.colors['reference'], linewidth=2, label='Reference', alpha=0.8)
        ax.plot(positions[:, 0], positions[:, 1], '-',
                color=self.colors['actual'], linewidth=2, label='Actual')

        ax.plot(positions[0, 0], positions[0, 1], 'go', markersize=10, label='Start')
        ax.plot(positions[-1, 0], positions[-1, 1], 'rs', markersize=10, label='End')

        ax.set_xlabel('X Position (m)', fontsize=12)
        ax.set_ylabel('Y Position (m)', fontsize=12)
        ax.set_title(title, fontsize=14)
        ax.legend(loc='best')
        ax.grid(True, alpha=0.3)
        ax.set_aspect('equal')

        plt.tight_layout()
        self._save(fig, save_path)
        return fig

    def plot_tracking_error(self, t: np.ndarray, errors: np.ndarray,
                            bounds: np.ndarray,
                            title: str = "Tracking Error",
                            save_path: str = None) -> plt.Figure:
        """
        Plot per-axis position error with the active tracking bound.

        Args:
            t: Time stamps (N,)
            errors: Relative positions (N, 3)
            bounds: Tracking bound per axis at each time (N, 3)
            title: Plot title
            save_path: Optional path to save figure

        Returns:
            Matplotlib figure object
        """
        fig, axes = plt.subplots(3, 1, figsize=(10, 9), sharex=True)

        for axis, ax in enumerate(axes):
            ax.plot(t, errors[:, axis], 'b-', linewidth=1.5, label=f'e_{AXIS_LABELS[axis]}')
            ax.plot(t, bounds[:, axis], '--', color=self.colors['bound'],
                    alpha=0.7, label='Tracking bound')
            ax.plot(t, -bounds[:, axis], '--', color=self.colors['bound'], alpha=0.7)
            ax.set_ylabel(f'{AXIS_LABELS[axis].upper()} Error (m)')
            ax.legend(loc='best')
            ax.grid(True, alpha=0.3)

        axes[-1].set_xlabel('Time (s)')
        plt.suptitle(title, fontsize=14)
        plt.tight_layout()
        self._save(fig, save_path)
        return fig

    def plot_control_inputs(self, t: np.ndarray, controls: np.ndarray,
                            lower: Sequence[float], upper: Sequence[float],
                            title: str = "Control Inputs",
                            save_path: str = None) -> plt.Figure:
        """
        Plot pitch, roll and thrust against their bounds.

        Args:
            t: Time stamps (N,)
            controls: Control trajectory (N, 3)
            lower, upper: Control bounds
            title: Plot title
            save_path: Optional path to save figure

        Returns:
            Matplotlib figure object
        """
        labels: List[str] = ['Pitch (rad)', 'Roll (rad)', 'Thrust (m/s^2)']
        fig, axes = plt.subplots(3, 1, figsize=(10, 8), sharex=True)

        for channel, ax in enumerate(axes):
            ax.step(t, controls[:, channel], 'g-', where='post', linewidth=1.2)
            ax.axhline(y=upper[channel], color='r', linestyle='--', alpha=0.5, label='Bounds')
            ax.axhline(y=lower[channel], color='r', linestyle='--', alpha=0.5)
            ax.set_ylabel(labels[channel])
            ax.grid(True, alpha=0.3)

        axes[0].legend(loc='best')
        axes[-1].set_xlabel('Time (s)')
        plt.suptitle(title, fontsize=14)
        plt.tight_layout()
        self._save(fig, save_path)
        return fig

    def close_all(self) -> None:
        """Close all open figures."""
        plt.close('all')
