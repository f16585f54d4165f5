#!/usr/bin/env python3
"""
Standalone Simulation
=====================

Run the meta-planning tracker without ROS2 dependencies.
Useful for testing, validation, and generating plots.

The tracker starts with an empty map and discovers a hidden obstacle field
through a simulated range sensor while flying a simulated near-hover
quadrotor under bounded random disturbance.

Usage:
    python run_simulation.py --mode single
    python run_simulation.py --mode multi
    python run_simulation.py --mode multi --scenario dense --seed 3
"""

import argparse
import dataclasses
import os

import numpy as np

from meta_planner.config.loader import load_config
from meta_planner.environment.balls_in_box import BallsInBox
from meta_planner.logging.tracking_logger import TrackingLogger
from meta_planner.models.near_hover_quad import NearHoverQuadNoYaw
from meta_planner.tracking.tracker import Tracker
from meta_planner.utils.visualization import Visualizer


DEFAULT_CONFIG = os.path.join(os.path.dirname(os.path.abspath(__file__)),
                              'config', 'meta_planner.yaml')

# Distance to the goal at which the run ends (meters)
GOAL_TOLERANCE = 0.25


class SimulatedClock:
    """Manually advanced clock."""

    def __init__(self, t: float = 0.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


class ControlRecorder:
    """Control sink keeping the latest command."""

    def __init__(self):
        self.last = None

    def publish(self, control: np.ndarray) -> None:
        self.last = np.array(control, dtype=float)


def build_world(config, scenario: str, rng: np.random.Generator) -> BallsInBox:
    """
    Create the hidden obstacle field.

    Args:
        config: Tracker configuration
        scenario: 'default' (configured obstacles), 'sparse' or 'dense'
        rng: Random generator for the random scenarios

    Returns:
        Collision space holding the true obstacles
    """
    quad = NearHoverQuadNoYaw(lower_u=config.control.lower, upper_u=config.control.upper)
    lower = quad.puncture(np.array(config.state.lower))
    upper = quad.puncture(np.array(config.state.upper))

    world = BallsInBox()
    world.set_bounds(lower, upper)

    if scenario == 'default':
        for obstacle in config.sensor.obstacles:
            world.add_obstacle(obstacle.center, obstacle.radius)
        return world

    num_obstacles = {'sparse': 5, 'dense': 20}[scenario]
    center = 0.5 * (lower + upper)
    goal = upper - 1.5
    while world.num_obstacles < num_obstacles:
        point = rng.uniform(lower + 1.0, upper - 1.0)
        radius = rng.uniform(0.5, 1.5)
        # Keep start and goal clear
        if (np.linalg.norm(point - center) < radius + 2.0 or
                np.linalg.norm(point - goal) < radius + 2.0):
            continue
        world.add_obstacle(point, radius)

    return world


def run_simulation(config, mode: str = 'multi', scenario: str = 'default',
                   duration: float = 60.0, disturbance: float = 0.05,
                   seed: int = 0, visualize: bool = True) -> dict:
    """
    Run meta-planned tracking through a hidden obstacle field.

    Args:
        config: Tracker configuration
        mode: 'single' (first planner only) or 'multi' (all planners)
        scenario: Obstacle scenario
        duration: Maximum simulated time (seconds)
        disturbance: Maximum acceleration disturbance per axis (m/s^2)
        seed: Random seed for the world and disturbances
        visualize: Generate plots

    Returns:
        Dictionary with simulation results
    """
    print("=" * 60)
    print(f"Meta-Planner Tracking Simulation ({mode}, {scenario})")
    print("=" * 60)

    if mode == 'single':
        config = dataclasses.replace(config, values=config.values[:1])

    rng = np.random.default_rng(seed)
    dt = config.control.time_step
    world = build_world(config, scenario, rng)

    quad = NearHoverQuadNoYaw(lower_u=config.control.lower, upper_u=config.control.upper)
    clock = SimulatedClock()
    recorder = ControlRecorder()
    sim_state = np.zeros(quad.X_DIM)

    def pose_source():
        return quad.puncture(sim_state)

    logger = TrackingLogger(log_dir='logs', log_level=config.logging.level,
                            node_name=f'meta_sim_{mode}',
                            max_history=config.logging.max_history)
    tracker = Tracker(config, pose_source=pose_source, clock=clock,
                      control_sink=recorder, logger=logger)

    # The simulated quadrotor starts where the tracker expects it
    tracker.initialize()
    sim_state = tracker.state
    goal = quad.puncture(tracker.goal)

    print(f"World: {world.num_obstacles} hidden obstacles")
    print(f"Start: {np.round(quad.puncture(sim_state), 2)}  Goal: {np.round(goal, 2)}")

    times, positions, references, errors, bounds, controls, value_ids = [], [], [], [], [], [], []
    collisions = 0
    num_steps = int(duration / dt)

    for k in range(num_steps):
        position = quad.puncture(sim_state)

        # Sense
        found, centers, radii = world.sense_obstacles(position, config.sensor.radius)
        if found:
            for center, radius in zip(centers, radii):
                tracker.sensor_callback(center, radius)

        # Control
        tick = tracker.timer_callback()
        control = recorder.last if recorder.last is not None else quad.hover_control()

        # Simulate
        d = rng.uniform(-disturbance, disturbance, quad.P_DIM)
        sim_state = quad.simulate_step(sim_state, control, dt, disturbance=d, method='rk4')
        clock.t += dt

        if tick is not None:
            times.append(tick.t)
            positions.append(quad.puncture(tick.state))
            references.append(quad.puncture(tick.reference))
            errors.append(quad.puncture(tick.relative))
            bounds.append(tick.tracking_bound)
            controls.append(tick.control)
            value_ids.append(tick.value_id)

        if any(obs.distance_to(position) < obs.radius for obs in world.obstacles):
            collisions += 1

        if k % 250 == 0 and tick is not None:
            err = np.linalg.norm(quad.puncture(tick.relative))
            print(f"  t={clock.t:6.2f}: pos={np.round(position, 2)}, "
                  f"error={err:.3f}, value={tick.value_id}")

        if np.linalg.norm(quad.puncture(sim_state) - goal) < GOAL_TOLERANCE:
            print(f"  Goal reached at t={clock.t:.2f}s")
            break

    tracker.shutdown()

    positions = np.array(positions)
    references = np.array(references)
    errors = np.array(errors)
    bounds = np.array(bounds)
    controls = np.array(controls)
    times = np.array(times)

    within_bound = float(np.mean(np.all(np.abs(errors) <= bounds, axis=1))) if len(errors) else 0.0
    reached = bool(np.linalg.norm(quad.puncture(sim_state) - goal) < GOAL_TOLERANCE)

    print(f"\nResults:")
    print(f"  Goal reached: {reached}")
    print(f"  Replans: {tracker.replan_count}")
    print(f"  Obstacles discovered: {tracker.space.num_obstacles}/{world.num_obstacles}")
    print(f"  Steps within tracking bound: {100.0 * within_bound:.1f}%")
    print(f"  Steps in collision: {collisions}")

    logger.finalize()

    if visualize and len(positions) > 1:
        viz = Visualizer(output_dir='outputs')
        obstacles = [(np.asarray(obs.center), obs.radius) for obs in world.obstacles]

        viz.plot_trajectory_3d(positions, references, obstacles,
                               lower=world.lower, upper=world.upper,
                               title=f"Meta-Planned Tracking ({mode})",
                               save_path=f"outputs/{mode}_trajectory.png")
        viz.plot_projection(positions, references, obstacles,
                            tracking_bound=float(np.max(bounds)),
                            save_path=f"outputs/{mode}_projection.png")
        viz.plot_tracking_error(times, errors, bounds,
                                title=f"Tracking Error ({mode})",
                                save_path=f"outputs/{mode}_error.png")
        viz.plot_control_inputs(times, controls, config.control.lower, config.control.upper,
                                title=f"Control Inputs ({mode})",
                                save_path=f"outputs/{mode}_control.png")
        viz.close_all()

        print("\nPlots saved to outputs/")

    return {
        'times': times,
        'positions': positions,
        'references': references,
        'errors': errors,
        'bounds': bounds,
        'controls': controls,
        'value_ids': value_ids,
        'replans': tracker.replan_count,
        'collisions': collisions,
        'reached': reached,
        'within_bound': within_bound,
    }


def main():
    parser = argparse.ArgumentParser(description='Run meta-planner tracking simulation')
    parser.add_argument('--mode', type=str, default='multi',
                        choices=['single', 'multi'],
                        help='Planner set: single (fastest only) or multi (all configured)')
    parser.add_argument('--config', type=str, default=DEFAULT_CONFIG,
                        help='Path to the YAML configuration')
    parser.add_argument('--scenario', type=str, default='default',
                        choices=['default', 'sparse', 'dense'],
                        help='Obstacle scenario: default, sparse, or dense')
    parser.add_argument('--duration', type=float, default=60.0,
                        help='Maximum simulation duration in seconds')
    parser.add_argument('--disturbance', type=float, default=0.05,
                        help='Maximum acceleration disturbance (m/s^2)')
    parser.add_argument('--seed', type=int, default=0,
                        help='Random seed for obstacles and disturbances')
    parser.add_argument('--no-plot', action='store_true',
                        help='Disable plotting')

    args = parser.parse_args()

    # Create output directories
    os.makedirs('outputs', exist_ok=True)
    os.makedirs('logs', exist_ok=True)

    config = load_config(args.config)
    run_simulation(config, mode=args.mode, scenario=args.scenario,
                   duration=args.duration, disturbance=args.disturbance,
                   seed=args.seed, visualize=not args.no_plot)

    print("\nSimulation complete!")


if __name__ == '__main__':
    main()
