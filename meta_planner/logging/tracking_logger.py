"""
Tracking Logger
===============

Structured logging for the tracker control loop:
- State updates (tracker state, reference, relative state)
- Control actions (control, active value function, tracking bound)
- Replanning events (trigger, success, number of samples, duration)
- Obstacle events (sensed position and radius, whether new)
- Error states with process identification

Supports export to CSV and JSON formats for post-analysis.
Histories keep the most recent entries only; summary counts cover the
whole session.
"""

import csv
import json
import logging
import os
from collections import Counter, deque
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

import numpy as np


LOG_FORMAT = '[%(asctime)s.%(msecs)03d] [%(levelname)s] [%(name)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

AXES = ('x', 'y', 'z')

DEFAULT_MAX_HISTORY = 10000


class LogEventType(Enum):
    """Types of loggable events."""
    STATE_UPDATE = "state_update"
    CONTROL_ACTION = "control_action"
    REPLAN = "replan"
    OBSTACLE = "obstacle"
    ERROR = "error"
    SIMULATION_EVENT = "simulation_event"


@dataclass
class LogEntry:
    """Structured log entry with metadata."""
    timestamp: str
    level: str
    process: str
    event_type: str
    data: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _to_list(values: Any) -> Any:
    if isinstance(values, np.ndarray):
        return values.tolist()
    return values


class TrackingLogger:
    """
    Structured logging for tracking runs.

    Log records go to the console and, when a log directory is given, to a
    session log file. Exports default to the log directory.

    Example:
        log = TrackingLogger(log_dir="logs", log_level="INFO")
        log.log_state(t=0.1, state=x, reference=x_ref, relative=x - x_ref)
        log.log_control(t=0.1, control=u, value_id=0, tracking_bound=bounds)
        log.finalize()
    """

    def __init__(self, log_dir: Optional[str] = None, log_level: str = "INFO",
                 node_name: str = "tracker", max_history: int = DEFAULT_MAX_HISTORY):
        """
        Initialize logger with console and optional file handlers.

        Args:
            log_dir: Directory to store log files; None disables file output
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            node_name: Name identifier for this logger instance
            max_history: Number of entries kept per history
        """
        self.log_dir = log_dir
        self.node_name = node_name
        if max_history <= 0:
            raise ValueError(f"max_history must be positive, got {max_history}")
        self.log_entries: Deque[LogEntry] = deque(maxlen=max_history)
        self.state_history: Deque[Dict[str, Any]] = deque(maxlen=max_history)
        self.control_history: Deque[Dict[str, Any]] = deque(maxlen=max_history)
        self.level_counts: Counter = Counter()
        self.state_count = 0
        self.control_count = 0
        self.max_error_norm = 0.0
        self.replan_count = 0

        level = getattr(logging, log_level.upper(), None)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {log_level}")

        self.session_timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

        self.logger = logging.getLogger(node_name)
        self.logger.setLevel(level)
        self.logger.handlers.clear()

        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        self.log_file = None
        if log_dir is not None:
            os.makedirs(log_dir, exist_ok=True)
            self.log_file = os.path.join(log_dir, f"tracking_{self.session_timestamp}.log")
            file_handler = logging.FileHandler(self.log_file)
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

        self.logger.info(f"TrackingLogger initialized. Log file: {self.log_file}")

    def _create_entry(self, level: str, process: str,
                      event_type: LogEventType, data: Dict[str, Any]) -> LogEntry:
        entry = LogEntry(
            timestamp=datetime.now().isoformat(),
            level=level,
            process=process,
            event_type=event_type.value,
            data=data
        )
        self.log_entries.append(entry)
        self.level_counts[level] += 1
        return entry

    def _default_path(self, filepath: Optional[str], prefix: str, ext: str) -> str:
        if filepath is not None:
            return filepath
        if self.log_dir is None:
            raise ValueError("No filepath given and logger has no log directory")
        return os.path.join(self.log_dir, f"{prefix}_{self.session_timestamp}.{ext}")

    def log_state(self, t: float, state: np.ndarray, reference: np.ndarray,
                  relative: np.ndarray, positions: Optional[np.ndarray] = None) -> None:
        """
        Log tracker state, reference and relative state.

        Args:
            t: Time (seconds)
            state: Tracker state [px, vx, py, vy, pz, vz]
            reference: Planner reference state
            relative: Relative state (state - reference)
            positions: Optional spatial indices for the position error norm
        """
        state = np.asarray(state, dtype=float)
        reference = np.asarray(reference, dtype=float)
        relative = np.asarray(relative, dtype=float)
        if positions is None:
            positions = np.arange(0, len(relative), 2)
        error_norm = float(np.linalg.norm(relative[positions]))

        data = {
            "t": t,
            "state": state.tolist(),
            "reference": reference.tolist(),
            "relative": relative.tolist(),
            "error_norm": error_norm
        }
        self._create_entry("DEBUG", "state", LogEventType.STATE_UPDATE, data)

        row = {"t": t}
        for ii, value in enumerate(state):
            row[f"x{ii}"] = float(value)
        for ii, value in enumerate(reference):
            row[f"x{ii}_ref"] = float(value)
        row["error_norm"] = error_norm
        self.state_history.append(row)
        self.state_count += 1
        self.max_error_norm = max(self.max_error_norm, error_norm)

        self.logger.debug(
            f"t={t:.3f} | x={np.round(state, 2).tolist()} | "
            f"x_ref={np.round(reference, 2).tolist()} | err_norm={error_norm:.4f}"
        )

    def log_control(self, t: float, control: np.ndarray, value_id: int,
                    tracking_bound: Optional[np.ndarray] = None) -> None:
        """
        Log control action with the active value function.

        Args:
            t: Time (seconds)
            control: Control input [pitch, roll, thrust]
            value_id: Id of the value function that produced the control
            tracking_bound: Tracking bound per spatial axis
        """
        control = np.asarray(control, dtype=float)
        data = {
            "t": t,
            "control": control.tolist(),
            "value_id": value_id,
            "tracking_bound": _to_list(tracking_bound)
        }
        self._create_entry("DEBUG", "control", LogEventType.CONTROL_ACTION, data)

        row = {"t": t, "value_id": value_id}
        for ii, value in enumerate(control):
            row[f"u{ii}"] = float(value)
        if tracking_bound is not None:
            for axis, bound in zip(AXES, tracking_bound):
                row[f"bound_{axis}"] = float(bound)
        self.control_history.append(row)
        self.control_count += 1

        self.logger.debug(
            f"t={t:.3f} | u={np.round(control, 3).tolist()} | value={value_id}"
        )

    def log_replan(self, t: float, trigger: str, success: bool,
                   num_samples: int = 0, duration: Optional[float] = None) -> None:
        """
        Log a replanning attempt.

        Args:
            t: Time of the request (seconds)
            trigger: What caused the replan (e.g., "initial", "obstacle", "stale")
            success: Whether a valid trajectory was found
            num_samples: Samples in the new trajectory
            duration: Trajectory duration (seconds)
        """
        self.replan_count += 1
        data = {
            "t": t,
            "trigger": trigger,
            "success": success,
            "num_samples": num_samples,
            "duration": duration
        }
        level = "INFO" if success else "WARNING"
        self._create_entry(level, "planner", LogEventType.REPLAN, data)

        msg = f"t={t:.3f} | Replan ({trigger}): "
        if success:
            msg += f"{num_samples} samples"
            if duration is not None:
                msg += f" over {duration:.2f}s"
            self.logger.info(msg)
        else:
            self.logger.warning(msg + "no trajectory found")

    def log_obstacle(self, t: float, position: np.ndarray, radius: float,
                     is_new: bool) -> None:
        """
        Log a sensed obstacle.

        Args:
            t: Time (seconds)
            position: Obstacle centre [x, y, z]
            radius: Obstacle radius (meters)
            is_new: Whether the obstacle was unknown before
        """
        data = {
            "t": t,
            "position": _to_list(np.asarray(position, dtype=float)),
            "radius": float(radius),
            "is_new": is_new
        }
        self._create_entry("INFO", "sensor", LogEventType.OBSTACLE, data)

        if is_new:
            self.logger.info(
                f"t={t:.3f} | New obstacle at {np.round(position, 2).tolist()} "
                f"radius={radius:.2f}"
            )

    def log_error(self, process_name: str, error_type: str,
                  message: str, exception: Optional[Exception] = None,
                  recovery_action: Optional[str] = None) -> None:
        """
        Log errors with process identification.

        Args:
            process_name: Name of the process/module that encountered the error
            error_type: Category of error (e.g., "LocalizationError", "PlanningFailure")
            message: Detailed error message
            exception: Optional Python exception object
            recovery_action: Optional description of recovery action taken
        """
        data = {
            "process": process_name,
            "error_type": error_type,
            "message": message,
            "exception": str(exception) if exception else None,
            "recovery_action": recovery_action
        }
        self._create_entry("ERROR", process_name, LogEventType.ERROR, data)

        log_msg = f"Process: {process_name} | Error: {error_type} | {message}"
        if recovery_action:
            log_msg += f" | Recovery: {recovery_action}"
        self.logger.error(log_msg)

    def log_simulation_event(self, event: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Log general run events."""
        data = {
            "event": event,
            "details": details or {}
        }
        self._create_entry("INFO", "simulation", LogEventType.SIMULATION_EVENT, data)

        msg = event
        if details:
            for key, value in details.items():
                msg += f" | {key}={value}"
        self.logger.info(msg)

    def _export_rows(self, rows: Deque[Dict[str, Any]], filepath: str, what: str) -> str:
        if not rows:
            self.logger.warning(f"No {what} history to export")
            return filepath

        fieldnames: List[str] = []
        for row in rows:
            for key in row:
                if key not in fieldnames:
                    fieldnames.append(key)

        with open(filepath, 'w', newline='') as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(rows)

        self.logger.info(f"{what.capitalize()} history exported to {filepath}")
        return filepath

    def export_to_csv(self, filepath: Optional[str] = None) -> str:
        """
        Export state history to CSV.

        Returns:
            Path to the exported CSV file.
        """
        filepath = self._default_path(filepath, "states", "csv")
        return self._export_rows(self.state_history, filepath, "state")

    def export_controls_to_csv(self, filepath: Optional[str] = None) -> str:
        """
        Export control history to CSV.

        Returns:
            Path to the exported CSV file.
        """
        filepath = self._default_path(filepath, "controls", "csv")
        return self._export_rows(self.control_history, filepath, "control")

    def export_to_json(self, filepath: Optional[str] = None) -> str:
        """
        Export all logs to JSON with full metadata.

        Returns:
            Path to the exported JSON file.
        """
        filepath = self._default_path(filepath, "tracking", "json")

        export_data = {
            "session": {
                "timestamp": self.session_timestamp,
                "node_name": self.node_name,
                "total_entries": len(self.log_entries)
            },
            "entries": [entry.to_dict() for entry in self.log_entries]
        }

        with open(filepath, 'w') as jsonfile:
            json.dump(export_data, jsonfile, indent=2)

        self.logger.info(f"Logs exported to {filepath}")
        return filepath

    def get_summary(self) -> Dict[str, Any]:
        """
        Get summary statistics of logged data.

        Returns:
            Dictionary with summary statistics.
        """
        summary = {
            "total_entries": sum(self.level_counts.values()),
            "state_updates": self.state_count,
            "control_actions": self.control_count,
            "replans": self.replan_count,
            "errors": self.level_counts["ERROR"],
            "warnings": self.level_counts["WARNING"],
            "session_timestamp": self.session_timestamp
        }

        if self.state_history:
            errors = [s["error_norm"] for s in self.state_history]
            summary["max_error_norm"] = self.max_error_norm
            summary["mean_error_norm"] = sum(errors) / len(errors)
            summary["final_error_norm"] = errors[-1]

        return summary

    def finalize(self) -> Dict[str, Any]:
        """Finalize the session, exporting all data when a log directory is set."""
        summary = self.get_summary()
        self.log_simulation_event("Tracking completed", summary)

        if self.log_dir is not None:
            self.export_to_csv()
            self.export_controls_to_csv()
            self.export_to_json()

        self.logger.info(f"Logging session finalized. Summary: {summary}")
        return summary
