"""Logging - Structured tracking logs with CSV/JSON export."""

from .tracking_logger import LogEntry, LogEventType, TrackingLogger

__all__ = ['TrackingLogger', 'LogEntry', 'LogEventType']
