"""Decision logic for zonepilot."""

from __future__ import annotations

from .policy import (
    DEFAULT_THRESHOLDS,
    ControlAction,
    PolicyThresholds,
    evaluate,
    planning_instant,
    resolve_target,
)
from .scheduler import DAY_TYPES, ScheduleError, ScheduleGapError, Scheduler, TimeZoneError

__all__ = [
    "DAY_TYPES",
    "DEFAULT_THRESHOLDS",
    "ControlAction",
    "PolicyThresholds",
    "ScheduleError",
    "ScheduleGapError",
    "Scheduler",
    "TimeZoneError",
    "evaluate",
    "planning_instant",
    "resolve_target",
]
