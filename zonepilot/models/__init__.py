"""Wire models and enums for zonepilot."""

from .enums import (
    ActionKind,
    DayType,
    FanSpeed,
    HomeMode,
    Mode,
    Power,
    Reason,
    TerminationType,
    TimetableType,
    ZoneType,
)
from .schemas import (
    Account,
    ActiveTimetable,
    AwayConfiguration,
    Home,
    Overlay,
    Setting,
    Temperature,
    Termination,
    TimetableBlock,
    Zone,
    ZoneState,
)

__all__ = [
    "Account",
    "ActionKind",
    "ActiveTimetable",
    "AwayConfiguration",
    "DayType",
    "FanSpeed",
    "Home",
    "HomeMode",
    "Mode",
    "Overlay",
    "Power",
    "Reason",
    "Setting",
    "Temperature",
    "Termination",
    "TerminationType",
    "TimetableBlock",
    "TimetableType",
    "Zone",
    "ZoneState",
]
