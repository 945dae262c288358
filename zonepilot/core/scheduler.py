"""Schedule timetable resolution for tado° zones."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta
from types import MappingProxyType
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from zonepilot.models.enums import DayType
from zonepilot.models.schemas import TimetableBlock


class ScheduleError(Exception):
    """Base exception for schedule resolution failures."""


class TimeZoneError(ScheduleError):
    """Raised when a home's IANA time zone cannot be loaded."""


class UnknownTimetableError(ScheduleError):
    """Raised for a timetable id outside the day-type table."""


class ScheduleGapError(ScheduleError):
    """Raised when no block covers the requested instant."""


_WEEKDAYS = (
    DayType.monday,
    DayType.tuesday,
    DayType.wednesday,
    DayType.thursday,
    DayType.friday,
    DayType.saturday,
    DayType.sunday,
)

# Timetable id -> day type per weekday, Monday first.
DAY_TYPES: Mapping[int, tuple[DayType, ...]] = MappingProxyType(
    {
        0: (DayType.monday_to_sunday,) * 7,
        1: (DayType.monday_to_friday,) * 5 + (DayType.saturday, DayType.sunday),
        2: _WEEKDAYS,
    }
)


class Scheduler:
    """Resolve timetable blocks into the block active at an instant."""

    @staticmethod
    def load_timezone(name: str) -> ZoneInfo:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise TimeZoneError(f"Invalid home time zone: {name!r}") from exc

    @staticmethod
    def localize(instant: datetime, tz_name: str) -> datetime:
        """Convert an aware instant to the home's wall-clock time."""
        return instant.astimezone(Scheduler.load_timezone(tz_name))

    @staticmethod
    def day_type(timetable_id: int, local: datetime) -> DayType:
        try:
            row = DAY_TYPES[timetable_id]
        except KeyError as exc:
            raise UnknownTimetableError(f"Unknown timetable id: {timetable_id}") from exc
        return row[local.weekday()]

    @staticmethod
    def block_window(block: TimetableBlock, day: date) -> tuple[datetime, datetime]:
        """Return the naive ``[start, end)`` window of ``block`` starting on ``day``.

        A block whose end is not after its start runs past midnight.
        """
        start = datetime.combine(day, block.start)
        end = datetime.combine(day, block.end)
        if end <= start:
            end += timedelta(days=1)
        return start, end

    @classmethod
    def covers(cls, block: TimetableBlock, local: datetime) -> bool:
        """Whether ``block`` is active at the wall-clock time of ``local``.

        Only the wall-clock reading is compared, so DST transitions are
        resolved the way the thermostat displays them.
        """
        naive = local.replace(tzinfo=None)
        for day in (naive.date(), naive.date() - timedelta(days=1)):
            start, end = cls.block_window(block, day)
            if start <= naive < end:
                return True
        return False

    @classmethod
    def find_active_block(
        cls, blocks: Iterable[TimetableBlock], local: datetime
    ) -> TimetableBlock:
        blocks = list(blocks)
        naive = local.replace(tzinfo=None)
        # Blocks starting today take precedence over yesterday's wrap-around tail.
        for block in blocks:
            start, end = cls.block_window(block, naive.date())
            if start <= naive < end:
                return block
        for block in blocks:
            if cls.covers(block, local):
                return block
        raise ScheduleGapError(f"No schedule block covers {local:%H:%M}")


__all__ = [
    "DAY_TYPES",
    "ScheduleError",
    "ScheduleGapError",
    "Scheduler",
    "TimeZoneError",
    "UnknownTimetableError",
]
