"""Pydantic schemas mirroring the tado° v2 REST payloads."""

from __future__ import annotations

from datetime import datetime, time

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .enums import (
    DayType,
    FanSpeed,
    HomeMode,
    Mode,
    Power,
    TerminationType,
    TimetableType,
    ZoneType,
)


class TadoModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Account enumeration
# ---------------------------------------------------------------------------


class HomeRef(TadoModel):
    id: int
    name: str = ""


class Account(TadoModel):
    id: str = ""
    name: str = ""
    homes: list[HomeRef] = Field(default_factory=list)


class Home(TadoModel):
    id: int
    name: str = ""
    # Left empty when absent so the schedule lookup fails with TimeZoneError.
    date_time_zone: str = ""
    temperature_unit: str | None = None


class Zone(TadoModel):
    id: int
    name: str = ""
    type: ZoneType


# ---------------------------------------------------------------------------
# Settings and overlays
# ---------------------------------------------------------------------------


class Temperature(TadoModel):
    celsius: float | None = None
    fahrenheit: float | None = None


class Setting(TadoModel):
    """What a zone should be doing."""

    type: ZoneType | None = None
    power: Power = Power.off
    mode: Mode | None = None
    fan_speed: FanSpeed | None = None
    temperature: Temperature | None = None

    @classmethod
    def off(cls) -> Setting:
        return cls(type=ZoneType.air_conditioning, power=Power.off)

    @property
    def temperature_c(self) -> float | None:
        return self.temperature.celsius if self.temperature else None

    def with_fan_speed(self, fan_speed: FanSpeed) -> Setting:
        return self.model_copy(update={"fan_speed": fan_speed})

    def with_power(self, power: Power) -> Setting:
        return self.model_copy(update={"power": power})

    def matches(self, other: Setting) -> bool:
        """Return ``True`` when both settings drive the unit the same way.

        Two powered-off settings match regardless of their remaining fields.
        """
        if self.power != other.power:
            return False
        if self.power == Power.off:
            return True
        return (
            self.mode == other.mode
            and self.fan_speed == other.fan_speed
            and self.temperature_c == other.temperature_c
        )


class Termination(TadoModel):
    type: TerminationType | None = None
    duration_in_seconds: int | None = None
    remaining_time_in_seconds: int | None = None
    expiry: datetime | None = None
    projected_expiry: datetime | None = None


class Overlay(TadoModel):
    type: str | None = None
    setting: Setting | None = None
    termination: Termination | None = None

    @classmethod
    def timer(cls, setting: Setting, duration_seconds: int) -> Overlay:
        return cls(
            setting=setting,
            termination=Termination(
                type=TerminationType.timer, duration_in_seconds=duration_seconds
            ),
        )


class AwayConfiguration(TadoModel):
    type: str | None = None
    setting: Setting = Field(default_factory=Setting)


# ---------------------------------------------------------------------------
# Zone state
# ---------------------------------------------------------------------------


class InsideTemperature(TadoModel):
    celsius: float | None = None
    fahrenheit: float | None = None
    timestamp: datetime | None = None


class Humidity(TadoModel):
    percentage: float | None = None
    timestamp: datetime | None = None


class SensorDataPoints(TadoModel):
    inside_temperature: InsideTemperature | None = None
    humidity: Humidity | None = None


class ZoneState(TadoModel):
    tado_mode: HomeMode = HomeMode.home
    setting: Setting | None = None
    overlay: Overlay | None = None
    sensor_data_points: SensorDataPoints = Field(default_factory=SensorDataPoints)

    @property
    def inside_temperature_c(self) -> float | None:
        reading = self.sensor_data_points.inside_temperature
        return reading.celsius if reading else None

    @property
    def humidity_percent(self) -> float:
        """Relative humidity, ``0.0`` when the zone reports none."""
        reading = self.sensor_data_points.humidity
        if reading is None or reading.percentage is None:
            return 0.0
        return reading.percentage

    @property
    def projected_expiry(self) -> datetime | None:
        if self.overlay is None or self.overlay.termination is None:
            return None
        return self.overlay.termination.projected_expiry


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------


class ActiveTimetable(TadoModel):
    id: int
    type: TimetableType | None = None


class TimetableBlock(TadoModel):
    day_type: DayType | None = None
    start: time
    end: time
    geolocation_override: bool = False
    setting: Setting = Field(default_factory=Setting)
