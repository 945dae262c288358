"""Domain enums for the tado° zone models."""

from enum import StrEnum


class ZoneType(StrEnum):
    heating = "HEATING"
    air_conditioning = "AIR_CONDITIONING"
    hot_water = "HOT_WATER"


class HomeMode(StrEnum):
    home = "HOME"
    away = "AWAY"


class Mode(StrEnum):
    cool = "COOL"
    dry = "DRY"
    heat = "HEAT"
    fan = "FAN"
    auto = "AUTO"


class Power(StrEnum):
    on = "ON"
    off = "OFF"


class FanSpeed(StrEnum):
    auto = "AUTO"
    low = "LOW"
    middle = "MIDDLE"
    high = "HIGH"


class TerminationType(StrEnum):
    manual = "MANUAL"
    timer = "TIMER"
    tado_mode = "TADO_MODE"


class TimetableType(StrEnum):
    one_day = "ONE_DAY"
    three_day = "THREE_DAY"
    seven_day = "SEVEN_DAY"


class DayType(StrEnum):
    monday_to_sunday = "MONDAY_TO_SUNDAY"
    monday_to_friday = "MONDAY_TO_FRIDAY"
    monday = "MONDAY"
    tuesday = "TUESDAY"
    wednesday = "WEDNESDAY"
    thursday = "THURSDAY"
    friday = "FRIDAY"
    saturday = "SATURDAY"
    sunday = "SUNDAY"


class ActionKind(StrEnum):
    no_change = "no_change"
    overlay = "overlay"


class Reason(StrEnum):
    manual_mode = "manual_mode"
    satisfied = "satisfied"
    follows_schedule = "follows_schedule"
    missing_reading = "missing_reading"
    cooling_stay_off = "cooling_stay_off"
    cooling_turn_off = "cooling_turn_off"
    cooling_boost_high = "cooling_boost_high"
    cooling_boost = "cooling_boost"
    cooling_ok = "cooling_ok"
    heating_stay_off = "heating_stay_off"
    heating_turn_off = "heating_turn_off"
    heating_boost_high = "heating_boost_high"
    heating_boost = "heating_boost"
    heating_ok = "heating_ok"
    drying_stay_off = "drying_stay_off"
    drying_turn_off = "drying_turn_off"
    drying_ok = "drying_ok"
