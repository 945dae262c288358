"""Per-zone control policy for air-conditioning zones.

The evaluator reconciles the manual overlay, the active schedule block, the
away configuration and the live sensor readings into a single
``ControlAction``. It performs no I/O; the caller fetches the inputs and
applies the resulting overlay.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from zonepilot.models.enums import ActionKind, FanSpeed, Mode, Power, Reason
from zonepilot.models.schemas import (
    AwayConfiguration,
    Setting,
    TimetableBlock,
    ZoneState,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PolicyThresholds:
    """Numeric constants of the control policy."""

    manual_guard: timedelta = timedelta(minutes=10)
    lookahead: timedelta = timedelta(minutes=5)
    comfort_margin_c: float = 0.5
    # Observed as both 1.0 and 0.5 across revisions of the policy.
    turn_off_margin_c: float = 0.5
    boost_delta_c: float = 2.0
    boost_high_delta_c: float = 4.0
    dry_humidity_upper: float = 50.0
    dry_humidity_lower: float = 40.0
    boost_duration: timedelta = timedelta(minutes=10)
    short_off_duration: timedelta = timedelta(minutes=10)
    long_off_duration: timedelta = timedelta(minutes=15)


DEFAULT_THRESHOLDS = PolicyThresholds()


@dataclass(slots=True)
class ControlAction:
    """Outcome of one policy evaluation for a zone."""

    kind: ActionKind
    reason: Reason
    setting: Setting | None = None
    duration: timedelta | None = None
    details: dict[str, float | str | None] = field(default_factory=dict)

    @classmethod
    def no_change(cls, reason: Reason, **details: float | str | None) -> ControlAction:
        return cls(kind=ActionKind.no_change, reason=reason, details=details)

    @classmethod
    def apply(
        cls,
        setting: Setting,
        duration: timedelta,
        reason: Reason,
        **details: float | str | None,
    ) -> ControlAction:
        return cls(
            kind=ActionKind.overlay,
            reason=reason,
            setting=setting,
            duration=duration,
            details=details,
        )

    @property
    def is_overlay(self) -> bool:
        return self.kind == ActionKind.overlay

    @property
    def duration_seconds(self) -> int | None:
        return int(self.duration.total_seconds()) if self.duration is not None else None

    def describe(self) -> str:
        parts = [f"{key}={value}" for key, value in self.details.items()]
        if self.is_overlay and self.setting is not None:
            parts.append(f"power={self.setting.power}")
            if self.setting.fan_speed:
                parts.append(f"fan={self.setting.fan_speed}")
            parts.append(f"duration={self.duration_seconds}s")
        return f"{self.reason} ({', '.join(parts)})" if parts else str(self.reason)


# ---------------------------------------------------------------------------
# Target resolution
# ---------------------------------------------------------------------------


def planning_instant(now: datetime, thresholds: PolicyThresholds = DEFAULT_THRESHOLDS) -> datetime:
    """Instant whose schedule block the zone should be driven towards."""
    return now + thresholds.lookahead


def is_manual_override(
    state: ZoneState, now: datetime, thresholds: PolicyThresholds = DEFAULT_THRESHOLDS
) -> bool:
    """Return ``True`` when a user overlay is not about to expire."""
    expiry = state.projected_expiry
    return expiry is not None and expiry > now + thresholds.manual_guard


def manual_override_action(
    state: ZoneState, now: datetime, thresholds: PolicyThresholds = DEFAULT_THRESHOLDS
) -> ControlAction | None:
    """Return the no-op action for a zone under a user overlay, if any."""
    expiry = state.projected_expiry
    if expiry is None or not is_manual_override(state, now, thresholds):
        return None
    return ControlAction.no_change(Reason.manual_mode, expiry=expiry.isoformat())


def needs_away_configuration(block: TimetableBlock, home_is_away: bool) -> bool:
    return home_is_away and not block.geolocation_override


def resolve_target(
    block: TimetableBlock,
    away_config: AwayConfiguration | None,
    home_is_away: bool,
) -> Setting:
    """Return the setting the zone should converge to.

    In AWAY mode a powered-off away configuration only forces the power off;
    any other away configuration replaces the block setting entirely.
    """
    target = block.setting
    if not needs_away_configuration(block, home_is_away) or away_config is None:
        return target
    if away_config.setting.power != Power.off:
        return away_config.setting
    return target.with_power(Power.off)


# ---------------------------------------------------------------------------
# Mode policies
# ---------------------------------------------------------------------------


def _cool(
    state: ZoneState, running: Setting, target: Setting, t: PolicyThresholds
) -> ControlAction:
    current = state.inside_temperature_c
    wanted = target.temperature_c
    if current is None or wanted is None:
        return ControlAction.no_change(Reason.missing_reading, tgt=wanted, cur=current)

    if current < wanted + t.comfort_margin_c:
        if running.power == Power.off:
            return ControlAction.apply(
                Setting.off(), t.short_off_duration, Reason.cooling_stay_off, tgt=wanted, cur=current
            )
        if current < wanted - t.turn_off_margin_c:
            return ControlAction.apply(
                Setting.off(), t.long_off_duration, Reason.cooling_turn_off, tgt=wanted, cur=current
            )

    if (
        running.mode == Mode.cool
        and target.power == Power.on
        and target.fan_speed == FanSpeed.auto
    ):
        if current > wanted + t.boost_high_delta_c:
            return ControlAction.apply(
                target.with_fan_speed(FanSpeed.high),
                t.boost_duration,
                Reason.cooling_boost_high,
                tgt=wanted,
                cur=current,
            )
        if current > wanted + t.boost_delta_c:
            return ControlAction.apply(
                target.with_fan_speed(FanSpeed.middle),
                t.boost_duration,
                Reason.cooling_boost,
                tgt=wanted,
                cur=current,
            )

    return ControlAction.no_change(
        Reason.cooling_ok, tgt=wanted, cur=current, fan=target.fan_speed, mode=running.mode
    )


def _heat(
    state: ZoneState, running: Setting, target: Setting, t: PolicyThresholds
) -> ControlAction:
    current = state.inside_temperature_c
    wanted = target.temperature_c
    if current is None or wanted is None:
        return ControlAction.no_change(Reason.missing_reading, tgt=wanted, cur=current)

    if current > wanted - t.comfort_margin_c:
        if running.power == Power.off:
            return ControlAction.apply(
                Setting.off(), t.short_off_duration, Reason.heating_stay_off, tgt=wanted, cur=current
            )
        if current > wanted + t.turn_off_margin_c:
            return ControlAction.apply(
                Setting.off(), t.long_off_duration, Reason.heating_turn_off, tgt=wanted, cur=current
            )

    if (
        running.mode == Mode.heat
        and target.power == Power.on
        and target.fan_speed == FanSpeed.auto
    ):
        if current < wanted - t.boost_high_delta_c:
            return ControlAction.apply(
                target.with_fan_speed(FanSpeed.high),
                t.boost_duration,
                Reason.heating_boost_high,
                tgt=wanted,
                cur=current,
            )
        if current < wanted - t.boost_delta_c:
            return ControlAction.apply(
                target.with_fan_speed(FanSpeed.middle),
                t.boost_duration,
                Reason.heating_boost,
                tgt=wanted,
                cur=current,
            )

    return ControlAction.no_change(
        Reason.heating_ok, tgt=wanted, cur=current, fan=target.fan_speed, mode=running.mode
    )


def _dry(
    state: ZoneState, running: Setting, target: Setting, t: PolicyThresholds
) -> ControlAction:
    humidity = state.humidity_percent

    # Zero or negative humidity means the sensor reported nothing usable.
    if 0 < humidity < t.dry_humidity_upper:
        if running.power == Power.off:
            return ControlAction.apply(
                Setting.off(), t.short_off_duration, Reason.drying_stay_off, rh=humidity
            )
        if humidity < t.dry_humidity_lower:
            return ControlAction.apply(
                Setting.off(), t.long_off_duration, Reason.drying_turn_off, rh=humidity
            )

    return ControlAction.no_change(Reason.drying_ok, rh=humidity)


def _passthrough(
    state: ZoneState, running: Setting, target: Setting, t: PolicyThresholds
) -> ControlAction:
    reason = Reason.satisfied if running.matches(target) else Reason.follows_schedule
    return ControlAction.no_change(reason, power=target.power, mode=target.mode)


MODE_POLICIES: dict[
    Mode, Callable[[ZoneState, Setting, Setting, PolicyThresholds], ControlAction]
] = {
    Mode.cool: _cool,
    Mode.dry: _dry,
    Mode.heat: _heat,
    Mode.fan: _passthrough,
    Mode.auto: _passthrough,
}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def evaluate(
    now: datetime,
    state: ZoneState,
    active_block: TimetableBlock,
    away_config: AwayConfiguration | None,
    home_is_away: bool,
    thresholds: PolicyThresholds = DEFAULT_THRESHOLDS,
) -> ControlAction:
    """Compute the control action for one zone at ``now``.

    ``active_block`` must be the block covering ``planning_instant(now)``.
    """
    manual = manual_override_action(state, now, thresholds)
    if manual is not None:
        return manual

    target = resolve_target(active_block, away_config, home_is_away)
    if state.setting is None:
        # Without the unit's own setting its power state is unknown.
        return ControlAction.no_change(Reason.missing_reading, setting=None)

    policy = MODE_POLICIES.get(target.mode, _passthrough) if target.mode else _passthrough
    action = policy(state, state.setting, target, thresholds)
    logger.debug("Policy %s -> %s", target.mode or "none", action.describe())
    return action


__all__ = [
    "DEFAULT_THRESHOLDS",
    "MODE_POLICIES",
    "ControlAction",
    "PolicyThresholds",
    "evaluate",
    "is_manual_override",
    "manual_override_action",
    "needs_away_configuration",
    "planning_instant",
    "resolve_target",
]
