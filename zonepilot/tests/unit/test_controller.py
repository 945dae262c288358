"""Unit tests for zonepilot.core.controller."""

from __future__ import annotations

from datetime import UTC, datetime, time, timedelta
from unittest.mock import AsyncMock

import pytest

from zonepilot.core.controller import ZoneController
from zonepilot.core.scheduler import ScheduleGapError
from zonepilot.integrations.tado_client import TadoNotFoundError, TadoServiceError
from zonepilot.models.enums import (
    ActionKind,
    FanSpeed,
    HomeMode,
    Mode,
    Power,
    Reason,
    TerminationType,
    ZoneType,
)
from zonepilot.models.schemas import (
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

NOW = datetime(2026, 7, 1, 12, 0, tzinfo=UTC)
HOME = Home(id=1, name="Flat", date_time_zone="Europe/Amsterdam")
LIVING = Zone(id=1, name="Living", type=ZoneType.air_conditioning)
BEDROOM = Zone(id=2, name="Bedroom", type=ZoneType.air_conditioning)
RADIATORS = Zone(id=3, name="Radiators", type=ZoneType.heating)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _cooling(temp: float = 22.0) -> Setting:
    return Setting(
        type=ZoneType.air_conditioning,
        power=Power.on,
        mode=Mode.cool,
        fan_speed=FanSpeed.auto,
        temperature=Temperature(celsius=temp),
    )


def _make_state(
    inside_c: float = 23.0,
    tado_mode: HomeMode = HomeMode.home,
    overlay: Overlay | None = None,
) -> ZoneState:
    return ZoneState.model_validate(
        {
            "tadoMode": tado_mode.value,
            "setting": _cooling().to_payload(),
            "overlay": overlay.to_payload() if overlay else None,
            "sensorDataPoints": {
                "insideTemperature": {"celsius": inside_c},
                "humidity": {"percentage": 55.0},
            },
        }
    )


def _make_block(geolocation_override: bool = False) -> TimetableBlock:
    return TimetableBlock(
        start=time(7, 0),
        end=time(23, 0),
        geolocation_override=geolocation_override,
        setting=_cooling(),
    )


def _make_client(
    zones: list[Zone] | None = None,
    state: ZoneState | None = None,
    block: TimetableBlock | None = None,
) -> AsyncMock:
    client = AsyncMock()
    client.get_account.return_value = Account(id="acc", homes=[{"id": 1, "name": "Flat"}])
    client.get_home.return_value = HOME
    client.get_zones.return_value = zones if zones is not None else [LIVING, RADIATORS]
    client.get_zone_state.return_value = state or _make_state()
    client.get_active_timetable.return_value = ActiveTimetable(id=0)
    client.get_active_block.return_value = block or _make_block()
    client.get_away_configuration.return_value = AwayConfiguration(setting=Setting(power=Power.off))
    client.put_overlay.return_value = Overlay()
    return client


# ===================================================================
# run_once
# ===================================================================


class TestRunOnce:
    async def test_only_air_conditioning_zones_are_evaluated(self) -> None:
        client = _make_client()
        decisions = await ZoneController(client=client).run_once(NOW)

        assert [d.zone_name for d in decisions] == ["Living"]
        client.get_zone_state.assert_awaited_once_with(1, 1)

    async def test_all_zones_share_the_pass_instant(self) -> None:
        client = _make_client(zones=[LIVING, BEDROOM])
        decisions = await ZoneController(client=client).run_once(NOW)

        assert {d.timestamp for d in decisions} == {NOW}
        instants = {call.args[3] for call in client.get_active_block.await_args_list}
        assert instants == {NOW + timedelta(minutes=5)}

    async def test_zone_failure_does_not_stop_other_zones(self) -> None:
        client = _make_client(zones=[LIVING, BEDROOM])
        client.get_zone_state.side_effect = [TadoServiceError("boom"), _make_state(26.5)]

        decisions = await ZoneController(client=client).run_once(NOW)

        assert decisions[0].failed
        assert decisions[0].error == "boom"
        assert not decisions[1].failed
        assert decisions[1].applied

    async def test_schedule_gap_is_a_zone_failure(self) -> None:
        client = _make_client()
        client.get_active_block.side_effect = ScheduleGapError("No schedule block covers 12:05")

        decisions = await ZoneController(client=client).run_once(NOW)

        assert decisions[0].failed
        client.put_overlay.assert_not_awaited()

    async def test_fail_fast_aborts_the_pass(self) -> None:
        client = _make_client(zones=[LIVING, BEDROOM])
        client.get_zone_state.side_effect = TadoServiceError("boom")

        with pytest.raises(TadoServiceError):
            await ZoneController(client=client, fail_fast=True).run_once(NOW)
        assert client.get_zone_state.await_count == 1

    async def test_home_enumeration_failure_is_recorded(self) -> None:
        client = _make_client()
        client.get_account.return_value = Account(
            homes=[{"id": 9, "name": "Gone"}, {"id": 1, "name": "Flat"}]
        )
        client.get_home.side_effect = [TadoNotFoundError("missing"), HOME]

        decisions = await ZoneController(client=client).run_once(NOW)

        assert decisions[0].home_id == 9
        assert decisions[0].zone_id is None
        assert decisions[0].failed
        assert decisions[1].zone_name == "Living"

    async def test_defaults_to_current_time(self) -> None:
        client = _make_client()
        before = datetime.now(UTC)
        decisions = await ZoneController(client=client).run_once()
        assert decisions[0].timestamp >= before


# ===================================================================
# decide / control_zone
# ===================================================================


class TestControlZone:
    async def test_overlay_is_applied(self) -> None:
        client = _make_client(state=_make_state(inside_c=26.5))
        decision = await ZoneController(client=client).control_zone(HOME, LIVING, NOW)

        assert decision.applied
        assert decision.action is not None
        assert decision.action.reason == Reason.cooling_boost_high
        client.put_overlay.assert_awaited_once()
        home_id, zone_id, setting, duration = client.put_overlay.await_args.args
        assert (home_id, zone_id) == (1, 1)
        assert setting.fan_speed == FanSpeed.high
        assert duration == timedelta(minutes=10)

    async def test_dry_run_skips_write(self) -> None:
        client = _make_client(state=_make_state(inside_c=26.5))
        controller = ZoneController(client=client, dry_run=True)
        decision = await controller.control_zone(HOME, LIVING, NOW)

        assert decision.action is not None
        assert decision.action.kind == ActionKind.overlay
        assert not decision.applied
        client.put_overlay.assert_not_awaited()

    async def test_no_change_writes_nothing(self) -> None:
        client = _make_client(state=_make_state(inside_c=23.0))
        decision = await ZoneController(client=client).control_zone(HOME, LIVING, NOW)

        assert decision.action is not None
        assert decision.action.reason == Reason.cooling_ok
        client.put_overlay.assert_not_awaited()

    async def test_manual_override_skips_schedule_lookup(self) -> None:
        overlay = Overlay(
            termination=Termination(
                type=TerminationType.manual, projected_expiry=NOW + timedelta(hours=1)
            )
        )
        client = _make_client(state=_make_state(inside_c=30.0, overlay=overlay))
        decision = await ZoneController(client=client).control_zone(HOME, LIVING, NOW)

        assert decision.action is not None
        assert decision.action.reason == Reason.manual_mode
        client.get_active_timetable.assert_not_awaited()
        client.get_active_block.assert_not_awaited()
        client.put_overlay.assert_not_awaited()

    async def test_away_configuration_fetched_when_away(self) -> None:
        client = _make_client(state=_make_state(inside_c=27.0, tado_mode=HomeMode.away))
        decision = await ZoneController(client=client).control_zone(HOME, LIVING, NOW)

        client.get_away_configuration.assert_awaited_once_with(1, 1)
        # Away power OFF removes the boost the block alone would have caused.
        assert decision.action is not None
        assert decision.action.reason == Reason.cooling_ok

    async def test_away_configuration_skipped_with_geolocation_override(self) -> None:
        client = _make_client(
            state=_make_state(inside_c=27.0, tado_mode=HomeMode.away),
            block=_make_block(geolocation_override=True),
        )
        decision = await ZoneController(client=client).control_zone(HOME, LIVING, NOW)

        client.get_away_configuration.assert_not_awaited()
        assert decision.action is not None
        assert decision.action.reason == Reason.cooling_boost_high

    async def test_away_configuration_skipped_when_home(self) -> None:
        client = _make_client()
        await ZoneController(client=client).control_zone(HOME, LIVING, NOW)
        client.get_away_configuration.assert_not_awaited()

    async def test_overlay_write_failure_is_recorded(self) -> None:
        client = _make_client(state=_make_state(inside_c=26.5))
        client.put_overlay.side_effect = TadoServiceError("Server error 500")

        decision = await ZoneController(client=client).control_zone(HOME, LIVING, NOW)

        assert decision.failed
        assert not decision.applied
