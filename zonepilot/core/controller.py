"""Zone controller orchestrating one zonepilot evaluation pass."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from zonepilot.core.policy import (
    DEFAULT_THRESHOLDS,
    ControlAction,
    PolicyThresholds,
    evaluate,
    manual_override_action,
    needs_away_configuration,
    planning_instant,
)
from zonepilot.core.scheduler import ScheduleError
from zonepilot.integrations.tado_client import TadoClientError
from zonepilot.models.enums import HomeMode, ZoneType
from zonepilot.models.schemas import (
    Account,
    ActiveTimetable,
    AwayConfiguration,
    Home,
    Overlay,
    Setting,
    TimetableBlock,
    Zone,
    ZoneState,
)

logger = logging.getLogger(__name__)


class TadoGateway(Protocol):
    """Read and write capabilities the controller needs from the tado° API."""

    async def get_account(self) -> Account: ...

    async def get_home(self, home_id: int) -> Home: ...

    async def get_zones(self, home_id: int) -> list[Zone]: ...

    async def get_zone_state(self, home_id: int, zone_id: int) -> ZoneState: ...

    async def get_active_timetable(self, home_id: int, zone_id: int) -> ActiveTimetable: ...

    async def get_active_block(
        self, home: Home, zone_id: int, timetable: ActiveTimetable, instant: datetime
    ) -> TimetableBlock: ...

    async def get_away_configuration(self, home_id: int, zone_id: int) -> AwayConfiguration: ...

    async def put_overlay(
        self, home_id: int, zone_id: int, setting: Setting, duration: timedelta
    ) -> Overlay: ...


@dataclass(slots=True)
class ZoneDecision:
    home_id: int
    home_name: str
    zone_id: int | None
    zone_name: str
    timestamp: datetime
    action: ControlAction | None = None
    applied: bool = False
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class ZoneController:
    """Evaluate every air-conditioning zone of an account once per pass."""

    def __init__(
        self,
        *,
        client: TadoGateway,
        thresholds: PolicyThresholds = DEFAULT_THRESHOLDS,
        dry_run: bool = False,
        fail_fast: bool = False,
    ) -> None:
        self._client = client
        self._thresholds = thresholds
        self._dry_run = dry_run
        self._fail_fast = fail_fast

    async def run_once(self, now: datetime | None = None) -> list[ZoneDecision]:
        """Run one pass over all homes; ``now`` is shared by every zone."""

        now = now or datetime.now(UTC)
        account = await self._client.get_account()
        decisions: list[ZoneDecision] = []

        for ref in account.homes:
            try:
                home = await self._client.get_home(ref.id)
                zones = await self._client.get_zones(home.id)
            except TadoClientError as exc:
                if self._fail_fast:
                    raise
                logger.error("Home %s could not be enumerated: %s", ref.id, exc)
                decision = ZoneDecision(
                    home_id=ref.id,
                    home_name=ref.name,
                    zone_id=None,
                    zone_name="",
                    timestamp=now,
                    error=str(exc),
                )
                self.record_decision(decision)
                decisions.append(decision)
                continue

            logger.info("%s...", home.name)
            for zone in zones:
                if zone.type != ZoneType.air_conditioning:
                    continue
                decisions.append(await self.control_zone(home, zone, now))

        failed = sum(1 for decision in decisions if decision.failed)
        logger.info("Pass complete: %d zone(s), %d failed", len(decisions), failed)
        return decisions

    async def control_zone(self, home: Home, zone: Zone, now: datetime) -> ZoneDecision:
        decision = ZoneDecision(
            home_id=home.id,
            home_name=home.name,
            zone_id=zone.id,
            zone_name=zone.name,
            timestamp=now,
        )
        try:
            decision.action = await self.decide(home, zone, now)
            if decision.action.is_overlay and not self._dry_run:
                await self.execute_action(home, zone, decision.action)
                decision.applied = True
        except (TadoClientError, ScheduleError) as exc:
            if self._fail_fast:
                raise
            logger.error("Zone %s/%s failed: %s", home.name, zone.name, exc)
            decision.error = str(exc)
        self.record_decision(decision)
        return decision

    async def decide(self, home: Home, zone: Zone, now: datetime) -> ControlAction:
        """Fetch the zone's inputs and evaluate the policy."""

        state = await self._client.get_zone_state(home.id, zone.id)
        manual = manual_override_action(state, now, self._thresholds)
        if manual is not None:
            return manual

        timetable = await self._client.get_active_timetable(home.id, zone.id)
        block = await self._client.get_active_block(
            home, zone.id, timetable, planning_instant(now, self._thresholds)
        )

        home_is_away = state.tado_mode == HomeMode.away
        away_config = None
        if needs_away_configuration(block, home_is_away):
            away_config = await self._client.get_away_configuration(home.id, zone.id)

        return evaluate(now, state, block, away_config, home_is_away, self._thresholds)

    async def execute_action(self, home: Home, zone: Zone, action: ControlAction) -> Overlay:
        assert action.setting is not None and action.duration is not None  # noqa: S101
        overlay = await self._client.put_overlay(home.id, zone.id, action.setting, action.duration)
        logger.debug("Zone %s overlay confirmed: %s", zone.name, overlay.to_payload())
        return overlay

    def record_decision(self, decision: ZoneDecision) -> None:
        if decision.failed:
            outcome, reason = "error", decision.error
        elif decision.action is None:
            outcome, reason = "none", ""
        else:
            outcome = decision.action.kind.value
            if decision.action.is_overlay and not decision.applied:
                outcome = "overlay (dry run)"
            reason = decision.action.describe()
        logger.info(
            "Decision: home=%s zone=%s action=%s reason=%s",
            decision.home_name,
            decision.zone_name or "-",
            outcome,
            reason,
        )


__all__ = ["TadoGateway", "ZoneController", "ZoneDecision"]
