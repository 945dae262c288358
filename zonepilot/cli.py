"""Command-line entry point for zonepilot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore[import-untyped]

from zonepilot.config import Settings, load_settings
from zonepilot.core.controller import ZoneController, ZoneDecision
from zonepilot.core.scheduler import ScheduleError
from zonepilot.integrations.tado_client import TadoClient, TadoClientError

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper())
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.DEBUG if settings.debug else logging.WARNING)


async def run_pass(settings: Settings, **client_options: Any) -> list[ZoneDecision]:
    """Authenticate, evaluate every zone once, and close the session.

    The refresh token the session ends with is written back to ``settings``;
    tado° accepts each refresh token only once, so the next pass needs it.
    """

    client = TadoClient.from_settings(settings, **client_options)
    try:
        async with client:
            controller = ZoneController(
                client=client,
                thresholds=settings.policy_thresholds(),
                dry_run=settings.dry_run,
                fail_fast=settings.fail_fast,
            )
            return await controller.run_once()
    finally:
        if client.refresh_token:
            settings.refresh_token = client.refresh_token


async def _scheduled_pass(settings: Settings) -> None:
    try:
        await run_pass(settings)
    except (TadoClientError, ScheduleError):
        logger.exception("Scheduled pass failed")


def init_scheduler(settings: Settings) -> AsyncIOScheduler:
    """Build the scheduler that re-runs the pass every ``interval_minutes``."""

    scheduler = AsyncIOScheduler(
        timezone="UTC",
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 60,
        },
    )
    scheduler.add_job(
        _scheduled_pass,
        IntervalTrigger(minutes=settings.interval_minutes),
        args=[settings],
        id="zone_pass",
        name="Evaluate Zones",
        replace_existing=True,
    )
    return scheduler


async def run_forever(settings: Settings) -> None:
    await _scheduled_pass(settings)
    scheduler = init_scheduler(settings)
    scheduler.start()
    logger.info("Evaluating zones every %d minute(s)", settings.interval_minutes)
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zonepilot",
        description="Keep tado° air-conditioning zones near their scheduled setpoint.",
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="PATH",
        help="JSON config file (e.g. config.json with username and password).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Log the decided actions without writing overlays.",
    )
    parser.add_argument(
        "--interval",
        type=int,
        metavar="MINUTES",
        dest="interval_minutes",
        help="Re-run the evaluation every MINUTES instead of once.",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        default=None,
        help="Abort the whole pass on the first zone error.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Enable debug logging.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    overrides = {
        "dry_run": args.dry_run,
        "fail_fast": args.fail_fast,
        "debug": args.debug,
        "interval_minutes": args.interval_minutes,
    }
    try:
        settings = load_settings(args.config, **overrides)
    except (OSError, ValueError) as exc:
        print(f"zonepilot: invalid configuration: {exc}", file=sys.stderr)
        return 2

    configure_logging(settings)

    if not settings.has_credentials:
        logger.error("No tado° credentials configured (username/password or refresh token)")
        return 2

    if settings.interval_minutes:
        try:
            asyncio.run(run_forever(settings))
        except KeyboardInterrupt:
            logger.info("Stopped")
        return 0

    try:
        decisions = asyncio.run(run_pass(settings))
    except (TadoClientError, ScheduleError) as exc:
        logger.error("Evaluation pass aborted: %s", exc)
        return 1
    return 1 if any(decision.failed for decision in decisions) else 0

