"""Tests for the command-line entry point."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs

import httpx
import pytest

from zonepilot import cli
from zonepilot.config import Settings
from zonepilot.core.controller import ZoneDecision
from zonepilot.integrations.tado_client import TadoAuthenticationError

NOW = datetime(2026, 7, 1, 12, 0, tzinfo=UTC)


def _decision(error: str | None = None) -> ZoneDecision:
    return ZoneDecision(
        home_id=1, home_name="Flat", zone_id=1, zone_name="Living", timestamp=NOW, error=error
    )


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"username": "me", "password": "pw"}), encoding="utf-8")
    return path


class TestParser:
    def test_flags(self) -> None:
        args = cli.build_parser().parse_args(
            ["-c", "cfg.json", "--dry-run", "--fail-fast", "--interval", "5"]
        )
        assert args.config == "cfg.json"
        assert args.dry_run is True
        assert args.fail_fast is True
        assert args.interval_minutes == 5
        assert args.debug is None

    def test_unset_flags_do_not_override(self) -> None:
        args = cli.build_parser().parse_args([])
        assert args.dry_run is None
        assert args.interval_minutes is None


class TestMain:
    def test_missing_credentials(self) -> None:
        assert cli.main([]) == 2

    def test_invalid_config(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("[]", encoding="utf-8")
        assert cli.main(["-c", str(path)]) == 2

    def test_successful_pass(self, config_file: Path) -> None:
        with patch.object(cli, "run_pass", AsyncMock(return_value=[_decision()])) as run_pass:
            assert cli.main(["-c", str(config_file), "--dry-run"]) == 0
        settings = run_pass.await_args.args[0]
        assert settings.dry_run is True

    def test_failed_zone_sets_exit_code(self, config_file: Path) -> None:
        decisions = [_decision(), _decision(error="Server error 500")]
        with patch.object(cli, "run_pass", AsyncMock(return_value=decisions)):
            assert cli.main(["-c", str(config_file)]) == 1

    def test_aborted_pass_sets_exit_code(self, config_file: Path) -> None:
        failure = AsyncMock(side_effect=TadoAuthenticationError("Authentication rejected"))
        with patch.object(cli, "run_pass", failure):
            assert cli.main(["-c", str(config_file)]) == 1


class TestScheduler:
    def test_interval_job(self) -> None:
        scheduler = cli.init_scheduler(Settings(username="me", password="pw", interval_minutes=5))
        jobs = scheduler.get_jobs()

        assert [job.id for job in jobs] == ["zone_pass"]
        assert jobs[0].trigger.interval.total_seconds() == 300

    async def test_scheduled_pass_logs_failures(self, caplog: pytest.LogCaptureFixture) -> None:
        failure = AsyncMock(side_effect=TadoAuthenticationError("Authentication rejected"))
        with patch.object(cli, "run_pass", failure):
            await cli._scheduled_pass(Settings(username="me", password="pw"))
        assert "Scheduled pass failed" in caplog.text


class SingleUseTokenServer:
    """Token endpoint that accepts each refresh token once and rotates it."""

    def __init__(self, refresh_token: str) -> None:
        self.valid = {refresh_token}
        self.issued = 0
        self.grants: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host != "auth.test":
            return httpx.Response(200, json={"id": "acc", "homes": []})

        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        self.grants.append(form["grant_type"])
        if form["grant_type"] == "refresh_token":
            if form["refresh_token"] not in self.valid:
                return httpx.Response(400, json={"error": "invalid_grant"})
            self.valid.discard(form["refresh_token"])
        elif (form.get("username"), form.get("password")) != ("me", "pw"):
            return httpx.Response(401, json={"error": "invalid_grant"})

        self.issued += 1
        token = f"rt-{self.issued}"
        self.valid.add(token)
        return httpx.Response(
            200,
            json={"access_token": f"at-{self.issued}", "refresh_token": token, "expires_in": 600},
        )


def _token_settings(**kwargs: object) -> Settings:
    return Settings(
        api_url="https://api.test/api/v2",
        auth_url="https://auth.test/oauth/token",
        **kwargs,  # type: ignore[arg-type]
    )


class TestRunPass:
    async def test_rotated_refresh_token_carries_to_next_pass(self) -> None:
        server = SingleUseTokenServer("rt-0")
        settings = _token_settings(refresh_token="rt-0")
        transport = httpx.MockTransport(server)

        assert await cli.run_pass(settings, transport=transport) == []
        assert settings.refresh_token == "rt-1"
        assert await cli.run_pass(settings, transport=transport) == []

        assert settings.refresh_token == "rt-2"
        assert server.grants == ["refresh_token", "refresh_token"]

    async def test_stale_refresh_token_falls_back_to_password(self) -> None:
        server = SingleUseTokenServer("rt-fresh")
        settings = _token_settings(refresh_token="rt-stale", username="me", password="pw")

        await cli.run_pass(settings, transport=httpx.MockTransport(server))

        assert server.grants == ["refresh_token", "password"]
        assert settings.refresh_token == "rt-1"

    async def test_stale_refresh_token_without_password_fails(self) -> None:
        server = SingleUseTokenServer("rt-fresh")
        settings = _token_settings(refresh_token="rt-stale")

        with pytest.raises(TadoAuthenticationError):
            await cli.run_pass(settings, transport=httpx.MockTransport(server))

        assert server.grants == ["refresh_token"]
        assert settings.refresh_token == "rt-stale"
