"""tado° REST API client for zonepilot.

Async wrapper around the tado° v2 REST API: OAuth2 token handling, typed
payloads, and structured error translation. It is both the data provider
the controller reads zone state from and the actuator it writes overlays
through.
"""

from __future__ import annotations

import logging
import time
from contextlib import suppress
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from zonepilot.core.scheduler import Scheduler
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

if TYPE_CHECKING:
    from zonepilot.config import Settings

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Renew the bearer token slightly before the server expires it.
_TOKEN_LEEWAY_SECONDS = 30.0

# Token endpoint statuses that mean the grant itself was refused.
_REJECTED_STATUSES = (400, 401, 403)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class TadoClientError(Exception):
    """Base exception for all tado° client errors."""


class TadoConnectionError(TadoClientError):
    """Raised when the client cannot reach the tado° API."""


class TadoAuthenticationError(TadoClientError):
    """Raised when credentials or the bearer token are rejected."""


class TadoNotFoundError(TadoClientError):
    """Raised on 404 Not Found responses (bad home / zone / timetable)."""


class TadoServiceError(TadoClientError):
    """Raised for other HTTP errors and undecodable payloads."""


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class TadoClient:
    """Async REST wrapper for the tado° API.

    Usage::

        async with TadoClient(username="me@example.com", password="...") as client:
            account = await client.get_account()
            state = await client.get_zone_state(account.homes[0].id, 1)
    """

    def __init__(
        self,
        *,
        username: str = "",
        password: str = "",
        refresh_token: str = "",
        api_url: str = "https://my.tado.com/api/v2",
        auth_url: str = "https://auth.tado.com/oauth/token",
        client_id: str = "public-api-preview",
        client_secret: str = "",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._username = username
        self._password = password
        self._refresh_token = refresh_token
        self._api_url = api_url.rstrip("/")
        self._auth_url = auth_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._access_token: str = ""
        self._token_deadline: float = 0.0

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> TadoClient:
        return cls(
            username=settings.username,
            password=settings.password,
            refresh_token=settings.refresh_token,
            api_url=str(settings.api_url),
            auth_url=str(settings.auth_url),
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            timeout=settings.http_timeout,
            **kwargs,
        )

    # -- async context manager ------------------------------------------------

    async def __aenter__(self) -> TadoClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.disconnect()

    # -- lifecycle ------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._client is not None and bool(self._access_token)

    async def connect(self) -> None:
        """Open the HTTP client and obtain a bearer token.

        Raises:
            TadoAuthenticationError: If no credentials are configured or they are rejected.
            TadoConnectionError: If the token endpoint is unreachable.
        """
        if self.connected:
            logger.debug("TadoClient already connected to %s", self._api_url)
            return

        if not (self._refresh_token or (self._username and self._password)):
            raise TadoAuthenticationError("tado° username/password or refresh token is required")

        self._client = httpx.AsyncClient(
            base_url=self._api_url,
            headers={"Accept": "application/json"},
            timeout=self._timeout,
            transport=self._transport,
        )
        try:
            await self.authenticate()
        except Exception:
            await self.disconnect()
            raise

    async def disconnect(self) -> None:
        """Close the underlying HTTP client and forget the bearer token."""
        self._access_token = ""
        self._token_deadline = 0.0
        if self._client is not None:
            with suppress(Exception):
                await self._client.aclose()
            self._client = None
            logger.debug("Disconnected from tado° API")

    # -- authentication -------------------------------------------------------

    @property
    def refresh_token(self) -> str:
        """The latest refresh token; tado° rotates it on every token grant."""
        return self._refresh_token

    async def authenticate(self) -> None:
        """Request a bearer token from the OAuth2 token endpoint.

        Uses the refresh token when one is held, otherwise the password grant.
        A rejected refresh token falls back to the password grant when a
        username and password are configured.
        """
        response: httpx.Response | None = None
        if self._refresh_token:
            response = await self._request_token(
                grant_type="refresh_token", refresh_token=self._refresh_token
            )
            if response.status_code in _REJECTED_STATUSES and self._username and self._password:
                logger.warning(
                    "Refresh token rejected (%s), falling back to password grant",
                    response.status_code,
                )
                self._refresh_token = ""
                response = None
        if response is None:
            response = await self._request_token(
                grant_type="password", username=self._username, password=self._password
            )

        if response.status_code in _REJECTED_STATUSES:
            msg = f"POST {self._auth_url}: credentials rejected ({response.status_code})"
            logger.error(msg)
            raise TadoAuthenticationError(msg)
        self._raise_for_status(response, context=f"POST {self._auth_url}")

        try:
            payload = response.json()
            self._access_token = str(payload["access_token"])
        except (ValueError, KeyError, TypeError) as exc:
            raise TadoServiceError(f"Decode {self._auth_url}: {exc}") from exc

        self._refresh_token = str(payload.get("refresh_token") or self._refresh_token)
        expires_in = float(payload.get("expires_in", 600))
        self._token_deadline = time.monotonic() + max(expires_in - _TOKEN_LEEWAY_SECONDS, 0.0)
        assert self._client is not None  # noqa: S101 - set by connect()
        self._client.headers["Authorization"] = f"Bearer {self._access_token}"
        logger.info("Authenticated with tado° (token valid for %.0fs)", expires_in)

    async def _request_token(self, **grant: str) -> httpx.Response:
        assert self._client is not None  # noqa: S101 - set by connect()

        form = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "scope": "home.user",
            **grant,
        }
        logger.debug("Requesting token (grant=%s)", grant["grant_type"])
        try:
            return await self._client.post(self._auth_url, data=form)
        except httpx.TimeoutException as exc:
            raise TadoConnectionError(f"POST {self._auth_url}: timed out") from exc
        except httpx.TransportError as exc:
            raise TadoConnectionError(f"POST {self._auth_url}: {exc}") from exc

    async def _ensure_token(self) -> None:
        if self._client is None:
            await self.connect()
        elif time.monotonic() >= self._token_deadline:
            logger.debug("Bearer token expired, renewing")
            await self.authenticate()

    # -- internal request helpers ---------------------------------------------

    def _raise_for_status(self, response: httpx.Response, *, context: str = "") -> None:
        """Translate HTTP error codes into typed exceptions."""
        if response.is_success:
            return

        status = response.status_code
        detail = response.text[:300]
        prefix = f"{context}: " if context else ""

        if status == 401:
            msg = f"{prefix}Authentication failed (401)"
            logger.error(msg)
            raise TadoAuthenticationError(msg)
        if status == 404:
            msg = f"{prefix}Resource not found (404): {detail}"
            logger.warning(msg)
            raise TadoNotFoundError(msg)
        if 400 <= status < 500:
            msg = f"{prefix}Client error {status}: {detail}"
        else:
            msg = f"{prefix}Server error {status}: {detail}"
        logger.error(msg)
        raise TadoServiceError(msg)

    async def _request(self, method: str, path: str, *, json: Any = None) -> httpx.Response:
        """Send an authenticated request.

        Raises:
            TadoConnectionError: On network-level failures.
            TadoAuthenticationError / TadoNotFoundError / TadoServiceError: On HTTP errors.
        """
        await self._ensure_token()
        assert self._client is not None  # noqa: S101 - guaranteed by _ensure_token()

        context = f"{method} {path}"
        logger.debug("%s (json=%s)", context, json is not None)
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            msg = f"{context}: timed out after {self._timeout}s"
            logger.error(msg)
            raise TadoConnectionError(msg) from exc
        except httpx.TransportError as exc:
            msg = f"{context}: {exc}"
            logger.error(msg)
            raise TadoConnectionError(msg) from exc

        self._raise_for_status(response, context=context)
        return response

    @staticmethod
    def _decode(response: httpx.Response, adapter: type[ModelT] | TypeAdapter[Any]) -> Any:
        try:
            data = response.json()
            if isinstance(adapter, TypeAdapter):
                return adapter.validate_python(data)
            return adapter.model_validate(data)
        except (ValueError, ValidationError) as exc:
            raise TadoServiceError(f"Decode {response.request.url.path}: {exc}") from exc

    async def _get(self, path: str, model: type[ModelT]) -> ModelT:
        response = await self._request("GET", path)
        return self._decode(response, model)  # type: ignore[no-any-return]

    # -- read API -------------------------------------------------------------

    async def get_account(self) -> Account:
        return await self._get("/me", Account)

    async def get_home(self, home_id: int) -> Home:
        return await self._get(f"/homes/{home_id}", Home)

    async def get_zones(self, home_id: int) -> list[Zone]:
        response = await self._request("GET", f"/homes/{home_id}/zones")
        zones: list[Zone] = self._decode(response, _ZONES)
        logger.debug("Home %s has %d zone(s)", home_id, len(zones))
        return zones

    async def get_zone_state(self, home_id: int, zone_id: int) -> ZoneState:
        return await self._get(f"/homes/{home_id}/zones/{zone_id}/state", ZoneState)

    async def get_away_configuration(self, home_id: int, zone_id: int) -> AwayConfiguration:
        return await self._get(
            f"/homes/{home_id}/zones/{zone_id}/awayConfiguration", AwayConfiguration
        )

    async def get_active_timetable(self, home_id: int, zone_id: int) -> ActiveTimetable:
        return await self._get(
            f"/homes/{home_id}/zones/{zone_id}/schedule/activeTimetable", ActiveTimetable
        )

    async def get_timetable_blocks(
        self, home_id: int, zone_id: int, timetable_id: int, day_type: str
    ) -> list[TimetableBlock]:
        response = await self._request(
            "GET",
            f"/homes/{home_id}/zones/{zone_id}/schedule/timetables/{timetable_id}/blocks/{day_type}",
        )
        blocks: list[TimetableBlock] = self._decode(response, _BLOCKS)
        return blocks

    async def get_active_block(
        self, home: Home, zone_id: int, timetable: ActiveTimetable, instant: datetime
    ) -> TimetableBlock:
        """Return the schedule block active at ``instant`` in the home's time zone.

        Raises:
            TimeZoneError: If the home's time zone is unknown.
            ScheduleGapError: If no block of that day covers the instant.
        """
        local = Scheduler.localize(instant, home.date_time_zone)
        day_type = Scheduler.day_type(timetable.id, local)
        blocks = await self.get_timetable_blocks(home.id, zone_id, timetable.id, day_type)
        block = Scheduler.find_active_block(blocks, local)
        logger.debug(
            "Zone %s: %s block %s-%s active at %s",
            zone_id,
            day_type,
            block.start,
            block.end,
            local.isoformat(),
        )
        return block

    # -- write API ------------------------------------------------------------

    async def put_overlay(
        self, home_id: int, zone_id: int, setting: Setting, duration: timedelta
    ) -> Overlay:
        """Apply ``setting`` as an overlay that terminates after ``duration``."""
        overlay = Overlay.timer(setting, int(duration.total_seconds()))
        logger.info(
            "Applying overlay to zone %s (power=%s, fan=%s, %ss)",
            zone_id,
            setting.power,
            setting.fan_speed or "-",
            overlay.termination.duration_in_seconds if overlay.termination else "?",
        )
        response = await self._request(
            "PUT", f"/homes/{home_id}/zones/{zone_id}/overlay", json=overlay.to_payload()
        )
        return self._decode(response, Overlay)  # type: ignore[no-any-return]


_ZONES: TypeAdapter[list[Zone]] = TypeAdapter(list[Zone])
_BLOCKS: TypeAdapter[list[TimetableBlock]] = TypeAdapter(list[TimetableBlock])


__all__ = [
    "TadoAuthenticationError",
    "TadoClient",
    "TadoClientError",
    "TadoConnectionError",
    "TadoNotFoundError",
    "TadoServiceError",
]
