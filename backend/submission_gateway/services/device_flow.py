"""
GitHub OAuth Device Flow.

Two layers:

- ``request_device_code`` / ``request_device_token`` issue the raw provider
  calls and hand back the provider status and payload untouched (the HTTP
  proxy endpoints forward them verbatim).
- ``DeviceAuthFlow`` drives one login attempt through
  NOT_STARTED -> PENDING -> RESOLVED | FAILED.

Polling rules: ``authorization_pending`` waits the current interval and
polls again; ``slow_down`` raises the interval by a fixed increment (or to
the provider's suggested interval when that is larger) and never lowers
it; any other error ends the flow with the provider's description.
``wait_for_token`` is bounded by a ``PollPolicy`` and by the device code's
own expiry.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional, Tuple

import httpx

from submission_gateway.config import settings

logger = logging.getLogger(__name__)

DEVICE_CODE_PATH = "/login/device/code"
ACCESS_TOKEN_PATH = "/login/oauth/access_token"
DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"

AUTHORIZATION_PENDING = "authorization_pending"
SLOW_DOWN = "slow_down"


class DeviceFlowState(str, Enum):
    NOT_STARTED = "not_started"
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


class DeviceFlowError(Exception):
    """Terminal device-flow failure; ``error`` is the provider's code, if any."""

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.error = error


class DeviceFlowTimeoutError(DeviceFlowError):
    """Raised when the poll policy or the device code expiry is exhausted."""


class DeviceFlowCancelledError(DeviceFlowError):
    """Raised when the caller abandons the login attempt."""


@dataclass
class DeviceSession:
    device_code: str
    user_code: str
    verification_uri: str
    poll_interval: int
    expires_at: datetime

    @property
    def expired(self) -> bool:
        return datetime.now(timezone.utc) >= self.expires_at


@dataclass
class PollPolicy:
    max_attempts: Optional[int] = None
    max_elapsed: Optional[float] = None


@dataclass
class PollResult:
    status: DeviceFlowState
    access_token: Optional[str] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    slowed_down: bool = False


def _oauth_headers() -> dict:
    return {
        "Accept": "application/json",
        "Content-Type": "application/x-www-form-urlencoded",
        "User-Agent": settings.USER_AGENT,
    }


def _payload(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {"error": "invalid_response", "error_description": response.text[:200]}
    return data if isinstance(data, dict) else {"error": "invalid_response"}


async def request_device_code(
    http: httpx.AsyncClient, client_id: str, scope: str
) -> Tuple[int, dict]:
    response = await http.post(
        f"{settings.GITHUB_OAUTH_URL.rstrip('/')}{DEVICE_CODE_PATH}",
        headers=_oauth_headers(),
        data={"client_id": client_id, "scope": scope},
    )
    if not response.is_success:
        logger.error("[Device Start] GitHub error: %s", response.status_code)
    return response.status_code, _payload(response)


async def request_device_token(
    http: httpx.AsyncClient, client_id: str, device_code: str
) -> Tuple[int, dict]:
    response = await http.post(
        f"{settings.GITHUB_OAUTH_URL.rstrip('/')}{ACCESS_TOKEN_PATH}",
        headers=_oauth_headers(),
        data={
            "client_id": client_id,
            "device_code": device_code,
            "grant_type": DEVICE_GRANT_TYPE,
        },
    )
    if not response.is_success:
        logger.error("[Device Token] GitHub error: %s", response.status_code)
    return response.status_code, _payload(response)


class DeviceAuthFlow:
    def __init__(
        self,
        client_id: str,
        scope: Optional[str] = None,
        *,
        http: Optional[httpx.AsyncClient] = None,
        slow_down_increment: Optional[int] = None,
        policy: Optional[PollPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not client_id:
            raise DeviceFlowError("Missing GitHub OAuth client id")
        self.client_id = client_id
        self.scope = scope or settings.GITHUB_DEVICE_SCOPE
        self.http = http
        self.slow_down_increment = slow_down_increment or settings.DEVICE_FLOW_SLOW_DOWN_SECONDS
        self.policy = policy or PollPolicy(max_attempts=settings.DEVICE_FLOW_MAX_ATTEMPTS)
        self.sleep = sleep
        self.clock = clock
        self.state = DeviceFlowState.NOT_STARTED
        self._cancelled = False

    async def _call(self, request, *args) -> Tuple[int, dict]:
        try:
            if self.http is not None:
                return await request(self.http, self.client_id, *args)
            async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as http:
                return await request(http, self.client_id, *args)
        except httpx.HTTPError as exc:
            logger.error("Device flow request failed: %s", exc)
            raise self._fail(
                DeviceFlowError(f"GitHub request failed: {exc}", error="network_error")
            ) from exc

    def _fail(self, error: DeviceFlowError) -> DeviceFlowError:
        self.state = DeviceFlowState.FAILED
        return error

    async def start(self) -> DeviceSession:
        """Request a device/user code pair. Any failure is final."""
        status_code, data = await self._call(request_device_code, self.scope)
        if status_code >= 400 or "device_code" not in data:
            raise self._fail(
                DeviceFlowError(
                    data.get("error_description")
                    or data.get("error")
                    or f"Failed to start device flow ({status_code})",
                    error=data.get("error"),
                )
            )

        self.state = DeviceFlowState.PENDING
        return DeviceSession(
            device_code=data["device_code"],
            user_code=data.get("user_code", ""),
            verification_uri=data.get("verification_uri", ""),
            poll_interval=int(data.get("interval") or 5),
            expires_at=datetime.now(timezone.utc)
            + timedelta(seconds=int(data.get("expires_in") or 900)),
        )

    async def poll(self, session: DeviceSession) -> PollResult:
        """
        One token request.

        Returns a PENDING result when the caller should wait and poll again
        (``slowed_down`` is set when the interval was raised). Raises
        ``DeviceFlowError`` for every terminal answer.
        """
        status_code, data = await self._call(request_device_token, session.device_code)

        if data.get("access_token"):
            self.state = DeviceFlowState.RESOLVED
            return PollResult(
                status=DeviceFlowState.RESOLVED,
                access_token=data["access_token"],
                token_type=data.get("token_type"),
                scope=data.get("scope"),
            )

        error = data.get("error")
        if error == AUTHORIZATION_PENDING:
            return PollResult(status=DeviceFlowState.PENDING)

        if error == SLOW_DOWN:
            raised = session.poll_interval + self.slow_down_increment
            suggested = int(data.get("interval") or 0)
            session.poll_interval = max(raised, suggested)
            logger.info("Provider asked to slow down; interval now %ss", session.poll_interval)
            return PollResult(status=DeviceFlowState.PENDING, slowed_down=True)

        if error:
            raise self._fail(
                DeviceFlowError(data.get("error_description") or error, error=error)
            )
        raise self._fail(
            DeviceFlowError(f"Unexpected token response ({status_code})")
        )

    async def wait_for_token(self, session: DeviceSession) -> str:
        """Poll until a token arrives, the flow fails, or the policy runs out."""
        started = self.clock()
        attempts = 0
        while True:
            if self._cancelled:
                raise self._fail(DeviceFlowCancelledError("Device flow cancelled"))
            if self.policy.max_attempts is not None and attempts >= self.policy.max_attempts:
                raise self._fail(
                    DeviceFlowTimeoutError(f"No authorization after {attempts} attempts")
                )
            if (
                self.policy.max_elapsed is not None
                and self.clock() - started >= self.policy.max_elapsed
            ):
                raise self._fail(DeviceFlowTimeoutError("Device flow timed out"))
            if session.expired:
                raise self._fail(
                    DeviceFlowTimeoutError("Device code expired", error="expired_token")
                )

            await self.sleep(session.poll_interval)
            if self._cancelled:
                raise self._fail(DeviceFlowCancelledError("Device flow cancelled"))

            attempts += 1
            result = await self.poll(session)
            if result.status == DeviceFlowState.RESOLVED:
                return result.access_token

    def cancel(self) -> None:
        """Stop scheduling further polls; an in-flight request is left to finish."""
        self._cancelled = True
