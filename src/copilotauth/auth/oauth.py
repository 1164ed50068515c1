"""GitHub OAuth Device Flow — from device code to a stored Copilot credential.

One authentication attempt walks these states::

    REQUESTING_GRANT → AWAITING_AUTHORIZATION → EXCHANGING → SUCCESS
                                   ↘ DENIED | EXPIRED | FAILED

Every attempt emits one `AuthStarted` (once the user code is known) and
exactly one `AuthComplete` to the caller's event sink.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

import httpx

from copilotauth.auth.browser import open_browser
from copilotauth.auth.credential import Credential
from copilotauth.auth.errors import (
    DeadlineExceeded,
    ExchangeFailure,
    OAuthDenial,
    PersistenceError,
    ProviderProtocolError,
    TransportError,
    UnexpectedStatus,
)
from copilotauth.auth.events import (
    AuthComplete,
    AuthenticationOutcome,
    AuthStarted,
    Event,
    EventSink,
)
from copilotauth.auth.exchange import CredentialExchanger
from copilotauth.auth.storage import CredentialStore
from copilotauth.auth.transport import Transport
from copilotauth.config import (
    COPILOT_TOKEN_ENV,
    DEVICE_CODE_POLL_INTERVAL,
    DEVICE_CODE_TIMEOUT,
    DEVICE_GRANT_TYPE,
    GITHUB_ACCESS_TOKEN_URL,
    GITHUB_CLIENT_ID,
    GITHUB_DEVICE_CODE_URL,
    GITHUB_SCOPE,
    SLOW_DOWN_EXTRA_DELAY,
)

logger = logging.getLogger(__name__)


class FlowState(str, Enum):
    REQUESTING_GRANT = "requesting_grant"
    AWAITING_AUTHORIZATION = "awaiting_authorization"
    EXCHANGING = "exchanging"
    SUCCESS = "success"
    DENIED = "denied"
    EXPIRED = "expired"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {FlowState.SUCCESS, FlowState.DENIED, FlowState.EXPIRED, FlowState.FAILED}
)


class OAuthErrorCode(str, Enum):
    AUTHORIZATION_PENDING = "authorization_pending"
    SLOW_DOWN = "slow_down"
    ACCESS_DENIED = "access_denied"
    EXPIRED_TOKEN = "expired_token"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: str) -> OAuthErrorCode:
        try:
            return cls(raw)
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class DeviceAuthorizationGrant:
    """Device code response.  Lives only as long as one attempt."""

    device_code: str
    user_code: str
    verification_uri: str
    poll_interval: int
    issued_at: float  # clock reading when the grant was received


@dataclass(frozen=True)
class PollStep:
    """A non-terminal poll result: either the token, or keep waiting."""

    access_token: str | None = None
    extra_delay: int = 0  # added to the next wait only
    transient: bool = False  # GitHub 5xx


# ── response interpretation (pure) ──────────────────────────────────


def _json_object(resp: httpx.Response) -> dict[str, Any] | None:
    try:
        data = resp.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def interpret_oauth_error(
    raw: str, slow_down_delay: int = SLOW_DOWN_EXTRA_DELAY
) -> PollStep:
    code = OAuthErrorCode.parse(raw)
    if code is OAuthErrorCode.AUTHORIZATION_PENDING:
        return PollStep()
    if code is OAuthErrorCode.SLOW_DOWN:
        return PollStep(extra_delay=slow_down_delay)
    if code is OAuthErrorCode.ACCESS_DENIED:
        raise OAuthDenial(raw, "User denied authorization", FlowState.DENIED)
    if code is OAuthErrorCode.EXPIRED_TOKEN:
        raise OAuthDenial(
            raw, "Authorization code expired, please try again", FlowState.EXPIRED
        )
    raise OAuthDenial(raw, f"Authentication failed: {raw}", FlowState.FAILED)


def interpret_token_response(
    resp: httpx.Response, slow_down_delay: int = SLOW_DOWN_EXTRA_DELAY
) -> PollStep:
    """Map one token-endpoint response to a `PollStep`, or raise if terminal."""
    body = _json_object(resp)
    error = body.get("error") if body is not None else None

    if resp.is_success:
        if body is None:
            raise ProviderProtocolError("Unexpected response from GitHub")
        token = body.get("access_token")
        if isinstance(token, str) and token:
            return PollStep(access_token=token)
        if isinstance(error, str):
            return interpret_oauth_error(error, slow_down_delay)
        raise ProviderProtocolError("Unexpected response from GitHub")

    if resp.status_code >= 500:
        return PollStep(transient=True)
    # GitHub may send OAuth errors with a 4xx status
    if isinstance(error, str):
        return interpret_oauth_error(error, slow_down_delay)
    raise UnexpectedStatus(resp.status_code, "GitHub API error", resp.text)


# ── the flow ────────────────────────────────────────────────────────


class DeviceFlowClient:
    """Runs one device-flow attempt at a time against GitHub.

    `sleep` and `clock` are injectable so the polling loop can be driven
    without real waiting; `clock` must be monotonic.
    """

    def __init__(
        self,
        transport: Transport,
        store: CredentialStore | None = None,
        exchanger: CredentialExchanger | None = None,
        *,
        client_id: str = GITHUB_CLIENT_ID,
        scope: str = GITHUB_SCOPE,
        device_code_url: str = GITHUB_DEVICE_CODE_URL,
        access_token_url: str = GITHUB_ACCESS_TOKEN_URL,
        timeout: float = DEVICE_CODE_TIMEOUT,
        slow_down_delay: int = SLOW_DOWN_EXTRA_DELAY,
        allow_provider_token_fallback: bool = True,
        export_env: bool = False,
        launch_browser: bool = True,
        opener: Callable[[str], Any] = open_browser,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.transport = transport
        self._store = store
        self.exchanger = exchanger or CredentialExchanger(
            transport,
            allow_provider_token_fallback=allow_provider_token_fallback,
        )
        self.client_id = client_id
        self.scope = scope
        self.device_code_url = device_code_url
        self.access_token_url = access_token_url
        self.timeout = timeout
        self.slow_down_delay = slow_down_delay
        self.export_env = export_env
        self.launch_browser = launch_browser
        self._opener = opener
        self._sleep = sleep
        self._clock = clock
        self.state = FlowState.REQUESTING_GRANT

    # ── steps ───────────────────────────────────────────────────────

    async def request_grant(self) -> DeviceAuthorizationGrant:
        """Step 1: request a device code from GitHub."""
        self.state = FlowState.REQUESTING_GRANT
        resp = await self.transport.post_form(
            self.device_code_url,
            {"client_id": self.client_id, "scope": self.scope},
        )
        if not resp.is_success:
            raise UnexpectedStatus(
                resp.status_code, "Failed to request device code", resp.text
            )

        data = _json_object(resp)
        if data is None:
            raise ProviderProtocolError("Device code response is not a JSON object")
        missing = [
            key
            for key in ("device_code", "user_code", "verification_uri")
            if not isinstance(data.get(key), str) or not data[key]
        ]
        if missing:
            raise ProviderProtocolError(
                f"Device code response is missing {', '.join(missing)}"
            )

        interval = data.get("interval")
        if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
            interval = DEVICE_CODE_POLL_INTERVAL

        return DeviceAuthorizationGrant(
            device_code=data["device_code"],
            user_code=data["user_code"],
            verification_uri=data["verification_uri"],
            poll_interval=interval,
            issued_at=self._clock(),
        )

    async def poll_once(self, grant: DeviceAuthorizationGrant) -> PollStep:
        resp = await self.transport.post_form(
            self.access_token_url,
            {
                "client_id": self.client_id,
                "device_code": grant.device_code,
                "grant_type": DEVICE_GRANT_TYPE,
            },
        )
        logger.debug("Polled GitHub for token (status: %s)", resp.status_code)
        return interpret_token_response(resp, self.slow_down_delay)

    async def wait_for_access_token(self, grant: DeviceAuthorizationGrant) -> str:
        """Steps 2-3: poll until the user authorizes.  Returns the GitHub token."""
        self.state = FlowState.AWAITING_AUTHORIZATION
        deadline = grant.issued_at + self.timeout
        extra_delay = 0

        while True:
            self._check_deadline(deadline)
            await self._sleep(grant.poll_interval + extra_delay)
            # the sleep may have carried us past the deadline
            self._check_deadline(deadline)

            step = await self.poll_once(grant)
            if step.access_token:
                return step.access_token

            extra_delay = step.extra_delay
            if step.transient:
                logger.info("GitHub server error while polling, retrying")
            elif extra_delay:
                logger.info("GitHub asked us to slow down, waiting %ss more", extra_delay)
            else:
                logger.debug("Still waiting for user authorization")

    async def authenticate(self, sink: EventSink, sub_id: str) -> AuthenticationOutcome:
        """Run a whole attempt, reporting progress to `sink` under `sub_id`.

        Network failures are reported with an `AuthComplete` and then
        re-raised; every other failure ends up in the returned outcome.
        """
        try:
            outcome = await self._run(sink, sub_id)
        except TransportError as e:
            self.state = FlowState.FAILED
            await sink.put(
                Event(id=sub_id, msg=AuthComplete(success=False, message=f"Network error: {e}"))
            )
            raise
        await sink.put(Event(id=sub_id, msg=outcome.to_event()))
        return outcome

    # ── private ─────────────────────────────────────────────────────

    async def _run(self, sink: EventSink, sub_id: str) -> AuthenticationOutcome:
        try:
            grant = await self.request_grant()
            await sink.put(
                Event(
                    id=sub_id,
                    msg=AuthStarted(
                        verification_uri=grant.verification_uri,
                        user_code=grant.user_code,
                    ),
                )
            )
            if self.launch_browser:
                self._opener(grant.verification_uri)

            github_token = await self.wait_for_access_token(grant)
            logger.info("Got GitHub access token, exchanging for Copilot token")
            self.state = FlowState.EXCHANGING
            result = await self.exchanger.exchange(github_token)
        except OAuthDenial as e:
            return self._finish(e.state, str(e), error=e)
        except DeadlineExceeded as e:
            return self._finish(FlowState.EXPIRED, "Authentication expired", error=e)
        except ExchangeFailure as e:
            return self._finish(
                FlowState.FAILED,
                f"Copilot token exchange failed: {e.last_error}",
                error=e,
            )
        except (UnexpectedStatus, ProviderProtocolError) as e:
            return self._finish(FlowState.FAILED, str(e), error=e)

        message = result.message
        warning = self._persist(result.credential)
        if warning:
            message = f"{message}\n{warning}"
        return self._finish(FlowState.SUCCESS, message, credential=result.credential)

    def _persist(self, credential: Credential) -> str:
        """Save (and optionally export) the credential.  Returns a warning, if any."""
        try:
            store = self._store if self._store is not None else CredentialStore()
            store.save(credential)
        except PersistenceError as e:
            logger.warning("Could not save token persistently: %s", e)
            return (
                f"Warning: Could not save token persistently: {e}\n"
                f"To use this token in your shell, run: "
                f"export {COPILOT_TOKEN_ENV}='{credential.secret}'"
            )
        if self.export_env:
            store.export_to_environment()
        return ""

    def _check_deadline(self, deadline: float) -> None:
        if self._clock() > deadline:
            raise DeadlineExceeded("Authentication expired")

    def _finish(
        self,
        state: FlowState,
        message: str,
        *,
        credential: Credential | None = None,
        error: Exception | None = None,
    ) -> AuthenticationOutcome:
        self.state = state
        return AuthenticationOutcome(
            success=state is FlowState.SUCCESS,
            message=message,
            state=state,
            credential=credential,
            error=error,
        )


async def handle_copilot_auth(
    sink: EventSink,
    sub_id: str,
    store: CredentialStore | None = None,
    **kwargs: Any,
) -> AuthenticationOutcome:
    """Run the full OAuth Device Flow with a fresh HTTP client."""
    async with Transport() as transport:
        client = DeviceFlowClient(transport, store=store, **kwargs)
        return await client.authenticate(sink, sub_id)
