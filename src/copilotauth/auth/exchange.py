"""Copilot token exchange — trade a GitHub OAuth token for a Copilot credential."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

from copilotauth.auth.credential import Credential
from copilotauth.auth.errors import ExchangeFailure, TransportError
from copilotauth.auth.transport import Transport
from copilotauth.config import COPILOT_EXCHANGE_ENDPOINTS, EXCHANGE_HEADERS

logger = logging.getLogger(__name__)


class ExchangeField(str, Enum):
    """Body fields that may carry the Copilot token, in precedence order."""

    TOKEN = "token"
    ACCESS_TOKEN = "access_token"
    CHAT_TOKEN = "chat_token"
    COPILOT_TOKEN = "copilot_token"


@dataclass(frozen=True)
class ExchangeEndpoint:
    url: str
    name: str


DEFAULT_ENDPOINTS = tuple(
    ExchangeEndpoint(url, name) for url, name in COPILOT_EXCHANGE_ENDPOINTS
)


@dataclass
class ExchangeResult:
    credential: Credential
    endpoint: ExchangeEndpoint | None = None  # None → provider-token fallback
    field: ExchangeField | None = None
    last_error: str = ""

    @property
    def fallback(self) -> bool:
        return self.endpoint is None

    @property
    def message(self) -> str:
        if self.endpoint is not None:
            return f"Successfully authenticated with GitHub Copilot via {self.endpoint.name}"
        return (
            "GitHub authentication complete. Note: Using GitHub token as "
            "Copilot endpoints are not accessible. "
            f"Last error: {self.last_error}"
        )


def find_token_field(body: Any) -> tuple[ExchangeField, str] | None:
    """First field of `ExchangeField` holding a non-empty string."""
    if not isinstance(body, dict):
        return None
    for field in ExchangeField:
        value = body.get(field.value)
        if isinstance(value, str) and value:
            return field, value
    return None


class CredentialExchanger:
    """Tries each Copilot endpoint in order; first token wins.

    If no endpoint yields a token the GitHub token itself becomes the
    credential. That fallback may grant broader access than a real Copilot
    token, so it is an explicit mode: pass
    ``allow_provider_token_fallback=False`` to get `ExchangeFailure` instead.
    """

    def __init__(
        self,
        transport: Transport,
        endpoints: Sequence[ExchangeEndpoint] = DEFAULT_ENDPOINTS,
        *,
        allow_provider_token_fallback: bool = True,
    ) -> None:
        self.transport = transport
        self.endpoints = tuple(endpoints)
        self.allow_provider_token_fallback = allow_provider_token_fallback

    async def exchange(self, github_token: str) -> ExchangeResult:
        last_error = "No Copilot endpoints configured"

        for endpoint in self.endpoints:
            logger.debug("Trying %s endpoint: %s", endpoint.name, endpoint.url)
            try:
                field, token = await self._exchange_once(endpoint, github_token)
            except ExchangeFailure as e:
                last_error = e.last_error
                logger.info("%s", last_error)
                continue
            logger.info(
                "Found Copilot token in field '%s' from %s endpoint",
                field.value,
                endpoint.name,
            )
            return ExchangeResult(
                credential=Credential.from_raw_token(token),
                endpoint=endpoint,
                field=field,
            )

        if not self.allow_provider_token_fallback:
            raise ExchangeFailure(last_error)

        logger.warning(
            "No Copilot endpoint returned a token, using the GitHub token as fallback (%s)",
            last_error,
        )
        return ExchangeResult(
            credential=Credential.from_raw_token(github_token),
            last_error=last_error,
        )

    async def _exchange_once(
        self, endpoint: ExchangeEndpoint, github_token: str
    ) -> tuple[ExchangeField, str]:
        try:
            resp = await self.transport.get_bearer(
                endpoint.url, github_token, headers=EXCHANGE_HEADERS
            )
        except TransportError as e:
            raise ExchangeFailure(f"{endpoint.name} request failed: {e}") from e

        if resp.status_code == 404:
            raise ExchangeFailure(f"{endpoint.name} endpoint not found")
        if not resp.is_success:
            raise ExchangeFailure(
                f"{endpoint.name} failed: {resp.status_code} - {resp.text}"
            )

        try:
            body = resp.json()
        except json.JSONDecodeError as e:
            raise ExchangeFailure(f"Invalid JSON in {endpoint.name} response") from e

        found = find_token_field(body)
        if found is None:
            raise ExchangeFailure(f"No token field found in {endpoint.name} response")
        return found
