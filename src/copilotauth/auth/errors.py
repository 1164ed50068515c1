"""Exception taxonomy for the Copilot authentication flow."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from copilotauth.auth.oauth import FlowState


class CopilotAuthError(Exception):
    """Base class for every error raised by this package."""


class TransportError(CopilotAuthError):
    """Network-level failure talking to GitHub (connection, timeout, ...)."""


class UnexpectedStatus(CopilotAuthError):
    """GitHub answered with a status the flow cannot continue from."""

    def __init__(self, status_code: int, context: str, body: str = "") -> None:
        self.status_code = status_code
        self.context = context
        self.body = body
        detail = f"{context}: {status_code}"
        if body:
            detail += f" - {body}"
        super().__init__(detail)


class ProviderProtocolError(CopilotAuthError):
    """GitHub returned a body we cannot make sense of."""


class OAuthDenial(CopilotAuthError):
    """A terminal OAuth error code (access_denied, expired_token, ...)."""

    def __init__(self, code: str, message: str, state: FlowState) -> None:
        self.code = code
        self.state = state
        super().__init__(message)


class DeadlineExceeded(CopilotAuthError):
    """The user did not finish authorizing before the polling deadline."""


class PersistenceError(CopilotAuthError):
    """Reading, writing or removing the credential file failed."""


class ExchangeFailure(CopilotAuthError):
    """No Copilot endpoint produced a token."""

    def __init__(self, last_error: str) -> None:
        self.last_error = last_error
        super().__init__(last_error)
