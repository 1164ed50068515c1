"""Lifecycle events emitted while authenticating, and the final outcome."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, Union

from copilotauth.auth.credential import Credential

if TYPE_CHECKING:
    from copilotauth.auth.oauth import FlowState


@dataclass(frozen=True)
class AuthStarted:
    verification_uri: str
    user_code: str


@dataclass(frozen=True)
class AuthComplete:
    success: bool
    message: str


EventMsg = Union[AuthStarted, AuthComplete]


@dataclass(frozen=True)
class Event:
    id: str  # submission id of the authentication request
    msg: EventMsg


class EventSink(Protocol):
    """Anything events can be awaited into.  ``asyncio.Queue`` qualifies."""

    async def put(self, event: Event) -> None: ...


@dataclass
class CollectingSink:
    """Keeps every event in a list; handy when only the history matters."""

    events: list[Event] = field(default_factory=list)

    async def put(self, event: Event) -> None:
        self.events.append(event)


@dataclass
class AuthenticationOutcome:
    success: bool
    message: str
    state: FlowState
    credential: Credential | None = None
    error: Exception | None = None

    def to_event(self) -> AuthComplete:
        return AuthComplete(success=self.success, message=self.message)
