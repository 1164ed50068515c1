"""Shared fixtures: an isolated credential root and a scripted GitHub."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import parse_qs

import httpx
import pytest

from copilotauth.auth.storage import CredentialStore
from copilotauth.config import CODEX_HOME_ENV, COPILOT_TOKEN_ENV


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point CODEX_HOME at a temp dir and make sure COPILOT_TOKEN is unset.

    setenv-then-delenv so that anything the code under test exports is
    undone at teardown.
    """
    home = tmp_path / "codex-home"
    monkeypatch.setenv(CODEX_HOME_ENV, str(home))
    monkeypatch.setenv(COPILOT_TOKEN_ENV, "placeholder")
    monkeypatch.delenv(COPILOT_TOKEN_ENV)
    return home


@pytest.fixture
def store(isolated_env: Path) -> CredentialStore:
    return CredentialStore(root=isolated_env)


class FakeClock:
    """Monotonic clock that only moves when `sleep` is awaited."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedGitHub:
    """Serves queued responses per URL and records every request.

    The last response queued for a URL is repeated once the others are used
    up. A queued exception instance is raised instead of answering.
    """

    def __init__(self, routes: dict[str, list], clock: FakeClock | None = None) -> None:
        self.routes = {url: list(responses) for url, responses in routes.items()}
        self.clock = clock
        self.requests: list[httpx.Request] = []
        self.sent_at: list[tuple[str, float]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(request)
        if self.clock is not None:
            self.sent_at.append((url, self.clock.now))
        queue = self.routes[url]
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def requests_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]

    @staticmethod
    def form(request: httpx.Request) -> dict[str, str]:
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
