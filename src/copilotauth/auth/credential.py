"""The Copilot credential — an opaque secret plus whatever it tells us about itself."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from copilotauth.auth.errors import PersistenceError


@dataclass
class Credential:
    """A Copilot token and the metadata parsed out of it.

    Copilot tokens look like ``tid=...;exp=1712345678;sku=...;proxy-ep=...;<sig>``.
    Anything that does not start with ``tid=`` (e.g. a plain GitHub OAuth
    token used as a fallback) is treated as fully opaque.
    """

    secret: str
    expires_at: int | None = None  # unix timestamp
    sku: str | None = None
    proxy_endpoint: str | None = None
    tracking_id: str | None = None

    @classmethod
    def from_raw_token(cls, raw_token: str) -> Credential:
        cred = cls(secret=raw_token)
        if not raw_token.startswith("tid="):
            return cred

        for part in raw_token.split(";"):
            key, sep, value = part.partition("=")
            if not sep:
                continue
            if key == "exp":
                try:
                    cred.expires_at = int(value)
                except ValueError:
                    pass  # leave expiry unknown rather than guess
            elif key == "sku":
                cred.sku = value
            elif key == "proxy-ep":
                cred.proxy_endpoint = value
            elif key == "tid":
                cred.tracking_id = value
        return cred

    # ── expiry ──────────────────────────────────────────────────────

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        current = time.time() if now is None else now
        return current >= self.expires_at

    def expires_in_minutes(self, now: float | None = None) -> int | None:
        """Whole minutes left, 0 once expired, None if the token never expires."""
        if self.expires_at is None:
            return None
        current = time.time() if now is None else now
        return max(int(self.expires_at - current), 0) // 60

    # ── usage ───────────────────────────────────────────────────────

    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.secret}"}

    # ── (de)serialization ───────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {
            "token": self.secret,
            "expires_at": self.expires_at,
            "sku": self.sku,
            "proxy_endpoint": self.proxy_endpoint,
            "tracking_id": self.tracking_id,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Credential:
        if not isinstance(data, dict):
            raise PersistenceError("Credential file does not contain a JSON object")
        token = data.get("token")
        if not isinstance(token, str):
            raise PersistenceError("Credential file has no 'token' string")

        expires_at = data.get("expires_at")
        # bool is an int subclass; a boolean expiry is corrupt data
        if expires_at is not None and (
            isinstance(expires_at, bool) or not isinstance(expires_at, int)
        ):
            raise PersistenceError("Credential file has a non-integer 'expires_at'")

        return cls(
            secret=token,
            expires_at=expires_at,
            sku=_optional_str(data, "sku"),
            proxy_endpoint=_optional_str(data, "proxy_endpoint"),
            tracking_id=_optional_str(data, "tracking_id"),
        )


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise PersistenceError(f"Credential file has a non-string '{key}'")
    return value
