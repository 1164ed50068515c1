"""Credential persistence — read/write <credential root>/copilot_token.json."""

from __future__ import annotations

import json
import logging
import os
import stat
from pathlib import Path

from copilotauth.auth.credential import Credential
from copilotauth.auth.errors import PersistenceError
from copilotauth.config import (
    CODEX_HOME_ENV,
    COPILOT_TOKEN_ENV,
    CREDENTIAL_FILENAME,
    default_home,
)
from copilotauth.environment import get_process_env, set_process_env

logger = logging.getLogger(__name__)


def resolve_credential_root() -> Path:
    """`$CODEX_HOME` if set, otherwise ``~/.codex``."""
    override = get_process_env(CODEX_HOME_ENV)
    if override:
        return Path(override)
    try:
        return default_home()
    except RuntimeError as e:
        raise PersistenceError(f"Could not determine home directory: {e}") from e


class CredentialStore:
    """Owns the on-disk Copilot credential.

    Nothing else in the package touches the file. There is no cross-process
    locking: two concurrent logins race and the last write wins.
    """

    def __init__(
        self,
        root: Path | None = None,
        env_var: str = COPILOT_TOKEN_ENV,
    ) -> None:
        self.root = root if root is not None else resolve_credential_root()
        self.path = self.root / CREDENTIAL_FILENAME
        self.env_var = env_var

    # ── public ──────────────────────────────────────────────────────

    def save(self, credential: Credential) -> None:
        """Write the credential with owner-only permissions."""
        try:
            self._ensure_dir()
            self.path.write_text(
                json.dumps(credential.to_dict(), indent=2) + "\n",
                encoding="utf-8",
            )
            # chmod 600 — owner read/write only (skip on Windows)
            if os.name != "nt":
                self.path.chmod(stat.S_IRUSR | stat.S_IWUSR)
        except OSError as e:
            raise PersistenceError(f"Failed to write {self.path}: {e}") from e
        logger.info("Saved Copilot credential to %s", self.path)

    def load(self) -> Credential | None:
        """Load the stored credential.

        Returns None if there is no file. An expired credential is deleted
        and also reported as None.
        """
        if not self.path.exists():
            return None
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Failed to read {self.path}: {e}") from e
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Failed to parse {self.path}: {e}") from e

        credential = Credential.from_dict(data)
        if credential.is_expired():
            logger.info("Stored Copilot credential expired; removing %s", self.path)
            self.clear()
            return None
        return credential

    def clear(self) -> bool:
        """Remove the stored credential.  Returns True if a file was removed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise PersistenceError(f"Failed to remove {self.path}: {e}") from e
        return True

    def get_valid_credential(self) -> Credential | None:
        """The stored credential if still valid, else the environment override."""
        try:
            credential = self.load()
        except PersistenceError as e:
            logger.warning("Ignoring unreadable credential file: %s", e)
            credential = None
        if credential is not None:
            return credential

        override = get_process_env(self.env_var)
        if override:
            return Credential.from_raw_token(override)
        return None

    def get_valid_secret(self) -> str | None:
        credential = self.get_valid_credential()
        return credential.secret if credential is not None else None

    def export_to_environment(self) -> bool:
        """Copy the valid secret into the process environment.

        Compatibility shim for tools that read ``COPILOT_TOKEN``. This mutates
        process-wide state and is not safe to race with other environment
        writes in the same process.
        """
        secret = self.get_valid_secret()
        if secret is None:
            return False
        set_process_env(self.env_var, secret)
        return True

    # ── private ─────────────────────────────────────────────────────

    def _ensure_dir(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)


# ── helpers ─────────────────────────────────────────────────────────


def load_copilot_token() -> str | None:
    """The valid Copilot secret from the default store or the environment."""
    try:
        store = CredentialStore()
    except PersistenceError as e:
        logger.warning("%s", e)
        return get_process_env(COPILOT_TOKEN_ENV)
    return store.get_valid_secret()


def ensure_copilot_token_in_env() -> bool:
    """Export the default store's valid secret to ``COPILOT_TOKEN``."""
    try:
        store = CredentialStore()
    except PersistenceError as e:
        logger.warning("%s", e)
        return False
    return store.export_to_environment()
