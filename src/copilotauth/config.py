"""Global configuration constants."""

from pathlib import Path

# ── GitHub OAuth ───────────────────────────────────────────────────
# This is the same client_id used by the official VS Code Copilot Chat extension.
GITHUB_CLIENT_ID = "Iv1.b507a08c87ecfe98"
GITHUB_SCOPE = "read:user"
GITHUB_DEVICE_CODE_URL = "https://github.com/login/device/code"
GITHUB_ACCESS_TOKEN_URL = "https://github.com/login/oauth/access_token"
DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"

# ── Polling ────────────────────────────────────────────────────────
DEVICE_CODE_POLL_INTERVAL = 5  # seconds, used when GitHub omits `interval`
SLOW_DOWN_EXTRA_DELAY = 5  # one-off extra wait after `slow_down`
DEVICE_CODE_TIMEOUT = 300  # 5 minutes, measured from the device-code grant
REQUEST_TIMEOUT = 30  # seconds

# ── Copilot token exchange ─────────────────────────────────────────
# Tried in order; the first endpoint that returns a token wins.
COPILOT_EXCHANGE_ENDPOINTS = (
    ("https://api.github.com/copilot_internal/v2/token", "Internal V2"),
    ("https://api.github.com/copilot/token", "Public"),
    ("https://api.github.com/user/copilot_internal/token", "User Internal"),
)

EXCHANGE_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "copilotauth",
    "X-GitHub-Api-Version": "2022-11-28",
}

# ── Environment ────────────────────────────────────────────────────
CODEX_HOME_ENV = "CODEX_HOME"  # overrides the credential root
COPILOT_TOKEN_ENV = "COPILOT_TOKEN"  # manual override + export target

# ── Storage ────────────────────────────────────────────────────────
DEFAULT_HOME_DIRNAME = ".codex"
CREDENTIAL_FILENAME = "copilot_token.json"


def default_home() -> Path:
    """`~/.codex`, raising RuntimeError when no home directory can be found."""
    return Path.home() / DEFAULT_HOME_DIRNAME
