"""Process environment access.

`set_process_env` is the only place in copilotauth that writes to
``os.environ``. The environment is process-global and unsynchronized: callers
must serialize authentication attempts within one process.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def set_process_env(name: str, value: str) -> None:
    os.environ[name] = value
    logger.debug("Exported %s to the process environment", name)


def get_process_env(name: str) -> str | None:
    """Return the variable's value, treating an empty string as unset."""
    return os.environ.get(name) or None
