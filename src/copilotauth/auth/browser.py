"""Best-effort opening of the verification page."""

from __future__ import annotations

import logging
import webbrowser

logger = logging.getLogger(__name__)


def open_browser(url: str) -> bool:
    """Open `url` in the default browser.  Never raises; False on failure."""
    try:
        return webbrowser.open(url)
    except (webbrowser.Error, OSError) as e:
        logger.debug("Could not open browser for %s: %s", url, e)
        return False
