"""
config.py – Configuration persistence helpers.

Handles loading and saving the service's ``config.json`` file, including
filling in keys added after the file was first written and first-run default
creation.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

CONFIG_DIR: str = os.path.join(os.path.dirname(__file__), "config")
CONFIG_FILE: str = os.path.join(CONFIG_DIR, "config.json")

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: dict[str, Any] = {
    "letterboxd_base_url": "https://letterboxd.com",
    "stremthru_api_base": "https://stremthru.13377001.xyz/v0",
    "use_stremthru": False,
    # Page caps for the primary scrape and for the scrape that follows a
    # failed StremThru lookup.
    "max_pages": 20,
    "fallback_max_pages": 10,
    "request_timeout": 15,
}

# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def load_config() -> dict[str, Any]:
    """Load configuration from disk.

    If the config file does not exist it is created from :data:`DEFAULT_CONFIG`
    and that default dict is returned; an unwritable config directory only
    skips the write.  When loading an existing file, missing keys are filled
    in from :data:`DEFAULT_CONFIG`.

    Returns:
        The configuration dictionary.
    """
    if not os.path.exists(CONFIG_FILE):
        try:
            save_config(DEFAULT_CONFIG.copy())
        except OSError as exc:
            logger.warning("Could not create %s, using defaults: %s", CONFIG_FILE, exc)
        return DEFAULT_CONFIG.copy()

    try:
        with open(CONFIG_FILE, "r") as fh:
            cfg: dict[str, Any] = json.load(fh)

        if not isinstance(cfg, dict):
            raise ValueError("config root must be a JSON object")

        for key, default_value in DEFAULT_CONFIG.items():
            cfg.setdefault(key, default_value)

        return cfg

    except (OSError, ValueError):
        # If the file is corrupt or unreadable, fall back to safe defaults
        logger.warning("Could not read %s, using defaults", CONFIG_FILE)
        return DEFAULT_CONFIG.copy()


def save_config(config: dict[str, Any]) -> None:
    """Persist *config* to :data:`CONFIG_FILE` as pretty-printed JSON.

    Args:
        config: The configuration dictionary to write.
    """
    os.makedirs(CONFIG_DIR, exist_ok=True)
    with open(CONFIG_FILE, "w") as fh:
        json.dump(config, fh, indent=4)
