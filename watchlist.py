"""
watchlist.py – Watchlist data sources and fallback resolution.

A watchlist can come from the StremThru API or from scraping Letterboxd
directly.  Sources are tried in a fixed priority order and the first one that
succeeds wins; only the last source's failure reaches the caller.
"""

from __future__ import annotations

import logging
import random
from typing import Any

import requests

from letterboxd import (
    DEFAULT_MAX_PAGES,
    DEFAULT_TIMEOUT,
    LETTERBOXD_BASE,
    create_session,
    fetch_watchlist,
)
from stremthru import STREMTHRU_API_BASE, fetch_letterboxd_identifier, fetch_stremthru_watchlist

logger = logging.getLogger(__name__)

# Page cap used when scraping only runs after StremThru has failed
DEFAULT_FALLBACK_MAX_PAGES: int = 10


class ScrapeSource:
    """Scrape the watchlist pages directly."""

    name = "scrape"

    def __init__(
        self,
        max_pages: int = DEFAULT_MAX_PAGES,
        base_url: str = LETTERBOXD_BASE,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        self.max_pages = max_pages
        self.base_url = base_url
        self.timeout = timeout

    def fetch(self, username: str, session: requests.Session) -> list[dict[str, Any]]:
        return fetch_watchlist(
            username,
            max_pages=self.max_pages,
            base_url=self.base_url,
            timeout=self.timeout,
            session=session,
        )


class StremThruSource:
    """Look up the user's internal identifier, then ask StremThru for the list."""

    name = "stremthru"

    def __init__(
        self,
        api_base: str = STREMTHRU_API_BASE,
        base_url: str = LETTERBOXD_BASE,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        self.api_base = api_base
        self.base_url = base_url
        self.timeout = timeout

    def fetch(self, username: str, session: requests.Session) -> list[dict[str, Any]]:
        identifier = fetch_letterboxd_identifier(
            session, username, base_url=self.base_url, timeout=self.timeout
        )
        return fetch_stremthru_watchlist(
            identifier, api_base=self.api_base, timeout=self.timeout, session=session
        )


def build_sources(config: dict[str, Any]) -> list[ScrapeSource | StremThruSource]:
    """Return the configured data sources in priority order.

    Scraping is always the last source.  When StremThru is enabled it is tried
    first and the scrape behind it uses the smaller ``fallback_max_pages`` cap.

    Args:
        config: The configuration dict as returned by :func:`config.load_config`.
    """
    base_url = str(config.get("letterboxd_base_url") or LETTERBOXD_BASE)
    timeout = config.get("request_timeout", DEFAULT_TIMEOUT)

    sources: list[ScrapeSource | StremThruSource] = []
    if config.get("use_stremthru"):
        sources.append(
            StremThruSource(
                api_base=str(config.get("stremthru_api_base") or STREMTHRU_API_BASE),
                base_url=base_url,
                timeout=timeout,
            )
        )
        max_pages = int(config.get("fallback_max_pages", DEFAULT_FALLBACK_MAX_PAGES))
    else:
        max_pages = int(config.get("max_pages", DEFAULT_MAX_PAGES))

    sources.append(ScrapeSource(max_pages=max_pages, base_url=base_url, timeout=timeout))
    return sources


def get_watchlist(
    username: str,
    sources: list[ScrapeSource | StremThruSource],
    session: requests.Session | None = None,
) -> list[dict[str, Any]]:
    """Resolve *username*'s watchlist from the first source that succeeds.

    Args:
        username: Letterboxd username.
        sources: Sources in priority order, as built by :func:`build_sources`.
        session: Optional session shared by every source.

    Returns:
        The film records produced by the winning source.

    Raises:
        ValueError: If *sources* is empty.
        Exception: Whatever the last source raised.
    """
    if not sources:
        raise ValueError("At least one watchlist source is required")

    if session is None:
        session = create_session()

    *fallible, last = sources
    for source in fallible:
        try:
            return source.fetch(username, session)
        except Exception as exc:
            logger.warning("%s source failed for %r, falling back: %s", source.name, username, exc)

    return last.fetch(username, session)


def pick_random(movies: list[dict[str, Any]]) -> dict[str, Any]:
    """Return one film chosen uniformly at random."""
    return random.choice(movies)
