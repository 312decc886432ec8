"""
stremthru.py – StremThru metadata API watchlist fetching.

Letterboxd exposes an internal user identifier in a response header of the
watchlist page.  StremThru mirrors Letterboxd lists keyed by that identifier
and returns them as JSON, which avoids scraping altogether when it works.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from letterboxd import (
    DEFAULT_TIMEOUT,
    LETTERBOXD_BASE,
    UserNotFoundError,
    WatchlistError,
    film_link,
    quote_username,
)

logger = logging.getLogger(__name__)

STREMTHRU_API_BASE: str = "https://stremthru.13377001.xyz/v0"

_IDENTIFIER_HEADER: str = "x-letterboxd-identifier"

_IDENTIFIER_REQUEST_HEADERS: dict[str, str] = {
    "Accept": "application/json",
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36",
}


class StremThruError(WatchlistError):
    """The StremThru path could not produce a watchlist."""


def fetch_letterboxd_identifier(
    session: requests.Session,
    username: str,
    *,
    base_url: str = LETTERBOXD_BASE,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> str:
    """Return the internal Letterboxd identifier for *username*.

    Raises:
        UserNotFoundError: The watchlist page returned a non-2xx status.
        StremThruError: The request failed or the identifier header is absent.
    """
    url = f"{base_url.rstrip('/')}/{quote_username(username)}/watchlist/"
    try:
        resp = session.get(url, headers=_IDENTIFIER_REQUEST_HEADERS, timeout=timeout)
    except requests.exceptions.RequestException as exc:
        raise StremThruError(f"Failed to fetch Letterboxd identifier: {exc}") from exc

    if not 200 <= resp.status_code < 300:
        raise UserNotFoundError(
            f"Watchlist for {username!r} returned HTTP {resp.status_code}"
        )

    identifier = resp.headers.get(_IDENTIFIER_HEADER)
    if not identifier:
        raise StremThruError(f"No {_IDENTIFIER_HEADER} header for {username!r}")
    return identifier


def _to_movie(item: dict[str, Any]) -> dict[str, Any]:
    slug = item.get("slug") or item.get("id")
    year = item.get("year")
    return {
        "slug": slug,
        "title": item.get("name") or item.get("title"),
        "year": str(year) if year else "",
        "poster": item.get("poster") or "",
        "tmdb": item.get("tmdb_id"),
        "imdb": item.get("imdb_id"),
        "link": film_link(slug),
    }


def fetch_stremthru_watchlist(
    identifier: str,
    *,
    api_base: str = STREMTHRU_API_BASE,
    timeout: float | None = DEFAULT_TIMEOUT,
    session: requests.Session | None = None,
) -> list[dict[str, Any]]:
    """Fetch a watchlist from StremThru and map it to film records.

    Args:
        identifier: Internal Letterboxd user identifier.
        api_base: StremThru API root (no trailing slash).
        timeout: Request timeout in seconds.
        session: Optional session to reuse.

    Returns:
        Film records in the same shape as the scraper's, with the extra
        ``tmdb`` and ``imdb`` cross-reference keys.

    Raises:
        StremThruError: On any HTTP error, malformed payload, or empty list.
    """
    url = f"{api_base.rstrip('/')}/meta/letterboxd/users/{identifier}/lists/watchlist"
    getter = session.get if session is not None else requests.get

    try:
        resp = getter(url, headers={"Accept": "application/json"}, timeout=timeout)
        resp.raise_for_status()
        payload: dict[str, Any] = resp.json()
    except (requests.exceptions.RequestException, ValueError) as exc:
        raise StremThruError(f"StremThru API error: {exc}") from exc

    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        data = {}
    items: list[dict[str, Any]] = data.get("items") or []
    items = [item for item in items if isinstance(item, dict) and (item.get("slug") or item.get("id"))]
    if not items:
        raise StremThruError(f"StremThru returned no items for {identifier!r}")

    logger.info("StremThru returned %d films for %s", len(items), identifier)
    return [_to_movie(item) for item in items]
