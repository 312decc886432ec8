"""
letterboxd.py – Letterboxd watchlist scraping utilities.

Fetches a user's public watchlist page by page and extracts film records
from the HTML with regular expressions.  The public entry point is
:func:`fetch_watchlist`; the page fetcher and the per-page extractor are
exposed separately so other data sources and tests can reuse them.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import requests

logger = logging.getLogger(__name__)

LETTERBOXD_BASE: str = "https://letterboxd.com"

# Safety guard against runaway pagination (72 films per watchlist page)
DEFAULT_MAX_PAGES: int = 20

DEFAULT_TIMEOUT: float = 15

_REQUEST_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

# Literal markers of a Cloudflare interstitial served instead of the page
_CHALLENGE_MARKERS: tuple[str, ...] = ("challenge-platform", "Just a moment")

# Number of characters on either side of a slug searched for its metadata
_CONTEXT_RADIUS: int = 1000

_SLUG_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r'data-film-slug="([^"]+)"'),
    re.compile(r'data-item-slug="([^"]+)"'),
    re.compile(r'href="/film/([^/"]+)/"'),
)
_NAME_PATTERN = re.compile(r'data-(?:film|item)-name="([^"]+)"')
_ALT_PATTERN = re.compile(r'alt="([^"]+)"')
_POSTER_PATTERN = re.compile(r'src="(https://[^"]*ltrbxd[^"]*\.(?:jpg|webp)[^"]*)"', re.IGNORECASE)
_YEAR_PATTERN = re.compile(r"\((\d{4})\)")

# (pattern, replacement) pairs applied in order; each rewrites at most once
_POSTER_SIZE_REWRITES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"-0-\d+-0-\d+-crop"), "-0-460-0-690-crop"),
    (re.compile(r"-0-150-0-225-"), "-0-230-0-345-"),
    (re.compile(r"-0-125-0-187-"), "-0-230-0-345-"),
)

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class WatchlistError(RuntimeError):
    """Base class for failures while assembling a watchlist."""


class UserNotFoundError(WatchlistError):
    """The first watchlist page could not be fetched (unknown or private user)."""


class ChallengeError(WatchlistError):
    """Letterboxd answered the first page with a bot-challenge interstitial."""


class EmptyWatchlistError(WatchlistError):
    """Pagination finished without collecting a single film."""


# ---------------------------------------------------------------------------
# URLs and session
# ---------------------------------------------------------------------------


def quote_username(username: str) -> str:
    """Percent-encode *username* so it stays a single URL path segment."""
    return requests.utils.quote(username, safe="")


def watchlist_page_url(username: str, page: int, base_url: str = LETTERBOXD_BASE) -> str:
    """Return the URL of one page of *username*'s watchlist."""
    return f"{base_url.rstrip('/')}/{quote_username(username)}/watchlist/page/{page}/"


def film_link(slug: str) -> str:
    """Return the canonical Letterboxd page for a film slug."""
    return f"{LETTERBOXD_BASE}/film/{slug}/"


def create_session() -> requests.Session:
    """Return a ``requests.Session`` that presents itself as a desktop browser."""
    session = requests.Session()
    session.headers.update(_REQUEST_HEADERS)
    return session


# ---------------------------------------------------------------------------
# Page fetcher
# ---------------------------------------------------------------------------


def is_challenge_page(html: str) -> bool:
    """Return ``True`` if *html* is a Cloudflare bot-challenge page."""
    return any(marker in html for marker in _CHALLENGE_MARKERS)


def fetch_watchlist_page(
    session: requests.Session,
    username: str,
    page: int,
    *,
    base_url: str = LETTERBOXD_BASE,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> str | None:
    """Fetch one watchlist page and return its HTML.

    Failures on the first page are reported as exceptions.  On any later
    page the same failures simply mean there are no more pages, and ``None``
    is returned instead.

    Args:
        session: Session carrying the browser-like headers.
        username: Letterboxd username.
        page: 1-based page number.
        base_url: Letterboxd origin, overridable for testing.
        timeout: Per-request timeout in seconds (``None`` waits indefinitely).

    Returns:
        The page HTML, or ``None`` when pagination should stop.

    Raises:
        UserNotFoundError: Page 1 returned a non-2xx status or could not be
            fetched at all.
        ChallengeError: Page 1 is a bot-challenge page.
    """
    url = watchlist_page_url(username, page, base_url)
    logger.debug("Fetching %s", url)

    try:
        resp = session.get(url, timeout=timeout, allow_redirects=True)
    except requests.exceptions.RequestException as exc:
        if page == 1:
            raise UserNotFoundError(f"Failed to fetch watchlist for {username!r}: {exc}") from exc
        logger.info("Stopping at page %d for %r: %s", page, username, exc)
        return None

    if not 200 <= resp.status_code < 300:
        if page == 1:
            raise UserNotFoundError(
                f"Watchlist for {username!r} returned HTTP {resp.status_code}"
            )
        logger.info("Stopping at page %d for %r: HTTP %d", page, username, resp.status_code)
        return None

    html = resp.text
    if is_challenge_page(html):
        if page == 1:
            raise ChallengeError("Letterboxd is blocking requests. Try again later.")
        logger.warning("Challenge page at page %d for %r, keeping earlier pages", page, username)
        return None

    return html


# ---------------------------------------------------------------------------
# Movie extractor
# ---------------------------------------------------------------------------


def extract_slugs(html: str) -> list[str]:
    """Return every film slug referenced in *html*, de-duplicated.

    Matches of the first pattern come first, in document order, followed by
    new matches of each later pattern.
    """
    slugs: dict[str, None] = {}
    for pattern in _SLUG_PATTERNS:
        for slug in pattern.findall(html):
            slugs.setdefault(slug, None)
    return list(slugs)


def upscale_poster(url: str) -> str:
    """Rewrite the size segment of a poster URL to request a larger rendition."""
    for pattern, replacement in _POSTER_SIZE_REWRITES:
        url = pattern.sub(replacement, url, count=1)
    return url


def extract_year(title: str) -> str:
    """Return the four-digit year in a ``(YYYY)`` group of *title*, or ``""``."""
    match = _YEAR_PATTERN.search(title)
    return match.group(1) if match else ""


def _resolve_title(slug: str, section: str) -> str:
    """Pick a film title from the name attribute, the alt text, or the slug."""
    name_match = _NAME_PATTERN.search(section)
    if name_match:
        return name_match.group(1)
    alt_match = _ALT_PATTERN.search(section)
    if alt_match and len(alt_match.group(1)) > 1:
        return alt_match.group(1)
    return slug.replace("-", " ")


def parse_movies(html: str) -> list[dict[str, Any]]:
    """Extract the film records found on one watchlist page.

    Metadata for a slug is looked up in a fixed window of text around the
    slug's first occurrence, so it relies on each poster's attributes
    sitting close together in the markup.

    Args:
        html: Raw HTML of a single watchlist page.

    Returns:
        One record per distinct slug, each with ``slug``, ``title``,
        ``year``, ``poster`` and ``link`` keys.
    """
    movies: list[dict[str, Any]] = []

    for slug in extract_slugs(html):
        index = html.find(slug)
        if index == -1:
            continue

        start = max(0, index - _CONTEXT_RADIUS)
        end = min(len(html), index + _CONTEXT_RADIUS)
        section = html[start:end]

        title = _resolve_title(slug, section)

        poster = ""
        poster_match = _POSTER_PATTERN.search(section)
        if poster_match:
            poster = upscale_poster(poster_match.group(1))

        movies.append(
            {
                "slug": slug,
                "title": title,
                "year": extract_year(title),
                "poster": poster,
                "link": film_link(slug),
            }
        )

    return movies


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


def fetch_watchlist(
    username: str,
    *,
    max_pages: int = DEFAULT_MAX_PAGES,
    base_url: str = LETTERBOXD_BASE,
    timeout: float | None = DEFAULT_TIMEOUT,
    session: requests.Session | None = None,
) -> list[dict[str, Any]]:
    """Scrape a user's whole watchlist, one page at a time.

    Pages are requested in order until a page yields no films, a later page
    fails, or *max_pages* pages have been read.  Films appearing on more than
    one page are kept once per page.

    Args:
        username: Letterboxd username.
        max_pages: Upper bound on the number of pages requested.
        base_url: Letterboxd origin, overridable for testing.
        timeout: Per-request timeout in seconds.
        session: Optional session to reuse; a browser-like one is created
            otherwise.

    Returns:
        The films of every page read, in page order.

    Raises:
        ValueError: If *max_pages* is smaller than 1.
        UserNotFoundError: The first page could not be fetched.
        ChallengeError: The first page is a bot-challenge page.
        EmptyWatchlistError: No films were found at all.
    """
    if max_pages < 1:
        raise ValueError(f"max_pages must be >= 1, got {max_pages}")

    if session is None:
        session = create_session()

    movies: list[dict[str, Any]] = []
    page = 1

    while page <= max_pages:
        html = fetch_watchlist_page(session, username, page, base_url=base_url, timeout=timeout)
        if html is None:
            break

        page_movies = parse_movies(html)
        if not page_movies:
            break

        logger.debug("Found %d films on page %d for %r", len(page_movies), page, username)
        movies.extend(page_movies)
        page += 1

    if not movies:
        raise EmptyWatchlistError("Watchlist is empty or not accessible")

    logger.info("Scraped %d films for %r", len(movies), username)
    return movies
