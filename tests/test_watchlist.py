import pytest
from unittest.mock import patch, MagicMock
from letterboxd import EmptyWatchlistError, UserNotFoundError
from stremthru import StremThruError
from watchlist import ScrapeSource, StremThruSource, build_sources, get_watchlist, pick_random


def _source(name, result=None, error=None):
    source = MagicMock()
    source.name = name
    if error is not None:
        source.fetch.side_effect = error
    else:
        source.fetch.return_value = result
    return source


def test_build_sources_scrape_only():
    sources = build_sources({"max_pages": 7, "letterboxd_base_url": "http://lb", "request_timeout": 3})
    assert len(sources) == 1
    assert isinstance(sources[0], ScrapeSource)
    assert sources[0].max_pages == 7
    assert sources[0].base_url == "http://lb"
    assert sources[0].timeout == 3


def test_build_sources_defaults():
    sources = build_sources({})
    assert sources[0].max_pages == 20
    assert sources[0].base_url == "https://letterboxd.com"


def test_build_sources_with_stremthru():
    sources = build_sources({"use_stremthru": True, "max_pages": 20, "fallback_max_pages": 10})
    assert [s.name for s in sources] == ["stremthru", "scrape"]
    assert isinstance(sources[0], StremThruSource)
    assert sources[1].max_pages == 10


def test_get_watchlist_first_source_wins():
    first = _source("stremthru", result=[{"slug": "anora"}])
    second = _source("scrape", result=[{"slug": "conclave"}])
    session = MagicMock()

    movies = get_watchlist("jane", [first, second], session=session)
    assert movies == [{"slug": "anora"}]
    first.fetch.assert_called_once_with("jane", session)
    second.fetch.assert_not_called()


def test_get_watchlist_falls_back_on_any_error():
    first = _source("stremthru", error=StremThruError("down"))
    second = _source("scrape", result=[{"slug": "conclave"}])

    movies = get_watchlist("jane", [first, second], session=MagicMock())
    assert movies == [{"slug": "conclave"}]

    first = _source("stremthru", error=UserNotFoundError("404"))
    assert get_watchlist("jane", [first, second], session=MagicMock()) == [{"slug": "conclave"}]


def test_get_watchlist_last_error_propagates():
    first = _source("stremthru", error=StremThruError("down"))
    second = _source("scrape", error=EmptyWatchlistError("empty"))

    with pytest.raises(EmptyWatchlistError):
        get_watchlist("jane", [first, second], session=MagicMock())


def test_get_watchlist_requires_sources():
    with pytest.raises(ValueError):
        get_watchlist("jane", [])


@patch('watchlist.fetch_watchlist')
def test_scrape_source_passes_settings(mock_fetch):
    mock_fetch.return_value = [{"slug": "anora"}]
    session = MagicMock()
    source = ScrapeSource(max_pages=4, base_url="http://lb", timeout=2)

    assert source.fetch("jane", session) == [{"slug": "anora"}]
    mock_fetch.assert_called_once_with("jane", max_pages=4, base_url="http://lb", timeout=2, session=session)


@patch('watchlist.fetch_stremthru_watchlist')
@patch('watchlist.fetch_letterboxd_identifier')
def test_stremthru_source_chains_lookup(mock_identifier, mock_list):
    mock_identifier.return_value = "abc12"
    mock_list.return_value = [{"slug": "anora"}]
    session = MagicMock()
    source = StremThruSource(api_base="http://st/v0", base_url="http://lb", timeout=2)

    assert source.fetch("jane", session) == [{"slug": "anora"}]
    mock_identifier.assert_called_once_with(session, "jane", base_url="http://lb", timeout=2)
    mock_list.assert_called_once_with("abc12", api_base="http://st/v0", timeout=2, session=session)


def test_pick_random_returns_member():
    movies = [{"slug": "a"}, {"slug": "b"}, {"slug": "c"}]
    assert pick_random(movies) in movies
