"""Tests for the static fetch tier. requests.get is always stubbed."""

from unittest.mock import Mock, patch

import pytest
import requests

from gig_reviews.errors import FetchFailure, InvalidInput
from gig_reviews.scrapers.static_scraper import StaticScraper
from tests.conftest import GIG_HTML, GIG_URL


def _response(text, status_code=200):
    return Mock(status_code=status_code, text=text)


@pytest.mark.asyncio
async def test_static_extracts_reviews(fast_settings):
    with patch("gig_reviews.scrapers.static_scraper.requests.get", return_value=_response(GIG_HTML)) as get:
        reviews = await StaticScraper(fast_settings).scrape(GIG_URL)

    assert [r.reviewer for r in reviews] == ["johndoe", "janesmith"]
    _, kwargs = get.call_args
    assert kwargs["headers"]["User-Agent"] == fast_settings.user_agent
    assert kwargs["timeout"] == fast_settings.static_timeout_s


@pytest.mark.asyncio
async def test_static_challenge_page_returns_empty(fast_settings):
    html = GIG_HTML.replace("I will design a modern logo | Fiverr", "It needs a human touch")
    with patch("gig_reviews.scrapers.static_scraper.requests.get", return_value=_response(html)):
        assert await StaticScraper(fast_settings).scrape(GIG_URL) == []


@pytest.mark.asyncio
async def test_static_http_error_is_fetch_failure(fast_settings):
    with patch("gig_reviews.scrapers.static_scraper.requests.get", return_value=_response("", 503)):
        with pytest.raises(FetchFailure, match="503"):
            await StaticScraper(fast_settings).scrape(GIG_URL)


@pytest.mark.asyncio
async def test_static_network_error_is_fetch_failure(fast_settings):
    with patch(
        "gig_reviews.scrapers.static_scraper.requests.get",
        side_effect=requests.ConnectionError("connection reset"),
    ):
        with pytest.raises(FetchFailure, match="connection reset"):
            await StaticScraper(fast_settings).scrape(GIG_URL)


@pytest.mark.asyncio
async def test_static_rejects_foreign_url(fast_settings):
    with patch("gig_reviews.scrapers.static_scraper.requests.get") as get:
        with pytest.raises(InvalidInput):
            await StaticScraper(fast_settings).scrape("https://example.com/gig")
    get.assert_not_called()
