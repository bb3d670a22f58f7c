"""Tests for the render-session state machine, driven through a fake page."""

import pytest

from gig_reviews.errors import InvalidInput, NavigationFailure
from gig_reviews.scrapers.dynamic_scraper import DynamicScraper, RevealExit, SessionState
from tests.conftest import GIG_URL, FakePage, session_factory_for

pytestmark = pytest.mark.asyncio


def _scraper(settings, page):
    return DynamicScraper(settings, session_factory=session_factory_for(page))


async def test_happy_path_walks_every_state(fast_settings):
    page = FakePage(controls=2)

    outcome = await _scraper(fast_settings, page).run(GIG_URL)

    assert outcome.states == [
        SessionState.NAVIGATING,
        SessionState.CONTENT_SETTLING,
        SessionState.CHALLENGE_CHECK,
        SessionState.REVEAL_LOOP,
        SessionState.FINAL_SETTLE,
        SessionState.SCORING,
        SessionState.DONE,
    ]
    assert outcome.reveal_clicks == 2
    assert outcome.reveal_exit is RevealExit.NO_CONTROL
    assert [r.reviewer for r in outcome.reviews] == ["johndoe", "janesmith"]
    assert page.closed is True
    assert page.visited == [GIG_URL]


async def test_reveal_loop_stops_at_ceiling(fast_settings):
    settings = fast_settings.model_copy(update={"reveal_max_clicks": 3})
    page = FakePage(controls=1000)

    outcome = await _scraper(settings, page).run(GIG_URL)

    assert outcome.reveal_exit is RevealExit.CEILING
    assert outcome.reveal_clicks == 3
    assert outcome.state is SessionState.DONE


async def test_click_failure_ends_loop_without_error(fast_settings):
    page = FakePage(controls=5, click_error=RuntimeError("element detached"))

    outcome = await _scraper(fast_settings, page).run(GIG_URL)

    assert outcome.reveal_exit is RevealExit.CLICK_FAILED
    assert outcome.reveal_clicks == 0
    assert outcome.state is SessionState.DONE
    assert len(outcome.reviews) == 2


async def test_challenge_resolved(fast_settings):
    page = FakePage(title="Verify you are human")

    outcome = await _scraper(fast_settings, page).run(GIG_URL)

    assert SessionState.CHALLENGE_WAIT in outcome.states
    assert outcome.challenge_detected is True
    assert outcome.challenge_unresolved is False
    assert len(outcome.reviews) == 2


async def test_challenge_timeout_proceeds_anyway(fast_settings):
    page = FakePage(title="Security check - CAPTCHA", challenge_clears=False, html="<html></html>")

    outcome = await _scraper(fast_settings, page).run(GIG_URL)

    assert outcome.challenge_unresolved is True
    assert outcome.state is SessionState.DONE
    assert outcome.reviews == []
    assert page.closed is True


async def test_navigation_failure_closes_session(fast_settings):
    page = FakePage(goto_error=RuntimeError("net::ERR_TIMED_OUT"))

    with pytest.raises(NavigationFailure, match="ERR_TIMED_OUT"):
        await _scraper(fast_settings, page).run(GIG_URL)

    assert page.closed is True


async def test_invalid_url_never_opens_session(fast_settings):
    page = FakePage()

    with pytest.raises(InvalidInput):
        await _scraper(fast_settings, page).scrape("https://example.com/not-a-gig")

    assert page.visited == []
    assert page.closed is False


async def test_scrape_returns_reviews(fast_settings):
    reviews = await _scraper(fast_settings, FakePage()).scrape(GIG_URL)
    assert len(reviews) == 2


async def test_debug_dump_writes_html(fast_settings, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    settings = fast_settings.model_copy(update={"debug": True})

    await _scraper(settings, FakePage()).run(GIG_URL)

    assert (tmp_path / "outputs" / "debug_dynamic_revealed.html").exists()
