"""Shared fixtures: a fake render session, sample gig markup and fast settings."""

from contextlib import asynccontextmanager

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from gig_reviews.config import Settings
from gig_reviews.models import Review
from gig_reviews.scrapers.dynamic_scraper import FIND_REVEAL_CONTROL_JS

GIG_URL = "https://www.fiverr.com/someseller/design-a-modern-logo"

GIG_HTML = """
<html>
<head><title>I will design a modern logo | Fiverr</title></head>
<body>
  <div class="reviews-wrap">
    <div class="review-item-component">
      <a href="/users/johndoe?source=review">johndoe</a>
      <img class="country-flag" alt="United States" src="us.png">
      <div aria-label="5 out of 5 stars"></div>
      <time datetime="2023-10-15">2 months ago</time>
      <div class="review-description"><p>Great service! Delivered everything ahead of schedule.</p></div>
    </div>
    <div class="review-item-component">
      <a href="/users/janesmith">janesmith</a>
      <img class="country-flag" alt="Canada" src="ca.png">
      <div aria-label="4 out of 5 stars"></div>
      <time datetime="2023-10-10">2 months ago</time>
      <div class="review-description"><p>Good work overall, one round of revisions was needed.</p></div>
    </div>
  </div>
  <button class="load-more">Show more reviews</button>
</body>
</html>
"""


class FakePage:
    """Stands in for a Playwright page. Reveal controls are a simple counter."""

    def __init__(
        self,
        html=GIG_HTML,
        title="I will design a modern logo | Fiverr",
        controls=0,
        challenge_clears=True,
        goto_error=None,
        click_error=None,
    ):
        self.html = html
        self._title = title
        self.controls_left = controls
        self.challenge_clears = challenge_clears
        self.goto_error = goto_error
        self.click_error = click_error
        self.clicks = 0
        self.closed = False
        self.visited = []

    async def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)
        if self.goto_error:
            raise self.goto_error

    async def wait_for_timeout(self, ms):
        return None

    async def title(self):
        return self._title

    async def wait_for_function(self, expression, arg=None, timeout=None):
        if not self.challenge_clears:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
        self._title = "I will design a modern logo | Fiverr"

    async def evaluate(self, expression, arg=None):
        if expression == FIND_REVEAL_CONTROL_JS:
            return "text" if self.controls_left > 0 else None
        return None

    async def click(self, selector, timeout=None):
        if self.click_error:
            raise self.click_error
        self.controls_left -= 1
        self.clicks += 1

    async def content(self):
        return self.html

    async def screenshot(self, **kwargs):
        return b""

    async def close(self):
        self.closed = True


def session_factory_for(page):
    @asynccontextmanager
    async def factory():
        try:
            yield page
        finally:
            await page.close()

    return factory


class FakeClock:
    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def fast_settings():
    return Settings(
        first_paint_delay_ms=0,
        post_challenge_delay_ms=0,
        reveal_settle_ms=0,
        final_settle_ms=0,
        challenge_timeout_ms=10,
        reveal_max_clicks=50,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_reviews():
    return [
        Review(reviewer="John Doe", rating=5, text="Great service!", date="2023-10-15"),
        Review(reviewer="Jane Smith", rating=4, text="Good work", date="2023-10-10"),
        Review(reviewer="John Doe", rating=5, text="Great service!", date="2023-10-15"),
    ]
