# gig_reviews/scrapers/dynamic_scraper.py
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from gig_reviews.config import Settings
from gig_reviews.errors import ExtractionError, InvalidInput, NavigationFailure
from gig_reviews.models import Review
from gig_reviews.scrapers.heuristics import (
    CHALLENGE_MARKERS,
    is_challenge_title,
    parse_document,
    score_document,
)
from gig_reviews.utils import ensure_outputs_dir, is_allowed_url

log = logging.getLogger("dynamicscraper")

REVEAL_MARKER_ATTR = "data-gig-reviews-reveal"
REVEAL_MARKER_SELECTOR = f"[{REVEAL_MARKER_ATTR}='1']"
REVEAL_TEXT_PHRASES = ["show more", "load more", "view more"]
REVEAL_SELECTORS = [
    'button[data-testid="show-more-button"]',
    'button[class*="show-more"]',
    'button[class*="load-more"]',
]

CHALLENGE_CLEARED_JS = """
(markers) => {
    const title = (document.title || '').toLowerCase();
    return !markers.some(m => title.includes(m));
}
"""

SCROLL_TO_REVIEWS_JS = """
() => {
    const section = document.querySelector('.reviews-section, [data-testid="reviews-section"], .gig-reviews');
    if (section) {
        section.scrollIntoView({ block: 'center' });
    } else {
        window.scrollTo(0, document.body.scrollHeight * 0.8);
    }
}
"""

# Tags the first usable reveal control and reports how it was found.
FIND_REVEAL_CONTROL_JS = """
([phrases, selectors, attr]) => {
    document.querySelectorAll('[' + attr + ']').forEach(el => el.removeAttribute(attr));
    const usable = (b) => {
        const style = window.getComputedStyle(b);
        return style.display !== 'none' && style.visibility !== 'hidden' && !b.disabled;
    };
    for (const b of document.querySelectorAll('button')) {
        const text = (b.textContent || '').toLowerCase().trim();
        if (phrases.some(p => text.includes(p)) && usable(b)) {
            b.setAttribute(attr, '1');
            return 'text';
        }
    }
    for (const sel of selectors) {
        for (const b of document.querySelectorAll(sel)) {
            if (usable(b)) {
                b.setAttribute(attr, '1');
                return 'selector';
            }
        }
    }
    return null;
}
"""

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--no-first-run",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
]


class SessionState(str, Enum):
    NAVIGATING = "navigating"
    CONTENT_SETTLING = "content_settling"
    CHALLENGE_CHECK = "challenge_check"
    CHALLENGE_WAIT = "challenge_wait"
    REVEAL_LOOP = "reveal_loop"
    FINAL_SETTLE = "final_settle"
    SCORING = "scoring"
    DONE = "done"
    FAILED = "failed"


class RevealExit(str, Enum):
    NO_CONTROL = "no_control"
    CEILING = "ceiling"
    CLICK_FAILED = "click_failed"


@dataclass
class DynamicOutcome:
    url: str
    reviews: List[Review] = field(default_factory=list)
    states: List[SessionState] = field(default_factory=list)
    challenge_detected: bool = False
    challenge_unresolved: bool = False
    reveal_clicks: int = 0
    reveal_exit: Optional[RevealExit] = None

    @property
    def state(self) -> Optional[SessionState]:
        return self.states[-1] if self.states else None


class DynamicScraper:
    def __init__(self, settings: Optional[Settings] = None, session_factory: Optional[Callable] = None):
        self.settings = settings if settings is not None else Settings()
        # session_factory() must return an async context manager yielding a page
        self.session_factory = session_factory if session_factory is not None else self.open_session

    @asynccontextmanager
    async def open_session(self):
        async with async_playwright() as p:
            launch_kwargs = {"headless": self.settings.headless, "args": LAUNCH_ARGS}
            if self.settings.proxy:
                launch_kwargs["proxy"] = {"server": self.settings.proxy}
            browser = await p.chromium.launch(**launch_kwargs)
            try:
                context = await browser.new_context(
                    viewport={"width": 1920, "height": 1080},
                    user_agent=self.settings.user_agent,
                    locale="en-US",
                    extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
                )
                await context.add_init_script(
                    "Object.defineProperty(navigator,'webdriver',{get:()=>undefined});"
                )
                page = await context.new_page()
                yield page
            finally:
                await browser.close()

    def _enter(self, outcome: DynamicOutcome, state: SessionState) -> None:
        log.debug("[%s] -> %s", outcome.url, state.value)
        outcome.states.append(state)

    async def scrape(self, url: str) -> List[Review]:
        outcome = await self.run(url)
        return outcome.reviews

    async def run(self, url: str) -> DynamicOutcome:
        if not is_allowed_url(url, self.settings.allowed_domain):
            raise InvalidInput("Invalid gig URL")
        outcome = DynamicOutcome(url=url)
        try:
            async with self.session_factory() as page:
                await self._drive(page, outcome)
        except ExtractionError:
            self._enter(outcome, SessionState.FAILED)
            raise
        except NotImplementedError as ne:
            self._enter(outcome, SessionState.FAILED)
            raise NavigationFailure(
                "Browser cannot be launched in this environment. Run on Linux or Python 3.12."
            ) from ne
        except Exception as e:
            self._enter(outcome, SessionState.FAILED)
            raise NavigationFailure(f"Failed to extract reviews: {e}") from e
        if not outcome.reviews and outcome.challenge_unresolved:
            log.warning("No reviews after an unresolved challenge on %s; page may have been blocked", url)
        return outcome

    async def _drive(self, page, outcome: DynamicOutcome) -> None:
        s = self.settings

        self._enter(outcome, SessionState.NAVIGATING)
        log.info("Navigating to %s", outcome.url)
        try:
            await page.goto(outcome.url, wait_until="networkidle", timeout=s.navigation_timeout_ms)
        except Exception as e:
            raise NavigationFailure(f"Failed to load page: {e}") from e

        self._enter(outcome, SessionState.CONTENT_SETTLING)
        await page.wait_for_timeout(s.first_paint_delay_ms)

        self._enter(outcome, SessionState.CHALLENGE_CHECK)
        if is_challenge_title(await page.title()):
            outcome.challenge_detected = True
            self._enter(outcome, SessionState.CHALLENGE_WAIT)
            outcome.challenge_unresolved = not await self._wait_for_challenge(page)
            await page.wait_for_timeout(s.post_challenge_delay_ms)

        self._enter(outcome, SessionState.REVEAL_LOOP)
        await page.evaluate("window.scrollTo(0, document.body.scrollHeight * 0.7)")
        outcome.reveal_clicks, outcome.reveal_exit = await self.reveal_all(page)

        self._enter(outcome, SessionState.FINAL_SETTLE)
        await page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
        await page.wait_for_timeout(s.final_settle_ms)
        await self._debug_dump(page, "revealed")

        self._enter(outcome, SessionState.SCORING)
        html = await page.content()
        outcome.reviews = score_document(parse_document(html))
        log.info("Dynamic scraper extracted %s reviews", len(outcome.reviews))

        self._enter(outcome, SessionState.DONE)

    async def _wait_for_challenge(self, page) -> bool:
        log.warning(
            "Challenge detected. Waiting up to %ss for manual resolution...",
            self.settings.challenge_timeout_ms // 1000,
        )
        try:
            await page.wait_for_function(
                CHALLENGE_CLEARED_JS,
                arg=list(CHALLENGE_MARKERS),
                timeout=self.settings.challenge_timeout_ms,
            )
        except PlaywrightTimeoutError:
            log.warning("Challenge not resolved in time; continuing anyway")
            return False
        log.info("Challenge resolved, continuing extraction")
        return True

    async def find_reveal_control(self, page) -> Optional[str]:
        return await page.evaluate(
            FIND_REVEAL_CONTROL_JS, [REVEAL_TEXT_PHRASES, REVEAL_SELECTORS, REVEAL_MARKER_ATTR]
        )

    async def reveal_all(self, page):
        """Click reveal controls until none is left or the ceiling is hit. Returns (clicks, exit reason)."""
        s = self.settings
        clicks = 0
        exit_reason = RevealExit.CEILING
        for _ in range(s.reveal_max_clicks):
            try:
                await page.evaluate(SCROLL_TO_REVIEWS_JS)
                await page.wait_for_timeout(s.reveal_settle_ms // 3)
                how = await self.find_reveal_control(page)
                if not how:
                    exit_reason = RevealExit.NO_CONTROL
                    break
                log.info("Clicking reveal control found by %s (click #%s)", how, clicks + 1)
                await page.click(REVEAL_MARKER_SELECTOR, timeout=5000)
                clicks += 1
                await page.wait_for_timeout(s.reveal_settle_ms)
                await page.evaluate("window.scrollBy(0, 300)")
            except Exception as e:
                log.warning("Reveal control click failed: %s", e)
                exit_reason = RevealExit.CLICK_FAILED
                break
        log.info("Reveal loop finished after %s clicks (%s)", clicks, exit_reason.value)
        return clicks, exit_reason

    async def _debug_dump(self, page, tag: str) -> None:
        if not self.settings.debug:
            return
        out = ensure_outputs_dir()
        base = out / f"debug_dynamic_{tag}"
        try:
            await page.screenshot(path=str(base.with_suffix(".png")), full_page=True)
        except Exception as e:
            log.debug("Screenshot failed: %s", e)
        try:
            html = await page.content()
            base.with_suffix(".html").write_text(html, encoding="utf-8", errors="ignore")
        except Exception as e:
            log.debug("HTML dump failed: %s", e)
