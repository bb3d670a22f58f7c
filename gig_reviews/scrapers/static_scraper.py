# gig_reviews/scrapers/static_scraper.py
import asyncio
import logging
from typing import List, Optional

import requests

from gig_reviews.config import Settings
from gig_reviews.errors import FetchFailure, InvalidInput
from gig_reviews.models import Review
from gig_reviews.scrapers.heuristics import is_challenge_title, parse_document, score_document
from gig_reviews.utils import is_allowed_url

log = logging.getLogger("staticscraper")


class StaticScraper:
    """Single GET + parse. No interaction, so nothing hidden behind a reveal control is seen."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings if settings is not None else Settings()

    def fetch(self, url: str) -> str:
        headers = {
            "User-Agent": self.settings.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }
        try:
            r = requests.get(url, headers=headers, timeout=self.settings.static_timeout_s)
        except requests.RequestException as e:
            raise FetchFailure(f"Failed to fetch page: {e}") from e
        if r.status_code >= 400:
            raise FetchFailure(f"Failed to fetch page: HTTP {r.status_code}")
        return r.text

    def extract_reviews_from_html(self, html: str) -> List[Review]:
        doc = parse_document(html)
        title = doc.title.get_text() if doc.title else ""
        if is_challenge_title(title):
            log.warning("Challenge page served to static fetch; nothing to score")
            return []
        reviews = score_document(doc)
        log.info("Static scraper extracted %s reviews", len(reviews))
        return reviews

    async def scrape(self, url: str) -> List[Review]:
        if not is_allowed_url(url, self.settings.allowed_domain):
            raise InvalidInput("Invalid gig URL")
        log.info("Starting static extraction for %s", url)
        html = await asyncio.to_thread(self.fetch, url)
        return self.extract_reviews_from_html(html)
