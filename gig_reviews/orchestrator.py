# gig_reviews/orchestrator.py
import logging
from typing import Any, List, Optional, Union

from gig_reviews.config import Settings
from gig_reviews.dedupe import dedupe
from gig_reviews.errors import ExtractionError, InvalidInput, NavigationFailure, RateLimited
from gig_reviews.models import ExtractionFailure, ExtractionResult, Review
from gig_reviews.rate_limiter import RateLimiter
from gig_reviews.scrapers import DynamicScraper, StaticScraper
from gig_reviews.utils import is_allowed_url, iso_now

log = logging.getLogger("orchestrator")


class ExtractionOrchestrator:
    """Dynamic tier first, static tier as fallback or recovery.

    Dynamic results win whenever they are non-empty: they reflect the page after
    reveal clicks, which a static fetch never sees.
    """

    def __init__(self, dynamic=None, static=None, settings: Optional[Settings] = None):
        self.settings = settings if settings is not None else Settings()
        self.dynamic = dynamic if dynamic is not None else DynamicScraper(self.settings)
        self.static = static if static is not None else StaticScraper(self.settings)

    async def extract(self, url: str) -> List[Review]:
        result = await self.run(url)
        return result.records

    async def run(self, url: str) -> ExtractionResult:
        try:
            records = await self.dynamic.scrape(url)
        except InvalidInput:
            raise
        except Exception as primary:
            log.error("Dynamic extraction failed: %s", primary)
            return await self._recover(url, primary)

        if records:
            log.info("Dynamic extraction returned %s reviews", len(records))
            return self._result(url, records, "dynamic")

        # an unresolved challenge also lands here; it is indistinguishable from a gig with no reviews
        log.info("No reviews from dynamic extraction, trying static fetch")
        try:
            records = await self.static.scrape(url)
        except InvalidInput:
            raise
        except Exception as e:
            log.warning("Static extraction failed after empty dynamic result: %s", e)
            records = []
        return self._result(url, records, "static")

    async def _recover(self, url: str, primary: Exception) -> ExtractionResult:
        log.info("Attempting fallback to static fetch")
        try:
            records = await self.static.scrape(url)
        except Exception as fallback_error:
            log.warning("Fallback extraction failed too: %s", fallback_error)
            if isinstance(primary, ExtractionError):
                raise primary
            raise NavigationFailure(str(primary)) from primary
        return self._result(url, records, "static")

    def _result(self, url: str, records: List[Review], tier: str) -> ExtractionResult:
        unique = dedupe(records)
        if not unique:
            log.info("No reviews found with either method")
        return ExtractionResult(
            url=url,
            records=unique,
            tier=tier if unique else None,
            exhausted=not unique,
            scraped_at=iso_now(),
        )


class ReviewService:
    """Inbound boundary: admission, URL check, extraction. Never raises."""

    def __init__(
        self,
        orchestrator: Optional[ExtractionOrchestrator] = None,
        limiter: Optional[RateLimiter] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings if settings is not None else Settings()
        if orchestrator is None:
            orchestrator = ExtractionOrchestrator(settings=self.settings)
        if limiter is None:
            limiter = RateLimiter(
                window_ms=self.settings.rate_limit_window_ms,
                max_requests=self.settings.rate_limit_max_requests,
            )
        self.orchestrator = orchestrator
        self.limiter = limiter

    async def extract_reviews(self, url: Any, client_id: str = "unknown") -> Union[ExtractionResult, ExtractionFailure]:
        client_id = client_id or "unknown"
        try:
            if self.limiter.is_rate_limited(client_id):
                raise RateLimited(self.limiter.time_remaining(client_id))
            if not is_allowed_url(url, self.settings.allowed_domain):
                raise InvalidInput(f"Rejected URL {url!r}")
            return await self.orchestrator.run(url)
        except ExtractionError as e:
            if not isinstance(e, (RateLimited, InvalidInput)):
                log.error("Extraction failed for %s: %s", url, e.message)
            return ExtractionFailure(
                error_kind=e.kind,
                message=e.public_message,
                status_code=e.status_code,
                retry_after_ms=getattr(e, "retry_after_ms", None),
            )
        except Exception as e:
            log.exception("Unexpected extraction failure for %s", url)
            return ExtractionFailure(
                error_kind=NavigationFailure.kind,
                message=NavigationFailure.public_message,
                status_code=NavigationFailure.status_code,
            )
