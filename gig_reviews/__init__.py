from gig_reviews.models import Review, ExtractionResult, ExtractionFailure
from gig_reviews.rate_limiter import RateLimiter
from gig_reviews.orchestrator import ExtractionOrchestrator, ReviewService
from gig_reviews.dedupe import dedupe
from gig_reviews.output import to_table

__all__ = [
    "Review",
    "ExtractionResult",
    "ExtractionFailure",
    "RateLimiter",
    "ExtractionOrchestrator",
    "ReviewService",
    "dedupe",
    "to_table",
]
