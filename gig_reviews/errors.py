# gig_reviews/errors.py
import math


class ExtractionError(Exception):
    kind = "extraction_error"
    status_code = 500
    public_message = "Failed to extract reviews. Please try again later."

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ExtractionError):
    kind = "invalid_input"
    status_code = 400
    public_message = "Please provide a valid Fiverr URL"


class RateLimited(ExtractionError):
    kind = "rate_limited"
    status_code = 429

    def __init__(self, retry_after_ms: int):
        minutes = max(1, math.ceil(retry_after_ms / 60000))
        message = f"Rate limit exceeded. Please try again in {minutes} minute{'s' if minutes != 1 else ''}."
        super().__init__(message)
        self.retry_after_ms = retry_after_ms
        self.public_message = message


class NavigationFailure(ExtractionError):
    kind = "navigation_failure"
    status_code = 502


class FetchFailure(ExtractionError):
    kind = "fetch_failure"
    status_code = 502
    public_message = "Failed to fetch the gig page. Please try again later."
