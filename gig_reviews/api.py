# gig_reviews/api.py
import asyncio
import math
import platform
import sys
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from gig_reviews.config import Settings
from gig_reviews.models import ExtractionFailure
from gig_reviews.orchestrator import ReviewService
from gig_reviews.output import CSV_MEDIA_TYPE, EXPORT_FILENAME, to_table
from gig_reviews.rate_limiter import RateLimiter

if sys.platform.startswith("win"):
    # Playwright needs subprocess support from the event loop on Windows.
    try:
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())  # type: ignore[attr-defined]
    except Exception:
        pass


async def requested_url(request: Request) -> Any:
    """The "url" member of a JSON object body, or None for any other body."""
    try:
        body = await request.json()
    except ValueError:
        return None
    return body.get("url") if isinstance(body, dict) else None


def client_id_from(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return "unknown"


def failure_response(failure: ExtractionFailure) -> JSONResponse:
    body = {"error": failure.message}
    headers = {}
    if failure.retry_after_ms is not None:
        body["retryAfter"] = failure.retry_after_ms
        headers["Retry-After"] = str(math.ceil(failure.retry_after_ms / 1000))
    return JSONResponse(body, status_code=failure.status_code, headers=headers)


def create_app(settings: Optional[Settings] = None, service: Optional[ReviewService] = None) -> FastAPI:
    if settings is None:
        settings = Settings.from_env()
    if service is None:
        limiter = RateLimiter(
            window_ms=settings.rate_limit_window_ms,
            max_requests=settings.rate_limit_max_requests,
        )
        service = ReviewService(limiter=limiter, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service.limiter.start_sweeper(settings.rate_limit_sweep_interval_s)
        try:
            yield
        finally:
            service.limiter.stop_sweeper()

    app = FastAPI(title="Gig Review Extractor API", version="0.1.0", lifespan=lifespan)
    app.state.service = service

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "python_version": platform.python_version(),
            "platform": platform.platform(),
            "tracked_clients": service.limiter.tracked_clients(),
        }

    @app.post("/extract-reviews")
    async def extract_reviews(request: Request):
        outcome = await service.extract_reviews(await requested_url(request), client_id_from(request))
        if isinstance(outcome, ExtractionFailure):
            return failure_response(outcome)
        return {"reviews": [r.model_dump() for r in outcome.records]}

    @app.post("/extract-reviews/csv")
    async def extract_reviews_csv(request: Request):
        outcome = await service.extract_reviews(await requested_url(request), client_id_from(request))
        if isinstance(outcome, ExtractionFailure):
            return failure_response(outcome)
        return Response(
            content=to_table(outcome.records),
            media_type=CSV_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
        )

    return app


app = create_app()
