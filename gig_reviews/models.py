# gig_reviews/models.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List


class Review(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)
    reviewer: str
    rating: int = Field(..., ge=1, le=5)
    text: str = Field(..., min_length=1)
    date: str = ""  # free-form, as reported by the page
    country: Optional[str] = None


def is_admissible(reviewer: Optional[str], rating: Optional[int], text: Optional[str]) -> bool:
    return bool(reviewer and reviewer.strip()) and bool(rating and rating > 0) and bool(text and text.strip())


class ExtractionResult(BaseModel):
    model_config = ConfigDict(extra="ignore")
    url: str
    records: List[Review] = Field(default_factory=list)
    tier: Optional[str] = None  # "dynamic" | "static" | None when both came back empty
    exhausted: bool = False
    scraped_at: Optional[str] = None


class ExtractionFailure(BaseModel):
    model_config = ConfigDict(extra="ignore")
    error_kind: str
    message: str
    status_code: int
    retry_after_ms: Optional[int] = None
