# gig_reviews/dedupe.py
from typing import Iterable, List, Set, Tuple

from gig_reviews.models import Review


def identity_key(review: Review) -> Tuple[str, str, str]:
    return (review.reviewer, review.text, review.date)


def near_key(reviewer: str, text: str) -> Tuple[str, str]:
    # looser key used while scoring a single pass
    return (reviewer, text[:30])


def dedupe(records: Iterable[Review]) -> List[Review]:
    seen: Set[Tuple[str, str, str]] = set()
    unique: List[Review] = []
    for r in records:
        key = identity_key(r)
        if key in seen:
            continue
        seen.add(key)
        unique.append(r)
    return unique
