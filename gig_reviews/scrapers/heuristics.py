"""Candidate detection and field extraction shared by both scrapers.

Both tiers hand this module a parsed document (the static fetch, or a snapshot
of the live page after the reveal loop) and get back admissible Review records.

NOTE: gig page markup is unlabelled and changes often. Every rule below is a
best guess; a miss drops the candidate, it never raises.
"""
import logging
import re
from typing import Callable, List, Optional

from bs4 import BeautifulSoup, Tag
from pydantic import ValidationError

from gig_reviews.dedupe import near_key
from gig_reviews.models import Review, is_admissible

log = logging.getLogger("heuristics")

CHALLENGE_MARKERS = ("human", "touch", "captcha", "security")

# --- candidate detection vocabularies ---
CANDIDATE_SELECTORS = [
    '[data-testid="review-item"]',
    ".review-item-component",
    ".carousel-review-item",
    ".review-list .review-item-component-wrapper",
    ".gig-page-reviews .review-item-component",
    ".reviews-wrap .review-item-component",
    '[class*="review"][class*="item"]',
    '[class*="review"][class*="card"]',
    ".review-container",
    ".feedback-item",
]
CONTAINER_TAGS = ["div", "article", "section"]
REVIEW_CLASS_PATTERNS = [
    "review", "feedback", "testimonial", "carousel-review",
    "review-item", "review-component", "review-card",
]
STAR_GLYPHS = ("★", "☆")
SENTIMENT_KEYWORDS = ("review", "feedback", "excellent", "great", "perfect")
MIN_TEXT_CANDIDATE_LEN = 50

# a candidate that itself reads like a pagination control is not a review
CANDIDATE_SKIP_PHRASES = ("show more reviews", "load more", "see all", "view all")
REVEAL_PHRASES = ("show more", "load more", "see all", "view all")

# --- field vocabularies ---
USER_LINK_RE = re.compile(r"/users/([^/?#]+)")
CAPITALIZED_NAME_RE = re.compile(r"\b[A-Z][a-z]+ [A-Z][a-z]+\b")
OUT_OF_RE = re.compile(r"(\d+(?:\.\d+)?)\s*out of\s*(\d+(?:\.\d+)?)", re.I)

REVIEWER_SELECTORS = [
    '[data-testid="review-buyer-name"]',
    '[data-testid="buyer-username"]',
    ".reviewer-name",
    ".buyer-name",
    ".username",
    '[class*="reviewer"][class*="name"]',
    '[class*="buyer"][class*="name"]',
]
REVIEWER_STOPWORDS = {
    "stars", "star", "review", "reviews", "feedback", "excellent", "great", "perfect",
}
COUNTRY_INDICATORS = (
    "united", "kingdom", "states", "america", "canada", "australia",
    "germany", "france", "italy", "spain",
)
STAR_SELECTOR = 'svg, [class*="star"]'
FILLED_MARKERS = ("fill", "★", "full", "active")

TEXT_SELECTORS = [
    '[data-testid="review-content"]',
    '[data-testid="review-comment"]',
    ".review-item-description",
    ".review-description",
    ".review-content",
    ".review-text",
    ".comment",
]
TEXT_MIN_LEN = 20
TEXT_MAX_LEN = 1000
PARAGRAPH_MIN_LEN = 20
PARAGRAPH_MAX_LEN = 2000

DATE_SELECTORS = [
    "time",
    '[data-testid="review-date"]',
    ".review-date",
    ".date",
    '[class*="date"]',
    ".timestamp",
]
COUNTRY_SELECTOR = '[class*="flag"], img[alt*="flag"], [data-testid="country-name"]'


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def is_challenge_title(title: Optional[str]) -> bool:
    t = (title or "").lower()
    return any(m in t for m in CHALLENGE_MARKERS)


def _text(el) -> str:
    return " ".join(el.get_text(" ").split())


def _class_string(el: Tag) -> str:
    cls = el.get("class") or []
    if isinstance(cls, str):
        return cls
    return " ".join(cls)


# ---------------------------------------------------------------------------
# Candidate detection: ordered rules, first non-empty result wins.
# ---------------------------------------------------------------------------
def by_known_selectors(doc: BeautifulSoup) -> List[Tag]:
    found: List[Tag] = []
    for sel in CANDIDATE_SELECTORS:
        try:
            matches = doc.select(sel)
        except Exception:
            continue
        if matches:
            log.debug("Found %s elements with selector %s", len(matches), sel)
            found.extend(matches)
    return found


def by_class_vocabulary(doc: BeautifulSoup) -> List[Tag]:
    out = []
    for el in doc.find_all(CONTAINER_TAGS):
        cls = _class_string(el).lower()
        if cls and any(p in cls for p in REVIEW_CLASS_PATTERNS):
            out.append(el)
    return out


def by_text_signals(doc: BeautifulSoup) -> List[Tag]:
    out = []
    for el in doc.find_all(CONTAINER_TAGS):
        text = _text(el)
        if len(text) <= MIN_TEXT_CANDIDATE_LEN:
            continue
        lowered = text.lower()
        has_stars = any(g in text for g in STAR_GLYPHS) or bool(OUT_OF_RE.search(text))
        has_keyword = any(k in lowered for k in SENTIMENT_KEYWORDS)
        if has_stars and has_keyword:
            out.append(el)
    return out


DETECTION_STRATEGIES: List[Callable[[BeautifulSoup], List[Tag]]] = [
    by_known_selectors,
    by_class_vocabulary,
    by_text_signals,
]


def find_candidates(doc: BeautifulSoup) -> List[Tag]:
    elements: List[Tag] = []
    for strategy in DETECTION_STRATEGIES:
        elements = strategy(doc)
        if elements:
            log.debug("Candidate strategy %s matched %s elements", strategy.__name__, len(elements))
            break
    # overlapping selectors can return the same node more than once
    unique, seen = [], set()
    for el in elements:
        raw = str(el)
        if raw in seen:
            continue
        seen.add(raw)
        unique.append(el)
    return unique


# ---------------------------------------------------------------------------
# Field strategies. Each returns a value or None; the first non-empty wins.
# ---------------------------------------------------------------------------
def reviewer_from_profile_link(el: Tag) -> Optional[str]:
    a = el.select_one('a[href*="/users/"]')
    if a and a.get("href"):
        m = USER_LINK_RE.search(a["href"])
        if m:
            return m.group(1)
    return None


def reviewer_from_selectors(el: Tag) -> Optional[str]:
    for sel in REVIEWER_SELECTORS:
        node = el.select_one(sel)
        if node:
            t = _text(node)
            if t:
                return t
    return None


def reviewer_from_capitalized_words(el: Tag) -> Optional[str]:
    m = CAPITALIZED_NAME_RE.search(_text(el))
    return m.group(0) if m else None


def reviewer_from_tokens(el: Tag) -> Optional[str]:
    for token in _text(el).split():
        if not 2 < len(token) < 30:
            continue
        if any(ch.isdigit() for ch in token):
            continue
        lowered = token.lower()
        if lowered in REVIEWER_STOPWORDS:
            continue
        if any(c in lowered for c in COUNTRY_INDICATORS):
            continue
        return token
    return None


REVIEWER_STRATEGIES = [
    reviewer_from_profile_link,
    reviewer_from_selectors,
    reviewer_from_capitalized_words,
    reviewer_from_tokens,
]


def _round_half_up(x: float) -> int:
    return int(x + 0.5)


def _rating_from_phrase(s: str) -> int:
    m = OUT_OF_RE.search(s or "")
    if not m:
        return 0
    value, scale = float(m.group(1)), float(m.group(2))
    if scale > 0 and scale != 5:
        value = value / scale * 5
    return max(0, min(5, _round_half_up(value)))


def rating_from_aria_label(el: Tag) -> Optional[int]:
    for node in el.select('[aria-label*="out of"], [aria-label*="star"]'):
        rating = _rating_from_phrase(node.get("aria-label", ""))
        if rating:
            return rating
    return None


def rating_from_filled_stars(el: Tag) -> Optional[int]:
    filled = 0
    for star in el.select(STAR_SELECTOR):
        html = str(star).lower()
        if any(marker in html for marker in FILLED_MARKERS):
            filled += 1
    return min(5, filled) or None


def rating_from_text(el: Tag) -> Optional[int]:
    return _rating_from_phrase(_text(el)) or None


RATING_STRATEGIES = [rating_from_aria_label, rating_from_filled_stars, rating_from_text]


def _has_reveal_phrase(s: str) -> bool:
    lowered = s.lower()
    return any(p in lowered for p in REVEAL_PHRASES)


def text_from_selectors(el: Tag) -> Optional[str]:
    for sel in TEXT_SELECTORS:
        node = el.select_one(sel)
        if not node:
            continue
        content = _text(node)
        if TEXT_MIN_LEN < len(content) < TEXT_MAX_LEN and not _has_reveal_phrase(content):
            return content
    return None


def text_from_paragraphs(el: Tag) -> Optional[str]:
    for p in el.find_all("p"):
        content = _text(p)
        if PARAGRAPH_MIN_LEN < len(content) < PARAGRAPH_MAX_LEN and not _has_reveal_phrase(content):
            return content
    return None


TEXT_STRATEGIES = [text_from_selectors, text_from_paragraphs]


def extract_date(el: Tag) -> Optional[str]:
    for sel in DATE_SELECTORS:
        node = el.select_one(sel)
        if not node:
            continue
        dt = node.get("datetime")
        if dt and dt.strip():
            return dt.strip()
        t = _text(node)
        if t:
            return t
    return None


def extract_country(el: Tag) -> Optional[str]:
    node = el.select_one(COUNTRY_SELECTOR)
    if not node:
        return None
    for value in (node.get("alt"), node.get("title"), _text(node)):
        if value and value.strip():
            return value.strip()
    return None


def first_of(strategies, el: Tag):
    for strategy in strategies:
        try:
            value = strategy(el)
        except Exception as e:
            log.debug("%s failed: %s", strategy.__name__, e)
            continue
        if value:
            return value
    return None


def assemble_review(
    reviewer: Optional[str],
    rating: Optional[int],
    text: Optional[str],
    date: Optional[str] = None,
    country: Optional[str] = None,
) -> Optional[Review]:
    if not is_admissible(reviewer, rating, text):
        return None
    try:
        return Review(
            reviewer=reviewer.strip(),
            rating=rating,
            text=text.strip(),
            date=(date or "").strip(),
            country=country or None,
        )
    except ValidationError as e:
        log.debug("Dropping candidate: %s", e)
        return None


def score_candidate(el: Tag) -> Optional[Review]:
    whole = _text(el).lower()
    if any(p in whole for p in CANDIDATE_SKIP_PHRASES):
        return None
    reviewer = first_of(REVIEWER_STRATEGIES, el)
    rating = first_of(RATING_STRATEGIES, el)
    text = first_of(TEXT_STRATEGIES, el)
    date = first_of([extract_date], el)
    country = first_of([extract_country], el)
    return assemble_review(reviewer, rating, text, date, country)


def score_document(doc: BeautifulSoup) -> List[Review]:
    candidates = find_candidates(doc)
    log.debug("Processing %s unique candidates", len(candidates))
    results: List[Review] = []
    seen = set()
    for el in candidates:
        try:
            review = score_candidate(el)
        except Exception as e:
            log.debug("Candidate scoring failed: %s", e)
            continue
        if review is None:
            continue
        key = near_key(review.reviewer, review.text)
        if key in seen:
            continue
        seen.add(key)
        results.append(review)
    return results
