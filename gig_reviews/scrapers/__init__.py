from gig_reviews.scrapers.dynamic_scraper import DynamicScraper, DynamicOutcome, RevealExit, SessionState
from gig_reviews.scrapers.static_scraper import StaticScraper

__all__ = ["DynamicScraper", "DynamicOutcome", "RevealExit", "SessionState", "StaticScraper"]
