# gig_reviews/utils.py
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse
import re


def safe_filename(s: str) -> str:
    return re.sub(r'[^A-Za-z0-9\-_\.]+', '_', s).strip('_')


def iso_now():
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def ensure_outputs_dir():
    p = Path("outputs")
    p.mkdir(parents=True, exist_ok=True)
    return p


def is_allowed_url(url: str, domain: str) -> bool:
    if not url or not isinstance(url, str):
        return False
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https"):
        return False
    host = (parsed.hostname or "").lower()
    domain = domain.lower()
    return host == domain or host.endswith("." + domain)


def gig_slug(url: str) -> str:
    path = urlparse(url).path.strip("/")
    return safe_filename(path.replace("/", "-")) or "gig"
