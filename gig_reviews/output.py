# gig_reviews/output.py
import csv
import io
from pathlib import Path
from typing import Iterable, Optional

from gig_reviews.models import Review
from gig_reviews.utils import ensure_outputs_dir, gig_slug

COLUMNS = ["Reviewer Name", "Rating", "Review Text", "Review Date", "Country"]
EXPORT_FILENAME = "fiverr_reviews.csv"
CSV_MEDIA_TYPE = "text/csv"


def to_table(records: Iterable[Review]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(COLUMNS)
    for r in records:
        writer.writerow([r.reviewer, r.rating, r.text, r.date, r.country or ""])
    # no trailing newline after the last row
    return buf.getvalue()[:-1]


def write_table(records: Iterable[Review], url: str, path: Optional[str] = None) -> str:
    if path:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
    else:
        out = ensure_outputs_dir() / f"{gig_slug(url)}-reviews.csv"
    with open(out, "w", encoding="utf-8", newline="") as f:
        f.write(to_table(records))
    return str(out)
