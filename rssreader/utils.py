from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_db_datetime(dt: Optional[datetime]) -> Optional[datetime]:
    """Naive UTC, as stored in the database."""
    dt = as_utc(dt)
    return dt.replace(tzinfo=None) if dt is not None else None


def format_datetime(dt: Optional[datetime]) -> str:
    dt = as_utc(dt)
    return dt.strftime(DATETIME_FORMAT) if dt is not None else ""


def first_image_url(raw_html: str, base_url: str = "") -> Optional[str]:
    """Return the src of the first <img> in an HTML fragment, resolved against base_url."""
    if not raw_html or "<img" not in raw_html.lower():
        return None
    img = BeautifulSoup(raw_html, "html.parser").find("img", src=True)
    if img is None:
        return None
    src = str(img["src"]).strip()
    if not src or src.startswith("data:"):
        return None
    return urljoin(base_url, src) if base_url else src
