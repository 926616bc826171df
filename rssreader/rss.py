"""Feed source: download a feed over HTTP and turn it into RemoteFeed/FeedItem."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional
from urllib.parse import urljoin

import aiohttp
import feedparser

from rssreader import config
from rssreader.errors import FeedFetchError, FeedNotFoundError, FeedParseError
from rssreader.models import FeedItem, RemoteFeed
from rssreader.utils import first_image_url

log = logging.getLogger("rssreader.rss")

NOT_FOUND_STATUSES = (404, 410)


def _get(obj: Any, attr: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(attr)
    return getattr(obj, attr, None)


def _entry_html(entry: Any) -> str:
    content = _get(entry, "content")
    if content and isinstance(content, list) and len(content) > 0:
        v = _get(content[0], "value")
        if v:
            return str(v)
    return str(_get(entry, "description") or _get(entry, "summary") or "")


def _published_dt(entry: Any) -> Optional[datetime]:
    st = _get(entry, "published_parsed") or _get(entry, "updated_parsed")
    if st:
        try:
            return datetime(*st[:6], tzinfo=timezone.utc)
        except (TypeError, ValueError):
            return None
    return None


def _image_url(entry: Any, base_url: str) -> Optional[str]:
    for m in (_get(entry, "media_content") or []):
        url = m.get("url")
        if url and m.get("medium", "image") == "image":
            return urljoin(base_url, url)
    for t in (_get(entry, "media_thumbnail") or []):
        url = t.get("url")
        if url:
            return urljoin(base_url, url)
    for enc in (_get(entry, "enclosures") or []):
        href = enc.get("href")
        if href and str(enc.get("type", "")).startswith("image/"):
            return urljoin(base_url, href)
    image = _get(entry, "image")
    if image and _get(image, "href"):
        return urljoin(base_url, str(_get(image, "href")))
    return None


def _feed_type(version: str) -> str:
    version = version or ""
    for kind in ("atom", "rss", "json"):
        if version.startswith(kind):
            return kind
    return version


def entry_to_item(entry: Any, base_url: str) -> FeedItem:
    raw_link = str(_get(entry, "link") or "").strip()
    url = urljoin(base_url, raw_link) if raw_link else ""
    html = _entry_html(entry)
    return FeedItem(
        url=url,
        title=str(_get(entry, "title") or ""),
        description=str(_get(entry, "description") or _get(entry, "summary") or ""),
        published_at=_published_dt(entry),
        image_url=_image_url(entry, base_url) or first_image_url(html, base_url),
    )


def parsed_to_feed(parsed: Any, url: str) -> RemoteFeed:
    meta = _get(parsed, "feed") or {}
    link = str(_get(meta, "link") or "")
    image = _get(meta, "image")
    entries = _get(parsed, "entries") or []
    base_url = link or url
    items: List[FeedItem] = [entry_to_item(e, base_url) for e in entries]
    return RemoteFeed(
        url=url,
        feed_type=_feed_type(str(_get(parsed, "version") or "")),
        link=link,
        title=str(_get(meta, "title") or ""),
        description=str(_get(meta, "subtitle") or _get(meta, "description") or ""),
        image_url=str(_get(image, "href")) if image and _get(image, "href") else None,
        items=items,
    )


def parse_feed_body(body: bytes, url: str, content_type: str = "") -> RemoteFeed:
    headers = {"content-location": url}
    if content_type:
        headers["content-type"] = content_type
    parsed = feedparser.parse(body, response_headers=headers)
    if not parsed.get("version") and not parsed.entries:
        reason = parsed.get("bozo_exception") or "not an RSS/Atom document"
        raise FeedParseError(url, str(reason))
    if parsed.get("bozo"):
        log.debug("Feed %s parsed with warnings: %s", url, parsed.get("bozo_exception"))
    return parsed_to_feed(parsed, url)


class FeedSource:
    """Fetches feeds with a per-request timeout. One aiohttp session is reused."""

    def __init__(self, timeout: float = config.FEED_FETCH_TIMEOUT,
                 user_agent: str = config.USER_AGENT):
        self.timeout = timeout
        self.user_agent = user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": self.user_agent},
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def parse(self, url: str) -> RemoteFeed:
        sess = await self._ensure_session()
        try:
            async with sess.get(url) as resp:
                if resp.status in NOT_FOUND_STATUSES:
                    raise FeedNotFoundError(url, f"remote returned {resp.status}")
                if resp.status >= 400:
                    raise FeedFetchError(url, f"remote returned {resp.status}")
                body = await resp.read()
                content_type = resp.headers.get("Content-Type", "")
        except asyncio.TimeoutError as e:
            raise FeedFetchError(url, f"timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise FeedFetchError(url, str(e) or e.__class__.__name__) from e
        return parse_feed_body(body, url, content_type)
