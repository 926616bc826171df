"""Fakes and builders shared by the tests."""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Union

from rssreader.models import Article, FeedItem, RemoteFeed


class FakeFeedSource:
    """In-memory feed source: url -> RemoteFeed, or an exception to raise."""

    def __init__(self, delay: float = 0):
        self.feeds: Dict[str, Union[RemoteFeed, Exception]] = {}
        self.calls: List[str] = []
        self.delay = delay
        self.closed = False

    def set(self, url: str, urls: List[str], **feed_kwargs) -> RemoteFeed:
        feed = make_feed(url, urls, **feed_kwargs)
        self.feeds[url] = feed
        return feed

    async def parse(self, url: str) -> RemoteFeed:
        self.calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        feed = self.feeds[url]
        if isinstance(feed, Exception):
            raise feed
        return feed

    async def close(self) -> None:
        self.closed = True


def make_feed(url: str, item_urls: List[str], title: str = "Example feed") -> RemoteFeed:
    items = [
        FeedItem(
            url=u,
            title=f"Item {u}",
            description=f"About {u}",
            published_at=datetime(2024, 6, 15, 12, i, tzinfo=timezone.utc),
        )
        for i, u in enumerate(item_urls)
    ]
    return RemoteFeed(
        url=url, feed_type="rss", link="https://example.com",
        title=title, description="Example description", items=items,
    )


def make_article(subscription_id: int, url: str, **overrides) -> Article:
    defaults = dict(
        subscription_id=subscription_id,
        url=url,
        title=f"Article {url}",
        created_at=datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc),
        description="Description",
    )
    defaults.update(overrides)
    return Article(**defaults)


