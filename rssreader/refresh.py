"""Periodic reconciliation of stored articles with the live content of every feed.

One pass lists the subscriptions, then for each one (serially) loads the stored
articles, fetches the feed, keeps the items whose URL is not stored yet for that
subscription and inserts them in a single transaction. Articles already
committed for earlier subscriptions stay committed if a later step fails.

A feed that cannot be fetched is skipped and reported in
``RefreshResult.failures``; with ``fail_fast=True`` it aborts the pass instead.
Store errors always abort. Overlapping calls share the pass already running.
Store calls run in worker threads so SQLite I/O never blocks the event loop.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from rssreader import config
from rssreader.articles import ArticleStore
from rssreader.errors import FeedError, FeedFetchError
from rssreader.models import Article, FeedItem, Subscription
from rssreader.monitoring import FeedHealthMonitor
from rssreader.subscriptions import SubscriptionStore
from rssreader.utils import utc_now

log = logging.getLogger("rssreader.refresh")


@dataclass
class RefreshResult:
    articles: List[Article] = field(default_factory=list)
    failures: List[Tuple[Subscription, FeedError]] = field(default_factory=list)


def item_to_article(item: FeedItem, subscription_id: int, fetched_at: datetime) -> Article:
    created = item.published_at
    if created is None:
        log.warning("No published date for %s, using fetch time %s.", item.url, fetched_at)
        created = fetched_at
    return Article(
        subscription_id=subscription_id,
        url=item.url,
        title=item.title,
        description=item.description or None,
        thumbnail=item.image_url or None,
        created_at=created,
        is_new=True,
        is_read_later=False,
    )


def select_new_articles(existing: Iterable[Article], candidates: Iterable[Article]) -> List[Article]:
    """Candidates whose URL is not among the existing ones, in feed order.

    URLs are compared as exact strings. Items without a URL are dropped and a URL
    repeated inside one fetch is kept once.
    """
    known = {a.url for a in existing}
    out: List[Article] = []
    for c in candidates:
        if not c.url:
            log.warning("Skipping item without link: %r", c.title)
            continue
        if c.url in known:
            continue
        known.add(c.url)
        out.append(c)
    return out


class RefreshTask:
    def __init__(self, subscriptions: SubscriptionStore, articles: ArticleStore, source,
                 fetch_timeout: float = config.FEED_FETCH_TIMEOUT,
                 fail_fast: bool = config.REFRESH_FAIL_FAST,
                 monitor: Optional[FeedHealthMonitor] = None):
        self.subscriptions = subscriptions
        self.articles = articles
        self.source = source
        self.fetch_timeout = fetch_timeout
        self.fail_fast = fail_fast
        self.monitor = monitor or FeedHealthMonitor(config.FAILURE_ALERT_THRESHOLD)
        self._inflight: Optional["asyncio.Future[RefreshResult]"] = None

    async def refresh_all(self) -> RefreshResult:
        """Run one reconciliation pass, or join the pass already in flight."""
        if self._inflight is not None and not self._inflight.done():
            log.info("Refresh already running, waiting for it.")
        else:
            self._inflight = asyncio.ensure_future(self._refresh())
            self._inflight.add_done_callback(self._clear_inflight)
        return await asyncio.shield(self._inflight)

    async def close(self) -> None:
        """Cancel the pass in flight, if any, and wait until it has stopped."""
        fut = self._inflight
        if fut is None or fut.done():
            return
        log.info("Cancelling the refresh pass in flight.")
        fut.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await fut

    def _clear_inflight(self, fut: "asyncio.Future[RefreshResult]") -> None:
        if self._inflight is fut:
            self._inflight = None

    async def run(self, interval: float) -> None:
        """Refresh every `interval` seconds until cancelled. Errors are logged, not raised."""
        while True:
            try:
                result = await self.refresh_all()
                if result.failures:
                    log.warning("Refresh finished with %d failing feed(s).", len(result.failures))
            except asyncio.CancelledError:
                raise
            except Exception:
                log.exception("Feed refresh failed")
            await asyncio.sleep(interval)

    async def _refresh(self) -> RefreshResult:
        subs = await asyncio.to_thread(self.subscriptions.list_all)
        log.info("Refreshing %d subscription(s).", len(subs))

        result = RefreshResult()
        for sub in subs:
            try:
                inserted = await self._refresh_subscription(sub)
            except FeedError as e:
                self.monitor.record_failure(sub.url)
                if self.fail_fast:
                    log.error("Refresh aborted on %s: %s", sub.url, e)
                    raise
                log.warning("Skipping subscription %s (%s): %s", sub.id, sub.url, e)
                result.failures.append((sub, e))
                continue
            self.monitor.record_success(sub.url)
            result.articles.extend(inserted)

        log.info(
            "Refresh done: %d new article(s), %d failed feed(s).",
            len(result.articles), len(result.failures),
        )
        return result

    async def _fetch(self, url: str):
        try:
            return await asyncio.wait_for(self.source.parse(url), timeout=self.fetch_timeout)
        except asyncio.TimeoutError as e:
            raise FeedFetchError(url, f"timed out after {self.fetch_timeout}s") from e

    async def _refresh_subscription(self, sub: Subscription) -> List[Article]:
        existing = await asyncio.to_thread(self.articles.list_for_subscription, sub.id)
        feed = await self._fetch(sub.url)
        fetched_at = utc_now()

        candidates = [item_to_article(item, sub.id, fetched_at) for item in feed.items]
        fresh = select_new_articles(existing, candidates)
        if not fresh:
            log.debug("%s: nothing new (%d item(s) in feed).", sub.url, len(candidates))
            return []

        inserted = await asyncio.to_thread(self.articles.bulk_insert, fresh)
        log.info("%s: %d new article(s).", sub.url, len(inserted))
        return inserted
