import asyncio
import contextlib
import logging
from typing import Optional

from aiohttp import web
from sqlalchemy.engine import Engine

from rssreader import config
from rssreader.articles import ArticleStore
from rssreader.monitoring import FeedHealthMonitor
from rssreader.refresh import RefreshTask
from rssreader.rss import FeedSource
from rssreader.subscriptions import SubscriptionStore
from rssreader.tokens import TokenStore
from server.handlers import routes
from server.keys import ARTICLES, FEED_SOURCE, REFRESHER, SUBSCRIPTIONS, TOKENS
from server.middleware import auth_middleware, error_middleware

log = logging.getLogger("rssreader.server")


def create_app(engine: Engine,
               feed_source: Optional[FeedSource] = None,
               no_auth: bool = False,
               refresh_interval: Optional[float] = None,
               fetch_timeout: float = config.FEED_FETCH_TIMEOUT,
               fail_fast: bool = config.REFRESH_FAIL_FAST) -> web.Application:
    """Build the API application.

    `refresh_interval` (seconds) starts the periodic refresh alongside the server;
    None leaves refreshing to POST /refresh.
    """
    if no_auth:
        log.warning("*** RUNNING WITH AUTHENTICATION DISABLED ***")

    app = web.Application(middlewares=[error_middleware, auth_middleware(no_auth)])

    source = feed_source or FeedSource(timeout=fetch_timeout)
    subscriptions = SubscriptionStore(engine)
    articles = ArticleStore(engine)

    app[SUBSCRIPTIONS] = subscriptions
    app[ARTICLES] = articles
    app[TOKENS] = TokenStore(engine)
    app[FEED_SOURCE] = source
    app[REFRESHER] = RefreshTask(
        subscriptions, articles, source,
        fetch_timeout=fetch_timeout,
        fail_fast=fail_fast,
        monitor=FeedHealthMonitor(config.FAILURE_ALERT_THRESHOLD),
    )
    app.add_routes(routes)

    async def background_refresh(app: web.Application):
        task = None
        if refresh_interval:
            task = asyncio.create_task(app[REFRESHER].run(refresh_interval))
            log.info("Refresh task started: every %s s", refresh_interval)
        yield
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        # The pass may outlive its waiter; stop it before the source goes away.
        try:
            await app[REFRESHER].close()
        finally:
            await app[FEED_SOURCE].close()

    app.cleanup_ctx.append(background_refresh)
    return app
