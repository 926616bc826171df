"""Route handlers for the JSON API."""

import asyncio
import json
import logging

from aiohttp import web
from yarl import URL

from rssreader import config
from rssreader.errors import FeedError
from rssreader.models import Subscription
from rssreader.refresh import item_to_article, select_new_articles
from rssreader.utils import utc_now
from server.keys import ARTICLES, FEED_SOURCE, REFRESHER, SUBSCRIPTIONS
from server.middleware import get_pagination, json_error
from server.resources import (
    article_json,
    articles_json,
    joined_articles_json,
    remote_feed_json,
    subscription_json,
)

log = logging.getLogger("rssreader.server")

routes = web.RouteTableDef()

REFRESH_FAILED = "refresh failed"


def _path_id(request: web.Request) -> int:
    try:
        return int(request.match_info["id"])
    except ValueError:
        raise web.HTTPBadRequest(text="invalid id")


def _valid_feed_url(raw: str) -> bool:
    if not raw:
        return False
    try:
        url = URL(raw)
    except ValueError:
        return False
    return url.scheme in ("http", "https") and bool(url.host)


@routes.get("/ping")
async def ping(request: web.Request) -> web.Response:
    return web.Response(text="pong")


# ── subscriptions ─────────────────────────────────────────────

@routes.get("/subscriptions")
async def get_subscriptions(request: web.Request) -> web.Response:
    subs = await asyncio.to_thread(request.app[SUBSCRIPTIONS].list_all)
    return web.json_response([subscription_json(s) for s in subs])


@routes.get("/subscriptions/{id}")
async def get_subscription(request: web.Request) -> web.Response:
    sub = await asyncio.to_thread(request.app[SUBSCRIPTIONS].find, _path_id(request))
    return web.json_response(subscription_json(sub))


@routes.get("/subscriptions/{id}/articles")
async def get_subscription_articles(request: web.Request) -> web.Response:
    sub = await asyncio.to_thread(request.app[SUBSCRIPTIONS].find, _path_id(request))
    articles = await asyncio.to_thread(request.app[ARTICLES].list_for_subscription, sub.id)
    return web.json_response(articles_json(articles))


@routes.get("/feedinfo")
async def feed_info(request: web.Request) -> web.Response:
    url = request.query.get("url", "")
    if not _valid_feed_url(url):
        raise web.HTTPBadRequest(text="a valid http(s) url is required")

    feed = await request.app[FEED_SOURCE].parse(url)
    exists, sub_id = await asyncio.to_thread(request.app[SUBSCRIPTIONS].exists, url)
    return web.json_response(remote_feed_json(feed, sub_id if exists else None))


@routes.post("/subscribe")
async def subscribe(request: web.Request) -> web.Response:
    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise web.HTTPBadRequest(text="invalid json")
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(text="expected a json object")

    url = str(body.get("url") or "")
    if not _valid_feed_url(url):
        raise web.HTTPBadRequest(text="a valid http(s) url is required")

    subs = request.app[SUBSCRIPTIONS]
    exists, sub_id = await asyncio.to_thread(subs.exists, url)
    if exists:
        raise web.HTTPFound(f"/subscriptions/{sub_id}")

    feed = await request.app[FEED_SOURCE].parse(url)

    # Title and description from the request override the feed's own.
    sub = await asyncio.to_thread(subs.insert, Subscription(
        feed_type=feed.feed_type,
        url=url,
        title=str(body.get("title") or feed.title),
        description=str(body.get("description") or feed.description) or None,
        thumbnail=feed.image_url,
    ))

    fetched_at = utc_now()
    candidates = [item_to_article(item, sub.id, fetched_at) for item in feed.items]
    inserted = await asyncio.to_thread(
        request.app[ARTICLES].bulk_insert, select_new_articles([], candidates))
    log.info("Subscribed to %s (%d article(s)).", url, len(inserted))

    return web.json_response(subscription_json(sub), status=201)


# ── articles ──────────────────────────────────────────────────

@routes.get("/articles/{id}")
async def get_article(request: web.Request) -> web.Response:
    article = await asyncio.to_thread(request.app[ARTICLES].find, _path_id(request))
    return web.json_response(article_json(article))


@routes.post("/articles/{id}/markread")
async def mark_read(request: web.Request) -> web.Response:
    store = request.app[ARTICLES]
    article = await asyncio.to_thread(store.find, _path_id(request))
    await asyncio.to_thread(store.mark_read, article)
    return web.Response(status=204)


@routes.get("/unread")
async def get_unread(request: web.Request) -> web.Response:
    pairs = await asyncio.to_thread(request.app[ARTICLES].list_unread_with_subscriptions)
    return web.json_response(joined_articles_json(pairs))


# ── read later ────────────────────────────────────────────────

@routes.post("/articles/{id}/readlater")
async def add_to_read_later(request: web.Request) -> web.Response:
    store = request.app[ARTICLES]
    article = await asyncio.to_thread(store.find, _path_id(request))
    await asyncio.to_thread(store.add_to_read_later, article)
    return web.Response(status=204)


@routes.delete("/articles/{id}/readlater")
async def remove_from_read_later(request: web.Request) -> web.Response:
    store = request.app[ARTICLES]
    article = await asyncio.to_thread(store.find, _path_id(request))
    await asyncio.to_thread(store.remove_from_read_later, article)
    return web.Response(status=204)


@routes.get("/readlater")
async def show_read_later(request: web.Request) -> web.Response:
    limit, offset = get_pagination(request, config.READ_LATER_PAGE_SIZE)
    pairs = await asyncio.to_thread(
        request.app[ARTICLES].list_read_later_with_subscriptions, limit, offset)
    return web.json_response(joined_articles_json(pairs))


# ── refresh ───────────────────────────────────────────────────

@routes.post("/refresh")
async def refresh(request: web.Request) -> web.Response:
    try:
        result = await request.app[REFRESHER].refresh_all()
    except FeedError as e:
        # any aborted pass is a 500, whatever the feed error
        log.error("Refresh aborted: %s", e)
        return json_error(500, REFRESH_FAILED)
    return web.json_response(articles_json(result.articles))
