"""JSON shapes returned by the API."""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from rssreader.models import Article, RemoteFeed, Subscription
from rssreader.utils import format_datetime


def subscription_json(s: Subscription) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "type": s.feed_type,
        "url": s.url,
        "title": s.title,
    }
    if s.id:
        out["id"] = s.id
    if s.description:
        out["description"] = s.description
    if s.thumbnail:
        out["thumbnail"] = s.thumbnail
    return out


def remote_feed_json(feed: RemoteFeed, existing_id: Optional[int] = None) -> Dict[str, Any]:
    """Feed info for a URL; `id` is present only when already subscribed."""
    return subscription_json(Subscription(
        id=existing_id,
        feed_type=feed.feed_type,
        url=feed.url,
        title=feed.title,
        description=feed.description or None,
        thumbnail=feed.image_url,
    ))


def article_json(a: Article, subscription: Optional[Subscription] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "id": a.id,
        "subscriptionId": a.subscription_id,
        "new": a.is_new,
        "url": a.url,
        "title": a.title,
        "created": format_datetime(a.created_at),
        "readLater": a.is_read_later,
    }
    if a.description:
        out["description"] = a.description
    if a.thumbnail:
        out["thumbnail"] = a.thumbnail
    if a.read_later_added_at is not None:
        out["createdReadLater"] = format_datetime(a.read_later_added_at)
    if subscription is not None:
        out["subscription"] = subscription_json(subscription)
    return out


def articles_json(articles: Iterable[Article]) -> List[Dict[str, Any]]:
    return [article_json(a) for a in articles]


def joined_articles_json(pairs: Iterable[Tuple[Article, Subscription]]) -> List[Dict[str, Any]]:
    """Articles with their subscription embedded under `subscription`."""
    return [article_json(a, s) for a, s in pairs]
