from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List


@dataclass(frozen=True)
class Subscription:
    url: str
    title: str
    feed_type: str = ""
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    id: Optional[int] = None  # assigned by the store


@dataclass(frozen=True)
class Article:
    subscription_id: int
    url: str
    title: str
    created_at: datetime  # UTC
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    is_new: bool = True
    is_read_later: bool = False
    read_later_added_at: Optional[datetime] = None
    id: Optional[int] = None  # assigned by the store


@dataclass(frozen=True)
class Token:
    token: str
    created_at: datetime
    valid_until: Optional[datetime] = None  # None = never expires
    id: Optional[int] = None

    def expired(self, now: Optional[datetime] = None) -> bool:
        if self.valid_until is None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.valid_until < now


@dataclass(frozen=True)
class FeedItem:
    url: str
    title: str
    description: str = ""
    published_at: Optional[datetime] = None  # UTC when the feed provides one
    image_url: Optional[str] = None


@dataclass(frozen=True)
class RemoteFeed:
    url: str
    feed_type: str
    link: str
    title: str
    description: str = ""
    image_url: Optional[str] = None
    items: List[FeedItem] = field(default_factory=list)
