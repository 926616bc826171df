import dataclasses
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.engine import Connection, Engine, Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from rssreader.database import articles, subscriptions
from rssreader.errors import DuplicateError, NotFoundError, NotInReadLaterError, StoreError
from rssreader.models import Article, Subscription
from rssreader.utils import as_utc, to_db_datetime, utc_now


def row_to_article(row: Row) -> Article:
    return Article(
        id=row.id,
        subscription_id=row.subscription_id,
        url=row.url,
        title=row.title,
        description=row.description,
        thumbnail=row.thumbnail,
        created_at=as_utc(row.created),
        is_new=bool(row.new),
        is_read_later=bool(row.readlater),
        read_later_added_at=as_utc(row.created_readlater),
    )


# Subscription columns prefixed so they do not clash with the article ones in a join.
_SUB_COLUMNS = [c.label(f"sub_{c.name}") for c in subscriptions.c]


def _joined_subscription(row: Row) -> Subscription:
    return Subscription(
        id=row.sub_id,
        feed_type=row.sub_type,
        url=row.sub_url,
        title=row.sub_title,
        description=row.sub_description,
        thumbnail=row.sub_thumbnail,
    )


def _values(a: Article) -> Dict[str, Any]:
    read_later_at = a.read_later_added_at if a.is_read_later else None
    if a.is_read_later and read_later_at is None:
        read_later_at = utc_now()
    return {
        "subscription_id": a.subscription_id,
        "url": a.url,
        "title": a.title,
        "description": a.description,
        "thumbnail": a.thumbnail,
        "created": to_db_datetime(a.created_at),
        "new": a.is_new,
        "readlater": a.is_read_later,
        "created_readlater": to_db_datetime(read_later_at),
    }


class ArticleStore:
    """Articles per subscription, with new and read-later flags."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _select(self, stmt) -> List[Article]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).all()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return [row_to_article(r) for r in rows]

    def _select_joined(self, stmt) -> List[Tuple[Article, Subscription]]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).all()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return [(row_to_article(r), _joined_subscription(r)) for r in rows]

    @staticmethod
    def _with_subscription(stmt):
        return stmt.add_columns(*_SUB_COLUMNS).join(
            subscriptions, subscriptions.c.id == articles.c.subscription_id)

    @staticmethod
    def _insert_one(conn: Connection, a: Article) -> Article:
        values = _values(a)
        res = conn.execute(articles.insert().values(**values))
        return dataclasses.replace(
            a,
            id=res.inserted_primary_key[0],
            read_later_added_at=as_utc(values["created_readlater"]),
        )

    def list_all(self) -> List[Article]:
        return self._select(select(articles).order_by(articles.c.id))

    def find(self, article_id: int) -> Article:
        found = self._select(select(articles).where(articles.c.id == article_id))
        if not found:
            raise NotFoundError(f"article {article_id} not found")
        return found[0]

    def list_for_subscription(self, subscription_id: int) -> List[Article]:
        return self._select(
            select(articles)
            .where(articles.c.subscription_id == subscription_id)
            .order_by(articles.c.created.desc(), articles.c.id.desc())
        )

    def list_unread(self) -> List[Article]:
        return self._select(
            select(articles)
            .where(articles.c.new.is_(True))
            .order_by(articles.c.created.desc(), articles.c.id.desc())
        )

    def list_read_later(self, limit: int, offset: int = 0) -> List[Article]:
        return self._select(
            select(articles)
            .where(articles.c.readlater.is_(True))
            .order_by(articles.c.created_readlater.desc(), articles.c.id.desc())
            .limit(limit)
            .offset(offset)
        )

    def list_unread_with_subscriptions(self) -> List[Tuple[Article, Subscription]]:
        return self._select_joined(self._with_subscription(
            select(articles)
            .where(articles.c.new.is_(True))
            .order_by(articles.c.created.desc(), articles.c.id.desc())
        ))

    def list_read_later_with_subscriptions(self, limit: int, offset: int = 0
                                           ) -> List[Tuple[Article, Subscription]]:
        return self._select_joined(self._with_subscription(
            select(articles)
            .where(articles.c.readlater.is_(True))
            .order_by(articles.c.created_readlater.desc(), articles.c.id.desc())
            .limit(limit)
            .offset(offset)
        ))

    def insert(self, a: Article) -> Article:
        try:
            with self.engine.begin() as conn:
                return self._insert_one(conn, a)
        except IntegrityError as e:
            raise DuplicateError(f"article rejected: {a.url}") from e
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def bulk_insert(self, batch: List[Article]) -> List[Article]:
        """Insert every article or none of them."""
        if not batch:
            return []
        try:
            with self.engine.begin() as conn:
                return [self._insert_one(conn, a) for a in batch]
        except IntegrityError as e:
            raise DuplicateError(f"batch of {len(batch)} articles rolled back: {e.orig}") from e
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def _update(self, a: Article, only_read_later: bool = False, **values: Any) -> int:
        stmt = articles.update().where(articles.c.id == a.id)
        if only_read_later:
            stmt = stmt.where(articles.c.readlater.is_(True))
        try:
            with self.engine.begin() as conn:
                return conn.execute(stmt.values(**values)).rowcount
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def mark_read(self, a: Article) -> Article:
        # A read article also leaves the read-later queue.
        if self._update(a, new=False, readlater=False, created_readlater=None) == 0:
            raise NotFoundError(f"article {a.id} not found")
        return dataclasses.replace(a, is_new=False, is_read_later=False, read_later_added_at=None)

    def add_to_read_later(self, a: Article, now: Optional[datetime] = None) -> Article:
        added_at = as_utc(now) or utc_now()
        if self._update(a, readlater=True, created_readlater=to_db_datetime(added_at)) == 0:
            raise NotFoundError(f"article {a.id} not found")
        return dataclasses.replace(a, is_read_later=True, read_later_added_at=added_at)

    def remove_from_read_later(self, a: Article) -> Article:
        if self._update(a, only_read_later=True, readlater=False, created_readlater=None) == 0:
            self.find(a.id)
            raise NotInReadLaterError(f"article {a.id} is not in read later")
        return dataclasses.replace(a, is_read_later=False, read_later_added_at=None)
