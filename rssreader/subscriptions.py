import dataclasses
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from rssreader.database import subscriptions
from rssreader.errors import DuplicateError, NotFoundError, StoreError
from rssreader.models import Subscription


def row_to_subscription(row: Row) -> Subscription:
    return Subscription(
        id=row.id,
        feed_type=row.type,
        url=row.url,
        title=row.title,
        description=row.description,
        thumbnail=row.thumbnail,
    )


class SubscriptionStore:
    """Persisted list of watched feeds."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _one(self, where) -> Subscription:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(select(subscriptions).where(where)).first()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        if row is None:
            raise NotFoundError("subscription not found")
        return row_to_subscription(row)

    def list_all(self) -> List[Subscription]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(select(subscriptions).order_by(subscriptions.c.id)).all()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return [row_to_subscription(r) for r in rows]

    def find(self, sub_id: int) -> Subscription:
        return self._one(subscriptions.c.id == sub_id)

    def find_by_url(self, url: str) -> Subscription:
        return self._one(subscriptions.c.url == url)

    def exists(self, url: str) -> Tuple[bool, Optional[int]]:
        try:
            with self.engine.connect() as conn:
                sub_id = conn.execute(
                    select(subscriptions.c.id).where(subscriptions.c.url == url)
                ).scalar()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return sub_id is not None, sub_id

    def insert(self, sub: Subscription) -> Subscription:
        try:
            with self.engine.begin() as conn:
                res = conn.execute(
                    subscriptions.insert().values(
                        type=sub.feed_type,
                        url=sub.url,
                        title=sub.title,
                        description=sub.description,
                        thumbnail=sub.thumbnail,
                    )
                )
                new_id = res.inserted_primary_key[0]
        except IntegrityError as e:
            raise DuplicateError(f"subscription already exists: {sub.url}") from e
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return dataclasses.replace(sub, id=new_id)

    def update(self, sub: Subscription) -> None:
        try:
            with self.engine.begin() as conn:
                res = conn.execute(
                    subscriptions.update()
                    .where(subscriptions.c.id == sub.id)
                    .values(
                        type=sub.feed_type,
                        url=sub.url,
                        title=sub.title,
                        description=sub.description,
                        thumbnail=sub.thumbnail,
                    )
                )
        except IntegrityError as e:
            raise DuplicateError(f"subscription url already used: {sub.url}") from e
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        if res.rowcount == 0:
            raise NotFoundError(f"subscription {sub.id} not found")
