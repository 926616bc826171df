"""SQLite schema and engine setup."""

import logging

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine

log = logging.getLogger("rssreader.database")

metadata = MetaData()

subscriptions = Table(
    "subscriptions",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("type", String(32), nullable=False, default=""),
    Column("url", Text, nullable=False, unique=True),
    Column("title", Text, nullable=False, default=""),
    Column("description", Text),
    Column("thumbnail", Text),
)

articles = Table(
    "articles",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("subscription_id", Integer, ForeignKey("subscriptions.id"), nullable=False, index=True),
    Column("url", Text, nullable=False),
    Column("title", Text, nullable=False, default=""),
    Column("description", Text),
    Column("thumbnail", Text),
    Column("created", DateTime, nullable=False),
    Column("new", Boolean, nullable=False, default=True),
    Column("readlater", Boolean, nullable=False, default=False),
    Column("created_readlater", DateTime),
    # Article URLs are unique within one subscription, not across feeds.
    UniqueConstraint("subscription_id", "url", name="uq_articles_subscription_url"),
    CheckConstraint(
        "(readlater AND created_readlater IS NOT NULL) OR "
        "(NOT readlater AND created_readlater IS NULL)",
        name="ck_articles_readlater_timestamp",
    ),
)

auth_tokens = Table(
    "auth_tokens",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("token", String(64), nullable=False, unique=True),
    Column("created_at", DateTime, nullable=False),
    Column("valid_until", DateTime),
)


def _enable_foreign_keys(dbapi_conn, _record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def create_db_engine(path: str, echo: bool = False) -> Engine:
    """Open (and create if needed) the SQLite database at path."""
    engine = create_engine(f"sqlite:///{path}", future=True, echo=echo)
    event.listen(engine, "connect", _enable_foreign_keys)
    metadata.create_all(engine)
    log.info("Database ready at %s", path)
    return engine
