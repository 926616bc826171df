"""Bearer tokens used by the HTTP API."""

import base64
import dataclasses
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from rssreader.database import auth_tokens
from rssreader.errors import DuplicateError, NotFoundError, StoreError
from rssreader.models import Token
from rssreader.utils import as_utc, to_db_datetime, utc_now

TOKEN_BYTES = 32


def generate(valid_for: Optional[timedelta] = None) -> Token:
    """A new token: 256 random bits, urlsafe base64. Zero/None valid_for never expires."""
    value = base64.urlsafe_b64encode(secrets.token_bytes(TOKEN_BYTES)).decode("ascii")
    now = utc_now()
    valid_until = now + valid_for if valid_for else None
    return Token(token=value, created_at=now, valid_until=valid_until)


class TokenStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    def find(self, value: str) -> Token:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(auth_tokens).where(auth_tokens.c.token == value)
                ).first()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        if row is None:
            raise NotFoundError("token not found")
        return Token(
            id=row.id,
            token=row.token,
            created_at=as_utc(row.created_at),
            valid_until=as_utc(row.valid_until),
        )

    def insert(self, t: Token) -> Token:
        try:
            with self.engine.begin() as conn:
                res = conn.execute(
                    auth_tokens.insert().values(
                        token=t.token,
                        created_at=to_db_datetime(t.created_at),
                        valid_until=to_db_datetime(t.valid_until),
                    )
                )
        except IntegrityError as e:
            raise DuplicateError("token already exists") from e
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return dataclasses.replace(t, id=res.inserted_primary_key[0])

    def delete(self, t: Token) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    auth_tokens.delete().where(
                        or_(auth_tokens.c.id == t.id, auth_tokens.c.token == t.token)
                    )
                )
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
