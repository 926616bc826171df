from datetime import datetime, timedelta, timezone

import pytest

from rssreader.errors import NotFoundError
from rssreader.models import Token
from rssreader.tokens import generate


class TestGenerate:
    def test_no_expiry_by_default(self):
        t = generate()
        assert t.valid_until is None
        assert not t.expired()

    def test_zero_duration_never_expires(self):
        assert generate(timedelta(0)).valid_until is None

    def test_valid_for(self):
        t = generate(timedelta(hours=1))
        assert t.valid_until - t.created_at == timedelta(hours=1)

    def test_tokens_are_random_urlsafe(self):
        a, b = generate(), generate()
        assert a.token != b.token
        assert len(a.token) == 44
        assert "+" not in a.token and "/" not in a.token


class TestExpired:
    def test_expired(self):
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)
        t = Token(token="x", created_at=now - timedelta(days=2), valid_until=now - timedelta(days=1))
        assert t.expired(now)

    def test_not_yet_expired(self):
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)
        t = Token(token="x", created_at=now, valid_until=now + timedelta(seconds=1))
        assert not t.expired(now)


class TestTokenStore:
    def test_insert_and_find(self, tokens):
        t = tokens.insert(generate(timedelta(days=1)))
        found = tokens.find(t.token)
        assert found.id == t.id
        assert found.valid_until == t.valid_until
        assert found.created_at == t.created_at

    def test_find_unknown(self, tokens):
        with pytest.raises(NotFoundError):
            tokens.find("nope")

    def test_delete(self, tokens):
        t = tokens.insert(generate())
        tokens.delete(t)
        with pytest.raises(NotFoundError):
            tokens.find(t.token)
