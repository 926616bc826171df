from datetime import datetime, timedelta, timezone

import pytest

from helpers import make_article
from rssreader.errors import DuplicateError, NotFoundError, NotInReadLaterError
from rssreader.models import Subscription


@pytest.fixture
def other_subscription(subscriptions):
    return subscriptions.insert(Subscription(url="https://other.example.com/rss", title="Other"))


# ── insert / find ─────────────────────────────────────────────

class TestInsert:
    def test_insert_assigns_id(self, articles, subscription):
        a = articles.insert(make_article(subscription.id, "https://example.com/a"))
        assert a.id is not None
        found = articles.find(a.id)
        assert found == a
        assert found.is_new is True
        assert found.is_read_later is False
        assert found.read_later_added_at is None

    def test_created_at_round_trips_as_utc(self, articles, subscription):
        created = datetime(2024, 6, 15, 12, 30, tzinfo=timezone.utc)
        a = articles.insert(make_article(subscription.id, "https://example.com/a", created_at=created))
        assert articles.find(a.id).created_at == created

    def test_find_missing(self, articles):
        with pytest.raises(NotFoundError):
            articles.find(1234)

    def test_same_url_in_same_subscription_rejected(self, articles, subscription):
        articles.insert(make_article(subscription.id, "https://example.com/a"))
        with pytest.raises(DuplicateError):
            articles.insert(make_article(subscription.id, "https://example.com/a"))

    def test_same_url_in_other_subscription_allowed(self, articles, subscription, other_subscription):
        articles.insert(make_article(subscription.id, "https://example.com/a"))
        b = articles.insert(make_article(other_subscription.id, "https://example.com/a"))
        assert b.id is not None

    def test_unknown_subscription_rejected(self, articles):
        with pytest.raises(DuplicateError):
            articles.insert(make_article(999, "https://example.com/a"))


# ── bulk_insert ───────────────────────────────────────────────

class TestBulkInsert:
    def test_inserts_all_with_ids(self, articles, subscription):
        batch = [make_article(subscription.id, f"https://example.com/{i}") for i in range(3)]
        inserted = articles.bulk_insert(batch)
        assert [a.url for a in inserted] == [a.url for a in batch]
        assert all(a.id is not None for a in inserted)
        assert len(articles.list_all()) == 3

    def test_empty_batch(self, articles):
        assert articles.bulk_insert([]) == []

    def test_is_atomic(self, articles, subscription):
        articles.insert(make_article(subscription.id, "https://example.com/existing"))
        batch = [
            make_article(subscription.id, "https://example.com/x"),
            make_article(subscription.id, "https://example.com/y"),
            make_article(subscription.id, "https://example.com/existing"),
        ]
        with pytest.raises(DuplicateError):
            articles.bulk_insert(batch)
        assert [a.url for a in articles.list_all()] == ["https://example.com/existing"]

    def test_duplicate_inside_batch_rolls_back(self, articles, subscription):
        batch = [
            make_article(subscription.id, "https://example.com/x"),
            make_article(subscription.id, "https://example.com/x"),
        ]
        with pytest.raises(DuplicateError):
            articles.bulk_insert(batch)
        assert articles.list_all() == []


# ── listings ──────────────────────────────────────────────────

class TestListings:
    def test_list_for_subscription_newest_first(self, articles, subscription, other_subscription):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(3):
            articles.insert(make_article(subscription.id, f"https://example.com/{i}",
                                         created_at=base + timedelta(days=i)))
        articles.insert(make_article(other_subscription.id, "https://other.example.com/z"))

        listed = articles.list_for_subscription(subscription.id)
        assert [a.url for a in listed] == [
            "https://example.com/2", "https://example.com/1", "https://example.com/0",
        ]

    def test_list_for_subscription_empty(self, articles, subscription):
        assert articles.list_for_subscription(subscription.id) == []

    def test_list_unread(self, articles, subscription):
        a = articles.insert(make_article(subscription.id, "https://example.com/a"))
        b = articles.insert(make_article(subscription.id, "https://example.com/b"))
        articles.mark_read(a)
        assert [x.id for x in articles.list_unread()] == [b.id]

    def test_list_read_later_order_and_paging(self, articles, subscription):
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)
        stored = [articles.insert(make_article(subscription.id, f"https://example.com/{i}"))
                  for i in range(4)]
        for i, a in enumerate(stored):
            articles.add_to_read_later(a, now=now + timedelta(minutes=i))

        first_page = articles.list_read_later(limit=2, offset=0)
        second_page = articles.list_read_later(limit=2, offset=2)
        assert [a.id for a in first_page] == [stored[3].id, stored[2].id]
        assert [a.id for a in second_page] == [stored[1].id, stored[0].id]


# ── read state ────────────────────────────────────────────────

class TestReadState:
    def test_mark_read_clears_new_and_read_later(self, articles, subscription):
        a = articles.insert(make_article(subscription.id, "https://example.com/a"))
        a = articles.add_to_read_later(a)
        articles.mark_read(a)
        found = articles.find(a.id)
        assert found.is_new is False
        assert found.is_read_later is False
        assert found.read_later_added_at is None

    def test_mark_read_is_idempotent(self, articles, subscription):
        a = articles.insert(make_article(subscription.id, "https://example.com/a"))
        articles.mark_read(a)
        articles.mark_read(a)
        found = articles.find(a.id)
        assert (found.is_new, found.is_read_later) == (False, False)

    def test_mark_read_missing(self, articles, subscription):
        ghost = make_article(subscription.id, "https://example.com/ghost", id=777)
        with pytest.raises(NotFoundError):
            articles.mark_read(ghost)

    def test_add_to_read_later_sets_timestamp(self, articles, subscription):
        a = articles.insert(make_article(subscription.id, "https://example.com/a"))
        when = datetime(2024, 6, 2, 9, 0, tzinfo=timezone.utc)
        updated = articles.add_to_read_later(a, now=when)
        found = articles.find(a.id)
        assert updated.is_read_later and found.is_read_later
        assert found.read_later_added_at == when
        # read-later does not touch the new flag
        assert found.is_new is True

    def test_remove_from_read_later(self, articles, subscription):
        a = articles.add_to_read_later(
            articles.insert(make_article(subscription.id, "https://example.com/a")))
        articles.remove_from_read_later(a)
        found = articles.find(a.id)
        assert found.is_read_later is False
        assert found.read_later_added_at is None

    def test_remove_when_not_in_read_later(self, articles, subscription):
        a = articles.insert(make_article(subscription.id, "https://example.com/a"))
        with pytest.raises(NotInReadLaterError):
            articles.remove_from_read_later(a)

    def test_remove_missing_article(self, articles, subscription):
        ghost = make_article(subscription.id, "https://example.com/ghost", id=777)
        with pytest.raises(NotFoundError):
            articles.remove_from_read_later(ghost)

    def test_timestamp_only_with_flag(self, articles, subscription):
        a = articles.insert(make_article(subscription.id, "https://example.com/a",
                                         read_later_added_at=datetime(2024, 1, 1, tzinfo=timezone.utc)))
        found = articles.find(a.id)
        assert found.is_read_later is False
        assert found.read_later_added_at is None


# ── joined listings ───────────────────────────────────────────

class TestJoinedListings:
    def test_unread_with_subscription(self, articles, subscription, other_subscription):
        a = articles.insert(make_article(subscription.id, "https://example.com/a"))
        b = articles.insert(make_article(other_subscription.id, "https://other.example.com/b",
                                         created_at=datetime(2024, 6, 2, tzinfo=timezone.utc)))
        pairs = articles.list_unread_with_subscriptions()
        assert [(x.id, s.id) for x, s in pairs] == [(b.id, other_subscription.id),
                                                   (a.id, subscription.id)]
        assert pairs[0][0].url == "https://other.example.com/b"
        assert pairs[0][1] == other_subscription

    def test_read_later_with_subscription(self, articles, subscription):
        a = articles.insert(make_article(subscription.id, "https://example.com/a"))
        articles.insert(make_article(subscription.id, "https://example.com/b"))
        articles.add_to_read_later(a)

        [(found, sub)] = articles.list_read_later_with_subscriptions(limit=10)
        assert found.id == a.id
        assert found.is_read_later is True
        assert sub == subscription
