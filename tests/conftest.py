import pytest

from helpers import FakeFeedSource
from rssreader.articles import ArticleStore
from rssreader.database import create_db_engine
from rssreader.models import Subscription
from rssreader.subscriptions import SubscriptionStore
from rssreader.tokens import TokenStore


@pytest.fixture
def engine(tmp_path):
    eng = create_db_engine(str(tmp_path / "test.sqlite"))
    yield eng
    eng.dispose()


@pytest.fixture
def subscriptions(engine):
    return SubscriptionStore(engine)


@pytest.fixture
def articles(engine):
    return ArticleStore(engine)


@pytest.fixture
def tokens(engine):
    return TokenStore(engine)


@pytest.fixture
def feed_source():
    return FakeFeedSource()


@pytest.fixture
def subscription(subscriptions):
    return subscriptions.insert(Subscription(
        url="https://example.com/feed.xml", title="Example", feed_type="rss",
    ))
