from aiohttp import web

from rssreader.articles import ArticleStore
from rssreader.refresh import RefreshTask
from rssreader.rss import FeedSource
from rssreader.subscriptions import SubscriptionStore
from rssreader.tokens import TokenStore

SUBSCRIPTIONS = web.AppKey("subscriptions", SubscriptionStore)
ARTICLES = web.AppKey("articles", ArticleStore)
TOKENS = web.AppKey("tokens", TokenStore)
FEED_SOURCE = web.AppKey("feed_source", FeedSource)
REFRESHER = web.AppKey("refresher", RefreshTask)
