"""Exceptions raised by the stores and the feed source."""


class StoreError(Exception):
    """Any persistence failure."""


class NotFoundError(StoreError):
    pass


class DuplicateError(StoreError):
    """A uniqueness or integrity constraint rejected the write."""


class NotInReadLaterError(StoreError):
    pass


class FeedError(Exception):
    """Fetching or parsing a remote feed failed."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{url}: {message}")
        self.url = url


class FeedNotFoundError(FeedError):
    """The remote server answered 404/410 for the feed URL."""


class FeedFetchError(FeedError):
    pass


class FeedParseError(FeedError):
    pass
