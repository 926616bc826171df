import asyncio
import logging
from typing import Tuple

from aiohttp import web

from rssreader.errors import DuplicateError, FeedNotFoundError, NotFoundError, NotInReadLaterError
from rssreader.models import Token
from rssreader.utils import utc_now
from server.keys import TOKENS

log = logging.getLogger("rssreader.server")

DEFAULT_PAGE_LIMIT = 20
INTERNAL_ERROR = "internal server error"


def json_error(status: int, message: str) -> web.Response:
    return web.json_response({"error": True, "message": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Map exceptions to status codes; anything unexpected becomes a JSON 500."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except (NotFoundError, NotInReadLaterError) as e:
        return json_error(404, str(e))
    except FeedNotFoundError as e:
        log.info("%s: remote feed not found: %s", request.path, e)
        return json_error(400, str(e))
    except DuplicateError as e:
        return json_error(409, str(e))
    except Exception as e:
        log.exception("error in %s handler", request.path)
        return json_error(500, INTERNAL_ERROR)


def auth_middleware(no_auth: bool = False):
    """Bearer-token check. With no_auth every request gets a dummy token."""

    @web.middleware
    async def middleware(request: web.Request, handler):
        if no_auth:
            request["token"] = Token(token="dummy", created_at=utc_now())
            return await handler(request)

        header = request.headers.get("Authorization", "")
        value = header[len("Bearer "):] if header.startswith("Bearer ") else header
        value = value.strip()
        if not value:
            log.info("authentication: missing token for %s", request.path)
            return json_error(401, "unauthorized")

        tokens = request.app[TOKENS]
        try:
            token = await asyncio.to_thread(tokens.find, value)
        except NotFoundError:
            log.info("authentication: unknown token for %s", request.path)
            return json_error(401, "unauthorized")

        if token.expired():
            log.info("authentication: token expired on %s", token.valid_until)
            await asyncio.to_thread(tokens.delete, token)
            return json_error(401, "token expired")

        request["token"] = token
        return await handler(request)

    return middleware


def get_pagination(request: web.Request, default_limit: int = DEFAULT_PAGE_LIMIT) -> Tuple[int, int]:
    """(limit, offset) from the optional `page` (1-based) and `limit` query parameters."""

    def _positive(name: str, default: int) -> int:
        try:
            v = int(request.query.get(name, ""))
        except ValueError:
            return default
        return v if v >= 1 else default

    page = _positive("page", 1)
    limit = _positive("limit", default_limit)
    return limit, (page - 1) * limit
