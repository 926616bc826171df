import argparse
import logging
import re
import sys
from datetime import timedelta
from typing import Tuple

from aiohttp import web

from rssreader import config
from rssreader.database import create_db_engine
from rssreader.tokens import TokenStore, generate
from server.app import create_app

log = logging.getLogger("rssreader")

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> timedelta:
    """'90s', '30m', '24h', '7d' or plain seconds. '0' means no expiration."""
    m = _DURATION_RE.match(value or "")
    if not m:
        raise argparse.ArgumentTypeError(f"invalid duration: {value!r}")
    return timedelta(seconds=float(m.group(1)) * _DURATION_UNITS[m.group(2)])


def parse_listen(value: str) -> Tuple[str, int]:
    """'host:port' or '[ipv6]:port'."""
    host, sep, port = value.rpartition(":")
    if not sep or not port.isdigit():
        raise argparse.ArgumentTypeError(f"invalid listen address: {value!r}")
    return host.strip("[]") or "0.0.0.0", int(port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="RSS reader backend")
    parser.add_argument("--db", default=config.DATABASE_PATH,
                        help="Path to the database file to use.")
    parser.add_argument("--listen", type=parse_listen,
                        default=(config.LISTEN_HOST, config.LISTEN_PORT),
                        help="Address to listen on, with port (e.g. [::1]:8080).")
    parser.add_argument("--noauth", action="store_true", default=config.NO_AUTH,
                        help="Disable authentication entirely. Useful for debugging.")
    parser.add_argument("--createtoken", action="store_true",
                        help="Create a new authentication token, print it and exit.")
    parser.add_argument("--validfor", type=parse_duration, default=timedelta(0),
                        help="With --createtoken: how long the token stays valid. Default: forever.")
    parser.add_argument("--interval", type=float, default=config.REFRESH_INTERVAL_MINUTES,
                        help="Minutes between background refreshes.")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        config.validate_config(interval_minutes=args.interval)
    except ValueError as e:
        log.error("%s", e)
        return 1

    engine = create_db_engine(args.db)

    if args.createtoken:
        token = TokenStore(engine).insert(generate(args.validfor))
        print(token.token)
        return 0

    host, port = args.listen
    app = create_app(
        engine,
        no_auth=args.noauth,
        refresh_interval=args.interval * 60,
    )
    log.info("Running the web server on %s:%s", host, port)
    web.run_app(app, host=host, port=port, print=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
