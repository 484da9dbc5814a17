# ==============================================
# CLI — Command Line Entry Point
# ==============================================
#
# PURPOSE:
#   Parse flags, configure logging, validate credentials, connect the
#   collaborators and run the pipeline until SIGINT / SIGTERM.
#
# USAGE:
# ------
#   votestream
#   votestream --mongo-host db.local --nsqd-http 10.0.0.5:4151
#   votestream --refresh-interval 30 --retry-delay 5 --log-level DEBUG
#
#   Credentials come from the environment (or .env):
#     TWITTER_KEY, TWITTER_SECRET, TWITTER_ACCESS_TOKEN, TWITTER_ACCESS_SECRET
#
# EXIT CODES:
# -----------
#   0  clean shutdown, every queued vote handed to the sink
#   1  startup failure or a drain phase timed out
#
# ==============================================

import argparse
import logging
import sys
from typing import List, Optional

from votestream import __version__
from votestream.app import VoteStreamApp
from votestream.config import AppConfig, get_config
from votestream.errors import ConfigError
from votestream.logging_setup import configure_logging
from votestream.publishing.nsq_producer import NSQProducer
from votestream.storage.mongo_client import MongoClient

logger = logging.getLogger("votestream")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="votestream",
        description="Count poll votes from the live status stream and publish them to NSQ."
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--mongo-host", help="MongoDB host holding the polls")
    parser.add_argument("--mongo-port", type=int, help="MongoDB port")
    parser.add_argument("--nsqd-http", help="nsqd HTTP address, host:port")
    parser.add_argument("--topic", help="NSQ topic votes are published to")
    parser.add_argument("--stream-url", help="streaming filter endpoint")
    parser.add_argument("--retry-delay", type=float, help="seconds to wait before reconnecting")
    parser.add_argument("--refresh-interval", type=float, help="seconds between forced reconnects")
    parser.add_argument("--shutdown-timeout", type=float,
                        help="seconds each drain phase may take, 0 waits forever")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    return parser


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Copy every flag that was given onto the config."""
    overrides = {
        ("mongo", "host"): args.mongo_host,
        ("mongo", "port"): args.mongo_port,
        ("nsq", "http_address"): args.nsqd_http,
        ("nsq", "topic"): args.topic,
        ("twitter", "stream_url"): args.stream_url,
        ("stream", "retry_delay_seconds"): args.retry_delay,
        ("stream", "refresh_interval_seconds"): args.refresh_interval,
        ("stream", "shutdown_timeout_seconds"): args.shutdown_timeout,
    }
    for (section, name), value in overrides.items():
        if value is not None:
            setattr(getattr(config, section), name, value)
    if args.log_level:
        config.log_level = args.log_level
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = apply_overrides(get_config(), args)
        configure_logging(config.log_level)
        config.validate()
    except ConfigError as e:
        configure_logging("INFO")
        logger.error("✗ %s", e)
        return 1

    provider = MongoClient.from_config(config.mongo)
    try:
        provider.connect()
    except Exception as e:
        logger.error("✗ failed to dial MongoDB: %s", e)
        return 1

    try:
        app = VoteStreamApp(config, provider=provider, sink=NSQProducer.from_config(config.nsq))
        return app.run()
    finally:
        provider.disconnect()


if __name__ == "__main__":
    sys.exit(main())
