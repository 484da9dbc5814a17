# ==============================================
# Configuration Management
# ==============================================
#
# PURPOSE:
#   Load and validate all configuration from environment
#   variables / .env file. Provides typed config objects
#   to all other modules.
#
# CLASSES:
# --------
# - TwitterConfig (dataclass)
#     consumer_key / consumer_secret      (TWITTER_KEY / TWITTER_SECRET)
#     access_token / access_secret        (TWITTER_ACCESS_TOKEN / TWITTER_ACCESS_SECRET)
#     stream_url: str
#
# - MongoConfig (dataclass)
#     host, port, user, password, database ("ballots"), collection ("polls")
#
# - NSQConfig (dataclass)
#     http_address: str    (default "127.0.0.1:4151")
#     topic: str           (default "votes")
#
# - StreamConfig (dataclass)
#     dial_timeout_seconds: float       (default 5.0)
#     retry_delay_seconds: float        (default 10.0)
#     refresh_interval_seconds: float   (default 60.0)
#     shutdown_timeout_seconds: float   (default 30.0, 0 = wait forever)
#
# - AppConfig (dataclass)
#     twitter, mongo, nsq, stream, log_level
#
# FUNCTION:
# ---------
# - get_config() -> AppConfig
#     Load .env using python-dotenv, construct AppConfig.
#     Returns the same singleton on repeated calls.
#
# USAGE:
# ------
#   from votestream.config import get_config
#   config = get_config()
#   config.validate()
#   print(config.mongo.host)
#
# ==============================================

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path

from dotenv import load_dotenv

from votestream.errors import ConfigError


DEFAULT_STREAM_URL = "https://stream.twitter.com/1.1/statuses/filter.json"


@dataclass
class TwitterConfig:
    """Streaming endpoint and OAuth1 credentials."""
    consumer_key: str = ""
    consumer_secret: str = ""
    access_token: str = ""
    access_secret: str = ""
    stream_url: str = DEFAULT_STREAM_URL


@dataclass
class MongoConfig:
    """MongoDB holding the polls and their options."""
    host: str = "localhost"
    port: int = 27017
    user: Optional[str] = None
    password: Optional[str] = None
    database: str = "ballots"
    collection: str = "polls"


@dataclass
class NSQConfig:
    """nsqd HTTP endpoint votes are published to."""
    http_address: str = "127.0.0.1:4151"
    topic: str = "votes"
    timeout_seconds: float = 5.0


@dataclass
class StreamConfig:
    """Timings of the ingestion pipeline."""
    dial_timeout_seconds: float = 5.0
    retry_delay_seconds: float = 10.0
    refresh_interval_seconds: float = 60.0
    shutdown_timeout_seconds: float = 30.0

    @property
    def shutdown_timeout(self) -> Optional[float]:
        """Drain bound usable with Event.wait(); None means unbounded."""
        if self.shutdown_timeout_seconds <= 0:
            return None
        return self.shutdown_timeout_seconds


@dataclass
class AppConfig:
    """Main application configuration."""
    twitter: TwitterConfig = field(default_factory=TwitterConfig)
    mongo: MongoConfig = field(default_factory=MongoConfig)
    nsq: NSQConfig = field(default_factory=NSQConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    log_level: str = "INFO"

    def validate(self) -> None:
        """
        Check everything the pipeline cannot run without.

        Raises:
            ConfigError: naming every missing credential variable.
        """
        required = {
            "TWITTER_KEY": self.twitter.consumer_key,
            "TWITTER_SECRET": self.twitter.consumer_secret,
            "TWITTER_ACCESS_TOKEN": self.twitter.access_token,
            "TWITTER_ACCESS_SECRET": self.twitter.access_secret,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigError(
                f"missing required environment variables: {', '.join(missing)}"
            )
        if self.stream.refresh_interval_seconds <= 0:
            raise ConfigError("REFRESH_INTERVAL_SECONDS must be positive")
        if self.stream.retry_delay_seconds < 0:
            raise ConfigError("RETRY_DELAY_SECONDS must not be negative")


# Singleton instance
_config_instance: Optional[AppConfig] = None


def load_config() -> AppConfig:
    """
    Build a fresh AppConfig from the environment.

    Numbers that fail to parse raise ConfigError rather than ValueError so
    the entry point can report them like any other startup problem.
    """
    try:
        twitter_config = TwitterConfig(
            consumer_key=os.getenv("TWITTER_KEY", ""),
            consumer_secret=os.getenv("TWITTER_SECRET", ""),
            access_token=os.getenv("TWITTER_ACCESS_TOKEN", ""),
            access_secret=os.getenv("TWITTER_ACCESS_SECRET", ""),
            stream_url=os.getenv("STREAM_URL", DEFAULT_STREAM_URL)
        )

        mongo_config = MongoConfig(
            host=os.getenv("MONGO_HOST", "localhost"),
            port=int(os.getenv("MONGO_PORT", "27017")),
            user=os.getenv("MONGO_USER") or None,
            password=os.getenv("MONGO_PASSWORD") or None,
            database=os.getenv("MONGO_DATABASE", "ballots"),
            collection=os.getenv("MONGO_COLLECTION", "polls")
        )

        nsq_config = NSQConfig(
            http_address=os.getenv("NSQD_HTTP_ADDRESS", "127.0.0.1:4151"),
            topic=os.getenv("NSQ_TOPIC", "votes"),
            timeout_seconds=float(os.getenv("NSQ_TIMEOUT_SECONDS", "5.0"))
        )

        stream_config = StreamConfig(
            dial_timeout_seconds=float(os.getenv("DIAL_TIMEOUT_SECONDS", "5.0")),
            retry_delay_seconds=float(os.getenv("RETRY_DELAY_SECONDS", "10.0")),
            refresh_interval_seconds=float(os.getenv("REFRESH_INTERVAL_SECONDS", "60.0")),
            shutdown_timeout_seconds=float(os.getenv("SHUTDOWN_TIMEOUT_SECONDS", "30.0"))
        )
    except ValueError as e:
        raise ConfigError(f"invalid numeric setting: {e}") from e

    return AppConfig(
        twitter=twitter_config,
        mongo=mongo_config,
        nsq=nsq_config,
        stream=stream_config,
        log_level=os.getenv("LOG_LEVEL", "INFO")
    )


def get_config() -> AppConfig:
    """
    Load configuration from environment variables / .env file.
    Returns the same singleton instance on repeated calls.

    Returns:
        AppConfig: Application configuration
    """
    global _config_instance

    if _config_instance is not None:
        return _config_instance

    # Load .env file from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)

    _config_instance = load_config()
    return _config_instance
