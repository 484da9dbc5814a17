"""
Exceptions raised inside votestream.

Only ConfigError is meant to reach the entry point; everything else is
caught and logged by the thread that hit it.
"""


class VoteStreamError(Exception):
    """Base class for all votestream errors."""


class ConfigError(VoteStreamError):
    """Startup configuration is missing or invalid."""


class ProviderError(VoteStreamError):
    """The filter-term provider could not load the current options."""


class PublishError(VoteStreamError):
    """The sink rejected or failed to deliver a vote."""


class StreamDecodeError(VoteStreamError, ValueError):
    """A unit of the inbound stream is not a JSON object."""


class QueueClosedError(VoteStreamError):
    """A vote was put on a queue that has already been closed."""
