import logging
import sys


LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the whole process."""
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        format=LOG_FORMAT,
        stream=sys.stdout,
        level=numeric_level,
    )
    # urllib3 logs every (re)connection at DEBUG, which is once a minute here
    logging.getLogger("urllib3").setLevel(max(numeric_level, logging.INFO))
