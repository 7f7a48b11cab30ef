"""Console logging setup for the dtable-query command line."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable

from colorlog import ColoredFormatter

LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)s%(reset)s %(name)s: %(message)s"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


class UTCColoredFormatter(ColoredFormatter):
    """Colored formatter with ISO 8601 UTC timestamps such as ``2021-03-10T08:03:43Z``."""

    converter = time.gmtime

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        if datefmt:
            return super().formatTime(record, datefmt)
        return time.strftime("%Y-%m-%dT%H:%M:%SZ", self.converter(record.created))


def setup_logging(loglevel: str = "info", silence: Iterable[str] = ("urllib3",)) -> logging.Handler:
    """Replace the root logger's handlers with one colored stream handler.

    Args:
        loglevel: Level name for the root logger, case-insensitive.
        silence: Loggers capped at WARNING, such as the HTTP pool of requests.

    Returns:
        The installed handler.
    """
    for name in silence:
        logging.getLogger(name).setLevel(logging.WARNING)

    handler = logging.StreamHandler()
    handler.setFormatter(UTCColoredFormatter(LOG_FORMAT, log_colors=LOG_COLORS))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(loglevel.upper())
    return handler
