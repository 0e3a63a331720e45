"""
Logging setup for the command line tool.

Log output goes to stderr so stdout only ever carries the diff or
conflict text.
"""

import logging
import sys
from typing import Optional, TextIO

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


class ConsoleLogHandler(logging.StreamHandler):
    """StreamHandler writing to whatever sys.stderr is at emit time."""

    def __init__(self, stream: Optional[TextIO] = None):
        super().__init__(stream)
        self._fixed_stream = stream is not None

    def emit(self, record: logging.LogRecord) -> None:
        if not self._fixed_stream:
            self.stream = sys.stderr
        super().emit(record)


def setup_logging(level: int = logging.WARNING) -> ConsoleLogHandler:
    """
    Setup logging with a single console handler.

    Args:
        level: Logging level for the root logger

    Returns:
        The installed ConsoleLogHandler
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove handlers from earlier calls to avoid duplicates
    for h in root_logger.handlers[:]:
        if isinstance(h, ConsoleLogHandler):
            root_logger.removeHandler(h)

    handler = ConsoleLogHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)

    return handler
