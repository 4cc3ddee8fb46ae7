"""
Logging setup for the command line tools.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "info") -> None:
    """
    Configure the root logger to write to stderr.

    Handlers already installed on the root logger are kept; only the level
    is changed in that case.

    Args:
        level: Level name (debug, info, warning, error, critical)

    Raises:
        ValueError: If the level name is unknown
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")

    logging.basicConfig(format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger().setLevel(numeric)
