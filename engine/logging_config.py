"""
Cellcrafter — engine/logging_config.py
Handlers for the 'cellcrafter' logger namespace.

Modules log through logging.getLogger("cellcrafter.<module>"). The position
feed logs from its own worker thread, so records carry the thread name.
The tcod window owns the terminal's stdout; console output goes to stderr.
"""
import logging
import sys
from typing import Optional

NAMESPACE = "cellcrafter"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(threadName)s] %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Marks handlers installed here so a second call replaces only those
_OWNED = "_cellcrafter_handler"


def _own(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    setattr(handler, _OWNED, True)
    return handler


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configures the 'cellcrafter' logger with a stderr handler and, when
    log_file is given, a file handler that truncates on each run.

    Safe to call repeatedly: handlers from an earlier call are closed and
    replaced, handlers installed by anyone else are left alone.
    """
    logger = logging.getLogger(NAMESPACE)
    logger.setLevel(level)

    for handler in [h for h in logger.handlers if getattr(h, _OWNED, False)]:
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_own(logging.StreamHandler(sys.stderr), level))
    if log_file:
        logger.addHandler(_own(logging.FileHandler(log_file, mode="w", encoding="utf-8"), level))

    logger.debug("Logging initialized at %s", logging.getLevelName(level))
    return logger
