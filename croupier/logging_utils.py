from __future__ import annotations

import logging
import sys
from typing import Optional


_LEVELS_BY_VERBOSE = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


def setup_logging(verbose_count: int = 0, logger_name: Optional[str] = "croupier") -> logging.Logger:
    """
    Configure the croupier logger (or a named one) from a -v count.

    -v  → INFO
    -vv → DEBUG
    default → WARNING

    Idempotent: calling it again only changes the level.
    """
    level = _LEVELS_BY_VERBOSE.get(max(verbose_count, 0), logging.DEBUG)
    logger = logging.getLogger(logger_name or "")
    logger.setLevel(level)

    already_configured = any(getattr(h, "_croupier_handler", False) for h in logger.handlers)
    if not already_configured:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler._croupier_handler = True  # type: ignore[attr-defined]
        fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
        handler.setFormatter(logging.Formatter(fmt=fmt, datefmt="%H:%M:%S"))
        logger.addHandler(handler)

    if level > logging.DEBUG:
        for noisy in ("asyncio", "uvicorn.access"):
            logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
