from __future__ import annotations

import logging

from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Backend libraries that log per request at INFO; only their warnings are shown
_CHATTY_LOGGERS = ("chromadb", "httpx", "filelock")


def setup_logging(level: int | str = logging.INFO) -> None:
    """Route all records through one RichHandler at ``level``.

    Safe to call more than once (each CLI command does); the handler is replaced.
    """
    handler = RichHandler(rich_tracebacks=True, markup=False, show_path=False)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="[%X]", handlers=[handler], force=True)
    root_level = logging.getLogger().getEffectiveLevel()
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(root_level, logging.WARNING))
