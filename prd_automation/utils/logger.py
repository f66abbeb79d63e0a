"""Centralized logging configuration.
Call setup_logging() once at application startup (the CLI does).
"""

from __future__ import annotations

import io
import logging
import sys

PIPELINE_FORMAT = (
    "\n%(asctime)s │ %(levelname)-8s │ %(name)s │ %(funcName)s:%(lineno)d\n"
    "  %(message)s"
)

# Third-party loggers and the level they are capped at
QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "groq": logging.WARNING,
    "langchain": logging.INFO,
    "langchain_core": logging.INFO,
    "langchain_groq": logging.INFO,
    "langgraph": logging.INFO,
    "pymongo": logging.WARNING,
}


def setup_logging(level: str = "INFO") -> None:
    """Attach one UTF-8 stdout handler to the root logger at *level*."""
    root = logging.getLogger()
    if root.handlers:
        return

    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    root.setLevel(resolved)

    # Box-drawing characters must survive non-UTF-8 consoles
    stream = io.TextIOWrapper(
        sys.stdout.buffer, encoding="utf-8", errors="replace", line_buffering=True
    )
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt=PIPELINE_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)

    for name, cap in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(cap, resolved))
