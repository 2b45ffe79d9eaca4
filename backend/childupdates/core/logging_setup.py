"""Process-wide logging setup."""
from __future__ import annotations
import logging

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the package logger. Safe to call twice."""
    root = logging.getLogger("childupdates")
    root.setLevel(level.upper())
    if not any(getattr(h, "_childupdates", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._childupdates = True  # type: ignore[attr-defined]
        root.addHandler(handler)


def mask_identifier(identifier: str) -> str:
    """Hide most of a client identifier (an IP address) before it reaches the log."""
    return identifier[:10] + "***"
