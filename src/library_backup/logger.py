from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

_CONTROL_CHARS = {c: None for c in range(32)}
_CONTROL_CHARS[127] = None


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def clean_log(value: Union[str, Path], max_length: int = 512) -> str:
    """Return ``value`` quoted and stripped of control characters for log output."""
    text = str(value).translate(_CONTROL_CHARS)
    if not text:
        return "''"
    if len(text) > max_length:
        text = text[:max_length] + "..."
    return f"'{text}'"
