"""Utility helpers for TaxFormFiller."""

from __future__ import annotations

import logging
import os
import re
from typing import List

LOG_ENV_VAR = "TAXFORMFILLER_LOG"
LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_DIGIT_BOUNDARY = re.compile(r"(?<=\D)(?=\d)|(?<=\d)(?=\D)")
_SEPARATORS = re.compile(r"[\s_.\-/\[\]()]+")


def configure_logger(name: str) -> logging.Logger:
    """Return a logger that honours the TAXFORMFILLER_LOG level.

    A stream handler is attached only when neither the logger nor the root
    logger has been configured, so applications keep control of output.
    """
    logger = logging.getLogger(name)
    level_name = os.getenv(LOG_ENV_VAR, "INFO").upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    if not logger.handlers and not logging.getLogger().hasHandlers():
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger


def split_words(raw_name: str) -> List[str]:
    """Split a raw field name into words on camelCase, digits and separators."""

    if not raw_name:
        return []
    spaced = _CAMEL_BOUNDARY.sub(" ", raw_name)
    spaced = _DIGIT_BOUNDARY.sub(" ", spaced)
    return [part for part in _SEPARATORS.split(spaced) if part]


__all__ = ["configure_logger", "split_words"]
