"""Completion detection: exact token match against captured agent output."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def contains_token(text: str, token: str) -> bool:
    """Check whether the completion token appears in the text.

    The match is a plain substring test: case, whitespace and line breaks
    inside the token must all be exact.
    """
    if not token:
        return False
    return token in text


def detect_completion(log_path: Path | str, token: str) -> bool:
    """Check one iteration's log file for the completion token.

    Args:
        log_path: Path to the captured output of one iteration
        token: Completion token to look for

    Returns:
        True if the token appears anywhere in the log
    """
    path = Path(log_path)
    if not path.is_file():
        logger.debug(f"No log to scan: {path}")
        return False

    text = path.read_text(encoding="utf-8", errors="replace")
    return contains_token(text, token)
