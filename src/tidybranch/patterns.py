"""
Pattern matching for protected branch lists.

A pattern is either an exact branch name or a regular expression written as
``/expr/flags`` (flags: ``i``, ``m``, ``s``). Any other flag makes the pattern
match nothing.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

logger = logging.getLogger(__name__)

_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


def match_pattern(text: str, pattern: str) -> bool:
    last = pattern.rfind("/")
    if pattern.startswith("/") and last > 0:
        flags = 0
        for ch in pattern[last + 1 :]:
            if ch not in _FLAGS:
                logger.warning(f"Unsupported regex flag {ch!r} in pattern {pattern!r}")
                return False
            flags |= _FLAGS[ch]
        try:
            return re.search(pattern[1:last], text, flags) is not None
        except re.error as e:
            logger.warning(f"Invalid regex pattern {pattern!r}: {e}")
            return False
    return text == pattern


def matches_any(text: str, patterns: Iterable[str]) -> bool:
    return any(match_pattern(text, p) for p in patterns)
