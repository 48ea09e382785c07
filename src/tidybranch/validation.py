"""
Branch name validation applied before any name reaches a git command.
"""

from __future__ import annotations

import re

from .models import InvalidReference

_SAFE_CHARS = re.compile(r"[A-Za-z0-9._/-]+")


def is_valid_branch_name(name: str) -> bool:
    """Return True if ``name`` is a safe branch name to pass to git."""
    if not isinstance(name, str) or not name:
        return False
    if not _SAFE_CHARS.fullmatch(name):
        return False
    # git would read these as options or as the symbolic ref
    if name.startswith("-") or name == "HEAD":
        return False
    if ".." in name or "//" in name:
        return False
    if name.startswith("/") or name.endswith("/") or name.endswith("."):
        return False
    for segment in name.split("/"):
        if segment.startswith(".") or segment.endswith(".lock"):
            return False
    return True


def ensure_valid_branch_name(name: str) -> str:
    """Return ``name`` unchanged or raise InvalidReference."""
    if not is_valid_branch_name(name):
        raise InvalidReference(name)
    return name
