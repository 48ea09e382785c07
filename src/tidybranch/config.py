"""
Runtime settings resolved from environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .models import ConflictStrategy

ENV_PREFIX = "TIDYBRANCH_"
DEFAULT_BRANCHES: Tuple[str, ...] = ("main", "master", "develop")


def default_log_path() -> Path:
    return Path.home() / ".tidybranch" / "tidybranch.log"


def _split_list(value: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass
class Settings:
    """Settings shared by the CLI and the core components."""

    remote: str = "origin"
    base_candidates: Tuple[str, ...] = DEFAULT_BRANCHES
    protected: Tuple[str, ...] = DEFAULT_BRANCHES
    max_workers: int = 8
    log_path: Path = field(default_factory=default_log_path)
    conflict_strategy: ConflictStrategy = ConflictStrategy.OURS

    @property
    def remote_base_candidates(self) -> Tuple[str, ...]:
        return tuple(f"{self.remote}/{name}" for name in self.base_candidates)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        """Build settings from ``TIDYBRANCH_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        settings = cls()

        remote = env.get(f"{ENV_PREFIX}REMOTE")
        if remote is not None:
            if not remote.strip():
                raise ValueError(f"{ENV_PREFIX}REMOTE must not be empty")
            settings.remote = remote.strip()

        bases = env.get(f"{ENV_PREFIX}BASE_BRANCHES")
        if bases is not None:
            settings.base_candidates = _split_list(bases)

        protected = env.get(f"{ENV_PREFIX}PROTECTED")
        if protected is not None:
            settings.protected = _split_list(protected)

        workers = env.get(f"{ENV_PREFIX}MAX_WORKERS")
        if workers is not None:
            try:
                settings.max_workers = int(workers)
            except ValueError:
                raise ValueError(f"{ENV_PREFIX}MAX_WORKERS must be an integer, got {workers!r}")
            if settings.max_workers < 1:
                raise ValueError(f"{ENV_PREFIX}MAX_WORKERS must be at least 1")

        log_path = env.get(f"{ENV_PREFIX}LOG")
        if log_path:
            settings.log_path = Path(log_path).expanduser()

        strategy = env.get(f"{ENV_PREFIX}CONFLICT_STRATEGY")
        if strategy is not None:
            try:
                settings.conflict_strategy = ConflictStrategy(strategy.strip().lower())
            except ValueError:
                raise ValueError(
                    f"{ENV_PREFIX}CONFLICT_STRATEGY must be 'ours' or 'theirs', got {strategy!r}"
                )

        return settings
