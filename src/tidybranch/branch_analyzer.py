"""
Branch inventory: listing, merged status and ahead/behind counts.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime
from typing import FrozenSet, List, Optional

from .config import Settings
from .git_manager import GitManager
from .models import BranchRecord, BranchType, Divergence, GitRepositoryError, MergedSet


logger = logging.getLogger(__name__)

BRANCH_LIST_FORMAT = (
    "%(refname)%00%(committerdate:iso8601)%00%(objectname)%00%(contents:subject)"
)

REF_PREFIXES = {
    BranchType.LOCAL: "refs/heads/",
    BranchType.REMOTE: "refs/remotes/",
}


def parse_commit_date(value: Optional[str]) -> Optional[datetime]:
    """Parse git's iso8601 date (or strict ISO-8601); None if unparseable."""
    if not value or not value.strip():
        return None
    value = value.strip()
    try:
        return datetime.strptime(value, "%Y-%m-%d %H:%M:%S %z")
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.debug(f"Unparseable commit date: {value!r}")
        return None


def _short_ref(full_ref: str) -> str:
    for prefix in REF_PREFIXES.values():
        if full_ref.startswith(prefix):
            return full_ref[len(prefix):]
    return full_ref


def parse_branch_line(line: str, branch_type: BranchType) -> Optional[BranchRecord]:
    """Parse one NUL-delimited for-each-ref line into a partial BranchRecord."""
    parts = line.split("\0")
    parts += [""] * (4 - len(parts))
    full_ref, date_str, sha, subject = parts[:4]

    short = _short_ref(full_ref.strip())
    if not short or short == "HEAD" or short.endswith("/HEAD"):
        return None

    last_commit_date = parse_commit_date(date_str)
    last_commit_sha = sha.strip() or None
    last_commit_subject = subject.strip() or None

    if branch_type is BranchType.REMOTE:
        remote, _, name = short.partition("/")
        if not remote or not name or name == "HEAD":
            return None
        return BranchRecord(
            ref=short,
            name=name,
            type=branch_type,
            remote=remote,
            last_commit_date=last_commit_date,
            last_commit_sha=last_commit_sha,
            last_commit_subject=last_commit_subject,
        )

    return BranchRecord(
        ref=short,
        name=short,
        type=branch_type,
        last_commit_date=last_commit_date,
        last_commit_sha=last_commit_sha,
        last_commit_subject=last_commit_subject,
    )


def parse_branch_listing(output: str) -> List[str]:
    """Parse ``git branch`` output into names.

    Drops the current/worktree markers, symbolic ``->`` entries and detached
    annotations such as ``(HEAD detached at 1234abc)``.
    """
    names: List[str] = []
    for line in output.splitlines():
        name = line.strip()
        if name[:2] in ("* ", "+ "):
            name = name[2:].strip()
        if not name or "->" in name or name.startswith("("):
            continue
        names.append(name)
    return names


class BranchAnalyzer:
    """Builds the annotated branch inventory used by the deletion review."""

    def __init__(self, git_manager: GitManager, settings: Optional[Settings] = None) -> None:
        self.gm = git_manager
        self.settings = settings or Settings()

    def list_refs(self, branch_type: BranchType) -> List[BranchRecord]:
        """List branches of one type with commit metadata (no merged/ahead/behind)."""
        output = self.gm.run(
            "for-each-ref", f"--format={BRANCH_LIST_FORMAT}", REF_PREFIXES[branch_type]
        )
        records = []
        for line in output.split("\n"):
            if not line.strip():
                continue
            record = parse_branch_line(line.strip(), branch_type)
            if record is not None:
                records.append(record)
        return records

    def ahead_behind(self, branch: str, base: str) -> Divergence:
        """Count commits of ``branch`` ahead of and behind ``base``.

        Failures degrade to zero counts.
        """
        if branch == base:
            return Divergence()
        try:
            output = self.gm.run("rev-list", "--left-right", "--count", f"{base}...{branch}")
            counts = output.split()
            if len(counts) != 2:
                return Divergence()
            behind, ahead = int(counts[0]), int(counts[1])
            return Divergence(ahead=ahead, behind=behind)
        except (GitRepositoryError, ValueError) as e:
            logger.debug(f"Could not compute ahead/behind for {branch} vs {base}: {e}")
            return Divergence()

    def get_merged_set(self, branch_type: BranchType) -> FrozenSet[str]:
        """Branches of one type reachable from HEAD."""
        if branch_type is BranchType.LOCAL:
            output = self.gm.run("branch", "--merged")
        else:
            output = self.gm.run("branch", "-r", "--merged")
        return frozenset(parse_branch_listing(output))

    def get_base_branch(self) -> Optional[str]:
        """Resolve the comparison base: remote candidates first, then local."""
        remote_branches = set(parse_branch_listing(self.gm.run("branch", "-r")))
        for candidate in self.settings.remote_base_candidates:
            if candidate in remote_branches:
                return candidate

        local_branches = set(parse_branch_listing(self.gm.run("branch")))
        for candidate in self.settings.base_candidates:
            if candidate in local_branches:
                return candidate

        return None

    def list_branches(self, include_remote: bool = False) -> List[BranchRecord]:
        """Return the sorted, annotated inventory of local (and remote) branches."""
        # Resolve the repo handle before handing work to threads
        _ = self.gm.repo

        with ThreadPoolExecutor(max_workers=self.settings.max_workers) as executor:
            local_merged_f = executor.submit(self.get_merged_set, BranchType.LOCAL)
            remote_merged_f = (
                executor.submit(self.get_merged_set, BranchType.REMOTE) if include_remote else None
            )
            base_f = executor.submit(self.get_base_branch)

            merged = MergedSet(
                local=local_merged_f.result(),
                remote=remote_merged_f.result() if remote_merged_f else frozenset(),
            )
            base = base_f.result()

            local_f = executor.submit(self.list_refs, BranchType.LOCAL)
            remote_f = executor.submit(self.list_refs, BranchType.REMOTE) if include_remote else None
            branches = local_f.result() + (remote_f.result() if remote_f else [])

            def annotate(record: BranchRecord) -> BranchRecord:
                divergence = self.ahead_behind(record.ref, base) if base else Divergence()
                return replace(
                    record,
                    is_merged=merged.contains(record),
                    ahead=divergence.ahead,
                    behind=divergence.behind,
                )

            annotated = list(executor.map(annotate, branches))

        logger.info(
            f"Listed {len(annotated)} branches (base: {base or 'none'}, remote: {include_remote})"
        )
        return sorted(annotated, key=lambda r: r.sort_key)
