"""Filters that decide which branches are deletion candidates."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Iterable, Optional

from git_tidy.config import ProtectionPolicy
from git_tidy.git import BranchRecord
from git_tidy.protection import ProtectionReason, reason

logger = logging.getLogger(__name__)


class KeepReason(Enum):
    """Why an unprotected branch was filtered out. Values are shown to the user."""

    NOT_MERGED = "not merged"
    TOO_NEW = "too new"


@dataclass(frozen=True)
class KeptBranch:
    """An unprotected branch that a filter kept, with every reason that applied."""

    branch: BranchRecord
    reasons: tuple[KeepReason, ...]


@dataclass(frozen=True)
class ProtectedBranch:
    """A branch excluded by a protection rule."""

    branch: BranchRecord
    reason: ProtectionReason


@dataclass(frozen=True)
class Partition:
    """Classification of one branch snapshot. Each list keeps the input order."""

    to_delete: list[BranchRecord] = field(default_factory=list)
    kept: list[KeptBranch] = field(default_factory=list)
    protected: list[ProtectedBranch] = field(default_factory=list)


def is_old_enough(branch: BranchRecord, older_than: timedelta, now: datetime) -> bool:
    """True when the last commit is at least ``older_than`` before ``now``."""
    try:
        cutoff = now - older_than
    except OverflowError:
        return False
    return branch.last_commit_time <= cutoff


def filter_reasons(
    branch: BranchRecord,
    merged_only: bool,
    older_than: Optional[timedelta],
    is_merged: Optional[Callable[[str], bool]],
    now: datetime,
) -> tuple[KeepReason, ...]:
    """Every filter that excludes ``branch``, in application order."""
    reasons = []
    if merged_only:
        if is_merged is None:
            raise ValueError("merged_only requires a merge classifier")
        if not is_merged(branch.name):
            reasons.append(KeepReason.NOT_MERGED)
    if older_than is not None and not is_old_enough(branch, older_than, now):
        reasons.append(KeepReason.TOO_NEW)
    return tuple(reasons)


def partition(
    candidates: Iterable[BranchRecord],
    policy: ProtectionPolicy,
    current_branch: Optional[str],
    merged_only: bool = False,
    older_than: Optional[timedelta] = None,
    is_merged: Optional[Callable[[str], bool]] = None,
    now: Optional[datetime] = None,
) -> Partition:
    """Split branches into deletion candidates, kept branches and protected branches.

    Protected branches are removed first. The merge and age filters then run on
    the rest; a branch excluded by both reports both reasons. A final check
    against the exact protected names and the current branch runs on whatever
    is left.

    Args:
        candidates: Branch snapshot, usually from ``GitRepo.list_local_branches``
        policy: Resolved protection rules
        current_branch: Checked-out branch, None on detached HEAD
        merged_only: Keep branches that are not merged into the trunk
        older_than: Keep branches whose last commit is more recent than this
        is_merged: Merge classifier, required when ``merged_only`` is set
        now: Reference time for the age filter, defaults to the current UTC time
    """
    if now is None:
        now = datetime.now(timezone.utc)
    result = Partition()

    unprotected = []
    for branch in candidates:
        why = reason(branch.name, policy, current_branch)
        if why is not None:
            result.protected.append(ProtectedBranch(branch, why))
        else:
            unprotected.append(branch)

    for branch in unprotected:
        reasons = filter_reasons(branch, merged_only, older_than, is_merged, now)
        if reasons:
            result.kept.append(KeptBranch(branch, reasons))
            continue
        if branch.name == current_branch:
            result.protected.append(ProtectedBranch(branch, ProtectionReason.CURRENT))
        elif branch.name in policy.exact_names:
            result.protected.append(ProtectedBranch(branch, ProtectionReason.PROTECTED))
        else:
            result.to_delete.append(branch)

    logger.debug(
        "Partitioned branches: %d to delete, %d kept, %d protected",
        len(result.to_delete),
        len(result.kept),
        len(result.protected),
    )
    return result
