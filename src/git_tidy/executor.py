"""Guarded branch deletion."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from git_tidy.config import ProtectionPolicy
from git_tidy.errors import (
    BranchNotMerged,
    BranchProtected,
    CurrentBranchCannotBeDeleted,
    DeletionRefused,
    GitTidyError,
)
from git_tidy.git import GitRepo
from git_tidy.protection import ProtectionReason, reason

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]


class OutcomeKind(Enum):
    """What happened to one branch in a deletion batch."""

    DELETED = "deleted"
    SKIPPED = "skipped"
    REFUSED = "refused"
    FAILED = "failed"


@dataclass(frozen=True)
class DeletionOutcome:
    """Result of one deletion attempt. ``error`` is set for refused and failed attempts."""

    branch: str
    kind: OutcomeKind
    error: Optional[GitTidyError] = None


RULE_NAMES = {
    ProtectionReason.CLI_PATTERN: "--keep-pattern",
    ProtectionReason.REGEX_PATTERN: "regex pattern",
    ProtectionReason.GLOB_PATTERN: "glob pattern",
    ProtectionReason.PROTECTED: "exact name",
}


def _protection_rule(branch_name: str, policy: ProtectionPolicy) -> Optional[str]:
    """Name the rule protecting the branch, picked the same way as the reported reason."""
    matched = reason(branch_name, policy, None)
    return RULE_NAMES[matched] if matched is not None else None


def check_deletable(
    repo: GitRepo,
    branch_name: str,
    policy: ProtectionPolicy,
    current_branch: Optional[str],
) -> None:
    """Run the deletion guards against the current repository state.

    Has no side effects, so it can be called any number of times.

    Raises:
        CurrentBranchCannotBeDeleted: If the branch is checked out
        BranchProtected: If any protection rule matches
        BranchNotMerged: If the branch tip is not an ancestor of the trunk
        BranchNotFound: If the branch no longer exists
    """
    # HEAD may have moved since the branches were classified
    if branch_name in (current_branch, repo.current_branch()):
        raise CurrentBranchCannotBeDeleted(branch_name)
    rule = _protection_rule(branch_name, policy)
    if rule is not None:
        raise BranchProtected(branch_name, rule)
    if not repo.is_merged_into_trunk(branch_name):
        raise BranchNotMerged(branch_name, repo.trunk_branch())


def safe_delete(
    repo: GitRepo,
    branch_name: str,
    policy: ProtectionPolicy,
    current_branch: Optional[str],
    force: bool,
    confirm: Confirm,
) -> bool:
    """Delete a branch after re-checking every guard.

    Returns:
        True if the branch was deleted, False if the user declined
    """
    check_deletable(repo, branch_name, policy, current_branch)
    if not force and not confirm(f"Delete branch '{branch_name}'?"):
        logger.debug("Deletion of '%s' declined", branch_name)
        return False
    repo.delete_branch(branch_name)
    return True


def delete_branches(
    repo: GitRepo,
    branch_names: Iterable[str],
    policy: ProtectionPolicy,
    current_branch: Optional[str],
    force: bool,
    confirm: Confirm,
) -> list[DeletionOutcome]:
    """Try to delete every branch, collecting one outcome each.

    A refusal or failure for one branch never stops the others.
    """
    outcomes = []
    for name in branch_names:
        try:
            deleted = safe_delete(repo, name, policy, current_branch, force, confirm)
        except DeletionRefused as err:
            logger.info("Refused to delete '%s': %s", name, err)
            outcomes.append(DeletionOutcome(name, OutcomeKind.REFUSED, err))
        except GitTidyError as err:
            logger.warning("Failed to delete '%s': %s", name, err)
            outcomes.append(DeletionOutcome(name, OutcomeKind.FAILED, err))
        else:
            outcomes.append(DeletionOutcome(name, OutcomeKind.DELETED if deleted else OutcomeKind.SKIPPED))
    return outcomes
