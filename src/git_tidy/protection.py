"""Branch protection rules."""

from enum import Enum
from fnmatch import fnmatchcase
from typing import Optional

from git_tidy.config import ProtectionPolicy


class ProtectionReason(Enum):
    """Why a branch is protected. Values are shown to the user."""

    CURRENT = "current"
    CLI_PATTERN = "cli pattern"
    REGEX_PATTERN = "regex pattern"
    GLOB_PATTERN = "glob pattern"
    PROTECTED = "protected"


def matches_exact(branch_name: str, policy: ProtectionPolicy) -> bool:
    """Check the configured exact names."""
    return branch_name in policy.exact_names


def matches_glob(branch_name: str, policy: ProtectionPolicy) -> bool:
    """Check the configured glob patterns."""
    return any(fnmatchcase(branch_name, pattern) for pattern in policy.glob_patterns)


def matches_regex(branch_name: str, policy: ProtectionPolicy) -> bool:
    """Check the configured regex patterns."""
    return any(pattern.search(branch_name) for pattern in policy.regex_patterns)


def matches_ad_hoc(branch_name: str, policy: ProtectionPolicy) -> bool:
    """Check the --keep-pattern regex given for this run."""
    return policy.ad_hoc_pattern is not None and policy.ad_hoc_pattern.search(branch_name) is not None


def reason(branch_name: str, policy: ProtectionPolicy, current_branch: Optional[str]) -> Optional[ProtectionReason]:
    """Return the first matching protection rule, or None if the branch is unprotected.

    Rules are checked in reporting order: current branch, ad-hoc pattern,
    configured regex, glob, exact name. Protection itself is the union of all
    of them, so the order only decides which reason is shown.
    """
    if current_branch is not None and branch_name == current_branch:
        return ProtectionReason.CURRENT
    if matches_ad_hoc(branch_name, policy):
        return ProtectionReason.CLI_PATTERN
    if matches_regex(branch_name, policy):
        return ProtectionReason.REGEX_PATTERN
    if matches_glob(branch_name, policy):
        return ProtectionReason.GLOB_PATTERN
    if matches_exact(branch_name, policy):
        return ProtectionReason.PROTECTED
    return None


def is_protected(branch_name: str, policy: ProtectionPolicy, current_branch: Optional[str]) -> bool:
    return reason(branch_name, policy, current_branch) is not None
