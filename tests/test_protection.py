"""Tests for the protection resolver."""

import re

import pytest

from git_tidy.config import BUILTIN, ProtectedBranches, ProtectionPolicy
from git_tidy.protection import ProtectionReason, is_protected, reason

DEFAULT_POLICY = ProtectionPolicy.build(BUILTIN)


@pytest.mark.parametrize("name", ["main", "master", "develop", "feature/x", "mainline", "Main", "dev"])
def test_plain_names_use_set_membership(name: str) -> None:
    """Test that names without wildcards are protected exactly when listed."""
    assert is_protected(name, DEFAULT_POLICY, None) == (name in DEFAULT_POLICY.exact_names)


def test_glob_matches_segments_not_substrings() -> None:
    """Test that release/* protects release branches only."""
    policy = ProtectionPolicy.build(ProtectedBranches(defaults=("main",), additional=("release/*",)))
    assert reason("release/1.0.0", policy, None) is ProtectionReason.GLOB_PATTERN
    assert reason("release/2.0.0", policy, None) is ProtectionReason.GLOB_PATTERN
    assert not is_protected("release", policy, None)
    assert not is_protected("feature/test", policy, None)
    assert not is_protected("old-release/1.0", policy, None)


def test_current_branch_always_protected() -> None:
    """Test that the current branch is protected whatever the policy says."""
    empty = ProtectionPolicy()
    for name in ["feature/x", "main", "anything"]:
        assert reason(name, empty, name) is ProtectionReason.CURRENT
        assert is_protected(name, DEFAULT_POLICY, name)


def test_detached_head_adds_no_protection() -> None:
    assert not is_protected("feature/x", DEFAULT_POLICY, None)
    assert reason("main", DEFAULT_POLICY, None) is ProtectionReason.PROTECTED


def test_regex_matches_anywhere() -> None:
    policy = ProtectionPolicy.build(ProtectedBranches(patterns=(r"hotfix-\d+",)))
    assert reason("team/hotfix-12", policy, None) is ProtectionReason.REGEX_PATTERN
    assert not is_protected("hotfix-x", policy, None)


def test_ad_hoc_pattern() -> None:
    policy = ProtectionPolicy.build(BUILTIN, keep_pattern="^wip/")
    assert reason("wip/idea", policy, None) is ProtectionReason.CLI_PATTERN
    assert not is_protected("feature/wip/idea", policy, None)


def test_reason_precedence() -> None:
    """Test that the reported reason follows current > cli > regex > glob > exact."""
    policy = ProtectionPolicy(
        exact_names=frozenset({"release/1"}),
        glob_patterns=("release/*",),
        regex_patterns=(re.compile("^release"),),
        ad_hoc_pattern=re.compile("1$"),
    )
    assert reason("release/1", policy, "release/1") is ProtectionReason.CURRENT
    assert reason("release/1", policy, None) is ProtectionReason.CLI_PATTERN
    assert reason("release/2", policy, None) is ProtectionReason.REGEX_PATTERN

    policy = ProtectionPolicy(exact_names=frozenset({"release/1"}), glob_patterns=("release/*",))
    assert reason("release/1", policy, None) is ProtectionReason.GLOB_PATTERN


def test_reason_strings() -> None:
    assert [r.value for r in ProtectionReason] == [
        "current",
        "cli pattern",
        "regex pattern",
        "glob pattern",
        "protected",
    ]
