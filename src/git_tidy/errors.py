"""Errors raised by git-tidy."""

from pathlib import Path
from typing import Optional


class GitTidyError(Exception):
    """Base class for all git-tidy errors."""


class RepositoryNotFound(GitTidyError):
    """The repository path does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Git repository not found at {path}. Run this command inside a git repository.")
        self.path = path


class NotAGitRepository(GitTidyError):
    """The path exists but is not a usable git working tree."""

    def __init__(self, path: Path, detail: Optional[str] = None) -> None:
        message = f"{path} is not a git repository."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.path = path


class BranchNotFound(GitTidyError):
    """No local branch with the given name exists."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Branch '{name}' not found.")
        self.branch = name


class ConfigError(GitTidyError):
    """Invalid configuration: bad TOML, wrong value types, invalid regex or an unreadable file."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Configuration error: {message}")


class PermissionDenied(GitTidyError):
    """Access to a repository file was refused by the OS."""

    def __init__(self, path: Path, detail: Optional[str] = None) -> None:
        message = f"Permission denied accessing {path}. Check file permissions."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.path = path


class UnderlyingGitError(GitTidyError):
    """Wraps an error raised by GitPython or the git executable."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        """Initialize error.

        Args:
            message: What git-tidy was doing when git failed
            cause: The original exception, whose text is kept in the message
        """
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(f"Git error: {message}")
        self.cause = cause


class DeletionRefused(GitTidyError):
    """A deletion guard refused to delete a branch.

    Refusals are expected outcomes, not program defects. Callers that need to
    tell them apart from infrastructure failures catch this class first.
    """

    def __init__(self, branch: str, message: str) -> None:
        super().__init__(message)
        self.branch = branch


class CurrentBranchCannotBeDeleted(DeletionRefused):
    """The branch is checked out."""

    def __init__(self, branch: str) -> None:
        super().__init__(branch, f"Cannot delete current branch '{branch}'. Switch to another branch first.")


class BranchProtected(DeletionRefused):
    """A protection rule matches the branch. ``rule`` names which one."""

    def __init__(self, branch: str, rule: str) -> None:
        super().__init__(
            branch,
            f"Branch '{branch}' is protected ({rule}) and cannot be deleted. "
            "Update your config if you want to delete it.",
        )
        self.rule = rule


class BranchNotMerged(DeletionRefused):
    """The branch tip is not reachable from the trunk, or there is no trunk."""

    def __init__(self, branch: str, trunk: Optional[str]) -> None:
        if trunk:
            detail = f"is not merged into '{trunk}'"
        else:
            detail = "cannot be proven merged (no 'main' or 'master' branch)"
        super().__init__(
            branch,
            f"Branch '{branch}' {detail}. If you are sure, delete it yourself with: git branch -D {branch}",
        )
        self.trunk = trunk
