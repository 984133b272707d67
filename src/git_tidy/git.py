"""Git repository operations."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from git import GitCommandError, Head, InvalidGitRepositoryError, NoSuchPathError, Repo
from git.exc import BadName, BadObject

from git_tidy.errors import (
    BranchNotFound,
    NotAGitRepository,
    PermissionDenied,
    RepositoryNotFound,
    UnderlyingGitError,
)

logger = logging.getLogger(__name__)

TRUNK_CANDIDATES = ("main", "master")


@dataclass(frozen=True)
class BranchRecord:
    """A local branch as seen at enumeration time."""

    name: str
    tip_commit: str
    last_commit_time: datetime


class GitRepo:
    """Git repository operations."""

    def __init__(self, path: Path) -> None:
        """Open the repository at ``path``.

        Raises:
            RepositoryNotFound: If ``path`` does not exist
            NotAGitRepository: If ``path`` is not a non-bare git repository
            PermissionDenied: If the repository cannot be read
        """
        self.path = path
        try:
            self.repo: Repo = Repo(path)
        except NoSuchPathError as err:
            raise RepositoryNotFound(path) from err
        except InvalidGitRepositoryError as err:
            raise NotAGitRepository(path) from err
        except PermissionError as err:
            raise PermissionDenied(path, str(err)) from err
        except (GitCommandError, ValueError) as err:
            raise UnderlyingGitError("Failed to open repository", err) from err
        if self.repo.bare:
            raise NotAGitRepository(path, "cannot operate on a bare repository")

    def _find_head(self, branch_name: str) -> Head:
        for head in self.repo.heads:
            if head.name == branch_name:
                return head
        raise BranchNotFound(branch_name)

    def has_branch(self, branch_name: str) -> bool:
        """Check whether a local branch exists."""
        return any(head.name == branch_name for head in self.repo.heads)

    def _tip(self, head: Head) -> str:
        """Resolve the branch tip to a commit id, failing on a dangling ref."""
        try:
            return head.commit.hexsha
        except (BadName, BadObject, ValueError, GitCommandError) as err:
            raise UnderlyingGitError(f"Failed to resolve tip of branch '{head.name}'", err) from err

    def current_branch(self) -> Optional[str]:
        """Get current branch name, or None when HEAD is detached."""
        try:
            try:
                return self.repo.active_branch.name
            except TypeError:
                # Detached HEAD: no branch-name protection comes from HEAD
                return None
        except (GitCommandError, ValueError) as err:
            raise UnderlyingGitError("Failed to get current branch", err) from err

    def list_local_branches(self) -> list[BranchRecord]:
        """List local branches, most recently committed first.

        Raises:
            UnderlyingGitError: If any branch tip cannot be resolved
        """
        records = []
        for head in self.repo.heads:
            try:
                commit = head.commit
                records.append(
                    BranchRecord(
                        name=head.name,
                        tip_commit=commit.hexsha,
                        last_commit_time=datetime.fromtimestamp(commit.committed_date, tz=timezone.utc),
                    )
                )
            except (BadName, BadObject, ValueError, GitCommandError) as err:
                raise UnderlyingGitError(f"Failed to read branch '{head.name}'", err) from err
        records.sort(key=lambda record: (-record.last_commit_time.timestamp(), record.name))
        logger.debug("Found %d local branches", len(records))
        return records

    def trunk_branch(self) -> Optional[str]:
        """Name of the trunk branch: ``main`` if present, else ``master``, else None."""
        for candidate in TRUNK_CANDIDATES:
            if self.has_branch(candidate):
                return candidate
        return None

    def is_merged_into_trunk(self, branch_name: str) -> bool:
        """Check if the branch tip is an ancestor of the trunk tip.

        A repository without a trunk has nothing to compare against, so every
        branch reports unmerged.

        Raises:
            BranchNotFound: If there is no local branch called ``branch_name``
        """
        branch_tip = self._tip(self._find_head(branch_name))
        trunk = self.trunk_branch()
        if trunk is None:
            logger.debug("No trunk branch, treating '%s' as unmerged", branch_name)
            return False
        trunk_tip = self._tip(self._find_head(trunk))
        try:
            merged = self.repo.is_ancestor(branch_tip, trunk_tip)
        except GitCommandError as err:
            raise UnderlyingGitError(f"Failed to compare '{branch_name}' with '{trunk}'", err) from err
        logger.debug("Branch '%s' merged into '%s': %s", branch_name, trunk, merged)
        return merged

    def delete_branch(self, branch_name: str) -> None:
        """Delete the local branch ref. Tags and remote-tracking refs are left alone.

        Raises:
            BranchNotFound: If the branch does not exist (any more)
            PermissionDenied: If git could not write the ref storage
            UnderlyingGitError: For any other git failure
        """
        head = self._find_head(branch_name)
        try:
            # Force at the git level; merge safety is checked by the caller
            self.repo.delete_head(head, force=True)
        except GitCommandError as err:
            if "Permission denied" in str(err.stderr):
                raise PermissionDenied(Path(self.repo.git_dir), str(err.stderr).strip()) from err
            if not self.has_branch(branch_name):
                raise BranchNotFound(branch_name) from err
            raise UnderlyingGitError(f"Failed to delete branch '{branch_name}'", err) from err
        logger.debug("Deleted branch '%s'", branch_name)
