"""Git operations for ai-git-wizard."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from .exceptions import GitError, ValidationError
from .models import ChangeType, CommitRecord, FileChange

logger = logging.getLogger(__name__)

DELETED_SENTINEL = "File deleted: {path}"


def is_git_repository(path: Optional[str] = None) -> bool:
    """Return True if ``path`` (default: cwd) is inside a Git work tree."""
    try:
        subprocess.run(
            ["git", "rev-parse", "--git-dir"],
            cwd=Path(path) if path else None,
            capture_output=True,
            text=True,
            check=True,
        )
        return True
    except (subprocess.CalledProcessError, FileNotFoundError, NotADirectoryError):
        return False


def _change_type_from_status(status: str) -> ChangeType:
    """Map a ``--name-status`` letter to a ChangeType."""
    letter = status[:1].upper()
    if letter == "A":
        return ChangeType.ADDED
    if letter == "D":
        return ChangeType.DELETED
    return ChangeType.MODIFIED


def parse_name_status(output: str) -> List[FileChange]:
    """Parse ``git diff --cached --name-status -z`` output.

    Records are NUL separated: a status token, then one path (two for
    renames and copies). Paths arrive unquoted, whatever characters they
    hold. Renames are split into a deletion of the old path and an addition
    of the new one so each side can be committed on its own; copies only add.
    """
    changes: List[FileChange] = []
    tokens = output.split("\0")
    idx = 0
    while idx < len(tokens):
        status = tokens[idx].strip()
        idx += 1
        if not status:
            continue
        if status[0] in "RC":
            if idx + 1 >= len(tokens):
                break
            old_path, new_path = tokens[idx], tokens[idx + 1]
            idx += 2
            if status[0] == "R":
                changes.append(FileChange(path=old_path, change_type=ChangeType.DELETED))
            changes.append(FileChange(path=new_path, change_type=ChangeType.ADDED))
            continue
        if idx >= len(tokens) or not tokens[idx]:
            break
        path = tokens[idx]
        idx += 1
        changes.append(FileChange(path=path, change_type=_change_type_from_status(status)))
    return changes


class GitRepo:
    """Handles Git repository operations."""

    def __init__(self, repo_path: Optional[str] = None) -> None:
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()

    def is_git_repository(self) -> bool:
        """Check if the repository path is inside a Git work tree."""
        return is_git_repository(str(self.repo_path))

    def _run_git_command(self, args: list[str]) -> str:
        """Run a Git command and return its output."""
        logger.debug("git %s", " ".join(args))
        try:
            result = subprocess.run(
                ["git"] + args,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                check=True,
            )
            return result.stdout.strip()
        except subprocess.CalledProcessError as e:
            cmd = " ".join(args)
            detail = (e.stderr or e.stdout or "").strip()
            raise GitError(f"Git command failed: {cmd}\n{detail}") from e
        except FileNotFoundError as exc:
            raise GitError("Git command not found. Please install Git.") from exc

    def get_staged_files(self) -> List[FileChange]:
        """Return staged changes in the order git lists them."""
        try:
            output = self._run_git_command(["diff", "--cached", "--name-status", "-z"])
        except GitError as e:
            raise GitError(f"Failed to get staged files: {e}") from e
        return parse_name_status(output)

    def get_diff_for_file(self, change: FileChange) -> str:
        """Get the staged diff for one file (a sentinel for deletions)."""
        if change.change_type is ChangeType.DELETED:
            return DELETED_SENTINEL.format(path=change.path)
        try:
            return self._run_git_command(["diff", "--cached", "--", change.path])
        except GitError as e:
            raise GitError(f"Failed to get diff for file {change.path}: {e}") from e

    def get_current_branch(self) -> str:
        try:
            return self._run_git_command(["branch", "--show-current"])
        except GitError as e:
            raise GitError(f"Failed to get current branch: {e}") from e

    def branch_exists(self, branch_name: str) -> bool:
        """Return True if a local branch with this name exists."""
        try:
            self._run_git_command(
                ["show-ref", "--verify", "--quiet", f"refs/heads/{branch_name}"]
            )
            return True
        except GitError:
            return False

    def create_branch(self, branch_name: str) -> None:
        """Create a branch and switch the work tree to it."""
        try:
            self._run_git_command(["checkout", "-b", branch_name])
        except GitError as e:
            raise GitError(f"Failed to create branch {branch_name}: {e}") from e

    def stage_and_commit_file(self, file_path: str, message: str) -> str:
        """Stage exactly one path, commit it and return the new HEAD hash.

        The message is handed to git as an argument, never through a shell,
        so no quote escaping is needed.
        """
        clean = message.strip()
        if not clean:
            raise ValidationError(f"Empty commit message for {file_path}")
        try:
            self._run_git_command(["add", "--", file_path])
            self._run_git_command(["commit", "-m", clean])
            return self._run_git_command(["rev-parse", "HEAD"])
        except GitError as e:
            raise GitError(f"Failed to stage and commit file {file_path}: {e}") from e

    def has_commits(self) -> bool:
        """Return True once HEAD points at a commit."""
        try:
            self._run_git_command(["rev-parse", "--verify", "--quiet", "HEAD"])
            return True
        except GitError:
            return False

    def unstage_all(self, paths: Optional[List[str]] = None) -> None:
        """Unstage everything; callers treat failure as non-fatal.

        Before the first commit there is no HEAD to reset to, so the staged
        ``paths`` (or the whole tree) are dropped from the index instead.
        """
        if self.has_commits():
            args = ["reset", "-q", "HEAD"]
        else:
            args = ["rm", "-r", "-q", "--cached", "--ignore-unmatch", "--"]
            args.extend(paths or [":/"])
        try:
            self._run_git_command(args)
        except GitError as e:
            raise GitError(f"Failed to unstage files: {e}") from e

    def push_branch(self, branch_name: str, remote: str = "origin") -> str:
        """Push ``branch_name`` and set its upstream."""
        try:
            return self._run_git_command(["push", "-u", remote, branch_name])
        except GitError as e:
            raise GitError(f"Failed to push branch {branch_name}: {e}") from e

    def get_remote_url(self, remote: str = "origin") -> Optional[str]:
        """Return the URL of ``remote`` or None when it is not configured."""
        try:
            url = self._run_git_command(["remote", "get-url", remote])
        except GitError:
            return None
        return url or None

    def get_changed_files(self, commit_hash: str) -> List[str]:
        output = self._run_git_command(
            ["diff-tree", "--no-commit-id", "--name-only", "-r", "-z", commit_hash]
        )
        return [path for path in output.split("\0") if path]

    def get_commits(self, from_branch: str = "main") -> List[CommitRecord]:
        """List commits reachable from the current branch but not ``from_branch``.

        Runs one extra ``git diff-tree`` per commit to collect its files.
        """
        try:
            current = self.get_current_branch()
            output = self._run_git_command(
                ["log", f"{from_branch}..{current}", "--pretty=format:%H|%s"]
            )
            if not output:
                return []
            commits: List[CommitRecord] = []
            for line in output.split("\n"):
                if not line:
                    continue
                commit_hash, _, message = line.partition("|")
                commits.append(
                    CommitRecord(
                        hash=commit_hash,
                        message=message,
                        files=self.get_changed_files(commit_hash),
                    )
                )
            return commits
        except GitError as e:
            raise GitError(f"Failed to get commits: {e}") from e
