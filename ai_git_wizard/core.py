"""Core workflow logic for ai-git-wizard."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .config import WorkingConfig
from .exceptions import ConfigError, GitError, WorkflowError
from .git import GitRepo
from .github import GitHubClient
from .llm import LLMClient
from .models import CommitMessage, FileChange, PullRequest, RepoInfo

logger = logging.getLogger(__name__)

RESET = "\033[0m"
BOLD = "\033[1m"
CYAN = "\033[96m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
DIM = "\033[2m"

GitHubFactory = Callable[[str, RepoInfo], GitHubClient]


@dataclass
class CommitResult:
    """A commit created for one staged file."""

    file_path: str
    commit_hash: str
    message: str


@dataclass
class WorkflowResult:
    """Outcome of a ``commit`` or ``workflow`` run."""

    branch: Optional[str] = None
    commits: List[CommitResult] = field(default_factory=list)
    pushed: bool = False
    pull_request: Optional[PullRequest] = None
    pr_updated: bool = False


class GitWizardWorkflow:
    """Staged files → AI commit messages → per-file commits → push → PR."""

    def __init__(
        self,
        working: WorkingConfig,
        git_repo: Optional[GitRepo] = None,
        llm_client: Optional[LLMClient] = None,
        github_factory: Optional[GitHubFactory] = None,
    ) -> None:
        self.working = working
        self.config = working.config
        self.git_repo = git_repo or GitRepo()
        self.llm_client = llm_client or LLMClient(self.config)
        self._github_factory: GitHubFactory = github_factory or (
            lambda token, repo: GitHubClient(token, repo)
        )

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------
    def _require_valid_config(self) -> None:
        if not self.working.is_valid:
            raise ConfigError(
                "Configuration missing! Missing: "
                + ", ".join(self.working.missing)
                + "\nRun: ai-git-wizard config setup"
            )

    def _require_repo(self) -> RepoInfo:
        if self.working.repo is None:
            raise WorkflowError(
                "Not a git repository or repository not recognized. Make sure "
                "you are in a git repository with a GitHub remote."
            )
        return self.working.repo

    def _require_git_repository(self) -> None:
        if not self.git_repo.is_git_repository():
            raise WorkflowError("Not a git repository")

    def _staged_files(self) -> List[FileChange]:
        print(f"{DIM}📋 Getting staged files...{RESET}")
        staged = self.git_repo.get_staged_files()
        if not staged:
            raise WorkflowError(
                "No staged files found. Please stage your changes with: "
                "git add <files>"
            )
        print(f"Found {len(staged)} staged files:")
        for change in staged:
            print(f"  {change.change_type.icon} {change.path} ({change.change_type.value})")
        return staged

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    async def _generate_messages(
        self, staged: List[FileChange]
    ) -> List[CommitMessage]:
        print(f"\n{CYAN}🤖 Generating commit messages...{RESET}")
        files_with_diffs = [
            (change, self.git_repo.get_diff_for_file(change)) for change in staged
        ]
        messages = await self.llm_client.generate_commit_messages(files_with_diffs)
        if len(messages) != len(staged):
            raise WorkflowError(
                f"Expected {len(staged)} commit messages, got {len(messages)}"
            )
        return messages

    async def _resolve_branch(
        self, requested: Optional[str], messages: List[CommitMessage]
    ) -> str:
        """Pick the branch to commit on, creating it when it is new."""
        current = self.git_repo.get_current_branch()
        if requested:
            if not self.git_repo.branch_exists(requested):
                print(f"\n{CYAN}🌿 Creating branch: {requested}{RESET}")
                self.git_repo.create_branch(requested)
                return requested
            if requested == current:
                print(f"\n🌿 Using current branch: {requested}")
                return requested
            print(
                f"{YELLOW}⚠️  Branch {requested} already exists; "
                f"generating a new name{RESET}"
            )

        print(f"\n{CYAN}🌿 Generating branch name...{RESET}")
        generated = await self.llm_client.generate_branch_name(messages)
        if not self.git_repo.branch_exists(generated):
            self.git_repo.create_branch(generated)
            print(f"{GREEN}✅ Created and switched to branch: {generated}{RESET}")
            return generated
        if generated == current:
            return generated
        raise WorkflowError(
            f"Branch {generated} already exists. Re-run with --branch to choose "
            "another name."
        )

    def _commit_individually(
        self, staged: List[FileChange], messages: List[CommitMessage]
    ) -> List[CommitResult]:
        """Unstage everything, then commit each file in listing order."""
        print(f"\n{CYAN}💾 Creating individual commits...{RESET}")
        try:
            self.git_repo.unstage_all([change.path for change in staged])
        except GitError as e:
            logger.debug("unstage_all failed: %s", e)
            print(
                f"{YELLOW}⚠️  Note: Could not unstage files "
                f"(they may already be unstaged){RESET}"
            )

        results: List[CommitResult] = []
        for change, message in zip(staged, messages):
            print(f"📝 Committing: {change.path}")
            commit_hash = self.git_repo.stage_and_commit_file(
                change.path, message.formatted
            )
            print(f"{GREEN}✅ Committed: {commit_hash[:8]} - {message.formatted}{RESET}")
            results.append(
                CommitResult(
                    file_path=change.path,
                    commit_hash=commit_hash,
                    message=message.formatted,
                )
            )
        return results

    def _push(self, branch: str) -> None:
        print(f"\n{CYAN}🚀 Pushing to remote...{RESET}")
        self.git_repo.push_branch(branch)
        print(f"{GREEN}✅ Pushed branch: {branch}{RESET}")

    async def _open_or_update_pr(
        self, repo: RepoInfo, branch: str, base_branch: str, result: WorkflowResult
    ) -> None:
        token = self.config.github_token
        if not token:
            return
        print(f"\n{CYAN}📄 Creating pull request...{RESET}")
        commits = self.git_repo.get_commits(base_branch)
        github = self._github_factory(token, repo)
        try:
            description = await self.llm_client.generate_pr_description(
                branch, commits
            )
            existing = await github.find_existing_pr(branch)
            if existing is not None:
                print(f"📄 Updating existing pull request: {existing.html_url}")
                pr = await github.update_pull_request(
                    existing.number, branch, description
                )
                result.pr_updated = True
                print(f"{GREEN}✅ Updated pull request: {pr.html_url}{RESET}")
            else:
                pr = await github.create_pull_request(
                    branch, branch, description, base_branch
                )
                print(f"{GREEN}📄 Pull request created: {pr.html_url}{RESET}")
            result.pull_request = pr
        finally:
            await github.aclose()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    async def run_workflow(
        self,
        branch: Optional[str] = None,
        base_branch: str = "main",
        no_pr: bool = False,
    ) -> WorkflowResult:
        """Commit staged files on a (new) branch, push it and open a PR."""
        self._require_valid_config()
        repo = self._require_repo()

        print(f"{BLUE}{BOLD}🔮 Commit Wizard{RESET}")
        print(f"📦 Repository: {repo.full_name}")
        print(f"📁 Working directory: {self.git_repo.repo_path}\n")

        self._require_git_repository()
        staged = self._staged_files()
        result = WorkflowResult()
        try:
            messages = await self._generate_messages(staged)
            result.branch = await self._resolve_branch(branch, messages)
            result.commits = self._commit_individually(staged, messages)
            self._push(result.branch)
            result.pushed = True
            if not no_pr:
                await self._open_or_update_pr(repo, result.branch, base_branch, result)
        finally:
            await self.llm_client.aclose()

        print(f"{GREEN}{BOLD}\n✅ Workflow completed successfully!{RESET}")
        return result

    async def run_commit(self, push: bool = False) -> WorkflowResult:
        """Commit staged files one by one on the current branch."""
        self._require_valid_config()

        print(f"{BLUE}{BOLD}💾 AI Commit Generator{RESET}")
        self._require_git_repository()
        staged = self._staged_files()
        result = WorkflowResult()
        try:
            messages = await self._generate_messages(staged)
            result.commits = self._commit_individually(staged, messages)
        finally:
            await self.llm_client.aclose()
        print(f"{GREEN}{BOLD}\n✅ All changes committed!{RESET}")

        result.branch = self.git_repo.get_current_branch()
        if push:
            self._push(result.branch)
            result.pushed = True
        return result
