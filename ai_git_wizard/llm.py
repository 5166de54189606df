"""LLM integration for ai-git-wizard.

All prompts go to a single OpenRouter model. Commit-message requests share
one asyncio semaphore so at most ``max_concurrency`` are in flight; branch
names and PR descriptions are single calls made after the fan-out.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from .commit import clean_branch_name, parse_commit_message
from .config import MAX_CONCURRENCY, MIN_CONCURRENCY, Config
from .exceptions import LLMError
from .models import CommitMessage, CommitRecord, FileChange
from .providers.base import BaseDriver
from .providers.openrouter_driver import API_KEY_MISSING, OpenRouterDriver

logger = logging.getLogger(__name__)

RESET = "\033[0m"
GREEN = "\033[92m"
CYAN = "\033[96m"

DEFAULT_BRANCH_NAME = "feat/automated-changes"

COMMIT_SYSTEM_PROMPT = (
    "You are a git commit message expert. Generate clear, concise "
    "conventional commit messages."
)
BRANCH_SYSTEM_PROMPT = (
    "You are a git branch naming expert. Generate clear, descriptive "
    "branch names."
)
PR_SYSTEM_PROMPT = (
    "You are a technical writer creating pull request descriptions. "
    "Be clear, comprehensive, and professional."
)


class LLMClient:
    """Generates commit messages, branch names and PR bodies via OpenRouter."""

    def __init__(
        self,
        config: Config,
        driver: Optional[BaseDriver] = None,
        quiet: bool = False,
    ) -> None:
        self.config = config
        self.api_key = config.open_router_api_key
        self.max_concurrency = min(
            max(config.concurrency, MIN_CONCURRENCY), MAX_CONCURRENCY
        )
        self._limiter = asyncio.Semaphore(self.max_concurrency)
        self._driver = driver or OpenRouterDriver(config)
        self.quiet = quiet

    def _echo(self, text: str) -> None:
        if not self.quiet:
            print(text)

    def _ensure_api_key(self) -> None:
        if not self.api_key:
            raise LLMError(API_KEY_MISSING)

    async def _complete(self, system: str, prompt: str) -> str:
        self._ensure_api_key()
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]
        return await self._driver.complete(messages)

    async def aclose(self) -> None:
        await self._driver.aclose()

    # ------------------------------------------------------------------
    # Commit messages
    # ------------------------------------------------------------------
    def _build_commit_prompt(self, change: FileChange, diff: str) -> str:
        prompt_parts = [
            "Analyze this git diff and generate a conventional commit message.",
            "",
            f"File: {change.path}",
            f"Change Type: {change.change_type.label}",
            "",
            "Diff:",
            diff,
            "",
            "Guidelines:",
            "- Use conventional commit format: type(scope): description",
            "- Common types: feat, fix, docs, style, refactor, test, chore, "
            "perf, ci, build",
            "- Be specific about what changed",
            '- Use imperative mood ("add", "fix", "update", not "added", '
            '"fixed", "updated")',
            "- Focus on the functional change, not implementation details",
            "- Keep description under 50 characters",
            "- Include appropriate scope if relevant (e.g., component name, "
            "feature area)",
            '- Examples: "feat(auth): add user authentication", "fix(ui): '
            'resolve button alignment", "docs(readme): update installation '
            'guide"',
            "",
            "Return only the commit message in conventional format, "
            "no explanation.",
        ]
        return "\n".join(prompt_parts)

    async def generate_commit_message(
        self, change: FileChange, diff: str
    ) -> CommitMessage:
        """Ask the model for one file's commit message (bounded by the limiter)."""
        self._ensure_api_key()
        async with self._limiter:
            self._echo(f"🤖 Generating commit message for: {change.path}")
            raw = await self._complete(
                COMMIT_SYSTEM_PROMPT, self._build_commit_prompt(change, diff)
            )
        message = parse_commit_message(raw, change)
        if message.fallback:
            logger.warning(
                "Model reply for %s had no conventional header; using %r",
                change.path,
                message.formatted,
            )
        self._echo(f"{GREEN}✅ Generated: {message.formatted}{RESET}")
        return message

    async def generate_commit_messages(
        self, files_with_diffs: Sequence[Tuple[FileChange, str]]
    ) -> List[CommitMessage]:
        """Generate one message per (file, diff) pair, results in input order."""
        self._echo(
            f"🚀 Generating {len(files_with_diffs)} commit messages in parallel "
            f"(concurrency: {self.max_concurrency})"
        )
        tasks = [
            asyncio.ensure_future(self.generate_commit_message(change, diff))
            for change, diff in files_with_diffs
        ]
        try:
            results = await asyncio.gather(*tasks)
        except Exception as e:
            # Stop the siblings and collect every outcome before the driver
            # is closed underneath them.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if isinstance(e, LLMError):
                raise LLMError(f"Failed to generate commit messages: {e}") from e
            raise
        self._echo(f"✅ Successfully generated {len(results)} commit messages")
        return list(results)

    # ------------------------------------------------------------------
    # Branch names and PR descriptions
    # ------------------------------------------------------------------
    def _build_branch_prompt(self, messages: Iterable[CommitMessage]) -> str:
        summaries = "\n".join(msg.header for msg in messages)
        return "\n".join(
            [
                "Analyze these commit messages and generate a descriptive git "
                "branch name.",
                "",
                "Commits:",
                summaries,
                "",
                "Guidelines:",
                "- Use kebab-case (lowercase with hyphens)",
                "- Maximum 40 characters",
                "- Be descriptive but concise",
                "- Include the main theme/feature being worked on",
                "- Use conventional prefixes: feat/, fix/, chore/, refactor/, "
                "docs/, test/",
                '- Examples: "feat/user-authentication", '
                '"fix/payment-processing-bug", "chore/remove-deprecated-apis"',
                "",
                "Return only the branch name, no explanation.",
            ]
        )

    async def generate_branch_name(self, messages: Sequence[CommitMessage]) -> str:
        self._echo("🌿 Generating branch name from commit messages...")
        raw = await self._complete(
            BRANCH_SYSTEM_PROMPT, self._build_branch_prompt(messages)
        )
        branch_name = clean_branch_name(raw, DEFAULT_BRANCH_NAME)
        self._echo(f"{GREEN}✅ Generated branch name: {branch_name}{RESET}")
        return branch_name

    def _build_pr_prompt(self, branch_name: str, commits: Sequence[CommitRecord]) -> str:
        commit_list = "\n\n".join(
            f"- `{commit.short_hash}` {commit.message}\n"
            f"  Files: {', '.join(commit.files)}"
            for commit in commits
        )
        return "\n".join(
            [
                "Generate a comprehensive Pull Request description for this branch.",
                "",
                f"Branch: {branch_name}",
                f"Commits: {len(commits)}",
                "",
                "Detailed Commits:",
                commit_list,
                "",
                "Generate a PR description with:",
                "1. A clear title summarizing the main changes",
                "2. A brief overview of what this PR accomplishes",
                '3. A "Changes" section listing each commit with its hash and '
                "description",
                "4. Any notable technical details or considerations",
                "",
                "Format as markdown. Be professional but concise.",
            ]
        )

    async def generate_pr_description(
        self, branch_name: str, commits: Sequence[CommitRecord]
    ) -> str:
        self._echo(f"{CYAN}📄 Generating PR description...{RESET}")
        raw = await self._complete(
            PR_SYSTEM_PROMPT, self._build_pr_prompt(branch_name, commits)
        )
        description = (raw or "").strip()
        if not description:
            description = (
                "## Changes\n\nThis PR contains "
                f"{len(commits)} commits with various improvements and updates."
            )
        self._echo(f"{GREEN}✅ Generated PR description{RESET}")
        return description
