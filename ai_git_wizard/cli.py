"""Command-line interface for ai-git-wizard."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from . import __version__
from .config import ConfigStore
from .configure import CONFIG_ACTIONS, ConfigCommands
from .core import GitWizardWorkflow  # noqa: F401 - module level alias for tests
from .exceptions import WizardError

RESET = "\033[0m"
RED = "\033[91m"


class CLI:
    """Parses arguments and dispatches to the workflow or config commands."""

    def __init__(self, store: Optional[ConfigStore] = None) -> None:
        self.parser = self._create_parser()
        self._store = store

    @property
    def store(self) -> ConfigStore:
        if self._store is None:
            self._store = ConfigStore()
        return self._store

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="ai-git-wizard",
            description=(
                "AI-powered Git workflow automation: per-file conventional "
                "commits, branch names and pull requests"
            ),
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  ai-git-wizard config setup              # Configure API keys
  ai-git-wizard commit                    # One commit per staged file
  ai-git-wizard commit --push             # ...then push the current branch
  ai-git-wizard workflow                  # Commit, branch, push and open a PR
  ai-git-wizard workflow -b feat/login    # Use a specific branch name
  ai-git-wizard workflow --no-pr          # Skip pull request creation
            """,
        )
        parser.add_argument(
            "--version", action="version", version=f"%(prog)s {__version__}"
        )
        parser.add_argument(
            "--debug",
            action="store_true",
            help="Enable debug logging",
        )

        subparsers = parser.add_subparsers(dest="command", metavar="<command>")

        workflow = subparsers.add_parser(
            "workflow",
            aliases=["w"],
            help="Complete AI-powered git workflow: commits, branch, push and PR",
        )
        workflow.add_argument(
            "--branch",
            "-b",
            help=(
                "Branch to commit on: created if missing, reused if it is the "
                "current branch; if it names another existing branch an "
                "AI-generated name is used instead"
            ),
        )
        workflow.add_argument(
            "--base-branch",
            "--bb",
            dest="base_branch",
            default="main",
            help="Base branch for the pull request (default: main)",
        )
        workflow.add_argument(
            "--no-pr",
            action="store_true",
            help="Skip pull request creation",
        )
        workflow.set_defaults(handler=self._cmd_workflow)

        commit = subparsers.add_parser(
            "commit",
            aliases=["c"],
            help="Generate AI commit messages and commit staged files one by one",
        )
        commit.add_argument(
            "--push", "-p", action="store_true", help="Push after committing"
        )
        commit.set_defaults(handler=self._cmd_commit)

        config = subparsers.add_parser("config", help="Manage configuration")
        config.add_argument(
            "action",
            nargs="?",
            default="list",
            choices=CONFIG_ACTIONS,
            help="Configuration action (default: list)",
        )
        config.add_argument("--key", "-k", help="Configuration key")
        config.add_argument("--value", "-v", help="Configuration value")
        config.set_defaults(handler=self._cmd_config)

        return parser

    def run(self, args: Optional[list[str]] = None) -> int:
        """Run the CLI and return a process exit code."""
        try:
            parsed_args = self.parser.parse_args(args)
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1

        logging.basicConfig(
            level=logging.DEBUG if parsed_args.debug else logging.WARNING,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

        handler = getattr(parsed_args, "handler", None)
        if handler is None:
            self.parser.print_help()
            return 1

        try:
            return handler(parsed_args)
        except WizardError as e:
            self._print_error(str(e))
            return 1
        except KeyboardInterrupt:
            self._print_error("Operation cancelled by user")
            return 1

    def _cmd_workflow(self, args: argparse.Namespace) -> int:
        working = self.store.get_working_config()
        workflow = GitWizardWorkflow(working)
        asyncio.run(
            workflow.run_workflow(
                branch=args.branch,
                base_branch=args.base_branch,
                no_pr=args.no_pr,
            )
        )
        return 0

    def _cmd_commit(self, args: argparse.Namespace) -> int:
        working = self.store.get_working_config()
        workflow = GitWizardWorkflow(working)
        asyncio.run(workflow.run_commit(push=args.push))
        return 0

    def _cmd_config(self, args: argparse.Namespace) -> int:
        return ConfigCommands(self.store).run(args.action, args.key, args.value)

    def _print_error(self, message: str) -> None:
        print(f"{RED}❌ Error: {message}{RESET}", file=sys.stderr)


def main(argv: Optional[list[str]] = None) -> int:
    return CLI().run(argv)


if __name__ == "__main__":
    sys.exit(main())
