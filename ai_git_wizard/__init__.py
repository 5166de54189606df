"""ai-git-wizard - AI-assisted per-file commits, branches and pull requests."""

from importlib import import_module
from typing import TYPE_CHECKING

__version__ = "0.1.0"

# Public API (lazy-exported to avoid import-time side effects)
__all__ = [
    # Config
    "Config", "ConfigStore", "WorkingConfig",
    # Models
    "ChangeType", "FileChange", "CommitMessage", "RepoInfo", "PullRequest",
    # Clients
    "GitRepo", "LLMClient", "GitHubClient",
    # Core workflow
    "GitWizardWorkflow", "CommitResult", "WorkflowResult",
    # Exceptions
    "WizardError", "GitError", "LLMError", "GitHubError", "ConfigError",
    "ValidationError", "WorkflowError",
]


def __getattr__(name: str):
    """Import the owning submodule on first access and cache the attribute."""
    mapping = {
        "Config": ("ai_git_wizard.config", "Config"),
        "ConfigStore": ("ai_git_wizard.config", "ConfigStore"),
        "WorkingConfig": ("ai_git_wizard.config", "WorkingConfig"),
        "ChangeType": ("ai_git_wizard.models", "ChangeType"),
        "FileChange": ("ai_git_wizard.models", "FileChange"),
        "CommitMessage": ("ai_git_wizard.models", "CommitMessage"),
        "RepoInfo": ("ai_git_wizard.models", "RepoInfo"),
        "PullRequest": ("ai_git_wizard.models", "PullRequest"),
        "GitRepo": ("ai_git_wizard.git", "GitRepo"),
        "LLMClient": ("ai_git_wizard.llm", "LLMClient"),
        "GitHubClient": ("ai_git_wizard.github", "GitHubClient"),
        "GitWizardWorkflow": ("ai_git_wizard.core", "GitWizardWorkflow"),
        "CommitResult": ("ai_git_wizard.core", "CommitResult"),
        "WorkflowResult": ("ai_git_wizard.core", "WorkflowResult"),
        "WizardError": ("ai_git_wizard.exceptions", "WizardError"),
        "GitError": ("ai_git_wizard.exceptions", "GitError"),
        "LLMError": ("ai_git_wizard.exceptions", "LLMError"),
        "GitHubError": ("ai_git_wizard.exceptions", "GitHubError"),
        "ConfigError": ("ai_git_wizard.exceptions", "ConfigError"),
        "ValidationError": ("ai_git_wizard.exceptions", "ValidationError"),
        "WorkflowError": ("ai_git_wizard.exceptions", "WorkflowError"),
    }
    if name in mapping:
        mod_name, attr = mapping[name]
        mod = import_module(mod_name)
        value = getattr(mod, attr)
        globals()[name] = value  # cache for future access
        return value
    raise AttributeError(f"module 'ai_git_wizard' has no attribute {name!r}")


if TYPE_CHECKING:
    from .config import Config, ConfigStore, WorkingConfig
    from .models import ChangeType, CommitMessage, FileChange, PullRequest, RepoInfo
    from .git import GitRepo
    from .llm import LLMClient
    from .github import GitHubClient
    from .core import CommitResult, GitWizardWorkflow, WorkflowResult
    from .exceptions import (
        ConfigError,
        GitError,
        GitHubError,
        LLMError,
        ValidationError,
        WizardError,
        WorkflowError,
    )
