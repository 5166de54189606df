"""Exceptions raised by ai-git-wizard."""


class WizardError(Exception):
    """Base exception for every ai-git-wizard failure."""


class GitError(WizardError):
    """A git subprocess failed or git is unavailable."""


class LLMError(WizardError):
    """The language-model service could not produce a reply."""


class GitHubError(WizardError):
    """The GitHub REST API rejected a request."""


class ConfigError(WizardError):
    """Configuration is missing, unknown or malformed."""


class ValidationError(WizardError):
    """Input failed a sanity check before reaching git or an API."""


class WorkflowError(WizardError):
    """The workflow cannot continue from the current repository state."""
