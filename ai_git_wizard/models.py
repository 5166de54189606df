"""Plain data types shared by the git, LLM and GitHub layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ChangeType(str, Enum):
    """Change status of a staged path as reported by ``--name-status``."""

    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"

    @property
    def label(self) -> str:
        return {
            ChangeType.ADDED: "Added",
            ChangeType.MODIFIED: "Modified",
            ChangeType.DELETED: "Deleted",
        }[self]

    @property
    def icon(self) -> str:
        return {
            ChangeType.ADDED: "✨",
            ChangeType.MODIFIED: "📝",
            ChangeType.DELETED: "🗑️",
        }[self]


@dataclass(frozen=True)
class FileChange:
    """Represents a staged file change with its type and path."""

    path: str
    change_type: ChangeType


@dataclass(frozen=True)
class CommitMessage:
    """A decoded conventional commit header.

    ``fallback`` is True when the model reply did not contain a
    ``type(scope): subject`` line and a generic header was synthesised.
    """

    type: str
    subject: str
    formatted: str
    scope: Optional[str] = None
    fallback: bool = False
    # Set when the header carried the "!" breaking-change marker.
    breaking: bool = False

    @property
    def header(self) -> str:
        scope = f"({self.scope})" if self.scope else ""
        marker = "!" if self.breaking else ""
        return f"{self.type}{scope}{marker}: {self.subject}"


@dataclass(frozen=True)
class RepoInfo:
    """GitHub owner/name pair detected from the ``origin`` remote."""

    owner: str
    name: str
    remote_url: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass
class CommitRecord:
    """A commit read back from ``git log`` with the files it touched."""

    hash: str
    message: str
    files: List[str] = field(default_factory=list)

    @property
    def short_hash(self) -> str:
        return self.hash[:8]


@dataclass(frozen=True)
class PullRequest:
    """Subset of the GitHub pull request payload the workflow needs."""

    number: int
    title: str
    html_url: str
    state: str = "open"

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PullRequest":
        return cls(
            number=int(data["number"]),
            title=data.get("title") or "",
            html_url=data.get("html_url") or "",
            state=data.get("state") or "open",
        )
