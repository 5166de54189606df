"""Decoding of free-form model replies into conventional commit headers."""

from __future__ import annotations

import re
from typing import Optional

from .models import CommitMessage, FileChange

DEFAULT_TYPE = "feat"

CONVENTIONAL_TYPES = (
    "feat",
    "fix",
    "docs",
    "style",
    "refactor",
    "test",
    "chore",
    "perf",
    "ci",
    "build",
    "revert",
)

# Any word is accepted as the type; scope optional.
_HEADER_PATTERN = re.compile(r"^(\w+)(?:\(([^)]+)\))?(!)?:\s*(.+)$")


def _clean_line(line: str) -> str:
    """Drop list markers, backticks, quotes and repeated whitespace."""
    cleaned = line.strip().lstrip("-*• ").strip("`").strip()
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in "\"'":
        cleaned = cleaned[1:-1].strip()
    return re.sub(r"\s+", " ", cleaned)


def _candidate_lines(raw: str) -> list[str]:
    lines = []
    for line in raw.splitlines():
        if line.strip().startswith("```"):
            continue
        cleaned = _clean_line(line)
        if cleaned:
            lines.append(cleaned)
    return lines


def _decode_line(line: str) -> Optional[CommitMessage]:
    match = _HEADER_PATTERN.match(line)
    if not match:
        return None
    msg_type, scope, subject = match.group(1), match.group(2), match.group(4)
    breaking = match.group(3) is not None
    subject = subject.strip().rstrip(".").strip()
    if not subject:
        return None
    scope = scope.strip() if scope and scope.strip() else None
    prefix = f"{msg_type}({scope})" if scope else msg_type
    marker = "!" if breaking else ""
    return CommitMessage(
        type=msg_type,
        scope=scope,
        subject=subject,
        formatted=f"{prefix}{marker}: {subject}",
        breaking=breaking,
    )


def parse_commit_message(
    raw: Optional[str], change: Optional[FileChange] = None
) -> CommitMessage:
    """Return the first ``type(scope): subject`` line found in ``raw``.

    Lines using a standard conventional type win over lines that merely have
    the same shape (``Note: ...``). Never raises: when nothing matches, a
    fallback message is built from the first line of the reply, or from the
    file path if the reply is empty.
    """
    lines = _candidate_lines(raw or "")

    decoded = [msg for msg in (_decode_line(line) for line in lines) if msg]
    for msg in decoded:
        if msg.type.lower() in CONVENTIONAL_TYPES:
            return msg
    if decoded:
        return decoded[0]

    if lines:
        subject = lines[0].rstrip(".")
    elif change is not None:
        subject = f"update {change.path}"
    else:
        subject = "update files"
    return CommitMessage(
        type=DEFAULT_TYPE,
        scope=None,
        subject=subject,
        formatted=f"{DEFAULT_TYPE}: {subject}",
        fallback=True,
    )


def clean_branch_name(raw: Optional[str], default: str) -> str:
    """Take the first usable line of a model reply as a branch name."""
    for line in _candidate_lines(raw or ""):
        name = line.strip().replace(" ", "-")
        if name:
            return name
    return default
