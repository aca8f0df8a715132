"""Changelog data model.

One ChangeLogEntry per commit per changed project. Projects that were added to
or removed from the manifest get a single marker entry without a revision.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

PROJECT_ADDED_MESSAGE = "This project was added to the manifest."
PROJECT_REMOVED_MESSAGE = "This project was removed from the manifest."


class EditKind(str, Enum):
    """File-level change kinds."""

    ADDED = "add"
    MODIFIED = "edit"
    DELETED = "delete"
    RENAMED = "rename"
    UNKNOWN = "unknown"

    @classmethod
    def from_value(cls, value: str | None) -> EditKind:
        """Map a stored value to a kind, falling back to UNKNOWN."""
        for kind in cls:
            if kind.value == value:
                return kind
        return cls.UNKNOWN


@dataclass(frozen=True)
class FileEdit:
    path: str
    kind: EditKind


@dataclass(frozen=True)
class ChangeLogEntry:
    """A single commit (or added/removed marker) for one project.

    Attributes:
        client_path: Checkout-relative path of the project
        server_path: Server-side project name
        revision: Commit hash, or None for added/removed markers
        commit_text: Subject and body of the commit, or the marker message
        file_edits: Files touched by the commit
    """

    client_path: str
    server_path: str
    revision: str | None = None
    author_name: str | None = None
    author_email: str | None = None
    author_date: str | None = None
    committer_name: str | None = None
    committer_email: str | None = None
    committer_date: str | None = None
    commit_text: str | None = None
    file_edits: tuple[FileEdit, ...] = ()

    @property
    def is_marker(self) -> bool:
        return self.revision is None

    @property
    def message(self) -> str | None:
        return self.commit_text

    @property
    def affected_paths(self) -> list[str]:
        return [edit.path for edit in self.file_edits]

    @classmethod
    def marker(cls, client_path: str, server_path: str, message: str) -> ChangeLogEntry:
        return cls(client_path=client_path, server_path=server_path, commit_text=message)

    def __str__(self) -> str:
        return (
            f"path: {self.client_path}\n"
            f"serverPath: {self.server_path}\n"
            f"revision: {self.revision}\n"
            f"authorName: {self.author_name}\n"
            f"authorEmail: {self.author_email}\n"
            f"authorDate: {self.author_date}\n"
            f"committerName: {self.committer_name}\n"
            f"committerEmail: {self.committer_email}\n"
            f"committerDate: {self.committer_date}\n"
            f"commitText: {self.commit_text}\n"
            f"modifiedFiles: {self.affected_paths}"
        )


@dataclass(frozen=True)
class ChangeLogSet:
    """Ordered change log of one build (project order as produced by the differ)."""

    entries: tuple[ChangeLogEntry, ...] = ()
    kind: str = "repo"

    def __iter__(self) -> Iterator[ChangeLogEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def by_project(self) -> dict[str, list[ChangeLogEntry]]:
        """Group entries per client path, keeping first-seen project order."""
        grouped: dict[str, list[ChangeLogEntry]] = {}
        for entry in self.entries:
            grouped.setdefault(entry.client_path, []).append(entry)
        return grouped

    def affected_paths(self) -> list[str]:
        """Project-prefixed paths of every touched file."""
        return [
            f"{entry.client_path}/{path}"
            for entry in self.entries
            for path in entry.affected_paths
        ]
