"""Repository tree and diff data models."""

from enum import Enum

from pydantic import BaseModel


class EntryKind(str, Enum):
    """Kind of repository tree entry."""

    FILE = "file"
    DIRECTORY = "directory"


class TreeEntry(BaseModel):
    """Single path in the repository file tree."""

    path: str
    kind: EntryKind


class DiffBundle(BaseModel):
    """Raw unified diff and its variant without self-referential segments."""

    raw: str
    filtered: str
