from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class EntryKind(str, Enum):
    DIRECTORY = "directory"
    FILE = "file"


@dataclass(slots=True)
class RemoteEntry:
    path: str
    name: str
    is_dir: bool
    size: int | None = None


@dataclass(slots=True)
class ArchiveEntry:
    name: str
    kind: EntryKind
    size: int = 0


@dataclass(slots=True)
class SkippedNode:
    path: str
    reason: str


@dataclass(slots=True)
class WalkReport:
    """Outcome of an archive walk; ``partial`` marks a PartialArchive."""

    archived_dirs: int = 0
    archived_files: int = 0
    archived_bytes: int = 0
    skipped: list[SkippedNode] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.skipped)

    def skip(self, path: str, exc: BaseException) -> None:
        self.skipped.append(SkippedNode(path=path, reason=str(exc) or exc.__class__.__name__))
