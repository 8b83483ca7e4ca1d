"""Shared fixtures: a RemoteFileSystem backed by fsspec's local filesystem."""

from __future__ import annotations

import io
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import fsspec
import pytest

from remotepack.models import EntryKind
from remotepack.remote_fs import RemoteFileSystem


class RecordingSink:
    """In-memory archive sink that keeps (name, kind, payload) in emit order."""

    def __init__(self) -> None:
        self.entries: list[tuple[str, EntryKind, bytes]] = []

    def add_directory(self, name: str) -> None:
        self.entries.append((name, EntryKind.DIRECTORY, b""))

    @contextmanager
    def open_entry(self, name: str) -> Iterator[io.BytesIO]:
        buffer = io.BytesIO()
        try:
            yield buffer
        finally:
            self.entries.append((name, EntryKind.FILE, buffer.getvalue()))

    @property
    def names(self) -> list[str]:
        return [name for name, _, _ in self.entries]

    def payload(self, name: str) -> bytes:
        return next(data for entry_name, _, data in self.entries if entry_name == name)


@pytest.fixture
def remote_root(tmp_path: Path) -> Path:
    root = tmp_path / "remote"
    root.mkdir()
    return root


@pytest.fixture
def remote_fs(remote_root: Path) -> RemoteFileSystem:
    return RemoteFileSystem(fsspec.filesystem("file"), root=remote_root.as_posix())


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


def write_tree(root: Path, files: dict[str, bytes], dirs: tuple[str, ...] = ()) -> None:
    for relative in dirs:
        (root / relative).mkdir(parents=True, exist_ok=True)
    for relative, data in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)


@pytest.fixture
def make_tree(remote_root: Path):
    def _make(files: dict[str, bytes], dirs: tuple[str, ...] = ()) -> Path:
        write_tree(remote_root, files, dirs)
        return remote_root

    return _make
