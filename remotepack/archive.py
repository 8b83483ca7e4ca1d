"""Recursive packaging of a remote directory tree into one archive stream.

Entries are emitted depth-first in pre-order: a directory's marker entry comes
first, then each child in listing order, and a child subdirectory is drained
completely before its next sibling starts. Listing order is whatever the
backend returns; most object stores list lexically, but local and HDFS
listings are not guaranteed to.

Entry names are base names only, so nested files land at the top level of the
archive next to the directory markers.
"""

from __future__ import annotations

import logging
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, ContextManager, Iterator, Literal, Protocol

from remotepack.errors import ConnectionFailure, IOFailure, PathNotFound, RemotePackError
from remotepack.models import ArchiveEntry, EntryKind, RemoteEntry, WalkReport
from remotepack.remote_fs import RemoteFileSystem
from remotepack.streams import ARCHIVE_BUFFER_SIZE, copy


logger = logging.getLogger(__name__)

MULTIPART_EXPORT_MARKER = "_0.xlsx"
MULTIPART_EXPORT_REPLACEMENT = ".xlsx"

OnError = Literal["skip", "raise"]


def normalize_entry_name(name: str) -> str:
    """Drop the ``_0`` part marker that multi-part export jobs put on spreadsheets."""
    return name.replace(MULTIPART_EXPORT_MARKER, MULTIPART_EXPORT_REPLACEMENT)


class ArchiveSink(Protocol):
    def add_directory(self, name: str) -> None:
        ...

    def open_entry(self, name: str) -> ContextManager[BinaryIO]:
        ...


class ZipArchiveSink:
    """Append-only zip writer; the central directory is written on close."""

    def __init__(
        self,
        target: str | Path | BinaryIO,
        *,
        compression: int = zipfile.ZIP_DEFLATED,
    ) -> None:
        self._zip = zipfile.ZipFile(target, mode="w", compression=compression)
        self.entries: list[ArchiveEntry] = []

    def __enter__(self) -> "ZipArchiveSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def add_directory(self, name: str) -> None:
        if not name.endswith("/"):
            name = f"{name}/"
        self._zip.writestr(name, b"")
        self.entries.append(ArchiveEntry(name=name, kind=EntryKind.DIRECTORY))

    @contextmanager
    def open_entry(self, name: str) -> Iterator[BinaryIO]:
        handle = self._zip.open(name, mode="w", force_zip64=True)
        entry = ArchiveEntry(name=name, kind=EntryKind.FILE)
        self.entries.append(entry)
        try:
            with handle as dest:
                yield dest
        finally:
            # A failed copy still leaves a (truncated) entry behind.
            entry.size = self._zip.infolist()[-1].file_size


def walk(
    fs: RemoteFileSystem,
    root: str,
    sink: ArchiveSink,
    report: WalkReport | None = None,
    *,
    on_error: OnError = "skip",
) -> WalkReport:
    """Emit every node under ``root`` into ``sink``.

    A subtree whose listing fails is logged, recorded in the report and
    skipped; the walk carries on with its siblings. Per-file failures follow
    ``on_error``: ``"skip"`` records and continues, ``"raise"`` propagates.
    """
    if on_error not in {"skip", "raise"}:
        raise ValueError("on_error must be 'skip' or 'raise'")
    report = report if report is not None else WalkReport()

    try:
        children = fs.list(root)
    except (PathNotFound, ConnectionFailure) as exc:
        logger.error("Skipping subtree %s: %s", root, exc)
        report.skip(root, exc)
        return report

    logger.info("basedir = %s", root)
    for child in children:
        if child.is_dir:
            sink.add_directory(f"{child.name}/")
            report.archived_dirs += 1
            logger.info("directory = %s", child.path)
            walk(fs, child.path, sink, report, on_error=on_error)
        else:
            _archive_file(fs, child, sink, report, on_error=on_error)
    return report


def _archive_file(
    fs: RemoteFileSystem,
    child: RemoteEntry,
    sink: ArchiveSink,
    report: WalkReport,
    *,
    on_error: OnError,
) -> None:
    name = normalize_entry_name(child.name)
    try:
        # Open the source first so an unreadable file leaves no entry behind.
        with fs.open_read(child.path) as source:
            with sink.open_entry(name) as dest:
                size = copy(source, dest, ARCHIVE_BUFFER_SIZE)
    except (RemotePackError, OSError, EOFError) as exc:
        if on_error == "raise":
            if isinstance(exc, RemotePackError):
                raise
            raise IOFailure(child.path, exc) from exc
        logger.error("Skipping file %s: %s", child.path, exc)
        report.skip(child.path, exc)
        return

    report.archived_files += 1
    report.archived_bytes += size


def archive_directory(
    fs: RemoteFileSystem,
    root_path: str,
    sink: ArchiveSink,
    *,
    on_error: OnError = "skip",
) -> WalkReport:
    report = walk(fs, root_path, sink, on_error=on_error)
    if report.partial:
        logger.warning(
            "PartialArchive for %s: %d dir(s) and %d file(s) archived, %d node(s) skipped",
            root_path,
            report.archived_dirs,
            report.archived_files,
            len(report.skipped),
        )
    else:
        logger.info(
            "Archived %s: %d dir(s), %d file(s), %d byte(s)",
            root_path,
            report.archived_dirs,
            report.archived_files,
            report.archived_bytes,
        )
    return report


def archive_to_zip(
    fs: RemoteFileSystem,
    root_path: str,
    target: str | Path | BinaryIO,
    *,
    compression: int = zipfile.ZIP_DEFLATED,
    on_error: OnError = "skip",
) -> WalkReport:
    with ZipArchiveSink(target, compression=compression) as sink:
        return archive_directory(fs, root_path, sink, on_error=on_error)
