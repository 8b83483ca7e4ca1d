from __future__ import annotations

from typing import BinaryIO, Callable


DEFAULT_BUFFER_SIZE = 4096
ARCHIVE_BUFFER_SIZE = 1024


def copy(
    source: BinaryIO,
    sink: BinaryIO,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    *,
    on_chunk: Callable[[int], None] | None = None,
) -> int:
    """Copy ``source`` into ``sink`` until EOF and return the byte count.

    Neither stream is closed. Bytes already written when an error is raised
    stay in ``sink``.
    """
    if buffer_size < 1:
        raise ValueError(f"buffer_size must be positive, got {buffer_size}")

    total = 0
    while True:
        chunk = source.read(buffer_size)
        if not chunk:
            break
        sink.write(chunk)
        total += len(chunk)
        if on_chunk is not None:
            on_chunk(len(chunk))
    return total
