from __future__ import annotations

import io

import pytest

from remotepack.streams import ARCHIVE_BUFFER_SIZE, DEFAULT_BUFFER_SIZE, copy


class _RecordingReader(io.BytesIO):
    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.requested: list[int] = []

    def read(self, size: int = -1) -> bytes:
        self.requested.append(size)
        return super().read(size)


class _FailingSink(io.BytesIO):
    def __init__(self, fail_after: int) -> None:
        super().__init__()
        self._remaining = fail_after

    def write(self, data) -> int:
        if self._remaining <= 0:
            raise OSError("sink full")
        self._remaining -= 1
        return super().write(data)


def test_copy_returns_byte_count_and_leaves_streams_open() -> None:
    source = io.BytesIO(b"x" * 10_000)
    sink = io.BytesIO()

    assert copy(source, sink) == 10_000
    assert sink.getvalue() == b"x" * 10_000
    assert not source.closed
    assert not sink.closed


def test_copy_reads_in_bounded_chunks() -> None:
    source = _RecordingReader(b"y" * 2500)

    copy(source, io.BytesIO(), ARCHIVE_BUFFER_SIZE)

    assert set(source.requested) == {ARCHIVE_BUFFER_SIZE}
    assert len(source.requested) == 4


def test_copy_reports_chunks() -> None:
    seen: list[int] = []

    copy(io.BytesIO(b"z" * (DEFAULT_BUFFER_SIZE + 10)), io.BytesIO(), on_chunk=seen.append)

    assert seen == [DEFAULT_BUFFER_SIZE, 10]


def test_copy_empty_source() -> None:
    assert copy(io.BytesIO(), io.BytesIO()) == 0


def test_copy_rejects_non_positive_buffer() -> None:
    with pytest.raises(ValueError):
        copy(io.BytesIO(b"a"), io.BytesIO(), 0)


def test_copy_keeps_partial_output_on_failure() -> None:
    sink = _FailingSink(fail_after=1)

    with pytest.raises(OSError, match="sink full"):
        copy(io.BytesIO(b"a" * 20), sink, 8)

    assert sink.getvalue() == b"a" * 8
