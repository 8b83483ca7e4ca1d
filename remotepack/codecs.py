"""Pluggable compression codecs and the registry that resolves them.

A codec is looked up either by identifier (``gzip``, ``zstd``, or a dotted
class-style name such as ``org.apache.hadoop.io.compress.GzipCodec``) or by
matching a file name against the registered extensions.
"""

from __future__ import annotations

import bz2
import gzip
import io
import lzma
import zlib
from dataclasses import dataclass
from typing import BinaryIO, Callable, Iterable

import zstandard

from remotepack.errors import CodecNotFound


DEFLATE_READ_SIZE = 64 * 1024


@dataclass(frozen=True, slots=True)
class Codec:
    name: str
    extension: str
    open_writer: Callable[[BinaryIO], BinaryIO]
    open_reader: Callable[[BinaryIO], BinaryIO]
    aliases: tuple[str, ...] = ()

    def compressing_writer(self, raw: BinaryIO) -> BinaryIO:
        return self.open_writer(raw)

    def decompressing_reader(self, raw: BinaryIO) -> BinaryIO:
        return self.open_reader(raw)

    def matches(self, key: str) -> bool:
        return key == self.name or key in self.aliases


class _DeflateWriter(io.RawIOBase):
    """Raw zlib stream writer; the format Hadoop's DefaultCodec produces."""

    def __init__(self, raw: BinaryIO, level: int = zlib.Z_DEFAULT_COMPRESSION) -> None:
        self._raw = raw
        self._compressor = zlib.compressobj(level)

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        view = memoryview(data)
        chunk = self._compressor.compress(view)
        if chunk:
            self._raw.write(chunk)
        return view.nbytes

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._raw.write(self._compressor.flush())
        finally:
            super().close()


class _DeflateReader(io.RawIOBase):
    def __init__(self, raw: BinaryIO, read_size: int = DEFLATE_READ_SIZE) -> None:
        self._raw = raw
        self._read_size = read_size
        self._decompressor = zlib.decompressobj()
        self._pending = b""
        self._eof = False

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        if not len(b):
            return 0
        while not self._pending and not self._eof:
            chunk = self._decompressor.unconsumed_tail or self._raw.read(self._read_size)
            if chunk:
                # output per call never exceeds the caller's buffer
                self._pending = self._decompressor.decompress(chunk, len(b))
                continue
            self._pending = self._decompressor.flush()
            self._eof = True
            if not self._decompressor.eof:
                raise EOFError("Compressed deflate stream ended before the end-of-stream marker")
        n = min(len(b), len(self._pending))
        b[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        return n


def _gzip_writer(raw: BinaryIO) -> BinaryIO:
    return gzip.GzipFile(fileobj=raw, mode="wb")


def _gzip_reader(raw: BinaryIO) -> BinaryIO:
    return gzip.GzipFile(fileobj=raw, mode="rb")


def _zstd_writer(raw: BinaryIO) -> BinaryIO:
    return zstandard.ZstdCompressor().stream_writer(raw, closefd=False)


def _zstd_reader(raw: BinaryIO) -> BinaryIO:
    return zstandard.ZstdDecompressor().stream_reader(raw, closefd=False)


BUILTIN_CODECS: tuple[Codec, ...] = (
    Codec(
        name="deflate",
        extension=".deflate",
        open_writer=_DeflateWriter,
        open_reader=_DeflateReader,
        aliases=("default", "zlib"),
    ),
    Codec(
        name="gzip",
        extension=".gz",
        open_writer=_gzip_writer,
        open_reader=_gzip_reader,
        aliases=("gz",),
    ),
    Codec(
        name="bzip2",
        extension=".bz2",
        open_writer=lambda raw: bz2.BZ2File(raw, mode="wb"),
        open_reader=lambda raw: bz2.BZ2File(raw, mode="rb"),
        aliases=("bz2",),
    ),
    Codec(
        name="xz",
        extension=".xz",
        open_writer=lambda raw: lzma.LZMAFile(raw, mode="wb"),
        open_reader=lambda raw: lzma.LZMAFile(raw, mode="rb"),
        aliases=("lzma",),
    ),
    Codec(
        name="zstd",
        extension=".zst",
        open_writer=_zstd_writer,
        open_reader=_zstd_reader,
        aliases=("zstandard",),
    ),
)


def _identifier_key(identifier: str) -> str:
    key = (identifier or "").strip().rsplit(".", 1)[-1].lower()
    if key.endswith("codec") and len(key) > len("codec"):
        key = key[: -len("codec")]
    return key


class CodecRegistry:
    def __init__(self, codecs: Iterable[Codec] = ()) -> None:
        self._codecs: dict[str, Codec] = {}
        for codec in codecs:
            self.register(codec)

    def register(self, codec: Codec) -> None:
        self._codecs[codec.name] = codec

    def codecs(self) -> list[Codec]:
        return sorted(self._codecs.values(), key=lambda codec: codec.name)

    def resolve_by_name(self, identifier: str) -> Codec:
        key = _identifier_key(identifier)
        for codec in self._codecs.values():
            if codec.matches(key):
                return codec
        raise CodecNotFound(identifier)

    def resolve_by_extension(self, path: str) -> Codec | None:
        candidates = [
            codec
            for codec in self._codecs.values()
            if codec.extension and path.endswith(codec.extension)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda codec: len(codec.extension))


def strip_extension(path: str, codec: Codec) -> str:
    if codec.extension and path.endswith(codec.extension):
        return path[: -len(codec.extension)]
    return path


def default_registry() -> CodecRegistry:
    return CodecRegistry(BUILTIN_CODECS)
