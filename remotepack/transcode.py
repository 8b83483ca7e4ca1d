from __future__ import annotations

import logging
import lzma
import sys
import zlib
from contextlib import ExitStack, closing
from typing import BinaryIO

import zstandard

from remotepack.codecs import CodecRegistry, default_registry, strip_extension
from remotepack.errors import IOFailure, NoCodecForExtension
from remotepack.remote_fs import RemoteFileSystem
from remotepack.streams import DEFAULT_BUFFER_SIZE, copy


logger = logging.getLogger(__name__)

STREAM_ERRORS = (OSError, EOFError, zlib.error, lzma.LZMAError, zstandard.ZstdError)


def compress_file(
    fs: RemoteFileSystem,
    codec_id: str,
    source_path: str,
    dest_path: str,
    *,
    registry: CodecRegistry | None = None,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> int:
    """Compress ``source_path`` into ``dest_path`` and return the bytes read.

    The compressing writer is closed before the raw destination so buffered
    codec output is flushed, and both are closed on every exit path.
    """
    codec = (registry or default_registry()).resolve_by_name(codec_id)
    logger.info("Compressing %s -> %s (codec %s)", source_path, dest_path, codec.name)

    try:
        with ExitStack() as stack:
            source = stack.enter_context(fs.open_read(source_path))
            raw = stack.enter_context(fs.open_write(dest_path))
            writer = stack.enter_context(closing(codec.compressing_writer(raw)))
            count = copy(source, writer, buffer_size)
    except STREAM_ERRORS as exc:
        raise IOFailure(f"{source_path} -> {dest_path}", exc, codec=codec.name) from exc
    return count


def decompress_to_stdout(
    fs: RemoteFileSystem,
    codec_id: str,
    source_path: str,
    out: BinaryIO | None = None,
    *,
    registry: CodecRegistry | None = None,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> int:
    codec = (registry or default_registry()).resolve_by_name(codec_id)
    sink = out if out is not None else sys.stdout.buffer

    try:
        with ExitStack() as stack:
            raw = stack.enter_context(fs.open_read(source_path))
            reader = stack.enter_context(closing(codec.decompressing_reader(raw)))
            count = copy(reader, sink, buffer_size)
        sink.flush()
    except STREAM_ERRORS as exc:
        raise IOFailure(source_path, exc, codec=codec.name) from exc
    return count


def decompress_by_extension(
    fs: RemoteFileSystem,
    path: str,
    *,
    registry: CodecRegistry | None = None,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> str:
    """Decompress ``path`` next to itself, inferring the codec from its extension.

    Returns the output path. Raises ``NoCodecForExtension`` before touching
    any stream when no registered extension matches.
    """
    codec = (registry or default_registry()).resolve_by_extension(path)
    if codec is None:
        raise NoCodecForExtension(path)

    output_path = strip_extension(path, codec)
    logger.info("Decompressing %s -> %s (codec %s)", path, output_path, codec.name)

    try:
        with ExitStack() as stack:
            raw = stack.enter_context(fs.open_read(path))
            reader = stack.enter_context(closing(codec.decompressing_reader(raw)))
            sink = stack.enter_context(fs.open_write(output_path))
            copy(reader, sink, buffer_size)
    except STREAM_ERRORS as exc:
        raise IOFailure(path, exc, codec=codec.name) from exc
    return output_path
