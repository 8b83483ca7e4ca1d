from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path

from huggingface_hub.utils import (
    are_progress_bars_disabled,
    disable_progress_bars,
    enable_progress_bars,
)
from rich.console import Console

from remotepack.remote_fs import RemoteFileSystem
from remotepack.streams import copy
from remotepack.transfer_ui import TransferProgressUI


logger = logging.getLogger(__name__)

TRANSFER_BUFFER_SIZE = 1024 * 1024


@contextmanager
def _suppress_hf_progress_bars():
    """Keep huggingface_hub's tqdm bars out of the way of the Rich transfer display."""
    if are_progress_bars_disabled():
        yield
        return
    disable_progress_bars()
    try:
        yield
    finally:
        enable_progress_bars()


def download_file(
    fs: RemoteFileSystem,
    remote_path: str,
    local_path: str | Path,
    *,
    console: Console | None = None,
    buffer_size: int = TRANSFER_BUFFER_SIZE,
) -> int:
    """Stream one remote file to a local path with a progress bar."""
    target = Path(local_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    total = fs.size(remote_path)

    with _suppress_hf_progress_bars(), TransferProgressUI(console=console) as ui:
        with ui.track("GET", remote_path, total) as on_chunk:
            with fs.open_read(remote_path) as source, target.open("wb") as sink:
                count = copy(source, sink, buffer_size, on_chunk=on_chunk)

    logger.info("Downloaded %s -> %s (%d bytes)", remote_path, target, count)
    return count


def upload_file(
    fs: RemoteFileSystem,
    local_path: str | Path,
    remote_path: str,
    *,
    console: Console | None = None,
    buffer_size: int = TRANSFER_BUFFER_SIZE,
) -> int:
    """Stream one local file to the remote side with a progress bar."""
    source_path = Path(local_path)
    if not source_path.is_file():
        raise FileNotFoundError(f"Local file not found: {source_path}")
    total = source_path.stat().st_size

    with _suppress_hf_progress_bars(), TransferProgressUI(console=console) as ui:
        with ui.track("PUT", remote_path, total) as on_chunk:
            with source_path.open("rb") as source, fs.open_write(remote_path) as sink:
                count = copy(source, sink, buffer_size, on_chunk=on_chunk)

    logger.info("Uploaded %s -> %s (%d bytes)", source_path, remote_path, count)
    return count
