from __future__ import annotations

import logging
import posixpath
import time
from pathlib import Path
from typing import Any, BinaryIO, Callable, TypeVar

import fsspec

from remotepack.auth import resolve_hf_token, resolve_user
from remotepack.config import RemoteConfig
from remotepack.errors import ConnectionFailure, IOFailure, PathNotFound
from remotepack.models import RemoteEntry


logger = logging.getLogger(__name__)

HDFS_PROTOCOLS = {"hdfs", "viewfs", "webhdfs"}
HF_PROTOCOLS = {"hf"}
T = TypeVar("T")


def _iter_exception_chain(exc: BaseException):
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _is_timeout_error(exc: BaseException) -> bool:
    timeout_names = {
        "TimeoutError",
        "TimeoutException",
        "ReadTimeout",
        "ConnectTimeout",
        "ReadTimeoutError",
    }
    for current in _iter_exception_chain(exc):
        if current.__class__.__name__ in timeout_names:
            return True
        message = str(current).lower()
        if "timed out" in message or "timeout" in message:
            return True
    return False


def _retry_on_timeout(
    func: Callable[[], T],
    *,
    operation: str,
    max_attempts: int = 3,
    base_delay_seconds: float = 1.0,
) -> T:
    attempt = 1
    while True:
        try:
            return func()
        except Exception as exc:
            if attempt >= max_attempts or not _is_timeout_error(exc):
                raise
            sleep_seconds = base_delay_seconds * (2 ** (attempt - 1))
            logger.warning(
                "%s timed out (attempt %d/%d), retrying in %.1fs",
                operation,
                attempt,
                max_attempts,
                sleep_seconds,
            )
            time.sleep(sleep_seconds)
            attempt += 1


def _storage_options(config: RemoteConfig) -> dict[str, Any]:
    options = dict(config.storage_options)
    protocol = config.protocol
    if protocol in HDFS_PROTOCOLS:
        user = resolve_user(config.user)
        if user:
            options.setdefault("user", user)
    elif protocol in HF_PROTOCOLS:
        token = resolve_hf_token(config.token)
        if token:
            options.setdefault("token", token)
    return options


class RemoteFileSystem:
    """Narrow remote filesystem capability over an fsspec filesystem.

    Paths given to and returned by this class are relative to ``root`` (the
    path part of the configured endpoint) and use POSIX separators.
    """

    def __init__(self, fs: fsspec.AbstractFileSystem, root: str = "") -> None:
        self.fs = fs
        self.root = root.replace("\\", "/").rstrip("/")

    @classmethod
    def from_config(cls, config: RemoteConfig) -> "RemoteFileSystem":
        if not config.endpoint:
            raise ValueError("RemoteConfig.endpoint must not be empty")
        fs, root = fsspec.core.url_to_fs(config.endpoint, **_storage_options(config))
        logger.debug("Connected to %s (protocol=%s, root=%r)", config.endpoint, config.protocol, root)
        return cls(fs, root=root)

    def _full_path(self, path: str) -> str:
        path = path.replace("\\", "/")
        if not self.root:
            return path
        relative = path.strip("/")
        return f"{self.root}/{relative}" if relative else self.root

    def _display_path(self, full_path: str) -> str:
        name = full_path.rstrip("/")
        if not self.root:
            return name
        if name == self.root:
            return "/"
        if name.startswith(self.root + "/"):
            return name[len(self.root):]
        return name

    # -- capabilities consumed by the codec and archive layers --

    def list(self, path: str) -> list[RemoteEntry]:
        full = self._full_path(path)

        def _ls_call():
            return self.fs.ls(full, detail=True)

        try:
            infos = _retry_on_timeout(_ls_call, operation=f"ls:{path}")
        except FileNotFoundError as exc:
            raise PathNotFound(path) from exc
        except Exception as exc:
            raise ConnectionFailure(path, exc) from exc

        entries: list[RemoteEntry] = []
        for info in infos:
            name = str(info["name"]).rstrip("/")
            size = info.get("size")
            entries.append(
                RemoteEntry(
                    path=self._display_path(name),
                    name=posixpath.basename(name),
                    is_dir=info.get("type") == "directory",
                    size=int(size) if size is not None else None,
                )
            )
        return entries

    def open_read(self, path: str) -> BinaryIO:
        try:
            return self.fs.open(self._full_path(path), "rb")
        except FileNotFoundError as exc:
            raise PathNotFound(path) from exc

    def open_write(self, path: str) -> BinaryIO:
        full = self._full_path(path)
        parent = posixpath.dirname(full)
        if parent:
            self.fs.makedirs(parent, exist_ok=True)
        return self.fs.open(full, "wb")

    # -- basic file operations --

    def exists(self, path: str) -> bool:
        full = self._full_path(path)
        try:
            return bool(_retry_on_timeout(lambda: self.fs.exists(full), operation=f"exists:{path}"))
        except Exception as exc:
            raise ConnectionFailure(path, exc) from exc

    def is_dir(self, path: str) -> bool:
        full = self._full_path(path)
        try:
            return bool(_retry_on_timeout(lambda: self.fs.isdir(full), operation=f"isdir:{path}"))
        except Exception as exc:
            raise ConnectionFailure(path, exc) from exc

    def size(self, path: str) -> int | None:
        try:
            value = self.fs.size(self._full_path(path))
        except FileNotFoundError as exc:
            raise PathNotFound(path) from exc
        return int(value) if value is not None else None

    def create_file(self, path: str, data: bytes | str) -> None:
        payload = data.encode("utf-8") if isinstance(data, str) else data
        with self.open_write(path) as fh:
            fh.write(payload)

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        with self.open_read(path) as fh:
            return fh.read().decode(encoding)

    def mkdir(self, path: str) -> bool:
        self.fs.makedirs(self._full_path(path), exist_ok=True)
        return True

    def delete(self, path: str, recursive: bool = False) -> bool:
        if not self.exists(path):
            return False
        try:
            self.fs.rm(self._full_path(path), recursive=recursive)
        except FileNotFoundError:
            return False
        except (OSError, ValueError) as exc:
            raise IOFailure(path, exc) from exc
        return True

    def copy_from_local(self, local_path: str | Path, remote_path: str) -> None:
        local = Path(local_path)
        if not local.exists():
            raise FileNotFoundError(f"Local path not found: {local}")
        full = self._full_path(remote_path)
        parent = posixpath.dirname(full)
        if parent:
            self.fs.makedirs(parent, exist_ok=True)
        self.fs.put(str(local), full, recursive=local.is_dir())

    def copy_to_local(self, remote_path: str, local_path: str | Path) -> None:
        if not self.exists(remote_path):
            raise PathNotFound(remote_path)
        local = Path(local_path)
        local.parent.mkdir(parents=True, exist_ok=True)
        self.fs.get(self._full_path(remote_path), str(local), recursive=self.is_dir(remote_path))
