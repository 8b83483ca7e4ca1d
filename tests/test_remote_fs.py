"""RemoteFileSystem capability wrapper over fsspec."""

from __future__ import annotations

from pathlib import Path

import pytest

from remotepack import remote_fs as remote_fs_module
from remotepack.config import RemoteConfig
from remotepack.errors import ConnectionFailure, IOFailure, PathNotFound
from remotepack.remote_fs import RemoteFileSystem, _storage_options


def test_list_reports_children(remote_fs, make_tree) -> None:
    make_tree({"data/a.xlsx": b"0123456789", "data/nested/b.txt": b"b"})

    entries = {entry.name: entry for entry in remote_fs.list("/data")}

    assert set(entries) == {"a.xlsx", "nested"}
    assert entries["a.xlsx"].path == "/data/a.xlsx"
    assert entries["a.xlsx"].size == 10
    assert not entries["a.xlsx"].is_dir
    assert entries["nested"].is_dir
    assert entries["nested"].path == "/data/nested"


def test_list_missing_path(remote_fs) -> None:
    with pytest.raises(PathNotFound) as excinfo:
        remote_fs.list("/nope")

    assert excinfo.value.path == "/nope"


def test_list_backend_failure_is_connection_failure(remote_fs, monkeypatch) -> None:
    def _boom(path, detail=True):
        raise RuntimeError("namenode unreachable")

    monkeypatch.setattr(remote_fs.fs, "ls", _boom)

    with pytest.raises(ConnectionFailure, match="namenode unreachable"):
        remote_fs.list("/data")


def test_list_retries_timeouts(remote_fs, make_tree, monkeypatch) -> None:
    make_tree({"data/a.txt": b"a"})
    original_ls = remote_fs.fs.ls
    calls = {"count": 0}

    def _flaky_ls(path, detail=True):
        calls["count"] += 1
        if calls["count"] < 3:
            raise TimeoutError("read timed out")
        return original_ls(path, detail=detail)

    monkeypatch.setattr(remote_fs.fs, "ls", _flaky_ls)
    monkeypatch.setattr(remote_fs_module.time, "sleep", lambda seconds: None)

    assert [entry.name for entry in remote_fs.list("/data")] == ["a.txt"]
    assert calls["count"] == 3


def test_create_read_and_exists(remote_fs, remote_root: Path) -> None:
    remote_fs.create_file("/notes/hello.txt", "héllo")

    assert (remote_root / "notes" / "hello.txt").read_bytes() == "héllo".encode("utf-8")
    assert remote_fs.read_text("/notes/hello.txt") == "héllo"
    assert remote_fs.exists("/notes/hello.txt")
    assert remote_fs.is_dir("/notes")
    assert not remote_fs.exists("/notes/other.txt")
    assert remote_fs.size("/notes/hello.txt") == len("héllo".encode("utf-8"))


def test_open_read_missing(remote_fs) -> None:
    with pytest.raises(PathNotFound):
        remote_fs.open_read("/missing.bin")


def test_mkdir_and_delete(remote_fs, remote_root: Path) -> None:
    assert remote_fs.mkdir("/a/b/c")
    remote_fs.create_file("/a/b/c/f.txt", b"f")

    with pytest.raises(IOFailure):
        remote_fs.delete("/a", recursive=False)

    assert remote_fs.delete("/a/b/c/f.txt")
    assert remote_fs.delete("/a", recursive=True)
    assert not (remote_root / "a").exists()
    assert remote_fs.delete("/a") is False


def test_copy_between_local_and_remote(remote_fs, remote_root: Path, tmp_path: Path) -> None:
    local = tmp_path / "local.bin"
    local.write_bytes(b"payload")

    remote_fs.copy_from_local(local, "/up/local.bin")
    assert (remote_root / "up" / "local.bin").read_bytes() == b"payload"

    back = tmp_path / "down" / "copy.bin"
    remote_fs.copy_to_local("/up/local.bin", back)
    assert back.read_bytes() == b"payload"


def test_copy_to_local_missing(remote_fs, tmp_path: Path) -> None:
    with pytest.raises(PathNotFound):
        remote_fs.copy_to_local("/missing", tmp_path / "x")


def test_copy_from_local_missing(remote_fs, tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        remote_fs.copy_from_local(tmp_path / "absent.txt", "/absent.txt")


def test_from_config_uses_endpoint_path_as_root(remote_root: Path, make_tree) -> None:
    make_tree({"data/a.txt": b"a"})
    fs = RemoteFileSystem.from_config(RemoteConfig(endpoint=f"file://{remote_root.as_posix()}"))

    assert fs.root == remote_root.as_posix()
    assert [entry.path for entry in fs.list("/data")] == ["/data/a.txt"]


def test_from_config_requires_endpoint() -> None:
    with pytest.raises(ValueError):
        RemoteFileSystem.from_config(RemoteConfig(endpoint=""))


def test_storage_options_for_hdfs_user(monkeypatch) -> None:
    monkeypatch.setenv("HADOOP_USER_NAME", "etl")

    assert _storage_options(RemoteConfig(endpoint="hdfs://namenode:8020"))["user"] == "etl"
    assert (
        _storage_options(RemoteConfig(endpoint="hdfs://namenode:8020", user="ops"))["user"] == "ops"
    )


def test_storage_options_keep_explicit_values(monkeypatch) -> None:
    monkeypatch.setenv("HF_TOKEN", "env-token")
    config = RemoteConfig(endpoint="hf://datasets/org/repo", storage_options={"token": "explicit"})

    assert _storage_options(config)["token"] == "explicit"
    assert _storage_options(RemoteConfig(endpoint="hf://datasets/org/repo"))["token"] == "env-token"


def test_storage_options_untouched_for_other_protocols() -> None:
    assert _storage_options(RemoteConfig(endpoint="memory://", user="ops")) == {}
