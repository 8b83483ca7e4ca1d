from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse


CONFIG_FILENAME = ".remotepack.json"


@dataclass(slots=True)
class RemoteConfig:
    endpoint: str
    user: str = ""
    token: str = ""
    storage_options: dict[str, Any] = field(default_factory=dict)

    @property
    def protocol(self) -> str:
        scheme = urlparse(self.endpoint).scheme
        return scheme or "file"


def config_path(base_dir: Path | None = None) -> Path:
    return (base_dir or Path.cwd()).resolve() / CONFIG_FILENAME


def load_config(base_dir: Path | None = None) -> RemoteConfig:
    path = config_path(base_dir)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}. Run `rpk init <endpoint>` first."
        )

    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)

    return RemoteConfig(
        endpoint=normalize_endpoint(data["endpoint"]),
        user=data.get("user", ""),
        token=data.get("token", ""),
        storage_options=dict(data.get("storage_options") or {}),
    )


def save_config(config: RemoteConfig, base_dir: Path | None = None) -> Path:
    path = config_path(base_dir)
    payload = asdict(config)
    payload["endpoint"] = normalize_endpoint(str(payload["endpoint"]))
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2)
        fh.write("\n")
    return path


def normalize_endpoint(endpoint: str) -> str:
    value = (endpoint or "").strip()
    if not value:
        return value

    if "://" not in value:
        # Bare paths address the local filesystem.
        return f"file://{Path(value).expanduser().resolve().as_posix()}"

    parsed = urlparse(value)
    if parsed.path in {"", "/"}:
        return f"{parsed.scheme}://{parsed.netloc}"
    return value.rstrip("/")
