from __future__ import annotations


class RemotePackError(RuntimeError):
    """Base class for failures surfaced to remotepack callers."""


class PathNotFound(RemotePackError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Remote path not found: {path}")
        self.path = path


class ConnectionFailure(RemotePackError):
    def __init__(self, path: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Remote filesystem unavailable for {path}{detail}")
        self.path = path
        self.cause = cause


class CodecNotFound(RemotePackError):
    def __init__(self, identifier: str) -> None:
        super().__init__(f"Unknown compression codec: {identifier}")
        self.identifier = identifier


class NoCodecForExtension(RemotePackError):
    def __init__(self, path: str) -> None:
        super().__init__(f"No codec found for {path}")
        self.path = path


class IOFailure(RemotePackError):
    def __init__(
        self,
        path: str,
        cause: BaseException | None = None,
        *,
        codec: str | None = None,
    ) -> None:
        parts = [f"I/O failure on {path}"]
        if codec:
            parts.append(f"(codec {codec})")
        message = " ".join(parts)
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.path = path
        self.cause = cause
        self.codec = codec
