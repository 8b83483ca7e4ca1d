from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Callable

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from remotepack.archive import archive_to_zip
from remotepack.codecs import default_registry
from remotepack.config import (
    RemoteConfig,
    load_config,
    normalize_endpoint,
    save_config,
)
from remotepack.models import WalkReport
from remotepack.remote_fs import RemoteFileSystem
from remotepack.transcode import compress_file, decompress_by_extension, decompress_to_stdout
from remotepack.transfer import download_file, upload_file


app = typer.Typer(help="remotepack CLI")
console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _resolve_config(endpoint: str | None) -> RemoteConfig:
    if not endpoint:
        return load_config()
    try:
        config = load_config()
    except FileNotFoundError:
        return RemoteConfig(endpoint=normalize_endpoint(endpoint))
    config.endpoint = normalize_endpoint(endpoint)
    return config


def _open_fs(ctx: typer.Context) -> RemoteFileSystem:
    return RemoteFileSystem.from_config(_resolve_config(ctx.obj))


def _guarded(action: str, func: Callable[[], int]) -> int:
    try:
        return func()
    except KeyboardInterrupt:
        err_console.print(f"[yellow]{action} interrupted.[/yellow] Remote state may be partial.")
        return 130
    except (FileNotFoundError, RuntimeError, ValueError) as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        return 1
    except Exception as exc:
        err_console.print(f"[red]{action} failed:[/red] {escape(str(exc))}")
        return 1


def _render_skipped(report: WalkReport) -> None:
    if not report.skipped:
        return
    table = Table(title="Skipped")
    table.add_column("Path")
    table.add_column("Reason")
    for node in report.skipped:
        table.add_row(node.path, node.reason)
    console.print(table)


@app.callback()
def main(
    ctx: typer.Context,
    endpoint: str | None = typer.Option(
        None,
        "--endpoint",
        "-e",
        help="Remote endpoint URL (overrides .remotepack.json), e.g. hdfs://namenode:8020.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress at INFO level."),
) -> None:
    """Manage files on a remote filesystem and package remote trees into archives."""
    _configure_logging(verbose)
    ctx.obj = endpoint


@app.command()
def init(
    endpoint: str,
    user: str = typer.Option("", "--user", help="Acting user for the remote filesystem."),
) -> None:
    """Write a .remotepack.json config in the current directory."""
    config = RemoteConfig(endpoint=normalize_endpoint(endpoint), user=user.strip())
    path = save_config(config, Path.cwd())
    console.print(f"[green]Initialized remotepack[/green] for {config.endpoint}")
    console.print(f"Config: {path}")
    if config.endpoint != endpoint.strip():
        console.print(f"Endpoint normalized: {endpoint} -> {config.endpoint}")


@app.command("ls")
def list_command(ctx: typer.Context, path: str = typer.Argument("/")) -> None:
    """List the immediate children of a remote directory."""

    def _run() -> int:
        entries = _open_fs(ctx).list(path)
        table = Table(title=path)
        table.add_column("Name")
        table.add_column("Type")
        table.add_column("Size", justify="right")
        for entry in entries:
            table.add_row(
                entry.name,
                "dir" if entry.is_dir else "file",
                "" if entry.size is None or entry.is_dir else str(entry.size),
            )
        console.print(table)
        return 0

    raise typer.Exit(code=_guarded("List", _run))


@app.command()
def mkdir(ctx: typer.Context, path: str) -> None:
    """Create a remote directory (and missing parents)."""

    def _run() -> int:
        _open_fs(ctx).mkdir(path)
        console.print(f"[green]Created[/green] {path}")
        return 0

    raise typer.Exit(code=_guarded("Mkdir", _run))


@app.command()
def rm(
    ctx: typer.Context,
    path: str,
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Delete directories recursively."),
) -> None:
    """Delete a remote file or directory."""

    def _run() -> int:
        if _open_fs(ctx).delete(path, recursive=recursive):
            console.print(f"[yellow]Deleted[/yellow] {path}")
            return 0
        console.print(f"Nothing to delete at {path}")
        return 1

    raise typer.Exit(code=_guarded("Delete", _run))


@app.command()
def cat(
    ctx: typer.Context,
    path: str,
    encoding: str = typer.Option("utf-8", "--encoding", help="Text encoding of the remote file."),
) -> None:
    """Print a remote text file."""

    def _run() -> int:
        typer.echo(_open_fs(ctx).read_text(path, encoding=encoding), nl=False)
        return 0

    raise typer.Exit(code=_guarded("Read", _run))


@app.command()
def exists(ctx: typer.Context, path: str) -> None:
    """Exit 0 if the remote path exists, 1 otherwise."""

    def _run() -> int:
        found = _open_fs(ctx).exists(path)
        console.print(Text(f"{path}: {'exists' if found else 'missing'}", style="green" if found else "yellow"))
        return 0 if found else 1

    raise typer.Exit(code=_guarded("Exists", _run))


@app.command()
def put(ctx: typer.Context, local_path: Path, remote_path: str) -> None:
    """Upload a local file or directory to the remote filesystem."""

    def _run() -> int:
        fs = _open_fs(ctx)
        if local_path.is_file():
            count = upload_file(fs, local_path, remote_path, console=console)
            console.print(f"[green]Uploaded[/green] {local_path} -> {remote_path} ({count} bytes)")
        else:
            fs.copy_from_local(local_path, remote_path)
            console.print(f"[green]Uploaded[/green] {local_path} -> {remote_path}")
        return 0

    raise typer.Exit(code=_guarded("Upload", _run))


@app.command()
def get(ctx: typer.Context, remote_path: str, local_path: Path) -> None:
    """Download a remote file or directory to local storage."""

    def _run() -> int:
        fs = _open_fs(ctx)
        if fs.is_dir(remote_path):
            fs.copy_to_local(remote_path, local_path)
            console.print(f"[green]Downloaded[/green] {remote_path} -> {local_path}")
        else:
            count = download_file(fs, remote_path, local_path, console=console)
            console.print(f"[green]Downloaded[/green] {remote_path} -> {local_path} ({count} bytes)")
        return 0

    raise typer.Exit(code=_guarded("Download", _run))


@app.command()
def compress(ctx: typer.Context, codec: str, source_path: str, dest_path: str) -> None:
    """Compress a remote file into another remote file with CODEC."""

    def _run() -> int:
        count = compress_file(_open_fs(ctx), codec, source_path, dest_path)
        console.print(f"[green]Compressed[/green] {source_path} -> {dest_path} ({count} bytes in)")
        return 0

    raise typer.Exit(code=_guarded("Compress", _run))


@app.command()
def decompress(ctx: typer.Context, codec: str, source_path: str) -> None:
    """Decompress a remote file with CODEC and write the bytes to stdout."""

    def _run() -> int:
        decompress_to_stdout(_open_fs(ctx), codec, source_path)
        return 0

    raise typer.Exit(code=_guarded("Decompress", _run))


@app.command()
def unpack(ctx: typer.Context, path: str) -> None:
    """Decompress a remote file next to itself, choosing the codec by extension."""

    def _run() -> int:
        output_path = decompress_by_extension(_open_fs(ctx), path)
        console.print(f"[green]Decompressed[/green] {path} -> {output_path}")
        return 0

    raise typer.Exit(code=_guarded("Unpack", _run))


@app.command()
def archive(
    ctx: typer.Context,
    root_path: str,
    output: Path,
    store: bool = typer.Option(False, "--store", help="Store entries without zip compression."),
    fail_fast: bool = typer.Option(
        False,
        "--fail-fast",
        help="Abort on the first unreadable file instead of skipping it.",
    ),
) -> None:
    """Package a remote directory tree into a local zip file."""

    def _run() -> int:
        fs = _open_fs(ctx)
        output.parent.mkdir(parents=True, exist_ok=True)
        console.print(f"Archiving [bold]{root_path}[/bold] into [bold]{output}[/bold] ...")
        report = archive_to_zip(
            fs,
            root_path,
            output,
            compression=zipfile.ZIP_STORED if store else zipfile.ZIP_DEFLATED,
            on_error="raise" if fail_fast else "skip",
        )
        console.print(
            f"Directories: {report.archived_dirs} | Files: {report.archived_files} "
            f"| Bytes: {report.archived_bytes}"
        )
        _render_skipped(report)
        if report.partial:
            console.print(
                f"[yellow]Partial archive:[/yellow] {len(report.skipped)} node(s) skipped, "
                f"see log for causes."
            )
        else:
            console.print("[green]Archive complete.[/green]")
        return 0

    raise typer.Exit(code=_guarded("Archive", _run))


@app.command("codecs")
def codecs_command() -> None:
    """List registered compression codecs."""
    table = Table(title="Codecs")
    table.add_column("Name")
    table.add_column("Extension")
    table.add_column("Aliases")
    for codec in default_registry().codecs():
        table.add_row(codec.name, codec.extension, ", ".join(codec.aliases))
    console.print(table)

