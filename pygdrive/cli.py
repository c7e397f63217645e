"""CLI interface for pushing files and directories to Google Drive."""

import logging
from pathlib import Path
from typing import Any, Optional

import click
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TimeElapsedColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from .api import DriveClient
from .config import config
from .exceptions import (
    GDriveError,
    IncompleteTransferError,
    IsDirectoryError,
    NotAFolderError,
    PathNotFoundError,
)
from .models import DriveEntry
from .output import OutputFormatter
from .overwrite_guard import OverwriteGuard
from .paths import PathResolver, parse_path, split_parent
from .transfer import TransferConfig, TransferEngine
from .tree import LocalTree
from .utils import (
    DEFAULT_CHUNK_SIZE,
    MIB,
    chunk_size_from_mb,
    parse_iso_timestamp,
)

logger = logging.getLogger(__name__)


def _chunk_size_option(ctx: Any, param: Any, value: Optional[int]) -> int:
    """Convert the --chunk-size value (MiB) to bytes."""
    if value is None:
        return DEFAULT_CHUNK_SIZE
    try:
        return chunk_size_from_mb(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def _join_remote(folder_path: str, name: str) -> str:
    return "/" + "/".join(parse_path(folder_path) + [name])


def _get_client(ctx: Any) -> DriveClient:
    return DriveClient(access_token=ctx.obj["token"], api_url=ctx.obj["api_url"])


@click.group()
@click.option(
    "--token", "-t", envvar="GDRIVE_ACCESS_TOKEN", help="Google Drive access token"
)
@click.option("--api-url", envvar="GDRIVE_API_URL", help="Drive API base URL")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pygdrive")
@click.pass_context
def main(
    ctx: Any,
    token: Optional[str],
    api_url: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """PyGDrive - Push files and directories to Google Drive."""
    ctx.ensure_object(dict)
    ctx.obj["token"] = token
    ctx.obj["api_url"] = api_url
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pygdrive").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


def _format_timestamp(value: Optional[str]) -> str:
    dt = parse_iso_timestamp(value)
    return dt.strftime("%Y-%m-%d %H:%M:%S") if dt else ""


def _entry_summary(entry: DriveEntry) -> list[tuple[str, str]]:
    return [
        ("ID", entry.id),
        ("Name", entry.name),
        ("MIME type", entry.mime_type or ""),
        ("Size", entry.display_size),
        ("Parents", ", ".join(entry.parents)),
        ("Created", _format_timestamp(entry.created_time)),
        ("Modified", _format_timestamp(entry.modified_time)),
        ("Link", entry.web_view_link or ""),
    ]


def _make_progress() -> Progress:
    return Progress(
        "[progress.description]{task.description}",
        BarColumn(),
        "[progress.percentage]{task.percentage:>3.0f}%",
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
        refresh_per_second=10,
    )


def _push_single_file(
    engine: TransferEngine,
    out: OutputFormatter,
    local_path: Path,
    parent_id: str,
    remote_name: str,
    print_only_id: bool,
) -> None:
    """Upload one file and print its id or a metadata summary."""
    if out.quiet or out.json_output or print_only_id:
        entry = engine.upload_single(local_path, parent_id, name=remote_name)
    else:
        progress_display = _make_progress()
        progress_display.start()
        try:
            task_id = progress_display.add_task(f"[cyan]{remote_name}", total=None)

            def progress_callback(bytes_uploaded: int, total_bytes: int) -> None:
                progress_display.update(
                    task_id, completed=bytes_uploaded, total=total_bytes
                )

            entry = engine.upload_single(
                local_path,
                parent_id,
                name=remote_name,
                progress_callback=progress_callback,
            )
        finally:
            progress_display.stop()

    if print_only_id:
        out.print(entry.id)
    elif out.json_output:
        out.output_json(entry.to_dict())
    else:
        out.print_summary("Upload Complete", _entry_summary(entry))


def _push_tree(
    engine: TransferEngine,
    out: OutputFormatter,
    tree: LocalTree,
    destination_id: str,
) -> None:
    """Upload a scanned tree and print the totals."""
    info = tree.info()
    report = engine.upload_tree(tree, destination_id)

    if out.json_output:
        out.output_json(
            {
                "destination_id": destination_id,
                "uploaded": len(report.uploaded),
                "failed": len(report.failed),
                "folders_created": report.folders_created,
                "total_size": report.uploaded_size,
                "files": [
                    {
                        "path": o.relative_path,
                        "id": o.entry.id if o.entry else None,
                        "error": str(o.error) if o.error else None,
                    }
                    for o in report.outcomes
                ],
            }
        )
    else:
        out.success(
            f"Uploaded {len(report.uploaded)} files in {info.folder_count} "
            f"directories with a total size of {out.format_size(report.uploaded_size)}"
        )

    if report.failed:
        raise IncompleteTransferError(len(report.failed))


def _run_push(
    ctx: Any,
    local_path: Path,
    folder_path: str,
    remote_name: str,
    recursive: bool,
    guard_enabled: bool,
    overwrite: bool,
    transfer_config: TransferConfig,
    print_only_id: bool,
) -> None:
    """Resolve the destination, optionally run the overwrite guard, upload.

    Args:
        ctx: Click context
        local_path: Local file or directory
        folder_path: Remote folder receiving the pushed entry
        remote_name: Remote name of the pushed file or directory
        recursive: Whether directories may be pushed
        guard_enabled: Whether to run the overwrite guard
        overwrite: Skip the overwrite guard's prompt
        transfer_config: Upload settings
        print_only_id: Print only the id of a pushed file
    """
    out: OutputFormatter = ctx.obj["out"]
    is_directory = local_path.is_dir()
    if is_directory and not recursive:
        raise IsDirectoryError(local_path)

    tree: Optional[LocalTree] = None
    if is_directory:
        tree = LocalTree.from_path(local_path)
        info = tree.info()
        out.info(
            f"Found {info.file_count} files in {info.folder_count} directories "
            f"with a total size of {out.format_size(info.total_file_size)}"
        )
        # The directory itself becomes a folder below folder_path
        target_path = _join_remote(folder_path, remote_name)
        local_names = [name for name, _ in tree.top_level_entries()]
    else:
        target_path = folder_path
        local_names = [remote_name]

    client = _get_client(ctx)
    with client:
        resolver = PathResolver(client)

        destination: Optional[DriveEntry] = None
        if guard_enabled and not overwrite:
            try:
                destination = resolver.resolve(target_path)
            except PathNotFoundError:
                logger.debug("Destination %s does not exist yet", target_path)

            if destination is not None:
                if not destination.is_folder:
                    raise NotAFolderError(target_path)
                guard = OverwriteGuard(client, out, overwrite=overwrite)
                if not guard.check_and_confirm(destination.id, local_names):
                    out.print("Upload cancelled.")
                    return

        if destination is None:
            destination = resolver.resolve_or_create(target_path)
        if not destination.is_folder:
            raise NotAFolderError(target_path)

        engine = TransferEngine(client, out, transfer_config)
        if tree is not None:
            _push_tree(engine, out, tree, destination.id)
        else:
            _push_single_file(
                engine, out, local_path, destination.id, remote_name, print_only_id
            )


def _transfer_options(func: Any) -> Any:
    """Options shared by push and upload."""
    options = [
        click.option(
            "--recursive", "-r", is_flag=True, help="Upload directories recursively"
        ),
        click.option("--mime", help="MIME type for every uploaded file"),
        click.option(
            "--chunk-size",
            "-c",
            type=int,
            default=None,
            callback=_chunk_size_option,
            help=(
                "Chunk size in MB for resumable uploads, a power of two "
                f"from 1 to 8192 (default: {DEFAULT_CHUNK_SIZE // MIB}MB)"
            ),
        ),
        click.option(
            "--print-chunk-errors",
            is_flag=True,
            help="Print transient chunk upload errors",
        ),
        click.option(
            "--print-chunk-info", is_flag=True, help="Print every uploaded chunk"
        ),
        click.option(
            "--print-only-id",
            is_flag=True,
            help="Only print the id of the uploaded file",
        ),
        click.option(
            "--continue-on-error",
            is_flag=True,
            help="Keep uploading the remaining files after a failure",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@main.command()
@click.argument("local_path", type=click.Path(exists=True, path_type=Path))
@click.argument("remote_path", type=str)
@_transfer_options
@click.option(
    "--overwrite",
    "-y",
    is_flag=True,
    help="Do not ask before pushing over existing entries",
)
@click.pass_context
def push(
    ctx: Any,
    local_path: Path,
    remote_path: str,
    recursive: bool,
    mime: Optional[str],
    chunk_size: int,
    print_chunk_errors: bool,
    print_chunk_info: bool,
    print_only_id: bool,
    continue_on_error: bool,
    overwrite: bool,
) -> None:
    """Push a local file or directory to a remote path.

    A REMOTE_PATH ending in "/" names a folder: a file keeps its local name
    and a directory is mirrored into REMOTE_PATH/<directory name>.
    Otherwise the last segment of REMOTE_PATH is the remote name.

    Examples:
        pygdrive push report.pdf /docs/              # /docs/report.pdf
        pygdrive push report.pdf /docs/final.pdf     # renamed on upload
        pygdrive push -r photos /backup/             # /backup/photos/...
    """
    out: OutputFormatter = ctx.obj["out"]
    transfer_config = TransferConfig(
        chunk_size=chunk_size,
        mime_type=mime,
        continue_on_error=continue_on_error,
        print_chunk_info=print_chunk_info,
        print_chunk_errors=print_chunk_errors,
    )

    try:
        if remote_path.endswith("/") or not parse_path(remote_path):
            folder_path = remote_path
            remote_name = local_path.resolve().name
        else:
            folder_path, remote_name = split_parent(remote_path)

        _run_push(
            ctx,
            local_path,
            folder_path,
            remote_name,
            recursive=recursive,
            guard_enabled=True,
            overwrite=overwrite,
            transfer_config=transfer_config,
            print_only_id=print_only_id,
        )
    except KeyboardInterrupt:
        out.warning("\nUpload cancelled by user")
        ctx.exit(130)
    except GDriveError as e:
        out.error(str(e))
        ctx.exit(1)


@main.command()
@click.argument("local_path", type=click.Path(exists=True, path_type=Path))
@click.argument("remote_dir", type=str, required=False, default="/")
@_transfer_options
@click.pass_context
def upload(
    ctx: Any,
    local_path: Path,
    remote_dir: str,
    recursive: bool,
    mime: Optional[str],
    chunk_size: int,
    print_chunk_errors: bool,
    print_chunk_info: bool,
    print_only_id: bool,
    continue_on_error: bool,
) -> None:
    """Upload a local file or directory into a remote folder.

    REMOTE_DIR is created when missing (default: My Drive). Existing
    entries are never checked, so uploading twice creates duplicates.

    Examples:
        pygdrive upload notes.txt                    # My Drive/notes.txt
        pygdrive upload -r photos /backup            # /backup/photos/...
    """
    out: OutputFormatter = ctx.obj["out"]
    transfer_config = TransferConfig(
        chunk_size=chunk_size,
        mime_type=mime,
        continue_on_error=continue_on_error,
        print_chunk_info=print_chunk_info,
        print_chunk_errors=print_chunk_errors,
    )

    try:
        _run_push(
            ctx,
            local_path,
            remote_dir,
            local_path.resolve().name,
            recursive=recursive,
            guard_enabled=False,
            overwrite=True,
            transfer_config=transfer_config,
            print_only_id=print_only_id,
        )
    except KeyboardInterrupt:
        out.warning("\nUpload cancelled by user")
        ctx.exit(130)
    except GDriveError as e:
        out.error(str(e))
        ctx.exit(1)


@main.command()
@click.argument("remote_path", type=str, default="/")
@click.option(
    "--create", is_flag=True, help="Create missing folders along the path"
)
@click.option("--id-only", is_flag=True, help="Only print the ids of the matches")
@click.pass_context
def resolve(ctx: Any, remote_path: str, create: bool, id_only: bool) -> None:
    """Resolve a remote path and show the matching entries.

    The last segment may contain the wildcards "*" and "?".

    Examples:
        pygdrive resolve /backup/photos
        pygdrive resolve "/backup/photos/*.jpg"
        pygdrive resolve --create /backup/2024/march
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        with _get_client(ctx) as client:
            resolver = PathResolver(client)
            if create:
                entries = [resolver.resolve_or_create(remote_path)]
            else:
                entries = resolver.resolve_wildcard(remote_path)
    except GDriveError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if id_only:
        for entry in entries:
            out.print(entry.id)
        return

    out.output_table(
        [
            {
                "id": entry.id,
                "name": entry.name,
                "type": entry.kind.value,
                "size": entry.display_size,
            }
            for entry in entries
        ],
        ["id", "name", "type", "size"],
        {"id": "ID", "name": "Name", "type": "Type", "size": "Size"},
    )


@main.group(name="config")
def config_group() -> None:
    """Show or change the stored configuration."""


@config_group.command(name="show")
@click.pass_context
def config_show(ctx: Any) -> None:
    """Show the config file location and whether a token is set."""
    out: OutputFormatter = ctx.obj["out"]
    config_path = config.get_config_path()

    if out.json_output:
        out.output_json(
            {
                "config_file": str(config_path),
                "config_file_exists": config_path.exists(),
                "token_configured": config.is_configured(),
                "api_url": config.api_url,
                "upload_url": config.upload_url,
            }
        )
        return

    out.print_summary(
        "Configuration",
        [
            ("Config file", str(config_path)),
            ("Token configured", "yes" if config.is_configured() else "no"),
            ("API URL", config.api_url),
            ("Upload URL", config.upload_url),
        ],
    )


@config_group.command(name="set-token")
@click.option(
    "--token",
    "-t",
    prompt="Enter your Google Drive access token",
    hide_input=True,
    help="Google Drive access token",
)
@click.pass_context
def config_set_token(ctx: Any, token: str) -> None:
    """Store an access token in the config file."""
    out: OutputFormatter = ctx.obj["out"]
    try:
        config.save_access_token(token.strip())
    except OSError as e:
        out.error(f"Failed to write {config.get_config_path()}: {e}")
        ctx.exit(1)
        return
    out.success(f"Access token saved to {config.get_config_path()}")


if __name__ == "__main__":
    main()
