"""
CLI for tfindex.

Builds Tinfoil index files from Google Drive folders and inspects existing
index files.
"""

import json
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

from tfindex.cli.ui import render_header, render_run_summary, setup_logging
from tfindex.core.config import TfIndexConfig, load_config
from tfindex.core.container import (
    ContainerFormatError,
    decode_header,
    decode_payload_size,
    load_private_key,
    unpack_container,
)
from tfindex.core.errors import TfIndexError
from tfindex.core.manifest.models import parse_version
from tfindex.services import create_services

# Initialize Rich Console
console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="tfindex",
    help="Generate Tinfoil index files with Google Drive file links",
    add_completion=False,
)


def _apply_cli_overrides(config: TfIndexConfig, **options) -> TfIndexConfig:
    """
    Copy CLI values onto the loaded configuration.

    ``None`` (and ``False`` for switches) leaves the configured value alone,
    so every option can also come from a config file or the environment.
    """
    targets = {
        "credentials": ("drive", "credentials_path"),
        "token": ("drive", "token_path"),
        "output_path": ("output", "path"),
        "compression": ("output", "compression"),
        "public_key": ("output", "public_key_path"),
        "add_non_nsw_files": ("scan", "add_non_nsw_files"),
        "add_nsw_files_without_title_id": ("scan", "add_nsw_files_without_title_id"),
        "share_files": ("upload", "share_files"),
        "share_index": ("upload", "share_index"),
        "upload_folder_id": ("upload", "upload_folder_id"),
        "upload_my_drive": ("upload", "upload_my_drive"),
        "directories": ("manifest", "directories"),
        "success": ("manifest", "success"),
        "referrer": ("manifest", "referrer"),
        "google_api_key": ("manifest", "google_api_key"),
        "one_fichier_keys": ("manifest", "one_fichier_keys"),
        "headers": ("manifest", "headers"),
        "min_version": ("manifest", "version"),
        "theme_blacklist": ("manifest", "theme_blacklist"),
        "theme_whitelist": ("manifest", "theme_whitelist"),
        "theme_error": ("manifest", "theme_error"),
    }

    for option, (section, key) in targets.items():
        value = options.get(option)
        if value is None or value is False or value == []:
            continue
        if isinstance(value, Path):
            value = str(value)
        elif isinstance(value, list):
            value = list(value)
        setattr(getattr(config, section), key, value)

    if options.get("no_recursion"):
        config.scan.recursive = False

    config.manifest.version = parse_version(config.manifest.version)
    return config


@app.command()
def build(
    folder_ids: list[str] = typer.Argument(..., help="Folder IDs of Google Drive folders to scan"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to a YAML or JSON config file"
    ),
    credentials: Optional[Path] = typer.Option(
        None, "--credentials", help="Path to Google Application Credentials"
    ),
    token: Optional[Path] = typer.Option(
        None, "--token", help="Path to Google OAuth2.0 User Token"
    ),
    output_path: Optional[Path] = typer.Option(
        None, "--output-path", "-o", help="Path to output index file"
    ),
    share_files: bool = typer.Option(
        False, "--share-files", help="Share all files inside the index file"
    ),
    no_recursion: bool = typer.Option(
        False,
        "--no-recursion",
        help="Scans for files only in top directory for each Folder ID entered",
    ),
    add_nsw_files_without_title_id: bool = typer.Option(
        False, "--add-nsw-files-without-title-id", help="Adds files without valid Title ID"
    ),
    add_non_nsw_files: bool = typer.Option(
        False,
        "--add-non-nsw-files",
        help="Adds files without valid NSW ROM extension (NSP/NSZ/XCI/XCZ) to index",
    ),
    directories: Optional[list[str]] = typer.Option(
        None, "--directories", help="Adds additional remote directories for Tinfoil to list"
    ),
    success: Optional[str] = typer.Option(
        None, "--success", help="Adds a success message shown when the index is read"
    ),
    referrer: Optional[str] = typer.Option(
        None, "--referrer", help="Adds a referrer to index file to prevent hotlinking"
    ),
    google_api_key: Optional[str] = typer.Option(
        None, "--google-api-key", help="Adds a Google API key used with all gdrive:/ requests"
    ),
    one_fichier_keys: Optional[list[str]] = typer.Option(
        None,
        "--one-fichier-keys",
        help="Adds 1Fichier API keys used with all 1f:/ requests (repeatable)",
    ),
    headers: Optional[list[str]] = typer.Option(
        None, "--headers", help="Adds custom HTTP headers Tinfoil should send (repeatable)"
    ),
    min_version: Optional[str] = typer.Option(
        None, "--min-version", help="Adds a minimum Tinfoil version to load the index"
    ),
    theme_blacklist: Optional[list[str]] = typer.Option(
        None, "--theme-blacklist", help="Adds theme hashes to blacklist (repeatable)"
    ),
    theme_whitelist: Optional[list[str]] = typer.Option(
        None, "--theme-whitelist", help="Adds theme hashes to whitelist (repeatable)"
    ),
    theme_error: Optional[str] = typer.Option(
        None, "--theme-error", help="Adds a custom theme error message to the index"
    ),
    public_key: Optional[Path] = typer.Option(
        None, "--public-key", help="Path to RSA public key to encrypt the AES-ECB-256 key with"
    ),
    share_index: bool = typer.Option(
        False, "--share-index", help="Shares the index file that is uploaded to Google Drive"
    ),
    upload_folder_id: Optional[str] = typer.Option(
        None, "--upload-folder-id", help="Uploads the index file to a specific folder"
    ),
    upload_my_drive: bool = typer.Option(
        False, "--upload-my-drive", help="Uploads the index file to My Drive"
    ),
    compression: Optional[str] = typer.Option(
        None, "--compression", help="Compression for the index file: zstd, zlib or off"
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Verbose mode (-v, -vv)"
    ),
):
    """Scan Drive folders and write a Tinfoil index file."""
    load_dotenv()

    try:
        config = load_config(config_path)
        setup_logging(config.logging, verbose, err_console)
        _apply_cli_overrides(
            config,
            credentials=credentials,
            token=token,
            output_path=output_path,
            share_files=share_files,
            no_recursion=no_recursion,
            add_nsw_files_without_title_id=add_nsw_files_without_title_id,
            add_non_nsw_files=add_non_nsw_files,
            directories=directories,
            success=success,
            referrer=referrer,
            google_api_key=google_api_key,
            one_fichier_keys=one_fichier_keys,
            headers=headers,
            min_version=min_version,
            theme_blacklist=theme_blacklist,
            theme_whitelist=theme_whitelist,
            theme_error=theme_error,
            public_key=public_key,
            share_index=share_index,
            upload_folder_id=upload_folder_id,
            upload_my_drive=upload_my_drive,
            compression=compression,
        )

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=err_console,
            transient=True,
        ) as progress:
            task = progress.add_task("Scanning...", total=None)

            def update_progress(current: int, total: Optional[int], message: str) -> None:
                progress.update(task, completed=current, total=total, description=message)

            services = create_services(config, progress_callback=update_progress)
            try:
                result = services.index_service.run(folder_ids)
            finally:
                services.close()

        render_run_summary(console, result)

    except TfIndexError as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def inspect(
    index_file: Path = typer.Argument(..., help="Index file to inspect"),
    private_key: Optional[Path] = typer.Option(
        None, "--private-key", help="RSA private key for encrypted index files"
    ),
    header_only: bool = typer.Option(
        False, "--header-only", help="Only print the header fields"
    ),
):
    """Decode an index file and print its header and JSON document."""
    try:
        data = index_file.read_bytes()
    except OSError as e:
        err_console.print(f"[bold red]Error:[/bold red] Cannot read {index_file}: {e}")
        raise typer.Exit(1)

    try:
        header = decode_header(data)
        render_header(console, header, decode_payload_size(data))
        if header_only:
            return

        key = load_private_key(private_key) if private_key is not None else None
        document = unpack_container(data, key)
        console.print_json(json.dumps(json.loads(document.decode("utf-8"))))
    except (ContainerFormatError, TfIndexError) as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    except ValueError as e:
        err_console.print(f"[bold red]Error:[/bold red] Corrupt index payload: {e}")
        raise typer.Exit(1)


def main() -> None:
    """Console script entry point."""
    app()
