"""podupload CLI - Main commands."""
import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.table import Table

app = typer.Typer(
    name="podupload",
    help="Resilient uploads to a podcast storage boundary",
    add_completion=False
)
console = Console()

MB = 1024 * 1024


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


def build_config(base_url: str, token: Optional[str], insecure: bool, retries: int):
    from podupload import APIConfig, RetryConfig, SSLConfig

    ssl = SSLConfig(verify=False, check_hostname=False) if insecure else SSLConfig()
    return APIConfig(
        base_url=base_url,
        auth_token=token,
        ssl=ssl,
        retry=RetryConfig(max_attempts=retries)
    )


@app.command()
def upload(
    file_path: Path = typer.Argument(..., help="Local file to upload", exists=True, dir_okay=False),
    dest: str = typer.Option("uploads", "--dest", "-d", help="Destination folder"),
    identity: str = typer.Option(None, "--identity", "-i", help="Caller identity used to namespace the folder"),
    base_url: str = typer.Option(
        "http://localhost:3000/api", "--base-url", envvar="PODUPLOAD_BASE_URL", help="Boundary base URL"
    ),
    token: str = typer.Option(None, "--token", envvar="PODUPLOAD_TOKEN", help="Bearer token"),
    chunk_mb: int = typer.Option(5, "--chunk-mb", envvar="PODUPLOAD_CHUNK_MB", help="Chunk size in MB"),
    threshold_mb: int = typer.Option(
        50, "--threshold-mb", envvar="PODUPLOAD_THRESHOLD_MB", help="Files from this size on are chunked"
    ),
    parallel: int = typer.Option(4, "--parallel", "-p", envvar="PODUPLOAD_PARALLEL", help="Concurrent chunk uploads"),
    retries: int = typer.Option(3, "--retries", envvar="PODUPLOAD_RETRIES", help="Attempts per request"),
    signed: bool = typer.Option(False, "--signed", help="Send small files through a signed storage target"),
    insecure: bool = typer.Option(False, "--insecure", help="Skip TLS verification"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """Upload a file and print its resource URL."""
    from podupload import UploadClient, UploadConfig, UploadError, describe_error, setup_logging

    setup_logging(logging.DEBUG if verbose else logging.WARNING)
    config = build_config(base_url, token, insecure, retries)
    upload_config = UploadConfig(
        chunk_size=chunk_mb * MB,
        large_file_threshold=threshold_mb * MB,
        max_concurrent_chunks=parallel
    )

    async def do_upload():
        async with UploadClient(config, upload_config, signed_uploads=signed) as client:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console
            ) as progress:
                task = progress.add_task(f"Uploading {file_path.name}", total=100)

                def on_progress(percent: int):
                    progress.update(task, completed=percent)

                try:
                    url = await client.upload(file_path, dest, on_progress=on_progress, identity=identity)
                except UploadError as e:
                    console.print(f"[red]Upload failed: {describe_error(e)}[/red]")
                    raise typer.Exit(1)

            console.print(f"[green]Uploaded:[/green] {file_path.name}")
            console.print(f"URL: {url}")

    run_async(do_upload())


@app.command()
def probe(
    base_url: str = typer.Option(
        "http://localhost:3000/api", "--base-url", envvar="PODUPLOAD_BASE_URL", help="Boundary base URL"
    ),
    insecure: bool = typer.Option(False, "--insecure", help="Skip TLS verification"),
):
    """Check whether the storage boundary is reachable."""
    from podupload import UploadClient

    async def do_probe():
        async with UploadClient(build_config(base_url, None, insecure, 1)) as client:
            online = await client.is_online()
        if online:
            console.print(f"[green]Online[/green] ({base_url})")
        else:
            console.print(f"[red]Offline[/red] ({base_url})")
            raise typer.Exit(1)

    run_async(do_probe())


@app.command()
def fingerprint(
    files: List[Path] = typer.Argument(..., help="Files to fingerprint", exists=True, dir_okay=False),
):
    """Show the de-duplication key and chosen upload method of files."""
    from podupload import UploadConfig, UploadSource
    from podupload.core.upload.strategies import source_fingerprint

    config = UploadConfig()
    table = Table()
    table.add_column("File")
    table.add_column("Size", justify="right")
    table.add_column("Method", style="cyan")
    table.add_column("Fingerprint", style="dim")

    for path in files:
        source = UploadSource.from_path(path)
        table.add_row(
            path.name,
            f"{source.size:,}",
            config.choose_method(source).value,
            source_fingerprint(source)
        )

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
