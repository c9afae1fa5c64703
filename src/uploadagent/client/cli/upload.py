"""Upload command for the UploadAgent CLI.

Commands:
- upload: Upload a file through a presigned multipart upload
"""

from __future__ import annotations

import sys
import threading
from pathlib import Path

import click

from uploadagent.client.cli.config import load_config
from uploadagent.core.chunking import CHUNK_SIZE

MB = 1024 * 1024

# Exit status when the user cancelled (same as a shell interrupted by SIGINT)
EXIT_CANCELLED = 130


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--backend-url", help="Backend base URL (defaults to the configured one).")
@click.option("--token", help="Bearer token for the backend.")
@click.option("--name", "file_name", help="File name sent to the backend.")
@click.option("--content-type", help="MIME type (guessed from the file name by default).")
@click.option(
    "--chunk-size",
    type=click.IntRange(min=1),
    default=CHUNK_SIZE // MB,
    show_default=True,
    help="Part size in MB.",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Parts uploaded concurrently.",
)
@click.option(
    "--max-retries",
    type=click.IntRange(min=0),
    default=2,
    show_default=True,
    help="Extra attempts per part.",
)
@click.option(
    "--poll-delay",
    type=click.FloatRange(min=0),
    default=3.0,
    show_default=True,
    help="Seconds before the first status check.",
)
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0),
    default=5.0,
    show_default=True,
    help="Seconds between status checks.",
)
def upload(
    path: Path,
    backend_url: str | None,
    token: str | None,
    file_name: str | None,
    content_type: str | None,
    chunk_size: int,
    workers: int,
    max_retries: int,
    poll_delay: float,
    poll_interval: float,
) -> None:
    """Upload a file and wait until the backend has processed it.

    Press Ctrl-C to cancel: parts already being uploaded finish first.
    """
    from uploadagent.client.api import HTTPClient
    from uploadagent.client.upload import (
        CancellationToken,
        UploadCoordinator,
        UploadProgress,
        UploadResult,
    )
    from uploadagent.core.config import BackendConfig, UploadConfig

    config = load_config()
    backend_url = backend_url or config.get("backend_url")
    if not backend_url:
        click.echo(
            "Error: No backend configured. Use --backend-url or 'uploadagent configure'.",
            err=True,
        )
        sys.exit(1)

    backend_config = BackendConfig(backend_url=backend_url, token=token or config.get("token"))
    upload_config = UploadConfig(
        chunk_size=chunk_size * MB,
        max_retries=max_retries,
        max_workers=workers,
        poll_initial_delay=poll_delay,
        poll_interval=poll_interval,
    )

    last_message = [""]  # Use list to allow mutation in closure

    def on_progress(progress: UploadProgress) -> None:
        if progress.message != last_message[0]:
            last_message[0] = progress.message
            click.echo(f"[{progress.percent:5.1f}%] {progress.message}")

    cancellation = CancellationToken()
    outcome: dict[str, UploadResult | Exception] = {}

    with HTTPClient(backend_config) as backend, UploadCoordinator(
        backend, config=upload_config, progress_callback=on_progress
    ) as coordinator:

        def run() -> None:
            try:
                outcome["result"] = coordinator.run(
                    path,
                    file_name=file_name,
                    content_type=content_type,
                    cancellation=cancellation,
                )
            except Exception as e:
                outcome["error"] = e

        thread = threading.Thread(target=run, name="UploadSession", daemon=True)
        thread.start()
        try:
            while thread.is_alive():
                thread.join(0.2)
        except KeyboardInterrupt:
            click.echo("Cancelling upload, waiting for in-flight parts...", err=True)
            cancellation.signal()
            thread.join()

        coordinator.join_cancel_notification(timeout=backend_config.timeout)

    if "error" in outcome:
        click.echo(f"Error: {outcome['error']}", err=True)
        sys.exit(1)

    result = outcome["result"]
    assert isinstance(result, UploadResult)
    if result.cancelled:
        click.echo(
            f"Upload cancelled ({len(result.parts)}/{result.total_parts} parts uploaded)",
            err=True,
        )
        sys.exit(EXIT_CANCELLED)

    click.echo(f"Uploaded {path.name}: object {result.object_id} ({result.total_parts} parts)")
