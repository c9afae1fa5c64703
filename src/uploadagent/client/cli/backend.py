"""Backend commands for the UploadAgent CLI.

Commands:
- configure: Save the backend URL and token
- status: Show the processing status of an uploaded object
- cancel: Cancel a multipart upload on the backend
"""

from __future__ import annotations

import sys

import click

from uploadagent.client.cli.config import get_config_file, load_config, save_config
from uploadagent.core.config import BackendConfig


def _backend_config(backend_url: str | None) -> BackendConfig:
    """Build a BackendConfig from options and the config file, or exit."""
    config = load_config()
    backend_url = backend_url or config.get("backend_url")
    if not backend_url:
        click.echo(
            "Error: No backend configured. Use --backend-url or 'uploadagent configure'.",
            err=True,
        )
        sys.exit(1)
    return BackendConfig(backend_url=backend_url, token=config.get("token"))


@click.command()
@click.option("--backend-url", help="Backend base URL.")
@click.option("--token", help="Bearer token for the backend.")
def configure(backend_url: str | None, token: str | None) -> None:
    """Save backend settings used by the other commands."""
    config = load_config()
    if backend_url:
        config["backend_url"] = backend_url.rstrip("/")
    if token:
        config["token"] = token
    if not backend_url and not token:
        for key, value in config.items():
            shown = "********" if key == "token" else value
            click.echo(f"{key}: {shown}")
        return
    save_config(config)
    click.echo(f"Configuration saved to {get_config_file()}")


@click.command()
@click.argument("object_id")
@click.option("--backend-url", help="Backend base URL.")
def status(object_id: str, backend_url: str | None) -> None:
    """Show the processing status of OBJECT_ID."""
    from uploadagent.client.api import APIError, HTTPClient

    with HTTPClient(_backend_config(backend_url)) as client:
        try:
            upload_status = client.get_status(object_id)
        except APIError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
    click.echo(f"{object_id}: {upload_status.status}")


@click.command()
@click.argument("object_id")
@click.option("--backend-url", help="Backend base URL.")
def cancel(object_id: str, backend_url: str | None) -> None:
    """Cancel the multipart upload of OBJECT_ID."""
    from uploadagent.client.api import APIError, HTTPClient

    with HTTPClient(_backend_config(backend_url)) as client:
        try:
            client.cancel_upload(object_id)
        except APIError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
    click.echo(f"Cancelled {object_id}")
