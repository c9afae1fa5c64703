"""Command-line interface for UploadAgent.

This module provides the main CLI entry point and assembles all commands.

Commands:
- upload: Upload a file through a presigned multipart upload
- status: Show the processing status of an uploaded object
- cancel: Cancel a multipart upload on the backend
- configure: Save backend settings
"""

from __future__ import annotations

import click

from uploadagent.client.cli.backend import cancel, configure, status
from uploadagent.client.cli.config import (
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
    setup_logging,
)
from uploadagent.client.cli.upload import upload


@click.group()
@click.version_option(package_name="uploadagent")
@click.option("--verbose", "-v", count=True, help="Increase log output (-vv for debug).")
def cli(verbose: int) -> None:
    """UploadAgent - Chunked multipart uploads through presigned URLs."""
    setup_logging(verbose)


cli.add_command(upload)
cli.add_command(status)
cli.add_command(cancel)
cli.add_command(configure)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
    "setup_logging",
]
