"""Configuration utilities for the UploadAgent CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ClickEchoHandler(logging.Handler):
    """Logging handler writing records to stderr through click.

    The stream is looked up on every record, so the handler keeps working
    when stderr is replaced (e.g. by click.testing.CliRunner).
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def get_config_dir() -> Path:
    """Get the configuration directory for UploadAgent.

    Returns:
        Path to ~/.uploadagent or equivalent.
    """
    return Path.home() / ".uploadagent"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def setup_logging(verbosity: int) -> None:
    """Send uploadagent log records to stderr.

    Args:
        verbosity: 0 for warnings only, 1 for info, 2 or more for debug.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    uploadagent_logger = logging.getLogger("uploadagent")
    uploadagent_logger.setLevel(level)
    if not uploadagent_logger.handlers:
        handler = ClickEchoHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        uploadagent_logger.addHandler(handler)
