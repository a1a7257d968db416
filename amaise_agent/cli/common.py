"""
Shared helpers for CLI commands.
"""
import logging

import typer

from ..config import Settings, check_required_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def load_settings() -> Settings:
    """Load settings, exiting with a readable message if credentials are missing."""
    settings = Settings()
    try:
        check_required_settings(settings)
    except ValueError as e:
        typer.echo(f"❌ Error: {e}", err=True)
        raise typer.Exit(1)
    return settings
