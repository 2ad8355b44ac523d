"""Config command implementation."""
import logging
from pathlib import Path
from typing import Optional

import typer

from ..lib.config_loader import ConfigLoader
from ..lib.console import echo_with_prefix, safe_echo
from ..models.config import is_sensitive_key

logger = logging.getLogger(__name__)

# Create config subapp
config = typer.Typer(help="Configuration management")


@config.command()
def show(
    key: Optional[str] = typer.Argument(None, help="Specific configuration key"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help=".env file path"),
):
    """Show the resolved configuration (secrets masked)."""
    echo_with_prefix("CONFIG", "config_show")

    try:
        loader = ConfigLoader()
        config_data = loader.load_config(env_file=env_file).to_dict()
    except ValueError as e:
        safe_echo(f"[ERROR] Failed to show configuration: {e!s}")
        logger.error(f"Config show command failed: {e}")
        raise typer.Exit(1)

    if key:
        if key in config_data:
            safe_echo(f"{key} = {_display_value(key, config_data[key])}")
        else:
            safe_echo(f"[WARNING] Configuration key '{key}' not found")
            safe_echo("Available keys:")
            for k in sorted(config_data.keys()):
                safe_echo(f"  - {k}")
        return

    safe_echo("\nCurrent Configuration:")
    safe_echo("=" * 50)

    # Group configurations by section
    sections: dict[str, list[tuple[str, str]]] = {}
    for k, v in config_data.items():
        sections.setdefault(k.split(".")[0], []).append((k, v))

    for section, items in sorted(sections.items()):
        safe_echo(f"\n[{section.upper()}]")
        for k, v in sorted(items):
            safe_echo(f"  {k} = {_display_value(k, v)}")

    safe_echo("=" * 50)
    safe_echo(f"Sources: {', '.join(loader.get_config_sources())}")


def _display_value(key: str, value: str) -> str:
    if is_sensitive_key(key):
        return "***" if value else ""
    return value
