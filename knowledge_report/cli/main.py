"""Knowledge report CLI main entry point.

This module provides the main CLI application using Typer.
"""
import logging

import typer

from ..lib.console import setup_console_encoding
from .config_command import config
from .report_command import render, report

# Create main app
app = typer.Typer(
    name="knowledge-report",
    help="Knowledge の記事一覧から月次レポートを作成するツール",
    no_args_is_help=True,
)

# Add subcommands
app.add_typer(config, name="config", help="設定の確認")
app.command()(report)
app.command()(render)


# Global options
@app.callback()
def main(
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        envvar="KNOWLEDGE_REPORT_LOGGING_LEVEL",
        help="ログレベル [DEBUG|INFO|WARNING|ERROR]",
    ),
):
    """Knowledge Report - 月次レポート作成ツール."""
    setup_console_encoding()

    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise typer.BadParameter(f"Unknown log level: {log_level}", param_hint="--log-level")

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


if __name__ == "__main__":
    app()
