"""Report command implementation."""
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer

from ..lib.config_loader import ConfigLoader
from ..lib.console import echo_with_prefix, safe_echo
from ..lib.date_format import DateFormat, InvalidDateError, assert_date_format
from ..models.article import ArticleMeta
from ..models.config import ConfigKey, ReportConfig
from ..models.report import ReportContext
from ..services.knowledge_service import KnowledgeError, KnowledgeSession, fetch_listings
from ..services.parser_service import ParserService
from ..services.report_service import TemplateError, make_report, read_template, write_report

logger = logging.getLogger(__name__)


def report(
    month: str = typer.Option(..., "--month", "-m", help="Target month (yyyyMM)"),
    template: Optional[Path] = typer.Option(None, "--template", "-t", help="Template file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory"),
    markdown: Optional[bool] = typer.Option(
        None, "--markdown/--no-markdown", help="Use markdown style links"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "--dryRun", help="Print the report instead of writing a file"
    ),
    headless: Optional[bool] = typer.Option(
        None, "--headless/--no-headless", help="Run the browser in headless mode"
    ),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help=".env file path"),
    save_articles: Optional[Path] = typer.Option(
        None, "--save-articles", help="Also save the scraped articles as JSON"
    ),
):
    """Sign in to Knowledge and make the monthly report."""
    echo_with_prefix("REPORT", "report_start")

    config = _load_report_config(
        month,
        env_file,
        {
            ConfigKey.REPORT_TEMPLATE: template,
            ConfigKey.REPORT_OUTPUT_DIR: output,
            ConfigKey.REPORT_MARKDOWN: markdown,
            ConfigKey.REPORT_DRY_RUN: dry_run or None,
            ConfigKey.BROWSER_HEADLESS: headless,
        },
    )

    missing = config.missing_credentials()
    if missing:
        safe_echo(f"[ERROR] Missing settings: {', '.join(missing)}")
        raise typer.Exit(1)

    try:
        template_text = read_template(config.template_path)

        echo_with_prefix("REPORT", "login")
        latest, popular = asyncio.run(_async_scrape(config))

        if save_articles:
            _save_articles(save_articles, config.base_url, latest, popular)
            safe_echo(f"[OUTPUT] Articles saved to: {save_articles}")

        content = make_report(
            ReportContext(
                target_month=config.target_month,
                base_url=config.base_url,
                template=template_text,
                latest_articles=latest,
                popular_articles=popular,
                markdown=config.markdown,
            )
        )
        _emit_report(config, content)

    except (KnowledgeError, TemplateError) as e:
        safe_echo(f"[ERROR] Report failed: {e!s}")
        logger.error(f"Report command failed: {e}")
        raise typer.Exit(1)
    except Exception as e:
        safe_echo(f"[ERROR] Report failed: {e!s}")
        logger.exception(f"Report command failed: {e}")
        raise typer.Exit(1)


def render(
    month: str = typer.Option(..., "--month", "-m", help="Target month (yyyyMM)"),
    articles: Path = typer.Option(..., "--articles", "-a", help="Articles JSON saved by report"),
    template: Optional[Path] = typer.Option(None, "--template", "-t", help="Template file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory"),
    markdown: Optional[bool] = typer.Option(
        None, "--markdown/--no-markdown", help="Use markdown style links"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "--dryRun", help="Print the report instead of writing a file"
    ),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help=".env file path"),
):
    """Make the monthly report from previously saved articles, without signing in."""
    echo_with_prefix("REPORT", "report_start")

    config = _load_report_config(
        month,
        env_file,
        {
            ConfigKey.REPORT_TEMPLATE: template,
            ConfigKey.REPORT_OUTPUT_DIR: output,
            ConfigKey.REPORT_MARKDOWN: markdown,
            ConfigKey.REPORT_DRY_RUN: dry_run or None,
        },
    )

    try:
        template_text = read_template(config.template_path)
        data = json.loads(articles.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"記事ファイルは JSON オブジェクトである必要があります: {articles}")

        content = make_report(
            ReportContext(
                target_month=config.target_month,
                base_url=data.get("base_url") or config.base_url,
                template=template_text,
                latest_articles=[ArticleMeta.from_dict(item) for item in data.get("latest", [])],
                popular_articles=[ArticleMeta.from_dict(item) for item in data.get("popular", [])],
                markdown=config.markdown,
            )
        )
        _emit_report(config, content)

    except TemplateError as e:
        safe_echo(f"[ERROR] Report failed: {e!s}")
        logger.error(f"Render command failed: {e}")
        raise typer.Exit(1)
    except (OSError, ValueError, KeyError, TypeError) as e:
        safe_echo(f"[ERROR] Failed to read articles: {e!s}")
        logger.error(f"Render command failed: {e}")
        raise typer.Exit(1)


def _load_report_config(
    month: str, env_file: Optional[Path], overrides: dict[str, Any]
) -> ReportConfig:
    """Validate the month first, then build the run configuration once."""
    try:
        assert_date_format(month, DateFormat.YEAR_MONTH)
    except InvalidDateError:
        safe_echo('[ERROR] Specify the month in the format "yyyyMM".')
        raise typer.Exit(1)

    try:
        return ConfigLoader().load_config(
            env_file=env_file,
            overrides={ConfigKey.REPORT_MONTH: month, **overrides},
        )
    except ValueError as e:
        safe_echo(f"[ERROR] Invalid configuration: {e!s}")
        raise typer.Exit(1)


def _emit_report(config: ReportConfig, content: str) -> None:
    if config.dry_run:
        echo_with_prefix("REPORT", "dry_run")
        safe_echo(content)
        return

    output_file = write_report(content, config.output_dir, config.target_month)
    safe_echo(f"[SUCCESS] Report saved to: {output_file}")


async def _async_scrape(config: ReportConfig) -> tuple[list[ArticleMeta], list[ArticleMeta]]:
    """Async helper function to fetch and extract both listings."""
    parser = ParserService(config.base_url, context_path=config.context_path)

    async with KnowledgeSession(
        config.base_url,
        headless=config.headless,
        timeout_ms=config.timeout_ms,
        screenshot_dir=config.screenshot_dir,
    ) as session:
        latest_cells, popular_cells = await fetch_listings(
            session, config.username, config.password
        )

    latest = await parser.extract_listing(latest_cells)
    popular = await parser.extract_listing(popular_cells)
    return latest, popular


def _save_articles(
    path: Path, base_url: str, latest: list[ArticleMeta], popular: list[ArticleMeta]
) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "base_url": base_url,
        "latest": [article.to_dict() for article in latest],
        "popular": [article.to_dict() for article in popular],
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
