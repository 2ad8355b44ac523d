"""Report service implementation.

This module builds the monthly report text from the scraped articles and a
template, and writes it to the output directory.
"""
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from ..lib.date_format import DateFormat, InvalidDateError, change_format, parse_date
from ..models.article import ArticleMeta
from ..models.report import ReportContext
from .contribution_service import generate_contribution_graph

logger = logging.getLogger(__name__)

POPULAR_LIMIT = 5


class Placeholder:
    """テンプレート内の置換タグ."""

    KNOWLEDGE_URL = "@knowledgeUrl@"
    TARGET_MONTH = "@targetMonth@"
    TARGET_MONTH_ARTICLES = "@targetMonthArticles@"
    POPULAR_ARTICLES = "@popularArticles@"
    CONTRIBUTION_GRAPH = "@contributionGraph@"


class TemplateError(Exception):
    """テンプレートファイルの読み込みエラー."""

    def __init__(self, message: str, error_code: str = "TEMPLATE_ERROR", details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


def _posted_month(article: ArticleMeta) -> Optional[str]:
    try:
        return change_format(article.posted_date, DateFormat.POSTED_AT, DateFormat.YEAR_MONTH)
    except InvalidDateError:
        return None


def filter_target_month_articles(
    articles: Iterable[ArticleMeta], target_month: str
) -> list[ArticleMeta]:
    """当月の記事のみを投稿日時の昇順で抽出する."""
    month_articles = [article for article in articles if _posted_month(article) == target_month]
    return sorted(
        month_articles,
        key=lambda article: parse_date(article.posted_date, DateFormat.POSTED_AT),
    )


def select_popular_articles(
    articles: Iterable[ArticleMeta],
    excluded_numbers: Iterable[int],
    limit: int = POPULAR_LIMIT,
) -> list[ArticleMeta]:
    """人気記事から当月の記事を除いた上位を、人気順のまま取得する."""
    excluded = set(excluded_numbers)
    return [article for article in articles if article.no not in excluded][:limit]


def format_article(article: ArticleMeta, markdown: bool) -> str:
    if markdown:
        return f"・ [#{article.no} {article.title}]({article.url}) by {article.author}"
    return "\n".join([f"#{article.no} {article.title} by {article.author}", article.url])


def generate_articles_text(articles: Iterable[ArticleMeta], markdown: bool = False) -> str:
    """記事の一覧をテキストにする."""
    return "\n".join(format_article(article, markdown) for article in articles)


def render_template(template: str, replacements: dict[str, str]) -> str:
    """Replace every occurrence of each placeholder token in a single pass.

    Inserted values are not scanned again, so a title containing a token stays as is.
    """
    if not replacements:
        return template
    pattern = re.compile("|".join(re.escape(token) for token in replacements))
    return pattern.sub(lambda match: replacements[match.group(0)], template)


def make_report(context: ReportContext) -> str:
    """
    取得した情報でレポート用のテキストを構築する.

    Args:
        context: 対象月、URL、テンプレート、最新記事と人気記事

    Returns:
        str: プレースホルダをすべて置き換えたレポート
    """
    target_month_articles = filter_target_month_articles(
        context.latest_articles, context.target_month
    )
    target_month_numbers = {article.no for article in target_month_articles}
    popular_articles = select_popular_articles(context.popular_articles, target_month_numbers)

    logger.info(
        f"{context.target_month}: 当月の記事 {len(target_month_articles)} 件, "
        f"人気記事 {len(popular_articles)} 件"
    )

    replacements = {
        Placeholder.KNOWLEDGE_URL: context.base_url,
        Placeholder.TARGET_MONTH: change_format(
            context.target_month, DateFormat.YEAR_MONTH, DateFormat.YEAR_MONTH_LABEL
        ),
        Placeholder.TARGET_MONTH_ARTICLES: generate_articles_text(
            target_month_articles, context.markdown
        ),
        Placeholder.POPULAR_ARTICLES: generate_articles_text(popular_articles, context.markdown),
        Placeholder.CONTRIBUTION_GRAPH: generate_contribution_graph(
            context.target_month, target_month_articles, markdown=context.markdown
        ),
    }
    return render_template(context.template, replacements)


def read_template(path: Path) -> str:
    """Read the template file as UTF-8."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateError(
            f"テンプレートを読み込めません: {path}",
            error_code="TEMPLATE_NOT_READABLE",
            details={"path": str(path), "reason": str(e)},
        ) from e


def build_report_filename(target_month: str, now: Optional[datetime] = None) -> str:
    """<targetMonth>-report.<unix-millis>.txt"""
    now = now or datetime.now()
    return f"{target_month}-report.{round(now.timestamp() * 1000)}.txt"


def write_report(
    content: str, output_dir: Path, target_month: str, now: Optional[datetime] = None
) -> Path:
    """ファイルを出力する."""
    output_dir = Path(output_dir).resolve()
    output_dir.mkdir(parents=True, exist_ok=True)

    output_file = output_dir / build_report_filename(target_month, now)
    output_file.write_text(content, encoding="utf-8")

    logger.info(f"レポートを出力しました: {output_file}")
    return output_file
