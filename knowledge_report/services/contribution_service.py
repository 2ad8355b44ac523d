"""Contribution graph implementation.

This module renders a GitHub-like contribution calendar for one month.
"""
import logging
from collections import Counter
from typing import Iterable

from ..lib.date_format import DateFormat, change_format, month_bounds, parse_date
from ..models.article import ArticleMeta

logger = logging.getLogger(__name__)

# 曜日のラベルの一覧
WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
WEEKS = 5

OUT_OF_MONTH = "-"
FILLED = "■"
EMPTY = "□"
CODE_FENCE = "```"


def count_contributions(articles: Iterable[ArticleMeta]) -> Counter:
    """
    日にちとその日の記事件数の対応を作成する.

    e.g) 2025/01/02 8:09 -> 2
    """
    days = Counter()
    for article in articles:
        if not article.posted_date:
            continue
        days[parse_date(article.posted_date, DateFormat.POSTED_AT).day] += 1
    return days


def _sunday_based_weekday(day) -> int:
    # date.weekday() is Monday=0
    return (day.weekday() + 1) % 7


def build_calendar_cells(target_month: str, contributions: Counter) -> list[list[str]]:
    """Build the 7 (Sun..Sat) x 5 grid of cell markers for ``target_month``."""
    first_day, last_day = month_bounds(target_month)
    first_weekday = _sunday_based_weekday(first_day)

    rows = []
    for i in range(len(WEEKDAYS)):
        cells = []
        for j in range(WEEKS):
            # NOTE: 1日が水曜日の場合、最初の日曜日は5日になる
            day = 7 * j - first_weekday + i + 1
            if day < 1 or last_day.day < day:
                cells.append(OUT_OF_MONTH)
            elif contributions.get(day, 0) > 0:
                cells.append(FILLED)
            else:
                cells.append(EMPTY)
        rows.append(cells)
    return rows


def generate_contribution_graph(
    target_month: str, articles: Iterable[ArticleMeta], markdown: bool = False
) -> str:
    """
    指定した月のコントリビューションカレンダーを作成する.

    Args:
        target_month: 対象月 (yyyyMM)
        articles: 対象月に投稿された記事の一覧
        markdown: グラフをコードブロックで囲むか

    Returns:
        str: タイトル行と7行のカレンダー
    """
    articles = list(articles)
    title = (
        f"{len(articles)} contributions in "
        f"{change_format(target_month, DateFormat.YEAR_MONTH, DateFormat.MONTH_NAME_YEAR)}"
    )

    contributions = count_contributions(articles)
    rows = [
        " ".join([WEEKDAYS[i], *cells])
        for i, cells in enumerate(build_calendar_cells(target_month, contributions))
    ]

    logger.debug(f"{target_month}: {len(contributions)} 日に投稿あり")

    if markdown:
        return "\n".join([title, CODE_FENCE, *rows, CODE_FENCE])
    return "\n".join([title, *rows])
