"""Parser service implementation.

This module extracts ArticleMeta records from the raw listing cells of the
Knowledge portal (the outer HTML of each ``div.knowledge_item``).
"""
import asyncio
import logging
from typing import Iterable, Optional, Union
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from ..models.article import POSTED_DATE_PATTERN, ArticleMeta

logger = logging.getLogger(__name__)

RawCell = Union[str, Tag]


class ArticleParseError(ValueError):
    """記事セルの解析エラー."""

    def __init__(self, message: str, error_code: str = "PARSE_ERROR", details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


class ParserService:
    """Knowledge 記事一覧の解析サービス."""

    # 記事セル内の各要素の位置
    LINK_SELECTOR = "div.insert_info > a"
    NUMBER_SELECTOR = "div.list-title > span.dispKnowledgeId"
    TITLE_SELECTOR = "div.list-title"
    # タイトルのリンク (div.insert_info > a) を拾わないよう情報行の中に限定する
    AUTHOR_SELECTOR = "div.insert_info > div > a"
    INFO_SELECTOR = "div > div"

    def __init__(self, base_url: str, context_path: str = "/knowledge"):
        self.base_url = base_url
        self.context_path = context_path.rstrip("/")

        # NOTE: サブディレクトリ配置ならそのパス、ルート配置ならコンテキストパスを外す
        path = urlparse(base_url).path.rstrip("/")
        self.path_prefix = path or self.context_path

        logger.debug(f"記事解析サービス初期化: {base_url} (prefix={self.path_prefix!r})")

    def resolve_article_url(self, href: Optional[str]) -> str:
        """
        記事一覧の相対リンクから記事の URL を作成する.

        input: /knowledge/open.knowledge/view/1?offset=0
        expect: <base_url>/open.knowledge/view/1
        """
        path = (href or "").split("?", 1)[0]

        prefix = self.path_prefix
        if prefix and (path == prefix or path.startswith(prefix + "/")):
            path = path[len(prefix):]

        segments = [segment for segment in path.split("/") if segment]
        return "/".join([self.base_url.rstrip("/"), *segments])

    def parse_number(self, text: Optional[str]) -> int:
        """Parse the ``#<digits>`` identifier; missing text yields 0."""
        cleaned = (text or "").strip()
        if not cleaned:
            return 0

        digits = cleaned[1:] if cleaned.startswith("#") else cleaned
        digits = digits.strip()
        if not digits.isdecimal():
            raise ArticleParseError(
                f"記事番号を解析できません: {text!r}",
                error_code="INVALID_NUMBER",
                details={"text": text},
            )
        return int(digits)

    def parse_title(self, text: Optional[str], no: int) -> str:
        return (text or "").replace(f"#{no}", "", 1).strip()

    def parse_posted_date(self, text: Optional[str]) -> str:
        """
        '[未読] タイトル 作者 が 2024/12/30 12:32 に投稿' から日時のみを取得する.
        """
        match = POSTED_DATE_PATTERN.search(text or "")
        return match.group(0) if match else ""

    def extract_article(self, cell: RawCell) -> ArticleMeta:
        """
        記事セルから記事情報を抜き出す.

        Args:
            cell: 記事セルの HTML 文字列、または解析済みの要素

        Returns:
            ArticleMeta: 記事情報. 欠けている項目は空文字または 0

        Raises:
            ArticleParseError: 記事番号が数値でない場合
        """
        root = BeautifulSoup(cell, "html.parser") if isinstance(cell, str) else cell

        link = root.select_one(self.LINK_SELECTOR)
        href = link.get("href") if link is not None else None
        if isinstance(href, list):
            href = " ".join(href)

        no = self.parse_number(_text_of(root.select_one(self.NUMBER_SELECTOR)))
        title = self.parse_title(_text_of(root.select_one(self.TITLE_SELECTOR)), no)
        author = (_text_of(root.select_one(self.AUTHOR_SELECTOR)) or "").strip()

        info = root.select_one(self.INFO_SELECTOR)
        info_text = info.get_text(" ", strip=True) if info is not None else ""

        return ArticleMeta(
            no=no,
            title=title,
            url=self.resolve_article_url(href),
            author=author,
            posted_date=self.parse_posted_date(info_text),
        )

    async def extract_listing(self, cells: Iterable[RawCell]) -> list[ArticleMeta]:
        """
        記事一覧の全セルを並行して解析する.

        結果は一覧の順序を保つ. 解析できないセルはログに残して除外する.
        """
        cells = list(cells)

        async def extract(index: int, cell: RawCell) -> Optional[ArticleMeta]:
            try:
                return await asyncio.to_thread(self.extract_article, cell)
            except ArticleParseError as e:
                logger.error(f"記事セルの解析に失敗しました (#{index}): {e}")
                return None

        results = await asyncio.gather(*(extract(i, cell) for i, cell in enumerate(cells)))
        articles = [article for article in results if article is not None]

        logger.info(f"記事一覧の解析完了: {len(articles)}/{len(cells)} 件")
        return articles


def _text_of(element: Optional[Tag]) -> Optional[str]:
    if element is None:
        return None
    return element.get_text()
