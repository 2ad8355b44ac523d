"""Unit tests for parser service.

Test extraction of article records from Knowledge listing cells.
"""
import pytest
from bs4 import BeautifulSoup

from helpers import BASE_URL, make_cell
from knowledge_report.services.parser_service import ArticleParseError, ParserService


class TestParserService:
    """Test listing cell parsing functionality."""

    @pytest.fixture
    def parser_service(self) -> ParserService:
        """Create parser service instance."""
        return ParserService(BASE_URL)

    def test_extract_article_success(self, parser_service: ParserService):
        article = parser_service.extract_article(make_cell())

        assert article.no == 42
        assert article.title == "My Article"
        assert article.url == "https://k.example.com/knowledge/open.knowledge/view/42"
        assert article.author == "Jane"
        assert article.posted_date == "2024/12/30 12:32"

    def test_extract_article_from_parsed_tag(self, parser_service: ParserService):
        cell = BeautifulSoup(make_cell(), "html.parser").select_one("div.knowledge_item")

        article = parser_service.extract_article(cell)

        assert article.no == 42
        assert article.author == "Jane"

    def test_identifier_with_whitespace(self, parser_service: ParserService):
        article = parser_service.extract_article(make_cell(no=" #42 ", title="My Article"))

        assert article.no == 42
        assert article.title == "My Article"

    def test_missing_author(self, parser_service: ParserService):
        article = parser_service.extract_article(make_cell(author=None))

        assert article.author == ""
        assert article.posted_date == "2024/12/30 12:32"

    def test_author_is_not_the_title_link(self, parser_service: ParserService):
        cell = make_cell(title="Release notes", author=None)

        # the bare "div > div > a" form reaches the title link first
        assert BeautifulSoup(cell, "html.parser").select_one("div > div > a").get("href").endswith("/42?offset=0")
        assert parser_service.extract_article(cell).author == ""
        assert parser_service.extract_article(make_cell(title="Release notes")).author == "Jane"

    def test_missing_posted_date(self, parser_service: ParserService):
        article = parser_service.extract_article(make_cell(posted=None))

        assert article.posted_date == ""

    def test_missing_link(self, parser_service: ParserService):
        article = parser_service.extract_article(make_cell(href=None))

        assert article.url == BASE_URL
        assert article.no == 42

    def test_missing_identifier_and_title(self, parser_service: ParserService):
        article = parser_service.extract_article(make_cell(no=None, title=None))

        assert article.no == 0
        assert article.title == ""

    def test_empty_cell(self, parser_service: ParserService):
        article = parser_service.extract_article("<div class='knowledge_item'></div>")

        assert article.no == 0
        assert article.title == ""
        assert article.author == ""
        assert article.posted_date == ""

    def test_malformed_identifier_raises(self, parser_service: ParserService):
        with pytest.raises(ArticleParseError) as exc_info:
            parser_service.extract_article(make_cell(no="#abc"))

        assert exc_info.value.error_code == "INVALID_NUMBER"
        assert "INVALID_NUMBER" in str(exc_info.value)


class TestResolveArticleUrl:
    """Test article URL resolution."""

    def test_root_base_url_strips_context_path(self):
        parser_service = ParserService("https://k.example.com/")

        assert parser_service.resolve_article_url("/knowledge/123/view?x=1") == "https://k.example.com/123/view"

    def test_root_base_url_keeps_other_paths(self):
        parser_service = ParserService("https://k.example.com")

        assert (
            parser_service.resolve_article_url("/open.knowledge/view/1")
            == "https://k.example.com/open.knowledge/view/1"
        )

    def test_sub_directory_prefix_removed_once(self):
        parser_service = ParserService("https://k.example.com/knowledge")

        url = parser_service.resolve_article_url("/knowledge/open.knowledge/view/7?offset=0&keyword=")

        assert url == "https://k.example.com/knowledge/open.knowledge/view/7"
        assert url.count("/knowledge/") == 1
        assert "?" not in url

    def test_prefix_must_be_whole_segment(self):
        parser_service = ParserService("https://k.example.com/knowledge")

        assert (
            parser_service.resolve_article_url("/knowledgebase/view/1")
            == "https://k.example.com/knowledge/knowledgebase/view/1"
        )

    def test_custom_context_path(self):
        parser_service = ParserService("https://k.example.com/", context_path="/wiki/")

        assert parser_service.resolve_article_url("/wiki/open.knowledge/view/3") == "https://k.example.com/open.knowledge/view/3"

    def test_missing_href(self):
        parser_service = ParserService("https://k.example.com/knowledge/")

        assert parser_service.resolve_article_url(None) == "https://k.example.com/knowledge"


class TestFieldParsers:
    """Test the individual field parsers."""

    @pytest.fixture
    def parser_service(self) -> ParserService:
        return ParserService(BASE_URL)

    @pytest.mark.parametrize(
        "text,expected",
        [(" #42 ", 42), ("#7", 7), ("12", 12), ("", 0), (None, 0), ("  ", 0)],
    )
    def test_parse_number(self, parser_service: ParserService, text, expected: int):
        assert parser_service.parse_number(text) == expected

    @pytest.mark.parametrize("text", ["#", "#4a", "#-1", "#1.5"])
    def test_parse_number_malformed(self, parser_service: ParserService, text: str):
        with pytest.raises(ArticleParseError):
            parser_service.parse_number(text)

    def test_parse_title_removes_marker_once(self, parser_service: ParserService):
        assert parser_service.parse_title("#42 My Article", 42) == "My Article"
        assert parser_service.parse_title("#42 About #42", 42) == "About #42"
        assert parser_service.parse_title(None, 0) == ""

    def test_parse_posted_date(self, parser_service: ParserService):
        text = "[unread] Jane posted My Article が 2024/12/30 12:32 に投稿"

        assert parser_service.parse_posted_date(text) == "2024/12/30 12:32"

    def test_parse_posted_date_takes_first_match(self, parser_service: ParserService):
        text = "が 2025/01/02 8:09 に投稿 (更新 2025/01/05 10:00)"

        assert parser_service.parse_posted_date(text) == "2025/01/02 8:09"

    def test_parse_posted_date_without_match(self, parser_service: ParserService):
        assert parser_service.parse_posted_date("no date here") == ""
        assert parser_service.parse_posted_date(None) == ""


class TestExtractListing:
    """Test concurrent listing extraction."""

    @pytest.fixture
    def parser_service(self) -> ParserService:
        return ParserService(BASE_URL)

    async def test_preserves_source_order(self, parser_service: ParserService):
        cells = [
            make_cell(no=f"#{no}", title=f"Article {no}", href=f"/knowledge/open.knowledge/view/{no}")
            for no in (5, 3, 9, 1)
        ]

        articles = await parser_service.extract_listing(cells)

        assert [article.no for article in articles] == [5, 3, 9, 1]

    async def test_skips_malformed_cells(self, parser_service: ParserService, caplog):
        cells = [make_cell(no="#1"), make_cell(no="#oops"), make_cell(no="#2")]

        articles = await parser_service.extract_listing(cells)

        assert [article.no for article in articles] == [1, 2]
        assert "#oops" in caplog.text

    async def test_empty_listing(self, parser_service: ParserService):
        assert await parser_service.extract_listing([]) == []
