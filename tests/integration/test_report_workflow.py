"""Report workflow integration tests.

These tests run raw listing cells through the parser and the report
composer, the same path the report command takes after signing in.
"""
import pytest

from helpers import BASE_URL, make_cell
from knowledge_report.models.report import ReportContext
from knowledge_report.services.parser_service import ParserService
from knowledge_report.services.report_service import make_report


class TestReportWorkflowIntegration:
    """Test listing cells to finished report."""

    @pytest.fixture
    def parser(self) -> ParserService:
        return ParserService(BASE_URL)

    @pytest.fixture
    def latest_cells(self) -> list[str]:
        return [
            make_cell("#12", "年末のまとめ", "/knowledge/open.knowledge/view/12?offset=0", "Sato", "2024/12/30 12:32"),
            make_cell("#11", "Playwright 入門", "/knowledge/open.knowledge/view/11", "Suzuki", "2024/12/03 9:05"),
            make_cell("#x", "壊れたセル", "/knowledge/open.knowledge/view/x", "Tanaka", "2024/12/04 10:00"),
            make_cell("#10", "Setup guide", "/knowledge/open.knowledge/view/10", "Sato", "2024/12/03 18:40"),
            make_cell("#9", "先月の記事", "/knowledge/open.knowledge/view/9", "Sato", "2024/11/28 17:00"),
        ]

    @pytest.fixture
    def popular_cells(self) -> list[str]:
        return [
            make_cell(f"#{no}", f"人気 {no}", f"/knowledge/open.knowledge/view/{no}", "Ito", None)
            for no in (11, 3, 9, 12, 5, 1, 2, 4)
        ]

    async def test_cells_to_report(self, parser: ParserService, template: str, latest_cells, popular_cells):
        latest = await parser.extract_listing(latest_cells)
        popular = await parser.extract_listing(popular_cells)

        assert [article.no for article in latest] == [12, 11, 10, 9]
        assert all(article.posted_date == "" for article in popular)

        report = make_report(
            ReportContext(
                target_month="202412",
                base_url=BASE_URL,
                template=template,
                latest_articles=latest,
                popular_articles=popular,
            )
        )

        month_section = report.split("[month]\n")[1].split("\n[popular]")[0]
        assert month_section.splitlines() == [
            "#11 Playwright 入門 by Suzuki",
            f"{BASE_URL}/open.knowledge/view/11",
            "#10 Setup guide by Sato",
            f"{BASE_URL}/open.knowledge/view/10",
            "#12 年末のまとめ by Sato",
            f"{BASE_URL}/open.knowledge/view/12",
        ]

        popular_section = report.split("[popular]\n")[1].split("\n[graph]")[0]
        assert [line.split(" ")[0] for line in popular_section.splitlines()[::2]] == [
            "#3",
            "#9",
            "#5",
            "#1",
            "#2",
        ]

        graph = report.split("[graph]\n")[1].split("\nend of")[0].splitlines()
        assert graph[0] == "3 contributions in December 2024"
        assert graph[3] == "Tue ■ □ □ □ □"
        assert graph[2] == "Mon □ □ □ □ ■"

    async def test_root_deployment_urls(self, template: str):
        parser = ParserService("https://k.example.com")

        [article] = await parser.extract_listing([make_cell()])

        assert article.url == "https://k.example.com/open.knowledge/view/42"

    async def test_markdown_report(self, parser: ParserService, template: str, latest_cells):
        latest = await parser.extract_listing(latest_cells)

        report = make_report(
            ReportContext(
                target_month="202412",
                base_url=BASE_URL,
                template=template,
                latest_articles=latest,
                markdown=True,
            )
        )

        assert f"・ [#11 Playwright 入門]({BASE_URL}/open.knowledge/view/11) by Suzuki" in report
        assert "```\n3 contributions in December 2024" not in report
        assert "3 contributions in December 2024\n```\nSun" in report
