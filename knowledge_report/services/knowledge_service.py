"""Knowledge portal browser session.

This module drives a Playwright browser to sign in to the Knowledge portal
and collect the raw article cells of the latest and popular listings.
"""
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright

logger = logging.getLogger(__name__)

ARTICLE_CELL_SELECTOR = "#knowledgeList > div.knowledge_list > div.knowledge_item"
POPULAR_PATH = "/open.knowledge/show_popularity"
LIST_URL_PATTERN = re.compile(r".*open.knowledge/list")
TOP_PAGE_TITLE_PATTERN = re.compile(r"Knowledge")


class KnowledgeError(Exception):
    """Knowledge 操作エラー."""

    def __init__(self, message: str, error_code: str = "UNKNOWN", details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


class AuthError(KnowledgeError):
    """ログイン画面に到達できない、またはログインできない."""


class NavigationError(KnowledgeError):
    """ログイン後に想定した画面へ遷移しない."""


def join_url(base_url: str, path: str) -> str:
    return base_url.rstrip("/") + "/" + path.lstrip("/")


class KnowledgeSession:
    """Playwright のブラウザセッション. ``async with`` で必ず閉じる."""

    def __init__(
        self,
        base_url: str,
        headless: bool = True,
        timeout_ms: int = 30000,
        screenshot_dir: Optional[Path] = None,
    ):
        self.base_url = base_url
        self.headless = headless
        self.timeout_ms = timeout_ms
        self.screenshot_dir = Path(screenshot_dir) if screenshot_dir else None

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self.page: Optional[Page] = None

    async def __aenter__(self) -> "KnowledgeSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_val is not None and self.page is not None:
            await self.capture_screenshot()
        await self.close()

    async def open(self) -> None:
        """Launch Chromium and open a page."""
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(headless=self.headless)
            self.page = await self._browser.new_page()
            self.page.set_default_timeout(self.timeout_ms)

            # Headerの設定
            await self.page.set_extra_http_headers({"Accept-Language": "ja"})
        except Exception:
            await self.close()
            raise

        logger.info(f"ブラウザを起動しました (headless={self.headless})")

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        self.page = None
        logger.debug("ブラウザを終了しました")

    def _require_page(self) -> Page:
        if self.page is None:
            raise KnowledgeError("ブラウザが起動していません", error_code="SESSION_CLOSED")
        return self.page

    async def authenticate(self, user_id: str, password: str) -> None:
        """
        ログインして記事一覧画面へ遷移する.

        Raises:
            AuthError: トップページのタイトルが想定と異なる場合
            NavigationError: ログイン後に記事一覧へ遷移しない場合
        """
        page = self._require_page()

        # ログインページに移動
        await page.goto(join_url(self.base_url, "/"))

        title = await page.title()
        if not TOP_PAGE_TITLE_PATTERN.search(title):
            raise AuthError(
                "Failed to transition to top page.",
                error_code="TOP_PAGE_NOT_FOUND",
                details={"title": title},
            )

        await page.get_by_placeholder("ID").fill(user_id)
        await page.get_by_placeholder("パスワード").fill(password)
        await page.get_by_role("button", name=re.compile("サインイン")).click()
        await page.wait_for_load_state()

        if not LIST_URL_PATTERN.match(page.url):
            raise NavigationError(
                "Failed to transition to article list page.",
                error_code="LIST_PAGE_NOT_FOUND",
                details={"url": page.url},
            )

        logger.info("ログインしました")

    async def _read_cells(self) -> list[str]:
        page = self._require_page()
        locators = await page.locator(ARTICLE_CELL_SELECTOR).all()
        return [await locator.evaluate("element => element.outerHTML") for locator in locators]

    async def fetch_latest(self) -> list[str]:
        """最新記事の一覧を取得する (ログイン直後の画面)."""
        cells = await self._read_cells()
        logger.info(f"最新記事: {len(cells)} 件")
        return cells

    async def fetch_popular(self) -> list[str]:
        """人気記事のページに移動して一覧を取得する."""
        page = self._require_page()
        await page.goto(join_url(self.base_url, POPULAR_PATH))

        cells = await self._read_cells()
        logger.info(f"人気記事: {len(cells)} 件")
        return cells

    async def capture_screenshot(self, path: Optional[Path] = None) -> Optional[Path]:
        """エラー調査用のスクリーンショット. 失敗しても元のエラーを隠さない."""
        if self.page is None:
            return None

        if path is None:
            if self.screenshot_dir is None:
                return None
            path = self.screenshot_dir / f"error.{datetime.now():%Y%m%d%H%M%S}.png"

        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            await self.page.screenshot(path=str(path), full_page=True)
            logger.info(f"スクリーンショットを保存しました: {path}")
            return Path(path)
        except Exception as e:
            logger.warning(f"スクリーンショットの保存に失敗しました: {e}")
            return None


async def fetch_listings(
    session: KnowledgeSession, user_id: str, password: str
) -> tuple[list[str], list[str]]:
    """ログインして最新記事と人気記事のセルを順に取得する."""
    await session.authenticate(user_id, password)
    latest = await session.fetch_latest()
    popular = await session.fetch_popular()
    return latest, popular
