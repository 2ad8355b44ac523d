"""Report context data model."""
from dataclasses import dataclass, field

from .article import ArticleMeta


@dataclass(frozen=True)
class ReportContext:
    """レポート生成1回分の入力一式."""

    target_month: str
    base_url: str
    template: str
    latest_articles: tuple[ArticleMeta, ...] = field(default_factory=tuple)
    popular_articles: tuple[ArticleMeta, ...] = field(default_factory=tuple)
    markdown: bool = False

    def __post_init__(self) -> None:
        # list で渡されても読み取り専用の tuple として保持する
        object.__setattr__(self, "latest_articles", tuple(self.latest_articles))
        object.__setattr__(self, "popular_articles", tuple(self.popular_articles))
