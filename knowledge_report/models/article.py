"""Article data model.

This module defines the ArticleMeta data class scraped from a listing.
"""
import re
from dataclasses import dataclass
from typing import Any

POSTED_DATE_PATTERN = re.compile(r"\d{4}/\d{2}/\d{2} \d{1,2}:\d{2}")


@dataclass(frozen=True)
class ArticleMeta:
    """記事情報のオブジェクト."""

    no: int
    title: str
    url: str
    author: str = ""
    posted_date: str = ""

    def __post_init__(self) -> None:
        """Validate article data after initialization."""
        self._validate_no()
        self._validate_posted_date()

    def _validate_no(self) -> None:
        """Validate article number."""
        if not isinstance(self.no, int) or isinstance(self.no, bool):
            raise ValueError(f"記事番号は整数である必要があります: {self.no!r}")

        if self.no < 0:
            raise ValueError(f"記事番号は0以上である必要があります: {self.no}")

    def _validate_posted_date(self) -> None:
        """Validate posted date text."""
        if self.posted_date and not POSTED_DATE_PATTERN.fullmatch(self.posted_date):
            raise ValueError(f"投稿日時の形式が不正です: {self.posted_date!r}")

    @property
    def has_posted_date(self) -> bool:
        return bool(self.posted_date)

    def to_dict(self) -> dict[str, Any]:
        """Convert article to dictionary."""
        return {
            "no": self.no,
            "title": self.title,
            "url": self.url,
            "author": self.author,
            "posted_date": self.posted_date,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ArticleMeta":
        """Create article from dictionary."""
        return cls(
            no=int(data["no"]),
            title=data["title"],
            url=data["url"],
            author=data.get("author") or "",
            posted_date=data.get("posted_date") or "",
        )
