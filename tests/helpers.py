"""Builders for listing cells and articles used across the tests."""
from typing import Optional

from knowledge_report.models.article import ArticleMeta

BASE_URL = "https://k.example.com/knowledge"


def make_cell(
    no: Optional[str] = "#42",
    title: Optional[str] = "My Article",
    href: Optional[str] = "/knowledge/open.knowledge/view/42?offset=0",
    author: Optional[str] = "Jane",
    posted: Optional[str] = "2024/12/30 12:32",
) -> str:
    """Build the outer HTML of one listing cell; None leaves the element out."""
    number_html = f'<span class="dispKnowledgeId">{no}</span>' if no is not None else ""
    title_html = (
        f'<div class="list-title">{number_html} {title}</div>' if title is not None else ""
    )
    link_html = (
        f'<a href="{href}" class="text-primary btn-link">{title_html}</a>'
        if href is not None
        else title_html
    )
    author_html = f'<a href="/knowledge/open.account/info/7">{author}</a>' if author is not None else ""
    posted_html = f" が {posted} に投稿" if posted is not None else ""

    return (
        '<div class="knowledge_item">'
        '<div class="insert_info">'
        f"{link_html}"
        f'<div><span class="badge">[未読]</span> {author_html}{posted_html}</div>'
        "</div>"
        "</div>"
    )


def make_article(no: int, posted_date: str = "", title: Optional[str] = None, author: str = "Jane") -> ArticleMeta:
    return ArticleMeta(
        no=no,
        title=title or f"Article {no}",
        url=f"{BASE_URL}/open.knowledge/view/{no}",
        author=author,
        posted_date=posted_date,
    )


