"""Shared fixtures for knowledge report tests."""
import pytest

from helpers import BASE_URL


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def template() -> str:
    return (
        "@targetMonth@ report (@knowledgeUrl@)\n"
        "[month]\n@targetMonthArticles@\n"
        "[popular]\n@popularArticles@\n"
        "[graph]\n@contributionGraph@\n"
        "end of @targetMonth@"
    )
