from typing import Dict, List, Optional, Union

import pytest

from phresearch.core.errors import GenerationError
from phresearch.core.product_search.providers.base_provider import BaseProductSource
from phresearch.models.research import Product


def make_product(name, votes=0, website=None, url=None, id=None, tagline=""):
    return Product(
        id=id,
        name=name,
        tagline=tagline,
        description=f"{name} description",
        url=url or f"https://www.producthunt.com/posts/{name.lower().replace(' ', '-')}",
        website=website,
        votes_count=votes,
        created_at="2024-01-01T00:00:00Z",
        topics=["Productivity"],
    )


class FakeKeywordGenerator:
    """Returns canned keywords (or raises) and records every topic it was asked for."""

    def __init__(self, keywords: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.keywords = keywords or []
        self.error = error
        self.calls: List[str] = []

    async def generate(self, topic: str) -> List[str]:
        self.calls.append(topic)
        if self.error:
            raise self.error
        if not self.keywords:
            raise GenerationError()
        return list(self.keywords)


class FakeProductSource(BaseProductSource):
    """Per-keyword canned results; an Exception value is raised for that keyword."""

    def __init__(self, results: Optional[Dict[str, Union[List[Product], Exception]]] = None):
        super().__init__(name="Fake")
        self.results = results or {}
        self.calls: List[tuple] = []

    async def _fetch(self, keyword: str, count: int) -> List[Product]:
        self.calls.append((keyword, count))
        result = self.results.get(keyword, [])
        if isinstance(result, Exception):
            raise result
        return list(result)[:count]


@pytest.fixture
def product():
    return make_product


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "research.db")
