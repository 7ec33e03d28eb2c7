"""
Abstract base class for all product directory sources.
"""
from abc import ABC, abstractmethod
from typing import List
from loguru import logger

from phresearch.core.errors import SourceError
from phresearch.models.research import KeywordSearch, Product


class BaseProductSource(ABC):
    """
    Abstract base class for product sources.

    One call per keyword. A keyword with no matches, or an upstream hiccup
    for that keyword, yields an empty list; only SourceError escapes.
    """

    def __init__(self, name: str):
        self.name = name

    async def search(self, keyword: str, count: int) -> List[Product]:
        """Return up to `count` products for one keyword."""
        outcome = await self.search_keyword(keyword, count)
        return outcome.products

    async def search_keyword(self, keyword: str, count: int) -> KeywordSearch:
        """Same as search(), but also reports whether the keyword failed upstream."""
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")

        try:
            products = await self._fetch(keyword, count)
        except SourceError:
            raise
        except Exception as e:
            logger.warning(f"[{self.name}] Search failed for keyword '{keyword}': {e}")
            return KeywordSearch(keyword=keyword, weight=count, failed=True, error=str(e)[:200])

        logger.info(f"[{self.name}] {len(products)} products for keyword '{keyword}'")
        return KeywordSearch(keyword=keyword, weight=count, products=list(products))

    @abstractmethod
    async def _fetch(self, keyword: str, count: int) -> List[Product]:
        """
        Query the upstream directory.
        Raise SourceError for failures no other keyword could recover from;
        any other exception is treated as a failure of this keyword only.
        """
        pass
