"""
Research Models - Pydantic schemas for topics, keywords, products and results.

JSON payloads use the camelCase field names the directory and the web client
speak (votesCount, createdAt, deepResearch); Python code uses snake_case.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


DEFAULT_KEYWORD_WEIGHT = 10


# ═══════════════════════════════════════════════════
# Products
# ═══════════════════════════════════════════════════

class Product(BaseModel):
    """One candidate product returned by the directory"""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None  # upstream post id, not unique across keyword queries
    name: str
    tagline: str = ""
    description: Optional[str] = ""
    url: str = ""
    website: Optional[str] = None
    votes_count: int = Field(default=0, alias="votesCount")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    topics: List[str] = Field(default_factory=list)
    deep_research: Optional[str] = Field(default=None, alias="deepResearch")

    @property
    def enrichment_key(self) -> str:
        """Key that survives across research runs: the product website, else its listing URL."""
        return self.website or self.url

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


# ═══════════════════════════════════════════════════
# Keywords
# ═══════════════════════════════════════════════════

class Keyword(BaseModel):
    """A search term plus the number of results to request for it"""
    keyword: str
    weight: int = Field(default=DEFAULT_KEYWORD_WEIGHT, ge=1)


class KeywordSearch(BaseModel):
    """Outcome of searching the directory for a single keyword"""
    keyword: str
    weight: int
    products: List[Product] = Field(default_factory=list)
    failed: bool = False
    error: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.products)


class KeywordStatus(BaseModel):
    """Per-keyword status reported alongside the merged result"""
    keyword: str
    weight: int
    count: int = 0
    failed: bool = False
    error: Optional[str] = None

    @classmethod
    def from_search(cls, search: KeywordSearch) -> "KeywordStatus":
        return cls(
            keyword=search.keyword,
            weight=search.weight,
            count=search.count,
            failed=search.failed,
            error=search.error,
        )


# ═══════════════════════════════════════════════════
# Final Result
# ═══════════════════════════════════════════════════

class ResearchResult(BaseModel):
    """Resolved keywords plus the merged, optionally enriched product set"""
    model_config = ConfigDict(populate_by_name=True)

    keywords: List[str] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)
    content: str = ""  # summary text, filled in by an external summarizer if any
    keyword_stats: List[KeywordStatus] = Field(default_factory=list, alias="keywordStats")

    def to_payload(self) -> dict:
        return {
            "content": self.content,
            "keywords": list(self.keywords),
            "products": [p.to_payload() for p in self.products],
            "keywordStats": [s.model_dump() for s in self.keyword_stats],
        }
