"""
ProductHunt Source - Queries the ProductHunt GraphQL API by topic.
Requires a developer token.
"""
import asyncio
from typing import List, Optional
from loguru import logger
import requests

from phresearch.core.errors import SourceError
from phresearch.core.product_search.providers.base_provider import BaseProductSource
from phresearch.models.config import ProductHuntConfig
from phresearch.models.research import Product


POSTS_QUERY = """
query($topic: String!, $first: Int!) {
  posts(first: $first, topic: $topic, order: RANKING) {
    edges {
      node {
        id
        name
        tagline
        description
        url
        votesCount
        website
        createdAt
        topics {
          edges {
            node {
              name
            }
          }
        }
      }
    }
  }
}
"""


class ProductHuntProvider(BaseProductSource):
    """Product source backed by the ProductHunt v2 GraphQL API."""

    # Statuses that mean every other keyword would fail the same way
    FATAL_STATUSES = {400, 401, 403}

    def __init__(self, config: Optional[ProductHuntConfig] = None):
        super().__init__(name="ProductHunt")
        self.config = config or ProductHuntConfig()

    async def _fetch(self, keyword: str, count: int) -> List[Product]:
        if not self.config.developer_token:
            raise SourceError("ProductHunt developer token is not configured")

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._sync_search, keyword, count)

    def _sync_search(self, keyword: str, count: int) -> List[Product]:
        """Synchronous GraphQL request for one topic keyword."""
        headers = {
            "Authorization": f"Bearer {self.config.developer_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        resp = requests.post(
            self.config.api_url,
            json={"query": POSTS_QUERY, "variables": {"topic": keyword, "first": count}},
            headers=headers,
            timeout=self.config.timeout,
        )

        if resp.status_code in self.FATAL_STATUSES:
            logger.error(f"[ProductHunt] Request rejected with HTTP {resp.status_code}")
            raise SourceError(
                f"ProductHunt rejected the request (HTTP {resp.status_code})",
                status_code=resp.status_code,
            )
        resp.raise_for_status()
        data = resp.json()

        if data.get("errors"):
            messages = "; ".join(str(e.get("message", e)) for e in data["errors"])
            raise RuntimeError(f"GraphQL errors: {messages}")

        posts = (data.get("data") or {}).get("posts")
        if not posts:
            return []

        return [self._to_product(edge.get("node") or {}) for edge in posts.get("edges", [])][:count]

    def _to_product(self, node: dict) -> Product:
        """Map a GraphQL post node to a Product."""
        topic_edges = (node.get("topics") or {}).get("edges", [])
        return Product(
            id=str(node["id"]) if node.get("id") is not None else None,
            name=node.get("name", ""),
            tagline=node.get("tagline") or "",
            description=node.get("description") or "",
            url=node.get("url") or "",
            website=node.get("website") or None,
            votes_count=node.get("votesCount") or 0,
            created_at=node.get("createdAt"),
            topics=[t["node"]["name"] for t in topic_edges if (t.get("node") or {}).get("name")],
        )
