"""
Enrichment Fetcher - FetchEnrichment for one product website:
resolve the canonical URL first, then run the deep research workflow on it.
"""

import asyncio
from typing import Dict, Iterable, Optional, Union
from loguru import logger

from phresearch.core.deep_research.url_resolver import UrlResolver
from phresearch.core.deep_research.workflow_client import DeepResearchWorkflowClient
from phresearch.core.errors import ResearchError
from phresearch.models.config import DeepResearchConfig


class EnrichmentFetcher:
    """
    Fetches deep research annotations, one product at a time or in bounded batches.
    A failure only ever concerns the product being enriched.
    """

    def __init__(
        self,
        resolver: Optional[UrlResolver] = None,
        workflow: Optional[DeepResearchWorkflowClient] = None,
        config: Optional[DeepResearchConfig] = None,
    ):
        self.config = config or DeepResearchConfig()
        self.resolver = resolver or UrlResolver(self.config)
        self.workflow = workflow or DeepResearchWorkflowClient(self.config)

    async def fetch(self, website: str) -> str:
        """
        Raises:
            SiteUnavailableError: the website did not resolve; the workflow is not called
            EnrichmentFetchError: the workflow produced no usable output
        """
        canonical_url = await self.resolver.resolve(website)
        logger.info(f"[DeepResearch] Running workflow for {canonical_url}")
        output = await self.workflow.run(canonical_url)
        logger.info(f"[DeepResearch] Got {len(output)} chars for {website}")
        return output

    async def fetch_many(self, websites: Iterable[str]) -> Dict[str, Union[str, ResearchError]]:
        """Fetch several websites concurrently; values are outputs or the per-site error."""
        unique = list(dict.fromkeys(w for w in websites if w))
        semaphore = asyncio.Semaphore(self.config.concurrent_fetches)

        async def _bounded_fetch(website: str) -> Union[str, ResearchError]:
            async with semaphore:
                try:
                    return await self.fetch(website)
                except ResearchError as e:
                    logger.warning(f"[DeepResearch] {website}: {e.message}")
                    return e

        results = await asyncio.gather(*[_bounded_fetch(w) for w in unique])
        return dict(zip(unique, results))
