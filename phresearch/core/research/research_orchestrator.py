"""
Research Orchestrator - topic → keywords → per-keyword product search → merge.

    topic ──► KeywordGenerator (unless skip_generation)
          ──► ProductSource × N keywords (bounded concurrency)
          ──► ProductDeduplicator
          ──► merge_enrichment (when existing annotations are supplied)
          ──► ResearchResult

The orchestrator keeps no state between runs. History, favorites and the
enrichment cache belong to the caller and are passed in / handed back.
"""

import asyncio
import time
from typing import Dict, List, Mapping, Optional
from loguru import logger

from phresearch.core.errors import InvalidKeywordSetError, SourceError
from phresearch.core.research.merging import ProductDeduplicator, merge_enrichment
from phresearch.models.config import PipelineConfig
from phresearch.models.research import (
    Keyword, KeywordSearch, KeywordStatus, ResearchResult,
)


class ResearchOrchestrator:
    """
    Runs one research pass for a topic.

    Failure policy:
    - InvalidKeywordSetError: adjusted keyword set is empty, raised before any call
    - GenerationError: propagated unchanged from the keyword generator
    - SourceError: cancels outstanding searches and propagates
    - anything else during a keyword search: that keyword contributes nothing
    """

    def __init__(self, keyword_generator, product_source, config: Optional[PipelineConfig] = None):
        self.keyword_generator = keyword_generator
        self.product_source = product_source
        self.config = config or PipelineConfig()
        self.deduplicator = ProductDeduplicator(self.config.identity_strategy)

    async def run_research(
        self,
        topic: str,
        existing_enrichment: Optional[Mapping[str, str]] = None,
        adjusted_keywords: Optional[Mapping[str, int]] = None,
        skip_generation: bool = False,
    ) -> ResearchResult:
        start_time = time.time()
        logger.info(f"[ResearchOrchestrator] Researching topic: '{topic}'")

        # 1. Keyword resolution
        keywords = await self._resolve_keywords(topic, adjusted_keywords, skip_generation)

        # 2. Fan-out search
        searches = await self._search_all(keywords)

        # 3. Deduplication
        dedup = self.deduplicator.merge(search.products for search in searches)
        products = dedup.products

        # 4. Enrichment merge
        if existing_enrichment is not None:
            products = merge_enrichment(products, existing_enrichment)

        failed = [s.keyword for s in searches if s.failed]
        if failed:
            logger.warning(f"[ResearchOrchestrator] Keywords with upstream failures: {failed}")

        elapsed = (time.time() - start_time) * 1000
        logger.info(
            f"[ResearchOrchestrator] '{topic}' done in {elapsed:.0f}ms: "
            f"{len(keywords)} keywords -> {len(products)} products"
        )

        return ResearchResult(
            keywords=[k.keyword for k in keywords],
            products=products,
            content="",
            keyword_stats=[KeywordStatus.from_search(s) for s in searches],
        )

    async def _resolve_keywords(
        self,
        topic: str,
        adjusted_keywords: Optional[Mapping[str, int]],
        skip_generation: bool,
    ) -> List[Keyword]:
        if skip_generation:
            keywords = self.normalize_adjusted_keywords(adjusted_keywords)
            if not keywords:
                raise InvalidKeywordSetError(details={"topic": topic})
            logger.info(f"[ResearchOrchestrator] Using adjusted keywords: {[(k.keyword, k.weight) for k in keywords]}")
            return keywords

        if adjusted_keywords:
            logger.debug("[ResearchOrchestrator] adjusted_keywords ignored because generation is not skipped")

        generated = await self.keyword_generator.generate(topic)
        return [Keyword(keyword=k, weight=self.config.default_weight) for k in generated]

    @staticmethod
    def normalize_adjusted_keywords(adjusted_keywords: Optional[Mapping[str, int]]) -> List[Keyword]:
        """
        Trim keys, drop blank keys and weights below 1. Keys that collapse
        together after trimming keep the first position and the last weight.
        """
        weights: Dict[str, int] = {}
        for raw_keyword, raw_weight in (adjusted_keywords or {}).items():
            keyword = (raw_keyword or "").strip()
            if not keyword:
                continue
            try:
                weight = int(raw_weight)
            except (TypeError, ValueError):
                continue
            if weight < 1:
                continue
            weights[keyword] = weight
        return [Keyword(keyword=k, weight=w) for k, w in weights.items()]

    async def _search_one(self, kw: Keyword) -> KeywordSearch:
        try:
            return await self.product_source.search_keyword(kw.keyword, kw.weight)
        except SourceError:
            raise
        except Exception as e:
            logger.warning(f"[ResearchOrchestrator] Search for '{kw.keyword}' raised: {e}")
            return KeywordSearch(keyword=kw.keyword, weight=kw.weight, failed=True, error=str(e)[:200])

    async def _search_all(self, keywords: List[Keyword]) -> List[KeywordSearch]:
        """One search per keyword, at most max_concurrent_searches at a time, results in keyword order."""
        if self.config.max_concurrent_searches == 1:
            searches = []
            for kw in keywords:
                searches.append(await self._search_one(kw))
            return searches

        semaphore = asyncio.Semaphore(self.config.max_concurrent_searches)

        async def _bounded_search(kw: Keyword) -> KeywordSearch:
            async with semaphore:
                return await self._search_one(kw)

        tasks = [asyncio.ensure_future(_bounded_search(kw)) for kw in keywords]
        try:
            return list(await asyncio.gather(*tasks))
        except SourceError as e:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.error(f"[ResearchOrchestrator] Fatal source error, aborting run: {e}")
            raise
