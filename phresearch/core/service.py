"""
Research Service
Wires configuration, collaborators and the caller-owned store around the
stateless research pipeline.
"""
from typing import Dict, Iterable, List, Mapping, Optional
from loguru import logger

from phresearch.models.config import AppConfig, load_config
from phresearch.models.research import Product, ResearchResult
from phresearch.core.llm.llm_router import LLMRouter
from phresearch.core.keywords.keyword_generator import KeywordGenerator
from phresearch.core.product_search.providers import BaseProductSource, ProductHuntProvider
from phresearch.core.research import ResearchOrchestrator, merge_enrichment
from phresearch.core.deep_research import EnrichmentFetcher
from phresearch.core.storage.sqlite_manager import ResearchStore


class ResearchService:
    """
    Embedding application for the research pipeline.

    Owns everything that outlives a single run: topic history (also used as
    the result cache), favorites and the deep research annotation cache.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        store: Optional[ResearchStore] = None,
        keyword_generator=None,
        product_source: Optional[BaseProductSource] = None,
        enrichment_fetcher: Optional[EnrichmentFetcher] = None,
    ):
        self.config = config or load_config()

        logger.info("Initializing research service components...")

        self.llm_router = LLMRouter(self.config.llm)
        self.keyword_generator = keyword_generator or KeywordGenerator(
            self.llm_router, keyword_count=self.config.pipeline.keyword_count
        )
        self.product_source = product_source or ProductHuntProvider(self.config.producthunt)
        self.orchestrator = ResearchOrchestrator(
            self.keyword_generator, self.product_source, self.config.pipeline
        )
        self.enrichment_fetcher = enrichment_fetcher or EnrichmentFetcher(config=self.config.deep_research)
        self.store = store or ResearchStore(self.config.db_path)

        logger.info("Research service initialized")

    async def research(
        self,
        topic: str,
        existing_enrichment: Optional[Mapping[str, str]] = None,
        adjusted_keywords: Optional[Mapping[str, int]] = None,
        skip_generation: bool = False,
        refresh: bool = False,
    ) -> ResearchResult:
        """
        RunResearch with caller policy applied: a topic already in history is
        answered from the store without any external call, unless the request
        re-runs with adjusted keywords or asks for a refresh.
        """
        enrichment = self.store.get_enrichments()
        if existing_enrichment:
            enrichment.update(existing_enrichment)

        if not skip_generation and not refresh:
            cached = self.store.get_history(topic)
            if cached is not None:
                logger.info(f"Serving topic '{topic}' from history")
                # annotations fetched after the run was stored
                return cached.model_copy(update={"products": merge_enrichment(cached.products, enrichment)})

        result = await self.orchestrator.run_research(
            topic,
            existing_enrichment=enrichment,
            adjusted_keywords=adjusted_keywords,
            skip_generation=skip_generation,
        )

        self.store.save_history(topic, result)
        return result

    async def fetch_enrichment(self, website: str) -> str:
        """FetchEnrichment for one product, cached under the given website key."""
        output = await self.enrichment_fetcher.fetch(website)
        self.store.save_enrichment(website, output)
        self.store.update_favorite_research(website, output)
        return output

    async def fetch_enrichments(self, websites: Iterable[str]) -> Dict[str, Dict]:
        """
        FetchEnrichment for several products at once. Successful outputs are
        cached like single fetches; each failure is reported for its own website.
        """
        results = await self.enrichment_fetcher.fetch_many(websites)

        report = {}
        for website, result in results.items():
            if isinstance(result, Exception):
                report[website] = {"error": result.message, "type": type(result).__name__}
                continue
            self.store.save_enrichment(website, result)
            self.store.update_favorite_research(website, result)
            report[website] = {"output": result}

        logger.info(f"Enriched {sum('output' in r for r in report.values())}/{len(report)} websites")
        return report

    async def resolve_url(self, url: str) -> str:
        return await self.enrichment_fetcher.resolver.resolve(url)

    async def run_workflow(self, url: str) -> str:
        """Run the deep research workflow on a URL that is already canonical."""
        return await self.enrichment_fetcher.workflow.run(url)

    # --- History & favorites passthrough ---

    def list_history(self) -> List[Dict]:
        return self.store.list_history()

    def get_history(self, topic: str) -> Optional[ResearchResult]:
        return self.store.get_history(topic)

    def delete_history(self, topic: str) -> bool:
        return self.store.delete_history(topic)

    def clear_history(self):
        self.store.clear_history()

    def add_favorite(self, product: Product) -> Dict:
        return self.store.add_favorite(product)

    def get_favorites(self) -> List[Dict]:
        return self.store.get_favorites()

    def remove_favorite(self, key: str) -> bool:
        return self.store.remove_favorite(key)

    def get_statistics(self) -> Dict:
        return {
            "llm": self.llm_router.get_statistics(),
            "history_topics": len(self.store.list_history()),
            "favorites": len(self.store.get_favorites()),
        }
