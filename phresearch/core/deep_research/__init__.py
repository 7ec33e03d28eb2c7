"""
Deep Research Module
Per-product annotations from an external research workflow, fetched on a
canonical (redirect-resolved) product URL.
"""

from phresearch.core.deep_research.enrichment_fetcher import EnrichmentFetcher
from phresearch.core.deep_research.url_resolver import UrlResolver
from phresearch.core.deep_research.workflow_client import DeepResearchWorkflowClient

__all__ = ["EnrichmentFetcher", "UrlResolver", "DeepResearchWorkflowClient"]
