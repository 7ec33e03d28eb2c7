"""
Research Module
Topic research pipeline: keyword resolution, per-keyword product search,
deduplication and enrichment overlay.
"""

from phresearch.core.research.merging import DeduplicationResult, ProductDeduplicator, merge_enrichment
from phresearch.core.research.research_orchestrator import ResearchOrchestrator

__all__ = ["ResearchOrchestrator", "ProductDeduplicator", "DeduplicationResult", "merge_enrichment"]
