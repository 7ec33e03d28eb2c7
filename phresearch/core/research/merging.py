"""
Product merging - deduplication across keyword searches and overlay of
previously fetched deep research annotations.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from loguru import logger

from phresearch.models.config import IdentityStrategy
from phresearch.models.research import Product


@dataclass
class DeduplicationResult:
    """Deduplicated products plus how many keyword queries returned each one."""
    products: List[Product]
    source_counts: Dict[str, int] = field(default_factory=dict)


class ProductDeduplicator:
    """
    Collapses repeated listings into one product per identity key.

    When two records share a key the later one wins, but the product keeps
    the position where its key was first seen.
    """

    def __init__(self, strategy: IdentityStrategy = IdentityStrategy.NAME):
        self.strategy = strategy

    def identity_key(self, product: Product) -> str:
        if self.strategy == IdentityStrategy.NORMALIZED_NAME:
            return " ".join(product.name.split()).casefold()
        if self.strategy == IdentityStrategy.SOURCE_ID and product.id:
            return f"id:{product.id}"
        return product.name

    def deduplicate(self, products: Iterable[Product]) -> List[Product]:
        unique: Dict[str, Product] = {}
        for product in products:
            unique[self.identity_key(product)] = product
        return list(unique.values())

    def merge(self, result_lists: Iterable[Iterable[Product]]) -> DeduplicationResult:
        """Concatenate per-keyword result lists in order and deduplicate them."""
        unique: Dict[str, Product] = {}
        source_counts: Dict[str, int] = {}
        total = 0

        for result_list in result_lists:
            seen_in_query = set()
            for product in result_list:
                key = self.identity_key(product)
                unique[key] = product
                total += 1
                if key not in seen_in_query:
                    seen_in_query.add(key)
                    source_counts[key] = source_counts.get(key, 0) + 1

        logger.info(f"[ProductDeduplicator] {total} raw -> {len(unique)} unique products")
        return DeduplicationResult(products=list(unique.values()), source_counts=source_counts)


def merge_enrichment(
    products: Iterable[Product],
    enrichment: Optional[Mapping[str, str]],
) -> List[Product]:
    """
    Attach known deep research annotations to products by enrichment key.

    Returns new Product objects; neither the products nor the mapping are
    modified. Products without a matching key come back unchanged.
    """
    if not enrichment:
        return [p.model_copy() for p in products]

    merged = []
    matched = 0
    for product in products:
        key = product.enrichment_key
        if key and key in enrichment:
            merged.append(product.model_copy(update={"deep_research": enrichment[key]}))
            matched += 1
        else:
            merged.append(product.model_copy())

    logger.debug(f"[EnrichmentMerger] Attached {matched} existing annotations")
    return merged
