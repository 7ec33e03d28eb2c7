"""
Product directory sources.
"""
from phresearch.core.product_search.providers.base_provider import BaseProductSource
from phresearch.core.product_search.providers.producthunt_provider import ProductHuntProvider

__all__ = [
    "BaseProductSource",
    "ProductHuntProvider",
]
