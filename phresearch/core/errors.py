"""
Research pipeline exceptions.

Everything raised on purpose by the pipeline inherits from ``ResearchError``,
so the API layer can tell user-facing failures apart from programming errors.
"""

from typing import Any, Dict, Optional


UNSCRAPABLE_PAGE_MESSAGE = "This page may not be scrapable, please visit it manually"
SITE_UNAVAILABLE_MESSAGE = "This website may no longer be available"


class ResearchError(Exception):
    """Base exception for all research pipeline errors."""

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}


class InvalidKeywordSetError(ResearchError):
    """The caller-supplied keyword set had no usable entry."""

    def __init__(self, message: str = "Please provide at least one valid keyword", details=None):
        super().__init__(message, details)


class GenerationError(ResearchError):
    """Keyword generation failed or produced nothing usable. The run is aborted."""

    def __init__(self, message: str = "Keyword generation failed, please try again", details=None):
        super().__init__(message, details)


class SourceError(ResearchError):
    """
    The product directory rejected the request outright (bad or missing
    credentials, malformed request). Fatal for the whole run.
    """

    def __init__(self, message: str = "Product directory rejected the request", status_code: Optional[int] = None, details=None):
        super().__init__(message, details)
        self.status_code = status_code


class SiteUnavailableError(ResearchError):
    """A product website could not be resolved to a live canonical URL."""

    def __init__(self, message: str = SITE_UNAVAILABLE_MESSAGE, url: str = "", details=None):
        super().__init__(message, details)
        self.url = url


class EnrichmentFetchError(ResearchError):
    """The deep research workflow returned no usable output for one product."""

    def __init__(self, message: str = UNSCRAPABLE_PAGE_MESSAGE, url: str = "", details=None):
        super().__init__(message, details)
        self.url = url
