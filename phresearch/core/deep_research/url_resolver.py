"""
URL Resolver - follows redirects from a product website to its canonical URL.
"""

from typing import Optional

import httpx
from loguru import logger

from phresearch.core.errors import SiteUnavailableError
from phresearch.models.config import DeepResearchConfig


class UrlResolver:
    """Resolves a raw website URL to the final URL after redirects."""

    DEFAULT_HEADERS = {
        "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    }

    def __init__(self, config: Optional[DeepResearchConfig] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or DeepResearchConfig()
        self._transport = transport

    async def resolve(self, url: str) -> str:
        """
        Return the final URL after following redirects.

        Raises:
            SiteUnavailableError: terminal status >= 400, timeout, too many
                redirects or any transport failure
        """
        if not url or not url.strip():
            raise SiteUnavailableError(url=url or "")

        try:
            async with httpx.AsyncClient(
                headers=self.DEFAULT_HEADERS,
                timeout=httpx.Timeout(self.config.resolve_timeout),
                follow_redirects=True,
                max_redirects=self.config.max_redirects,
                transport=self._transport,
            ) as client:
                response = await client.get(url.strip())
        except httpx.TimeoutException:
            logger.warning(f"[UrlResolver] Timeout resolving {url}")
            raise SiteUnavailableError(url=url, details={"reason": "timeout"})
        except httpx.TooManyRedirects:
            logger.warning(f"[UrlResolver] Too many redirects for {url}")
            raise SiteUnavailableError(url=url, details={"reason": "too_many_redirects"})
        except httpx.HTTPError as e:
            logger.warning(f"[UrlResolver] Failed to resolve {url}: {e}")
            raise SiteUnavailableError(url=url, details={"reason": str(e)[:200]})

        if response.status_code >= 400:
            logger.warning(f"[UrlResolver] {url} answered HTTP {response.status_code}")
            raise SiteUnavailableError(url=url, details={"status_code": response.status_code})

        resolved = str(response.url)
        if resolved != url:
            logger.debug(f"[UrlResolver] {url} -> {resolved}")
        return resolved
