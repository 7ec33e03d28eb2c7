"""
Deep Research Workflow Client - runs the hosted (Coze) research workflow on
one canonical product URL and returns its text output.
"""

import json
from typing import Optional

import httpx
from loguru import logger

from phresearch.core.errors import EnrichmentFetchError, UNSCRAPABLE_PAGE_MESSAGE
from phresearch.models.config import DeepResearchConfig


class DeepResearchWorkflowClient:
    """Calls the workflow API; every unusable answer becomes EnrichmentFetchError."""

    def __init__(self, config: Optional[DeepResearchConfig] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or DeepResearchConfig()
        self._transport = transport

    async def run(self, url: str) -> str:
        if not self.config.api_key or not self.config.workflow_id:
            raise EnrichmentFetchError("Deep research workflow is not configured", url=url)

        payload = {
            "parameters": {"input": url},
            "workflow_id": self.config.workflow_id,
        }
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.workflow_timeout),
                transport=self._transport,
            ) as client:
                response = await client.post(self.config.workflow_url, json=payload, headers=headers)
            body = response.json()
        except httpx.HTTPError as e:
            logger.error(f"[DeepResearch] Workflow request failed for {url}: {e}")
            raise EnrichmentFetchError(f"Deep research failed: {e}", url=url)
        except ValueError:
            logger.error(f"[DeepResearch] Workflow returned non-JSON body (HTTP {response.status_code})")
            raise EnrichmentFetchError(url=url, details={"status_code": response.status_code})

        return self._extract_output(body, url)

    def _extract_output(self, body, url: str) -> str:
        if not isinstance(body, dict) or body.get("code") != 0:
            logger.error(f"[DeepResearch] Workflow returned an error: {body}")
            message = (body.get("msg") if isinstance(body, dict) else "") or ""
            details = {"upstream": message}
            if isinstance(body, dict) and "code" in body:
                details["code"] = body["code"]
            raise EnrichmentFetchError(url=url, details=details)

        data = body.get("data")
        try:
            parsed = json.loads(data) if isinstance(data, str) else data
        except json.JSONDecodeError:
            logger.error(f"[DeepResearch] Could not parse workflow data for {url}")
            raise EnrichmentFetchError(url=url)

        output = parsed.get("output") if isinstance(parsed, dict) else None
        if not output or not isinstance(output, str):
            logger.error(f"[DeepResearch] Workflow data has no output for {url}")
            raise EnrichmentFetchError(UNSCRAPABLE_PAGE_MESSAGE, url=url)

        return output
