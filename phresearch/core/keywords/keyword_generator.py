"""
Keyword Generator - Turns a free-text product topic into directory search tags.
One LLM call per topic, no retry: the caller decides whether to abort.
"""

import asyncio
import re
from typing import List
from loguru import logger

from phresearch.core.errors import GenerationError


SYSTEM_PROMPT = """You are a product analysis expert. Given a topic, generate search tags suitable for ProductHunt.

Rules:
1. Translate the topic into English and generate related tags
2. Understand what kind of product the topic describes and include tags for the same category
   (for example, for "smart customer acquisition" include "lead", "lead-generation" and similar tags)"""

USER_PROMPT = (
    'Generate {count} ProductHunt topic tags for the topic "{topic}" '
    "(prefer the single most relevant English word per tag). "
    "Return only the tags, separated by commas. For example: ai, productivity, lead, design-tools, ai-tools"
)

# "1. ai", "- ai", "* ai", "#ai"
_LIST_MARKER = re.compile(r'^\s*(?:[-*•]+|\d+[.)])\s*')


class KeywordGenerator:
    """Generates an ordered list of search keywords for a topic using the LLM."""

    def __init__(self, llm_router, keyword_count: int = 10):
        self.llm = llm_router
        self.keyword_count = keyword_count

    async def generate(self, topic: str) -> List[str]:
        """
        Generate keywords for a topic.

        Raises:
            GenerationError: the model call failed or returned nothing usable
        """
        messages = [{
            "role": "user",
            "content": USER_PROMPT.format(count=self.keyword_count, topic=topic),
        }]

        try:
            loop = asyncio.get_event_loop()
            response = await loop.run_in_executor(
                None,
                lambda: self.llm.complete(messages=messages, system_prompt=SYSTEM_PROMPT),
            )
        except Exception as e:
            logger.error(f"[KeywordGenerator] Model call failed for topic '{topic}': {e}")
            raise GenerationError(details={"topic": topic, "cause": str(e)}) from e

        keywords = self.parse_keywords(response)[:self.keyword_count]
        if not keywords:
            logger.error(f"[KeywordGenerator] Unusable model response for topic '{topic}': {response!r}")
            raise GenerationError(details={"topic": topic, "response": response})

        logger.info(f"[KeywordGenerator] Generated keywords for '{topic}': {keywords}")
        return keywords

    @staticmethod
    def parse_keywords(response) -> List[str]:
        """Split a comma- or line-separated model response into clean, unique tags."""
        if not response or not isinstance(response, str):
            return []

        keywords = []
        for part in re.split(r'[,\n，]', response):
            tag = _LIST_MARKER.sub('', part)
            tag = tag.strip().strip('"\'`').lstrip('#').strip().lower()
            if tag and tag not in keywords:
                keywords.append(tag)
        return keywords
