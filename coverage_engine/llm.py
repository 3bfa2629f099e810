"""
Coverage Desk — Claude Generation Client
──────────────────────────────────────────
The one text-generation collaborator the service depends on.

  generate(system, prompt)  → memo text. Any failure is a GenerationError,
                              the only error that reaches the HTTP layer.
  research(prompt)          → web-search-grounded notes for WebResearchSource.

The Anthropic SDK client is synchronous; calls run in the default executor
so the event loop stays free for concurrent research fetches.
"""

import asyncio
import logging
from typing import Optional

from anthropic import Anthropic

from coverage_engine import config

log = logging.getLogger("cov.llm")

WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search", "max_uses": 5}


class GenerationError(Exception):
    """The memo could not be generated."""


def response_text(response) -> str:
    """Concatenate the text blocks of a Messages API response (tool blocks skipped)."""
    parts = []
    for block in getattr(response, "content", None) or []:
        if getattr(block, "type", None) == "text" and getattr(block, "text", None):
            parts.append(block.text)
    return "\n".join(parts).strip()


class MemoGenerator:
    def __init__(self, api_key: str = None, model: str = None, max_tokens: int = None,
                 timeout: float = None, client: Optional[Anthropic] = None):
        self.model      = model or config.MEMO_MODEL
        self.max_tokens = max_tokens or config.MEMO_MAX_TOKENS
        self.timeout    = timeout or config.GENERATION_TIMEOUT
        api_key = config.ANTHROPIC_API_KEY if api_key is None else api_key
        if client is not None:
            self.client = client
        elif api_key:
            self.client = Anthropic(api_key=api_key, timeout=self.timeout)
        else:
            self.client = None

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def _create(self, **kwargs):
        loop = asyncio.get_event_loop()
        call = loop.run_in_executor(None, lambda: self.client.messages.create(**kwargs))
        return await asyncio.wait_for(call, timeout=self.timeout)

    async def generate(self, system: str, prompt: str) -> str:
        if not self.enabled:
            raise GenerationError("Generation disabled — set ANTHROPIC_API_KEY")
        try:
            response = await self._create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            )
        except asyncio.TimeoutError as e:
            log.error(f"Claude generation timed out after {self.timeout:.0f}s")
            raise GenerationError("Generation timed out") from e
        except Exception as e:
            log.error(f"Claude API error: {e}")
            raise GenerationError(str(e)) from e

        text = response_text(response)
        if not text:
            raise GenerationError("Empty response from generation model")
        return text

    async def research(self, prompt: str, max_tokens: int = 4000) -> str:
        """Web-search tool call. Errors propagate; the calling source turns them into a soft failure."""
        if not self.enabled:
            raise GenerationError("Generation disabled — set ANTHROPIC_API_KEY")
        response = await self._create(
            model=self.model,
            max_tokens=max_tokens,
            tools=[WEB_SEARCH_TOOL],
            messages=[{"role": "user", "content": prompt}],
        )
        return response_text(response)
