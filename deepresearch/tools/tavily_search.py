from __future__ import annotations

from typing import Any, Callable

from tavily import AsyncTavilyClient

from deepresearch.config import settings
from deepresearch.models.research import SourceResult, SourceType
from deepresearch.tools.base import SourceAdapter


class TavilyAdapter(SourceAdapter):
    """Tavily AI search; results are pre-vetted by the provider."""

    name = "tavily"
    source_type = SourceType.AI_SEARCH

    def __init__(
        self,
        *,
        api_key: str | None = None,
        client_factory: Callable[[str], Any] | None = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.api_key = api_key if api_key is not None else settings.tavily_api_key
        self._client_factory = client_factory or (lambda key: AsyncTavilyClient(api_key=key))

    async def _search(self, query: str, max_results: int) -> list[SourceResult]:
        if not self.api_key:
            raise RuntimeError("TAVILY_API_KEY is not configured")

        client = self._client_factory(self.api_key)
        response = await client.search(
            query=query,
            search_depth="advanced",
            max_results=max_results,
            include_answer=False,
            include_raw_content=False,
        )

        return [
            self._result(
                query,
                title=r.get("title", ""),
                url=r.get("url", ""),
                snippet=r.get("content", "") or r.get("snippet", ""),
                score=r.get("score"),
                metadata={"published": r.get("published_date")} if r.get("published_date") else {},
            )
            for r in response.get("results", [])
        ]
