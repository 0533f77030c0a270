from __future__ import annotations

from typing import Iterable

import httpx
from loguru import logger

from deepresearch.config import settings
from deepresearch.tools.arxiv_search import ArxivAdapter
from deepresearch.tools.base import SourceAdapter
from deepresearch.tools.duckduckgo_search import DuckDuckGoAdapter
from deepresearch.tools.github_search import GitHubAdapter
from deepresearch.tools.hackernews_search import HackerNewsAdapter
from deepresearch.tools.reddit_search import RedditAdapter
from deepresearch.tools.tavily_search import TavilyAdapter
from deepresearch.tools.wikipedia_search import WikipediaAdapter

ADAPTERS: dict[str, type[SourceAdapter]] = {
    adapter.name: adapter
    for adapter in (
        DuckDuckGoAdapter,
        TavilyAdapter,
        WikipediaAdapter,
        ArxivAdapter,
        HackerNewsAdapter,
        RedditAdapter,
        GitHubAdapter,
    )
}


def build_adapters(
    names: Iterable[str] | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[SourceAdapter]:
    """Instantiate the enabled adapters in the configured order.

    Unknown names are a configuration error. Tavily is skipped without a key.
    """
    selected = [n.lower().strip() for n in (names or settings.search_sources) if n.strip()]
    unknown = [n for n in selected if n not in ADAPTERS]
    if unknown:
        raise ValueError(f"Unsupported search source(s): {', '.join(unknown)}")

    adapters: list[SourceAdapter] = []
    for name in dict.fromkeys(selected):
        if name == TavilyAdapter.name and not settings.tavily_api_key:
            logger.info("Tavily disabled: TAVILY_API_KEY is not set")
            continue
        adapters.append(ADAPTERS[name](transport=transport))
    return adapters
