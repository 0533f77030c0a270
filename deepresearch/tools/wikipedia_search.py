from __future__ import annotations

from typing import Any
from urllib.parse import quote, unquote

import httpx

from deepresearch.models.research import ContentRecord, SourceResult, SourceType
from deepresearch.tools.base import SourceAdapter
from deepresearch.tools.web_utils import strip_html, word_count

WIKIPEDIA_API_URL = "https://en.wikipedia.org/w/api.php"


def article_url(title: str) -> str:
    return f"https://en.wikipedia.org/wiki/{quote(title.replace(' ', '_'))}"


def title_from_url(url: str) -> str | None:
    if "/wiki/" not in url:
        return None
    title = url.split("/wiki/", 1)[1].split("#", 1)[0].split("?", 1)[0]
    return unquote(title).replace("_", " ") or None


def is_article_url(url: str) -> bool:
    return "wikipedia.org/wiki/" in url


async def fetch_article(client: httpx.AsyncClient, url: str) -> ContentRecord:
    """Plain-text article body via the MediaWiki extracts API."""
    title = title_from_url(url)
    if not title:
        return ContentRecord.failed(url, "Invalid Wikipedia URL", method="wikipedia")

    response = await client.get(
        WIKIPEDIA_API_URL,
        params={
            "action": "query",
            "titles": title,
            "prop": "extracts",
            "explaintext": 1,
            "redirects": 1,
            "format": "json",
        },
    )
    response.raise_for_status()
    pages: dict[str, Any] = response.json().get("query", {}).get("pages", {})
    page = next(iter(pages.values()), {})
    extract = page.get("extract") or ""
    if not extract:
        return ContentRecord.failed(url, "Wikipedia article has no extract", method="wikipedia")
    return ContentRecord(
        url=url,
        title=page.get("title", title),
        body=extract,
        word_count=word_count(extract),
        method="wikipedia",
    )


class WikipediaAdapter(SourceAdapter):
    name = "wikipedia"
    source_type = SourceType.ENCYCLOPEDIA

    async def _search(self, query: str, max_results: int) -> list[SourceResult]:
        async with self._http_client() as client:
            response = await client.get(
                WIKIPEDIA_API_URL,
                params={
                    "action": "query",
                    "list": "search",
                    "srsearch": query,
                    "srlimit": max_results,
                    "format": "json",
                },
            )
            response.raise_for_status()
            payload = response.json()

        return [
            self._result(
                query,
                title=item.get("title", ""),
                url=article_url(item.get("title", "")),
                snippet=strip_html(item.get("snippet", "")),
                metadata={"word_count": item.get("wordcount", 0)},
            )
            for item in payload.get("query", {}).get("search", [])
        ]
