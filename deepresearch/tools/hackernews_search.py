from __future__ import annotations

from deepresearch.models.research import SourceResult, SourceType
from deepresearch.tools.base import SourceAdapter
from deepresearch.tools.web_utils import strip_html

HN_SEARCH_URL = "https://hn.algolia.com/api/v1/search"


class HackerNewsAdapter(SourceAdapter):
    """Hacker News stories through the Algolia search API."""

    name = "hackernews"
    source_type = SourceType.TECH_NEWS

    async def _search(self, query: str, max_results: int) -> list[SourceResult]:
        async with self._http_client() as client:
            response = await client.get(
                HN_SEARCH_URL,
                params={"query": query, "tags": "story", "hitsPerPage": max_results},
            )
            response.raise_for_status()
            payload = response.json()

        results: list[SourceResult] = []
        for hit in payload.get("hits", []):
            title = hit.get("title") or ""
            if not title:
                continue
            points = hit.get("points") or 0
            comments = hit.get("num_comments") or 0
            story_text = hit.get("story_text")
            results.append(
                self._result(
                    query,
                    title=title,
                    url=hit.get("url") or f"https://news.ycombinator.com/item?id={hit.get('objectID')}",
                    snippet=strip_html(story_text)[:200] if story_text else f"{points} points | {comments} comments",
                    metadata={"points": points, "comments": comments, "date": hit.get("created_at")},
                )
            )
        return results
