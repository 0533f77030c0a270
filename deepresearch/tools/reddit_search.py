from __future__ import annotations

from deepresearch.models.research import SourceResult, SourceType
from deepresearch.tools.base import SourceAdapter

REDDIT_SEARCH_URL = "https://www.reddit.com/search.json"


class RedditAdapter(SourceAdapter):
    name = "reddit"
    source_type = SourceType.DISCUSSION

    async def _search(self, query: str, max_results: int) -> list[SourceResult]:
        async with self._http_client() as client:
            response = await client.get(
                REDDIT_SEARCH_URL,
                params={"q": query, "limit": max_results, "sort": "relevance", "t": "year"},
            )
            response.raise_for_status()
            payload = response.json()

        results: list[SourceResult] = []
        for child in payload.get("data", {}).get("children", []):
            post = child.get("data", {})
            if not post.get("title") or not post.get("permalink"):
                continue
            selftext = (post.get("selftext") or "").strip()
            results.append(
                self._result(
                    query,
                    title=post["title"],
                    url=f"https://reddit.com{post['permalink']}",
                    snippet=selftext[:200] if selftext else f"r/{post.get('subreddit')} • {post.get('score', 0)} upvotes",
                    metadata={
                        "subreddit": post.get("subreddit"),
                        "score": post.get("score", 0),
                        "comments": post.get("num_comments", 0),
                    },
                )
            )
        return results
