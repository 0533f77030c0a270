from __future__ import annotations

from deepresearch.models.research import SourceResult, SourceType
from deepresearch.tools.base import SourceAdapter

GITHUB_SEARCH_URL = "https://api.github.com/search/repositories"


class GitHubAdapter(SourceAdapter):
    """Repository search, most-starred first."""

    name = "github"
    source_type = SourceType.CODE

    async def _search(self, query: str, max_results: int) -> list[SourceResult]:
        async with self._http_client(Accept="application/vnd.github.v3+json") as client:
            response = await client.get(
                GITHUB_SEARCH_URL,
                params={"q": query, "sort": "stars", "order": "desc", "per_page": max_results},
            )
            response.raise_for_status()
            payload = response.json()

        results: list[SourceResult] = []
        for repo in payload.get("items", []):
            stars = repo.get("stargazers_count", 0)
            language = repo.get("language") or "Unknown"
            results.append(
                self._result(
                    query,
                    title=repo.get("full_name", ""),
                    url=repo.get("html_url", ""),
                    snippet=repo.get("description") or f"{stars} stars | {language}",
                    metadata={"stars": stars, "language": language, "forks": repo.get("forks_count", 0)},
                )
            )
        return results
