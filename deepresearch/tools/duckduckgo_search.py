from __future__ import annotations

from urllib.parse import parse_qs, unquote, urlparse

from bs4 import BeautifulSoup

from deepresearch.models.research import SourceResult, SourceType
from deepresearch.tools.base import SourceAdapter
from deepresearch.tools.web_utils import is_valid_url, normalize_whitespace

DUCKDUCKGO_HTML_URL = "https://html.duckduckgo.com/html/"


def clean_redirect_url(url: str) -> str:
    """Unwrap DuckDuckGo's ``/l/?uddg=<target>`` redirect links."""
    if "uddg=" not in url:
        return url
    if url.startswith("//"):
        url = "https:" + url
    target = parse_qs(urlparse(url).query).get("uddg")
    return unquote(target[0]) if target else url


def parse_results_html(html: str, max_results: int) -> list[dict[str, str]]:
    soup = BeautifulSoup(html, "html.parser")
    parsed: list[dict[str, str]] = []
    for node in soup.select(".result"):
        if len(parsed) >= max_results:
            break
        link = node.select_one(".result__title a")
        if link is None:
            continue
        url = clean_redirect_url(link.get("href", "") or "")
        if not is_valid_url(url) or "duckduckgo.com" in urlparse(url).netloc:
            continue
        snippet = node.select_one(".result__snippet")
        parsed.append(
            {
                "title": normalize_whitespace(link.get_text(" ")),
                "url": url,
                "snippet": normalize_whitespace(snippet.get_text(" ")) if snippet else "",
            }
        )
    return parsed


class DuckDuckGoAdapter(SourceAdapter):
    """General web search through the DuckDuckGo HTML endpoint (no key needed)."""

    name = "duckduckgo"
    source_type = SourceType.WEB

    async def _search(self, query: str, max_results: int) -> list[SourceResult]:
        async with self._http_client(Accept="text/html,application/xhtml+xml") as client:
            response = await client.get(DUCKDUCKGO_HTML_URL, params={"q": query})
            response.raise_for_status()

        return [
            self._result(query, **item)
            for item in parse_results_html(response.text, max_results)
        ]
