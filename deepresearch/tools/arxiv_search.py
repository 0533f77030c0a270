"""arXiv preprint search and abstract lookup via the public export API."""
from __future__ import annotations

import re
import xml.etree.ElementTree as ET

import httpx

from deepresearch.models.research import ContentRecord, SourceResult, SourceType
from deepresearch.tools.base import SourceAdapter
from deepresearch.tools.web_utils import normalize_whitespace, word_count

ARXIV_API_URL = "https://export.arxiv.org/api/query"
ATOM_NS = {"atom": "http://www.w3.org/2005/Atom"}

_ARXIV_ID = re.compile(r"arxiv\.org/(?:abs|pdf)/([a-z\-]+/\d{7}|\d{4}\.\d{4,5})(v\d+)?", re.IGNORECASE)

SNIPPET_CHARS = 300


def arxiv_id(url: str) -> str | None:
    match = _ARXIV_ID.search(url)
    return match.group(1) if match else None


def is_abstract_url(url: str) -> bool:
    return "arxiv.org/abs/" in url and arxiv_id(url) is not None


def parse_feed(xml_text: str) -> list[dict]:
    """Parse an Atom feed from the export API into plain dicts."""
    root = ET.fromstring(xml_text)
    entries: list[dict] = []
    for entry in root.findall("atom:entry", ATOM_NS):
        title = normalize_whitespace(entry.findtext("atom:title", "", ATOM_NS))
        if not title or title.lower() == "error":
            continue
        entries.append(
            {
                "title": title,
                "summary": normalize_whitespace(entry.findtext("atom:summary", "", ATOM_NS)),
                "url": (entry.findtext("atom:id", "", ATOM_NS) or "").strip(),
                "published": (entry.findtext("atom:published", "", ATOM_NS) or "")[:10],
                "authors": [
                    normalize_whitespace(name.text or "")
                    for name in entry.findall("atom:author/atom:name", ATOM_NS)
                ],
            }
        )
    return entries


async def fetch_abstract(client: httpx.AsyncClient, url: str) -> ContentRecord:
    paper_id = arxiv_id(url)
    if not paper_id:
        return ContentRecord.failed(url, "Invalid arXiv URL", method="arxiv")

    response = await client.get(ARXIV_API_URL, params={"id_list": paper_id})
    response.raise_for_status()
    entries = parse_feed(response.text)
    if not entries:
        return ContentRecord.failed(url, f"arXiv entry {paper_id} not found", method="arxiv")

    entry = entries[0]
    body = (
        f"Title: {entry['title']}\n\n"
        f"Authors: {', '.join(entry['authors'])}\n\n"
        f"Abstract:\n{entry['summary']}"
    )
    return ContentRecord(
        url=url,
        title=entry["title"],
        body=body,
        word_count=word_count(entry["summary"]),
        method="arxiv",
    )


class ArxivAdapter(SourceAdapter):
    name = "arxiv"
    source_type = SourceType.ACADEMIC

    async def _search(self, query: str, max_results: int) -> list[SourceResult]:
        async with self._http_client() as client:
            response = await client.get(
                ARXIV_API_URL,
                params={
                    "search_query": f"all:{query}",
                    "start": 0,
                    "max_results": max_results,
                    "sortBy": "relevance",
                    "sortOrder": "descending",
                },
            )
            response.raise_for_status()

        results: list[SourceResult] = []
        for entry in parse_feed(response.text):
            summary = entry["summary"]
            snippet = summary[:SNIPPET_CHARS] + ("..." if len(summary) > SNIPPET_CHARS else "")
            results.append(
                self._result(
                    query,
                    title=entry["title"],
                    url=entry["url"],
                    snippet=snippet,
                    metadata={
                        "authors": entry["authors"][:3],
                        "published": entry["published"],
                    },
                )
            )
        return results
