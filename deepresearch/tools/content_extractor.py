"""Fetch a URL and reduce it to a bounded plain-text body.

Wikipedia and arXiv URLs take their API fast paths. Everything else goes
through a selector-region chain with trafilatura and whole-document text as
fallbacks. ``extract`` reports failures inside the returned record.
"""
from __future__ import annotations

from typing import Callable, Optional

import httpx
import trafilatura
from bs4 import BeautifulSoup
from loguru import logger

from deepresearch.config import settings
from deepresearch.exceptions import ResearchCancelled
from deepresearch.models.research import ContentRecord
from deepresearch.services.cancellation import CancellationToken
from deepresearch.tools import arxiv_search, wikipedia_search
from deepresearch.tools.web_utils import clean_content, is_valid_url, normalize_whitespace, word_count

NOISE_SELECTORS = (
    "script",
    "style",
    "nav",
    "header",
    "footer",
    "aside",
    "iframe",
    "noscript",
    ".ad",
    ".ads",
    ".advertisement",
    ".sidebar",
    ".menu",
    ".navigation",
    ".comment",
    ".comments",
)

CONTENT_SELECTORS = (
    "article",
    "main",
    "[role=main]",
    ".post-content",
    ".article-content",
    ".entry-content",
    ".content",
    "#content",
    ".story-body",
    ".article-body",
)


def page_title(soup: BeautifulSoup) -> str:
    if soup.title and soup.title.get_text(strip=True):
        return normalize_whitespace(soup.title.get_text(" "))
    heading = soup.find("h1")
    return normalize_whitespace(heading.get_text(" ")) if heading else ""


def strip_noise(soup: BeautifulSoup) -> None:
    for selector in NOISE_SELECTORS:
        for node in soup.select(selector):
            node.decompose()


def select_region(soup: BeautifulSoup, min_chars: int) -> Optional[str]:
    """Text of the first content region longer than ``min_chars``."""
    for selector in CONTENT_SELECTORS:
        node = soup.select_one(selector)
        if node is None:
            continue
        text = normalize_whitespace(node.get_text(" "))
        if len(text) > min_chars:
            return text
    return None


def _extract_trafilatura(raw_html: str) -> str:
    extracted = trafilatura.extract(raw_html, output_format="txt")
    return extracted if isinstance(extracted, str) else ""


class ContentExtractor:
    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        max_chars: int | None = None,
        min_region_chars: int | None = None,
        fallback: str | None = None,
        timeout: float | None = None,
    ):
        self._transport = transport
        self.max_chars = max_chars or settings.extractor_max_page_chars
        self.min_region_chars = (
            min_region_chars if min_region_chars is not None else settings.extractor_min_region_chars
        )
        self.fallback = (fallback or settings.extractor_fallback).lower().strip()
        self.timeout = timeout or settings.fetch_timeout_s

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "User-Agent": settings.user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.9",
            },
            follow_redirects=True,
            max_redirects=settings.fetch_max_redirects,
        )

    async def extract(
        self, url: str, *, token: Optional[CancellationToken] = None
    ) -> ContentRecord:
        if not is_valid_url(url):
            return ContentRecord.failed(url, "Invalid URL")

        work = self._extract(url)
        try:
            record = await (token.run(work) if token else work)
        except ResearchCancelled:
            raise
        except Exception as e:
            logger.warning(f"Content extraction failed for {url}: {e}")
            return ContentRecord.failed(url, str(e) or type(e).__name__)

        if record.ok:
            logger.debug(f"Extracted {record.word_count} words from {url} via {record.method}")
        return record

    async def _extract(self, url: str) -> ContentRecord:
        async with self._http_client() as client:
            if wikipedia_search.is_article_url(url):
                record = await wikipedia_search.fetch_article(client, url)
            elif arxiv_search.is_abstract_url(url):
                record = await arxiv_search.fetch_abstract(client, url)
            else:
                response = await client.get(url)
                response.raise_for_status()
                return self.extract_html(url, response.text)

        if not record.ok:
            return record
        return record.model_copy(update={"body": clean_content(record.body, self.max_chars)})

    def extract_html(self, url: str, raw_html: str) -> ContentRecord:
        soup = BeautifulSoup(raw_html, "html.parser")
        title = page_title(soup)
        strip_noise(soup)

        extractors: list[tuple[str, Callable[[], str]]] = [
            ("selector", lambda: select_region(soup, self.min_region_chars) or ""),
        ]
        if self.fallback == "trafilatura":
            extractors.append(("trafilatura", lambda: _extract_trafilatura(raw_html)))
        extractors.append(("document", lambda: soup.body.get_text(" ") if soup.body else soup.get_text(" ")))

        for method, extractor in extractors:
            text = normalize_whitespace(extractor())
            if method == "trafilatura" and len(text) <= self.min_region_chars:
                continue
            if text:
                body = clean_content(text, self.max_chars)
                return ContentRecord(
                    url=url,
                    title=title,
                    body=body,
                    word_count=word_count(body),
                    method=method,
                )
        return ContentRecord.failed(url, "No text content found", method="document")
