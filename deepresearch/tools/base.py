from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import httpx

from deepresearch.config import settings
from deepresearch.exceptions import ResearchCancelled
from deepresearch.models.research import ContentRecord, SourceResult, SourceType
from deepresearch.services import logger as log_service
from deepresearch.services.cancellation import CancellationToken

if TYPE_CHECKING:
    from deepresearch.tools.content_extractor import ContentExtractor


class SourceAdapter:
    """Uniform search/fetch surface over one external information provider.

    Subclasses implement ``_search``. ``search`` never raises for provider
    failures: errors are logged and resolve to an empty list. Cancellation is
    the only exception that escapes.
    """

    name: str = "base"
    source_type: SourceType = SourceType.WEB

    def __init__(
        self,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        extractor: Optional["ContentExtractor"] = None,
    ):
        self.timeout = timeout or settings.http_timeout_s
        self._transport = transport
        self._extractor = extractor

    def _http_client(self, **headers: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"User-Agent": settings.user_agent, **headers},
            follow_redirects=True,
        )

    async def _search(self, query: str, max_results: int) -> list[SourceResult]:
        raise NotImplementedError

    async def search(
        self,
        query: str,
        max_results: int = 5,
        *,
        token: Optional[CancellationToken] = None,
    ) -> list[SourceResult]:
        request = self._search(query, max_results)
        try:
            results = await (token.run(request) if token else request)
        except ResearchCancelled:
            raise
        except Exception as e:
            log_service.log_adapter_failure(self.name, query, e)
            return []
        return results[:max_results]

    @property
    def extractor(self) -> "ContentExtractor":
        if self._extractor is None:
            from deepresearch.tools.content_extractor import ContentExtractor

            self._extractor = ContentExtractor(transport=self._transport)
        return self._extractor

    async def fetch_content(
        self, url: str, *, token: Optional[CancellationToken] = None
    ) -> ContentRecord:
        return await self.extractor.extract(url, token=token)

    def _result(self, query: str, **fields) -> SourceResult:
        return SourceResult(
            adapter=self.name,
            source_type=self.source_type,
            search_query=query,
            **fields,
        )
