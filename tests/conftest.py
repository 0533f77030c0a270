from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Optional

import pytest

from deepresearch.config import settings
from deepresearch.models.research import ContentRecord, SourceResult, SourceType
from deepresearch.models.schemas import parse_payload
from deepresearch.services.cancellation import CancellationToken
from deepresearch.tools.base import SourceAdapter


PLAN_JSON = json.dumps(
    {
        "main_topic": "Transformer architecture",
        "research_goal": "Explain how transformers work",
        "search_queries": [
            "transformer architecture attention",
            "transformer encoder decoder",
            "transformer scaling laws",
            "transformer limitations",
        ],
        "key_aspects": ["attention", "scaling"],
    }
)

ANALYSIS_JSON = json.dumps(
    {
        "key_points": ["Self-attention replaces recurrence"],
        "facts": ["Introduced in 2017"],
        "opinions": [],
        "credibility": "high",
        "relevance": "high",
        "summary": "A paper introducing the transformer.",
    }
)

SYNTHESIS_JSON = json.dumps(
    {
        "consensus": ["Attention is central"],
        "key_insights": ["Transformers parallelize well"],
        "controversies": [],
        "gaps": ["Energy cost"],
        "confidence": "medium",
        "summary": "Transformers rely on attention.",
    }
)


class StubCompletion:
    """In-memory completion service keyed by payload schema name.

    A response may be a raw string or an exception instance to raise.
    """

    def __init__(self, responses: Optional[dict[str, Any]] = None, narrative: Any = "# Report\n\nBody [1]"):
        self.responses = {
            "PlanPayload": PLAN_JSON,
            "AnalysisPayload": ANALYSIS_JSON,
            "SynthesisPayload": SYNTHESIS_JSON,
            "StringListPayload": '["What next?"]',
        }
        self.responses.update(responses or {})
        self.narrative = narrative
        self.calls: list[str] = []
        self.prompts: list[str] = []

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float = 0.7,
        max_output_tokens: int = 8192,
        caller: str = "completion",
        token: Optional[CancellationToken] = None,
    ) -> str:
        self.calls.append(caller)
        self.prompts.append(prompt)
        if token:
            token.raise_if_cancelled()
        if isinstance(self.narrative, Exception):
            raise self.narrative
        return self.narrative

    async def generate_json(self, prompt: str, schema, *, caller: str = "completion", token=None):
        self.calls.append(caller)
        self.prompts.append(prompt)
        if token:
            token.raise_if_cancelled()
        response = self.responses[schema.__name__]
        if isinstance(response, Exception):
            raise response
        return parse_payload(response, schema)


class StubAdapter(SourceAdapter):
    """Adapter returning canned results; ``results`` may be a callable of the query."""

    def __init__(
        self,
        name: str,
        results: Any = (),
        *,
        source_type: SourceType = SourceType.WEB,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        on_search: Optional[Callable[[str], None]] = None,
    ):
        super().__init__()
        self.name = name
        self.source_type = source_type
        self._results = results
        self._error = error
        self._delay = delay
        self._on_search = on_search
        self.queries: list[str] = []

    async def _search(self, query: str, max_results: int) -> list[SourceResult]:
        self.queries.append(query)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        items = self._results(query) if callable(self._results) else self._results
        results = [
            self._result(query, title=title, url=url, snippet=f"snippet for {title}")
            for title, url in items
        ]
        if self._on_search:
            self._on_search(query)
        return results


class StubExtractor:
    def __init__(self, body: str = "Transformers use self-attention. " * 20):
        self.body = body
        self.urls: list[str] = []

    async def extract(self, url: str, *, token: Optional[CancellationToken] = None) -> ContentRecord:
        self.urls.append(url)
        if token:
            token.raise_if_cancelled()
        if not self.body:
            return ContentRecord.failed(url, "empty")
        return ContentRecord(url=url, title="Page", body=self.body, word_count=len(self.body.split()))


class RecordingSink:
    def __init__(self):
        self.events: list = []

    async def publish(self, event) -> None:
        self.events.append(event)

    def of_type(self, cls) -> list:
        return [event for event in self.events if isinstance(event, cls)]


def make_result(title: str, url: str, adapter: str = "duckduckgo", **fields) -> SourceResult:
    return SourceResult(title=title, url=url, adapter=adapter, **fields)


@pytest.fixture(autouse=True)
def no_courtesy_delays(monkeypatch):
    monkeypatch.setattr(settings, "search_politeness_delay_s", 0.0)
    monkeypatch.setattr(settings, "analysis_delay_s", 0.0)
