from __future__ import annotations

from typing import Optional, Sequence

from loguru import logger

from deepresearch.config import settings
from deepresearch.exceptions import CompletionError
from deepresearch.llm_client import CompletionService
from deepresearch.models.events import FindingEvent, ThoughtEvent
from deepresearch.models.research import Finding, ResearchPlan, SourceAnalysis, SourceResult
from deepresearch.models.schemas import AnalysisPayload
from deepresearch.services.cancellation import CancellationToken
from deepresearch.services.prompt_store import render_prompt
from deepresearch.services.streaming import EventSink, NullSink
from deepresearch.tools.content_extractor import ContentExtractor

AGENT_NAME = "analyzer"
PROMPT_CONTENT_CHARS = 6000
EXCERPT_CHARS = 4000


async def analyze_source(
    query: str,
    plan: ResearchPlan,
    source: SourceResult,
    body: str,
    completion: CompletionService,
    *,
    token: Optional[CancellationToken] = None,
) -> Optional[SourceAnalysis]:
    """One completion call for one source; None when the source is unusable."""
    prompt = render_prompt(
        "analyzer.source",
        query=query,
        focus_areas=", ".join(plan.key_aspects) or plan.main_topic,
        title=source.title,
        url=source.url,
        content=body[:PROMPT_CONTENT_CHARS],
    )
    try:
        parsed = await completion.generate_json(prompt, AnalysisPayload, caller=AGENT_NAME, token=token)
    except CompletionError as e:
        logger.warning(f"Analysis request failed for {source.url}: {e}")
        return None
    if not parsed.ok:
        logger.warning(f"Skipping {source.url}: {parsed.reason}")
        return None
    return SourceAnalysis(**parsed.value.model_dump())


async def analyze_sources(
    query: str,
    plan: ResearchPlan,
    ranked: Sequence[SourceResult],
    completion: CompletionService,
    extractor: ContentExtractor,
    findings: list[Finding],
    *,
    budget: int,
    sink: Optional[EventSink] = None,
    token: Optional[CancellationToken] = None,
    min_content_chars: int | None = None,
    delay: float | None = None,
) -> list[Finding]:
    """Analyze the top ``budget`` sources in rank order, one at a time.

    Findings are appended to the caller-owned ``findings`` list so they
    survive cancellation.
    """
    sink = sink or NullSink()
    token = token or CancellationToken()
    min_chars = settings.analysis_min_content_chars if min_content_chars is None else min_content_chars
    delay = settings.analysis_delay_s if delay is None else delay

    selected = list(ranked[:budget])
    for position, source in enumerate(selected):
        token.raise_if_cancelled()
        if position:
            await token.sleep(delay)

        record = await extractor.extract(source.url, token=token)
        if len(record.body) < min_chars:
            logger.debug(f"Skipping {source.url}: {len(record.body)} chars of content")
            continue

        await sink.publish(ThoughtEvent(agent=AGENT_NAME, text=f"Reading: {source.title}"))
        analysis = await analyze_source(query, plan, source, record.body, completion, token=token)
        if analysis is None:
            continue

        finding = Finding(source=source, analysis=analysis, content_excerpt=record.body[:EXCERPT_CHARS])
        findings.append(finding)
        await sink.publish(FindingEvent(source_title=source.title, adapter=source.adapter, analysis=analysis))
        await sink.publish(
            ThoughtEvent(
                agent=AGENT_NAME,
                text=f"Extracted {len(analysis.key_points)} key points from {source.adapter}",
            )
        )

    return findings
