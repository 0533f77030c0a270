from __future__ import annotations

from typing import Optional, Sequence

from loguru import logger

from deepresearch.exceptions import CompletionError, FatalStageError
from deepresearch.llm_client import CompletionService
from deepresearch.models.events import ThoughtEvent
from deepresearch.models.research import Finding, Report, SourceResult, Synthesis
from deepresearch.models.schemas import StringListPayload
from deepresearch.services.cancellation import CancellationToken
from deepresearch.services.prompt_store import render_prompt
from deepresearch.services.streaming import EventSink, NullSink

AGENT_NAME = "reporter"
NARRATIVE_TEMPERATURE = 0.7
NARRATIVE_MAX_TOKENS = 4000
MAX_KNOWLEDGE_GAPS = 4


def _bullets(items: Sequence[str]) -> str:
    return "\n".join(f"- {item}" for item in items) or "- (none)"


def _source_list(findings: Sequence[Finding], sources: Sequence[SourceResult]) -> str:
    cited = [finding.source for finding in findings] or list(sources)
    return "\n".join(f"[{n}] {source.title} - {source.url}" for n, source in enumerate(cited, start=1))


async def _string_list(
    completion: CompletionService,
    prompt: str,
    *,
    caller: str,
    token: Optional[CancellationToken],
) -> Optional[list[str]]:
    try:
        parsed = await completion.generate_json(prompt, StringListPayload, caller=caller, token=token)
    except CompletionError as e:
        logger.warning(f"{caller} request failed: {e}")
        return None
    if not parsed.ok:
        return None
    return parsed.value.root


async def write_report(
    query: str,
    synthesis: Synthesis,
    findings: Sequence[Finding],
    sources: Sequence[SourceResult],
    completion: CompletionService,
    *,
    sink: Optional[EventSink] = None,
    token: Optional[CancellationToken] = None,
) -> Report:
    sink = sink or NullSink()
    await sink.publish(ThoughtEvent(agent=AGENT_NAME, text="Writing the research report"))

    prompt = render_prompt(
        "reporter.narrative",
        query=query,
        summary=synthesis.summary or "(no summary)",
        consensus=_bullets(synthesis.consensus),
        insights=_bullets(synthesis.key_insights),
        controversies=_bullets(synthesis.controversies),
        sources=_source_list(findings, sources) or "(no sources)",
    )
    try:
        markdown = await completion.generate(
            prompt,
            temperature=NARRATIVE_TEMPERATURE,
            max_output_tokens=NARRATIVE_MAX_TOKENS,
            caller=f"{AGENT_NAME}.narrative",
            token=token,
        )
    except CompletionError as e:
        raise FatalStageError("reporting", str(e)) from e
    if not markdown.strip():
        raise FatalStageError("reporting", "completion service returned an empty report")

    follow_ups = await _string_list(
        completion,
        render_prompt("reporter.follow_ups", query=query, summary=synthesis.summary),
        caller=f"{AGENT_NAME}.follow_ups",
        token=token,
    )
    gaps = await _string_list(
        completion,
        render_prompt(
            "reporter.gaps", query=query, summary=synthesis.summary, gaps=_bullets(synthesis.gaps)
        ),
        caller=f"{AGENT_NAME}.gaps",
        token=token,
    )

    return Report(
        markdown=markdown.strip(),
        follow_up_questions=follow_ups or [],
        knowledge_gaps=(gaps if gaps is not None else list(synthesis.gaps))[:MAX_KNOWLEDGE_GAPS],
        confidence=synthesis.confidence,
    )
