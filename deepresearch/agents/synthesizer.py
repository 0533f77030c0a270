from __future__ import annotations

from typing import Optional, Sequence

from deepresearch.exceptions import FatalStageError
from deepresearch.llm_client import CompletionService
from deepresearch.models.events import ThoughtEvent
from deepresearch.models.research import ConfidenceTier, Finding, Synthesis
from deepresearch.models.schemas import SynthesisPayload
from deepresearch.services.cancellation import CancellationToken
from deepresearch.services.prompt_store import render_prompt
from deepresearch.services.streaming import EventSink, NullSink

AGENT_NAME = "synthesizer"
NO_FINDINGS_GAP = "Limited analyzed sources available"


def no_findings_synthesis() -> Synthesis:
    return Synthesis(gaps=[NO_FINDINGS_GAP], confidence=ConfidenceTier.LOW, fallback=True)


def format_findings(findings: Sequence[Finding]) -> str:
    blocks = []
    for number, finding in enumerate(findings, start=1):
        analysis = finding.analysis
        points = "\n".join(f"  - {point}" for point in analysis.key_points)
        blocks.append(
            f"[{number}] {finding.source.title} ({finding.source.adapter}, "
            f"reliability {finding.source.reliability.value}, credibility {analysis.credibility.value})\n"
            f"Summary: {analysis.summary}\n"
            f"Key points:\n{points}"
        )
    return "\n\n".join(blocks)


async def synthesize(
    query: str,
    findings: Sequence[Finding],
    completion: CompletionService,
    *,
    sink: Optional[EventSink] = None,
    token: Optional[CancellationToken] = None,
) -> Synthesis:
    sink = sink or NullSink()
    if not findings:
        await sink.publish(
            ThoughtEvent(agent=AGENT_NAME, text="No analyzed sources to synthesize; continuing with limited data")
        )
        return no_findings_synthesis()

    await sink.publish(
        ThoughtEvent(agent=AGENT_NAME, text=f"Cross-referencing {len(findings)} analyzed sources")
    )
    prompt = render_prompt(
        "synthesizer.synthesis",
        query=query,
        finding_count=len(findings),
        findings=format_findings(findings),
    )
    parsed = await completion.generate_json(prompt, SynthesisPayload, caller=AGENT_NAME, token=token)
    if not parsed.ok:
        raise FatalStageError("synthesis", f"could not parse synthesis ({parsed.reason})")

    synthesis = Synthesis(**parsed.value.model_dump())
    await sink.publish(
        ThoughtEvent(
            agent=AGENT_NAME,
            text=(
                f"Found {len(synthesis.consensus)} consensus points and "
                f"{len(synthesis.controversies)} controversies ({synthesis.confidence.value} confidence)"
            ),
        )
    )
    return synthesis
