from __future__ import annotations

import pytest
from conftest import RecordingSink, StubCompletion, StubExtractor, make_result

from deepresearch.agents.analyzer_agent import EXCERPT_CHARS, analyze_sources
from deepresearch.agents.reporter import write_report
from deepresearch.agents.synthesizer import NO_FINDINGS_GAP, synthesize
from deepresearch.exceptions import CompletionError, FatalStageError
from deepresearch.models.events import FindingEvent
from deepresearch.models.research import (
    ConfidenceTier,
    Finding,
    ResearchPlan,
    SearchQuery,
    SourceAnalysis,
    Synthesis,
)

PLAN = ResearchPlan(
    main_topic="Transformers",
    sub_queries=[SearchQuery(text="q", index=0)],
    key_aspects=["attention"],
)


def finding(title: str = "Paper") -> Finding:
    return Finding(
        source=make_result(title, f"https://{title.lower()}.org"),
        analysis=SourceAnalysis(key_points=["k"], summary="s"),
    )


@pytest.mark.asyncio
async def test_analysis_processes_top_k_in_rank_order():
    ranked = [make_result(f"S{i}", f"https://s{i}.com") for i in range(5)]
    extractor = StubExtractor()
    findings: list[Finding] = []
    sink = RecordingSink()

    await analyze_sources(
        "q", PLAN, ranked, StubCompletion(), extractor, findings, budget=3, sink=sink
    )

    assert extractor.urls == ["https://s0.com", "https://s1.com", "https://s2.com"]
    assert [f.source.title for f in findings] == ["S0", "S1", "S2"]
    assert len(sink.of_type(FindingEvent)) == 3
    assert all(len(f.content_excerpt) <= EXCERPT_CHARS for f in findings)


@pytest.mark.asyncio
async def test_short_content_is_skipped_without_completion_call():
    completion = StubCompletion()
    findings: list[Finding] = []

    await analyze_sources(
        "q", PLAN, [make_result("S", "https://s.com")], completion, StubExtractor("too short"), findings, budget=5
    )

    assert findings == []
    assert completion.calls == []


@pytest.mark.asyncio
async def test_analysis_failures_are_source_scoped():
    ranked = [make_result("S1", "https://s1.com"), make_result("S2", "https://s2.com")]
    findings: list[Finding] = []

    await analyze_sources(
        "q", PLAN, ranked, StubCompletion({"AnalysisPayload": "not json"}), StubExtractor(), findings, budget=5
    )
    assert findings == []

    await analyze_sources(
        "q",
        PLAN,
        ranked,
        StubCompletion({"AnalysisPayload": CompletionError("gateway down")}),
        StubExtractor(),
        findings,
        budget=5,
    )
    assert findings == []


@pytest.mark.asyncio
async def test_zero_findings_synthesis_makes_no_completion_call():
    completion = StubCompletion()

    synthesis = await synthesize("q", [], completion)

    assert completion.calls == []
    assert synthesis.fallback is True
    assert synthesis.confidence == ConfidenceTier.LOW
    assert synthesis.gaps == [NO_FINDINGS_GAP]


@pytest.mark.asyncio
async def test_synthesis_parse_failure_is_fatal():
    with pytest.raises(FatalStageError) as exc_info:
        await synthesize("q", [finding()], StubCompletion({"SynthesisPayload": "{}"}))
    assert exc_info.value.stage == "synthesis"


@pytest.mark.asyncio
async def test_synthesis_from_findings():
    synthesis = await synthesize("q", [finding()], StubCompletion())
    assert synthesis.consensus == ["Attention is central"]
    assert synthesis.fallback is False


@pytest.mark.asyncio
async def test_report_falls_back_when_lists_fail():
    synthesis = Synthesis(gaps=["g1", "g2", "g3", "g4", "g5"], confidence=ConfidenceTier.HIGH)
    completion = StubCompletion({"StringListPayload": "nope"})

    report = await write_report("q", synthesis, [finding()], [], completion)

    assert report.markdown.startswith("# Report")
    assert report.follow_up_questions == []
    assert report.knowledge_gaps == ["g1", "g2", "g3", "g4"]
    assert report.confidence == ConfidenceTier.HIGH


@pytest.mark.asyncio
async def test_report_uses_generated_lists():
    report = await write_report("q", Synthesis(), [finding()], [], StubCompletion())
    assert report.follow_up_questions == ["What next?"]
    assert report.knowledge_gaps == ["What next?"]


@pytest.mark.asyncio
async def test_empty_narrative_is_fatal():
    with pytest.raises(FatalStageError):
        await write_report("q", Synthesis(), [], [], StubCompletion(narrative="   "))


@pytest.mark.asyncio
async def test_narrative_transport_failure_is_fatal():
    with pytest.raises(FatalStageError) as exc_info:
        await write_report("q", Synthesis(), [], [], StubCompletion(narrative=CompletionError("down")))
    assert exc_info.value.stage == "reporting"
