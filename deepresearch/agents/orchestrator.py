from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass
from typing import AsyncGenerator, Optional, Sequence

from loguru import logger

from deepresearch import llm_client
from deepresearch.agents.analyzer_agent import analyze_sources
from deepresearch.agents.planner import create_plan
from deepresearch.agents.reporter import write_report
from deepresearch.agents.synthesizer import synthesize
from deepresearch.config import settings
from deepresearch.exceptions import InvalidQueryError, ResearchCancelled, ResearchError
from deepresearch.llm_client import CompletionService
from deepresearch.models.events import CompleteEvent, ErrorEvent, ResearchEvent, StatusEvent
from deepresearch.models.research import (
    Finding,
    Phase,
    Report,
    ResearchOptions,
    ResearchPlan,
    ResearchResult,
    ResearchSession,
    ResearchStats,
    Synthesis,
)
from deepresearch.services import logger as log_service
from deepresearch.services.aggregator import ResultAggregator
from deepresearch.services.cancellation import CancellationToken
from deepresearch.services.reliability import ReliabilityPolicy, get_policy
from deepresearch.services.search_executor import run_searches
from deepresearch.services.streaming import EventChannel, EventSink, NullSink
from deepresearch.tools.base import SourceAdapter
from deepresearch.tools.content_extractor import ContentExtractor
from deepresearch.tools.search_provider import build_adapters


@dataclass
class _RunState:
    plan: Optional[ResearchPlan] = None
    synthesis: Optional[Synthesis] = None
    report: Optional[Report] = None
    sources_selected: int = 0


class ResearchOrchestrator:
    """Drives one research run through its phases.

    Flow:
      1. Plan sub-queries for the requested depth
      2. Fan each sub-query out to every source adapter, dedupe and rank
      3. Extract and analyze the top-ranked sources one at a time
      4. Synthesize findings, then write the report

    Every phase change is announced on the event sink. ``cancel`` stops the
    run at the next checkpoint or in-flight call, and ``start`` returns the
    partial result with phase ``aborted``.
    """

    def __init__(
        self,
        completion: CompletionService | None = None,
        adapters: Sequence[SourceAdapter] | None = None,
        extractor: ContentExtractor | None = None,
        policy: ReliabilityPolicy | None = None,
    ):
        self.completion = completion or llm_client.client()
        self._adapters = list(adapters) if adapters is not None else None
        self.extractor = extractor or ContentExtractor()
        self.policy = policy or get_policy()
        self.token: CancellationToken | None = None
        self.session: ResearchSession | None = None

    def cancel(self, reason: str = "Research stopped by user") -> None:
        """Stop the active run; a no-op when nothing is running."""
        if self.token is not None:
            self.token.cancel(reason)

    def _resolve_adapters(self, options: ResearchOptions) -> list[SourceAdapter]:
        if options.sources:
            return build_adapters(options.sources)
        if self._adapters is not None:
            return self._adapters
        return build_adapters()

    async def _enter(
        self, session: ResearchSession, phase: Phase, message: str, sink: EventSink
    ) -> None:
        self.token.raise_if_cancelled()
        session.transition(phase)
        log_service.log_phase(session.id, phase.value, "entered")
        await sink.publish(StatusEvent(phase=phase, message=message))

    async def start(
        self,
        query: str,
        options: ResearchOptions | None = None,
        *,
        sink: EventSink | None = None,
    ) -> ResearchResult:
        query = " ".join((query or "").split())
        if len(query) < settings.min_query_length:
            raise InvalidQueryError(
                f"Query must be at least {settings.min_query_length} characters"
            )
        options = options or ResearchOptions()
        sink = sink or NullSink()
        adapters = self._resolve_adapters(options)

        session = ResearchSession(query=query, depth=options.depth)
        self.session = session
        aggregator = ResultAggregator(self.policy)
        findings: list[Finding] = []
        state = _RunState()
        token = self.token = CancellationToken()
        logger.info(f"Research {session.id} started: '{query[:100]}' ({options.depth.value})")

        try:
            await self._enter(session, Phase.PLANNING, "Planning research strategy...", sink)
            state.plan = await create_plan(
                query, options.depth, self.completion, sink=sink, token=token
            )

            await self._enter(
                session,
                Phase.SEARCHING,
                f"Searching {len(adapters)} sources for {len(state.plan.sub_queries)} queries...",
                sink,
            )
            ranked = await run_searches(
                state.plan,
                adapters,
                aggregator,
                sink=sink,
                token=token,
                max_results=options.max_results_per_adapter,
            )

            budget = options.depth.analysis_budget
            state.sources_selected = min(len(ranked), budget)
            await self._enter(
                session,
                Phase.ANALYZING,
                f"Analyzing top {state.sources_selected} of {len(ranked)} sources...",
                sink,
            )
            await analyze_sources(
                query,
                state.plan,
                ranked,
                self.completion,
                self.extractor,
                findings,
                budget=budget,
                sink=sink,
                token=token,
            )

            await self._enter(
                session, Phase.SYNTHESIZING, f"Synthesizing {len(findings)} findings...", sink
            )
            state.synthesis = await synthesize(
                query, findings, self.completion, sink=sink, token=token
            )

            await self._enter(session, Phase.REPORTING, "Writing research report...", sink)
            state.report = await write_report(
                query,
                state.synthesis,
                findings,
                aggregator.ranked(),
                self.completion,
                sink=sink,
                token=token,
            )

            await self._enter(session, Phase.COMPLETE, "Research complete", sink)
        except ResearchCancelled as e:
            if not session.is_terminal:
                session.transition(Phase.ABORTED)
            log_service.log_phase(session.id, Phase.ABORTED.value, "aborted", reason=str(e))
            result = self._build_result(session, state, aggregator, findings)
            await sink.publish(StatusEvent(phase=Phase.ABORTED, message=str(e)))
            return result
        except Exception as e:
            if not session.is_terminal:
                session.transition(Phase.ERROR)
            message = str(e) if isinstance(e, ResearchError) else f"Research failed: {e}"
            log_service.log_phase(session.id, Phase.ERROR.value, "failed", error=message)
            logger.exception(f"Research {session.id} failed: {message}")
            await sink.publish(StatusEvent(phase=Phase.ERROR, message=message))
            await sink.publish(ErrorEvent(message=message))
            raise

        result = self._build_result(session, state, aggregator, findings)
        logger.info(
            f"Research {session.id} complete: {result.stats.total_sources} sources, "
            f"{result.stats.sources_analyzed} analyzed in {result.stats.elapsed_ms}ms"
        )
        await sink.publish(CompleteEvent(result=result))
        return result

    def _build_result(
        self,
        session: ResearchSession,
        state: _RunState,
        aggregator: ResultAggregator,
        findings: list[Finding],
    ) -> ResearchResult:
        sources = aggregator.discovered
        stats = ResearchStats(
            sub_queries=len(state.plan.sub_queries) if state.plan else 0,
            total_sources=len(sources),
            sources_selected=state.sources_selected,
            sources_analyzed=len(findings),
            by_reliability=dict(Counter(s.reliability.value for s in sources)),
            by_source_type=dict(Counter(s.source_type.value for s in sources)),
            by_adapter=dict(Counter(s.adapter for s in sources)),
            phase_durations_ms=dict(session.phase_durations_ms),
            elapsed_ms=session.elapsed_ms,
        )
        return ResearchResult(
            session_id=session.id,
            query=session.query,
            depth=session.depth,
            phase=session.phase,
            plan=state.plan,
            report=state.report if session.phase == Phase.COMPLETE else None,
            synthesis=state.synthesis,
            sources=sources,
            findings=list(findings),
            stats=stats,
            started_at=session.started_at,
            finished_at=session.finished_at or session.started_at,
        )

    async def research(
        self, query: str, options: ResearchOptions | None = None
    ) -> AsyncGenerator[ResearchEvent, None]:
        """Run the pipeline and yield its events as they happen.

        A fatal error is raised after its ``error`` event has been yielded.
        """
        channel = EventChannel(settings.event_channel_maxsize)

        async def drive() -> ResearchResult:
            try:
                return await self.start(query, options, sink=channel)
            finally:
                await channel.close()

        task = asyncio.create_task(drive())
        try:
            async for event in channel:
                yield event
        finally:
            if not task.done():
                self.cancel("Event consumer went away")
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
        await task
