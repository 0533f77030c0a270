"""DeepResearch - multi-source research pipeline

Simple CLI for running research queries.
"""

import argparse
import asyncio
import signal
import sys

from deepresearch.agents.orchestrator import ResearchOrchestrator
from deepresearch.exceptions import ResearchError
from deepresearch.llm_client import CompletionClient
from deepresearch.models.events import (
    CompleteEvent,
    ErrorEvent,
    FindingEvent,
    PlanEvent,
    ResearchEvent,
    SourceEvent,
    StatusEvent,
    ThoughtEvent,
)
from deepresearch.models.research import DepthTier, ResearchOptions, ResearchResult


class ConsoleSink:
    """Prints research events as they arrive."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    async def publish(self, event: ResearchEvent) -> None:
        if isinstance(event, StatusEvent):
            print(f"\n[~] {event.phase.value}: {event.message}")
        elif isinstance(event, PlanEvent):
            print(f"[*] Research Plan ({len(event.plan.sub_queries)} queries):")
            for sub_query in event.plan.sub_queries:
                print(f"  {sub_query.index + 1}. {sub_query.text}")
        elif isinstance(event, ThoughtEvent):
            if self.verbose:
                print(f"  ({event.agent}) {event.text}")
        elif isinstance(event, SourceEvent):
            source = event.source
            print(f"  [+] [{source.adapter}/{source.reliability.value}] {source.title[:80]}")
        elif isinstance(event, FindingEvent):
            print(f"  [=] {event.source_title[:80]}: {len(event.analysis.key_points)} key points")
        elif isinstance(event, ErrorEvent):
            print(f"\n[!] Error: {event.message}")
        elif isinstance(event, CompleteEvent):
            print("\n[*] Research Complete!")


def print_result(result: ResearchResult) -> None:
    stats = result.stats
    print(f"   Runtime: {stats.elapsed_ms}ms")
    print(f"   Sources: {stats.total_sources} found, {stats.sources_analyzed} analyzed")
    if result.aborted:
        print("   (aborted - partial results)")
        return
    if result.report is None:
        return
    print(f"\n{'='*50}")
    print("REPORT:")
    print(f"{'='*50}")
    print(result.report.markdown)
    if result.report.follow_up_questions:
        print("\nFollow-up questions:")
        for question in result.report.follow_up_questions:
            print(f"  - {question}")
    if result.report.knowledge_gaps:
        print("\nKnowledge gaps:")
        for gap in result.report.knowledge_gaps:
            print(f"  - {gap}")


async def run_research(
    query: str, depth: DepthTier, model: str | None = None, verbose: bool = False
) -> int:
    """Run research on the given query."""
    print(f"Research query: {query} ({depth.value})")
    print("-" * 50)

    orchestrator = ResearchOrchestrator(completion=CompletionClient(model=model))
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, orchestrator.cancel)
    except NotImplementedError:
        # Windows event loops have no signal handlers; Ctrl-C then ends the process.
        pass

    try:
        result = await orchestrator.start(
            query, ResearchOptions(depth=depth), sink=ConsoleSink(verbose=verbose)
        )
    except ResearchError as e:
        print(f"\n[!] {e}", file=sys.stderr)
        return 1
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass

    print_result(result)
    return 0


def main():
    parser = argparse.ArgumentParser(description="DeepResearch multi-source research tool")
    parser.add_argument("--query", "-q", required=True, help="Research query")
    parser.add_argument(
        "--depth",
        "-d",
        choices=[tier.value for tier in DepthTier],
        default=DepthTier.STANDARD.value,
        help="Research depth (default: standard)",
    )
    parser.add_argument("--model", "-m", help="Model to use (default: from config)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show agent thoughts")

    args = parser.parse_args()

    sys.exit(asyncio.run(run_research(args.query, DepthTier(args.depth), args.model, args.verbose)))


if __name__ == "__main__":
    main()
