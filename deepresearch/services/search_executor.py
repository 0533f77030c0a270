from __future__ import annotations

import asyncio
from typing import Optional, Sequence

from loguru import logger

from deepresearch.config import settings
from deepresearch.exceptions import ResearchCancelled
from deepresearch.models.events import SourceEvent, ThoughtEvent
from deepresearch.models.research import ResearchPlan, SearchQuery, SourceResult
from deepresearch.services import logger as log_service
from deepresearch.services.aggregator import ResultAggregator
from deepresearch.services.cancellation import CancellationToken
from deepresearch.services.reliability import with_reliability
from deepresearch.services.streaming import EventSink, NullSink
from deepresearch.tools.base import SourceAdapter

AGENT_NAME = "search"


async def _search_one(
    adapter: SourceAdapter,
    query: str,
    *,
    max_results: int,
    timeout: float,
    token: CancellationToken,
) -> tuple[SourceAdapter, list[SourceResult]]:
    try:
        results = await asyncio.wait_for(
            adapter.search(query, max_results, token=token), timeout=timeout
        )
    except ResearchCancelled:
        raise
    except asyncio.TimeoutError:
        log_service.log_adapter_failure(adapter.name, query, f"timed out after {timeout}s")
        return adapter, []
    except Exception as e:
        log_service.log_adapter_failure(adapter.name, query, e)
        return adapter, []
    return adapter, results


async def search_sub_query(
    sub_query: SearchQuery,
    adapters: Sequence[SourceAdapter],
    aggregator: ResultAggregator,
    *,
    sink: EventSink,
    token: CancellationToken,
    max_results: int,
    timeout: float,
) -> list[SourceResult]:
    """Fan one sub-query out to every adapter and fold results in as they land.

    This loop is the only writer to ``aggregator`` while it runs. Returns the
    results that were new to the aggregator, in acceptance order.
    """
    tasks = [
        asyncio.ensure_future(
            _search_one(adapter, sub_query.text, max_results=max_results, timeout=timeout, token=token)
        )
        for adapter in adapters
    ]
    accepted: list[SourceResult] = []
    try:
        for next_done in asyncio.as_completed(tasks):
            adapter, results = await next_done
            logger.debug(f"{adapter.name}: {len(results)} results for '{sub_query.text[:80]}'")
            for result in results:
                classified = with_reliability(result, aggregator.policy)
                if aggregator.add(classified):
                    accepted.append(classified)
                    await sink.publish(SourceEvent(source=classified))
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
    return accepted


async def run_searches(
    plan: ResearchPlan,
    adapters: Sequence[SourceAdapter],
    aggregator: ResultAggregator,
    *,
    sink: Optional[EventSink] = None,
    token: Optional[CancellationToken] = None,
    max_results: int | None = None,
    adapter_timeout: float | None = None,
    politeness_delay: float | None = None,
) -> list[SourceResult]:
    """Run every planned sub-query in order and return the ranked aggregate."""
    sink = sink or NullSink()
    token = token or CancellationToken()
    max_results = max_results or settings.search_max_results_per_adapter
    timeout = adapter_timeout or settings.search_adapter_timeout_s
    delay = settings.search_politeness_delay_s if politeness_delay is None else politeness_delay

    for position, sub_query in enumerate(plan.sub_queries):
        token.raise_if_cancelled()
        if position:
            await token.sleep(delay)

        await sink.publish(ThoughtEvent(agent=AGENT_NAME, text=f'Searching: "{sub_query.text}"'))
        accepted = await search_sub_query(
            sub_query,
            adapters,
            aggregator,
            sink=sink,
            token=token,
            max_results=max_results,
            timeout=timeout,
        )
        await sink.publish(
            ThoughtEvent(
                agent=AGENT_NAME,
                text=f"Found {len(accepted)} new results ({len(aggregator)} total)",
            )
        )

    token.raise_if_cancelled()
    return aggregator.ranked()
