from __future__ import annotations

from typing import Optional

from loguru import logger

from deepresearch.exceptions import FatalStageError
from deepresearch.llm_client import CompletionService
from deepresearch.models.events import PlanEvent, ThoughtEvent
from deepresearch.models.research import DepthTier, ResearchPlan, SearchQuery
from deepresearch.models.schemas import PlanPayload
from deepresearch.services.cancellation import CancellationToken
from deepresearch.services.prompt_store import render_prompt
from deepresearch.services.streaming import EventSink, NullSink

AGENT_NAME = "planner"

VARIANT_SUFFIXES = (
    "overview",
    "recent developments",
    "research",
    "criticism",
    "applications",
    "history",
    "comparison",
    "future",
)


def fit_queries(
    queries: list[str], query: str, key_aspects: list[str], target: int
) -> list[str]:
    """Dedupe, truncate or top up ``queries`` to exactly ``target`` entries.

    Top-up variants are deterministic: the query paired with each key aspect,
    then with a fixed list of research angles.
    """
    fitted: list[str] = []
    seen: set[str] = set()

    def offer(candidate: str) -> None:
        cleaned = " ".join(candidate.split()).strip()
        if cleaned and cleaned.lower() not in seen and len(fitted) < target:
            seen.add(cleaned.lower())
            fitted.append(cleaned)

    for candidate in queries:
        offer(candidate)
    base = " ".join(query.split())
    for aspect in key_aspects:
        offer(f"{base} {aspect}")
    for suffix in VARIANT_SUFFIXES:
        offer(f"{base} {suffix}")
    counter = 1
    while len(fitted) < target:
        offer(f"{base} part {counter}")
        counter += 1
    return fitted


async def create_plan(
    query: str,
    depth: DepthTier,
    completion: CompletionService,
    *,
    sink: Optional[EventSink] = None,
    token: Optional[CancellationToken] = None,
) -> ResearchPlan:
    """Decompose ``query`` into exactly ``depth.query_count`` sub-queries."""
    sink = sink or NullSink()
    target = depth.query_count
    prompt = render_prompt("planner.plan", query=query, query_count=target)

    parsed = await completion.generate_json(prompt, PlanPayload, caller=AGENT_NAME, token=token)
    if not parsed.ok:
        raise FatalStageError("planning", f"could not parse research plan ({parsed.reason})")

    payload: PlanPayload = parsed.value
    if len(payload.search_queries) != target:
        logger.info(
            f"Planner returned {len(payload.search_queries)} queries, fitting to {target}"
        )
    texts = fit_queries(payload.search_queries, query, payload.key_aspects, target)
    plan = ResearchPlan(
        main_topic=payload.main_topic or query,
        research_goal=payload.research_goal,
        sub_queries=[SearchQuery(text=text, index=i) for i, text in enumerate(texts)],
        key_aspects=payload.key_aspects,
    )

    await sink.publish(PlanEvent(plan=plan))
    aspects = ", ".join(plan.key_aspects) if plan.key_aspects else "general coverage"
    await sink.publish(
        ThoughtEvent(
            agent=AGENT_NAME,
            text=f'Split "{plan.main_topic}" into {len(plan.sub_queries)} searches covering {aspects}',
        )
    )
    return plan
