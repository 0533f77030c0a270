from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from deepresearch.exceptions import InvalidPhaseTransition


class Phase(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    SEARCHING = "searching"
    ANALYZING = "analyzing"
    SYNTHESIZING = "synthesizing"
    REPORTING = "reporting"
    COMPLETE = "complete"
    ERROR = "error"
    ABORTED = "aborted"


TERMINAL_PHASES = frozenset({Phase.COMPLETE, Phase.ERROR, Phase.ABORTED})

PIPELINE_ORDER = (
    Phase.IDLE,
    Phase.PLANNING,
    Phase.SEARCHING,
    Phase.ANALYZING,
    Phase.SYNTHESIZING,
    Phase.REPORTING,
    Phase.COMPLETE,
)


def _allowed_transitions() -> dict[Phase, frozenset[Phase]]:
    allowed: dict[Phase, frozenset[Phase]] = {}
    for current, following in zip(PIPELINE_ORDER, PIPELINE_ORDER[1:]):
        allowed[current] = frozenset({following, Phase.ERROR, Phase.ABORTED})
    for terminal in TERMINAL_PHASES:
        allowed[terminal] = frozenset()
    return allowed


ALLOWED_TRANSITIONS = _allowed_transitions()


class DepthTier(str, Enum):
    QUICK = "quick"
    STANDARD = "standard"
    DEEP = "deep"

    @property
    def query_count(self) -> int:
        return {"quick": 4, "standard": 6, "deep": 10}[self.value]

    @property
    def analysis_budget(self) -> int:
        return {"quick": 8, "standard": 10, "deep": 12}[self.value]


class SourceType(str, Enum):
    WEB = "web"
    AI_SEARCH = "ai-search"
    ENCYCLOPEDIA = "encyclopedia"
    ACADEMIC = "academic"
    TECH_NEWS = "tech-news"
    DISCUSSION = "discussion"
    CODE = "code"


class ReliabilityTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    BASELINE = "baseline"


class ConfidenceTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SearchQuery(BaseModel):
    """A planned sub-query."""

    model_config = ConfigDict(frozen=True)

    text: str
    index: int


class ResearchPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    main_topic: str
    research_goal: str = ""
    sub_queries: list[SearchQuery]
    key_aspects: list[str] = Field(default_factory=list)


class SourceResult(BaseModel):
    """A single search hit, normalized across adapters."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    snippet: str = ""
    adapter: str
    source_type: SourceType = SourceType.WEB
    reliability: ReliabilityTier = ReliabilityTier.BASELINE
    score: Optional[float] = None
    search_query: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ContentRecord(BaseModel):
    """Extracted, bounded plain-text body of a URL."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str = ""
    body: str = ""
    word_count: int = 0
    method: str = "none"
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.body)

    @classmethod
    def failed(cls, url: str, reason: str, *, method: str = "none") -> "ContentRecord":
        return cls(url=url, title="Failed to fetch", method=method, error=reason)


class SourceAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    key_points: list[str] = Field(default_factory=list)
    facts: list[str] = Field(default_factory=list)
    opinions: list[str] = Field(default_factory=list)
    credibility: ConfidenceTier = ConfidenceTier.MEDIUM
    relevance: ConfidenceTier = ConfidenceTier.MEDIUM
    summary: str = ""


class Finding(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: SourceResult
    analysis: SourceAnalysis
    content_excerpt: str = ""


class Synthesis(BaseModel):
    model_config = ConfigDict(frozen=True)

    consensus: list[str] = Field(default_factory=list)
    key_insights: list[str] = Field(default_factory=list)
    controversies: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    confidence: ConfidenceTier = ConfidenceTier.MEDIUM
    summary: str = ""
    fallback: bool = False


class Report(BaseModel):
    model_config = ConfigDict(frozen=True)

    markdown: str
    follow_up_questions: list[str] = Field(default_factory=list)
    knowledge_gaps: list[str] = Field(default_factory=list)
    confidence: ConfidenceTier = ConfidenceTier.MEDIUM
    generated_at: datetime = Field(default_factory=utcnow)


class ResearchStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    sub_queries: int = 0
    total_sources: int = 0
    sources_selected: int = 0
    sources_analyzed: int = 0
    by_reliability: dict[str, int] = Field(default_factory=dict)
    by_source_type: dict[str, int] = Field(default_factory=dict)
    by_adapter: dict[str, int] = Field(default_factory=dict)
    phase_durations_ms: dict[str, int] = Field(default_factory=dict)
    elapsed_ms: int = 0


class ResearchResult(BaseModel):
    """Terminal artifact of a research run (complete or aborted)."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    query: str
    depth: DepthTier
    phase: Phase
    plan: Optional[ResearchPlan] = None
    report: Optional[Report] = None
    synthesis: Optional[Synthesis] = None
    sources: list[SourceResult] = Field(default_factory=list)
    findings: list[Finding] = Field(default_factory=list)
    stats: ResearchStats = Field(default_factory=ResearchStats)
    started_at: datetime
    finished_at: datetime

    @property
    def aborted(self) -> bool:
        return self.phase == Phase.ABORTED


@dataclass
class ResearchOptions:
    depth: DepthTier = DepthTier.STANDARD
    sources: Optional[list[str]] = None
    max_results_per_adapter: Optional[int] = None


@dataclass
class ResearchSession:
    """Mutable per-run state; owned by the orchestrator."""

    query: str
    depth: DepthTier
    id: str = field(default_factory=lambda: str(uuid4()))
    phase: Phase = Phase.IDLE
    started_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    phase_durations_ms: dict[str, int] = field(default_factory=dict)
    _phase_entered_at: Optional[datetime] = field(default=None, init=False, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def transition(self, target: Phase) -> None:
        if target not in ALLOWED_TRANSITIONS[self.phase]:
            raise InvalidPhaseTransition(
                f"Cannot move from {self.phase.value} to {target.value}"
            )
        now = utcnow()
        if self._phase_entered_at is not None and self.phase != Phase.IDLE:
            elapsed = int((now - self._phase_entered_at).total_seconds() * 1000)
            self.phase_durations_ms[self.phase.value] = elapsed
        self.phase = target
        self._phase_entered_at = now
        if target in TERMINAL_PHASES:
            self.finished_at = now

    @property
    def elapsed_ms(self) -> int:
        end = self.finished_at or utcnow()
        return int((end - self.started_at).total_seconds() * 1000)
