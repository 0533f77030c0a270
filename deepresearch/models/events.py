from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union

from deepresearch.models.research import (
    Phase,
    ResearchPlan,
    ResearchResult,
    SourceAnalysis,
    SourceResult,
)


class EventType(str, Enum):
    STATUS = "status"
    PLAN = "plan"
    THOUGHT = "thought"
    SOURCE = "source"
    FINDING = "finding"
    COMPLETE = "complete"
    ERROR = "error"


class _Event:
    type: ClassVar[EventType]

    def data(self) -> dict[str, Any]:
        raise NotImplementedError

    def format(self) -> str:
        """Render as a server-sent event frame."""
        return f"event: {self.type.value}\ndata: {json.dumps(self.data())}\n\n"


@dataclass(frozen=True)
class StatusEvent(_Event):
    phase: Phase
    message: str
    type: ClassVar[EventType] = EventType.STATUS

    def data(self) -> dict[str, Any]:
        return {"phase": self.phase.value, "message": self.message}


@dataclass(frozen=True)
class PlanEvent(_Event):
    plan: ResearchPlan
    type: ClassVar[EventType] = EventType.PLAN

    def data(self) -> dict[str, Any]:
        return self.plan.model_dump(mode="json")


@dataclass(frozen=True)
class ThoughtEvent(_Event):
    agent: str
    text: str
    type: ClassVar[EventType] = EventType.THOUGHT

    def data(self) -> dict[str, Any]:
        return {"agent": self.agent, "thought": self.text}


@dataclass(frozen=True)
class SourceEvent(_Event):
    source: SourceResult
    type: ClassVar[EventType] = EventType.SOURCE

    def data(self) -> dict[str, Any]:
        return self.source.model_dump(mode="json")


@dataclass(frozen=True)
class FindingEvent(_Event):
    source_title: str
    adapter: str
    analysis: SourceAnalysis
    type: ClassVar[EventType] = EventType.FINDING

    def data(self) -> dict[str, Any]:
        return {
            "source": self.source_title,
            "adapter": self.adapter,
            "analysis": self.analysis.model_dump(mode="json"),
        }


@dataclass(frozen=True)
class CompleteEvent(_Event):
    result: ResearchResult
    type: ClassVar[EventType] = EventType.COMPLETE

    def data(self) -> dict[str, Any]:
        return self.result.model_dump(mode="json")


@dataclass(frozen=True)
class ErrorEvent(_Event):
    message: str
    type: ClassVar[EventType] = EventType.ERROR

    def data(self) -> dict[str, Any]:
        return {"message": self.message}


ResearchEvent = Union[
    StatusEvent,
    PlanEvent,
    ThoughtEvent,
    SourceEvent,
    FindingEvent,
    CompleteEvent,
    ErrorEvent,
]
