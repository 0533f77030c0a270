"""Typed payloads expected back from the completion service, one per stage.

Model output is parsed with :func:`parse_payload`, which never raises: it
returns either :class:`Parsed` carrying the validated payload or
:class:`ParseFailure` carrying the reason and the raw text, and the calling
stage decides whether that failure is fatal or source-scoped.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, TypeVar, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    ValidationError,
    field_validator,
)

from deepresearch.models.research import ConfidenceTier

T = TypeVar("T", bound=BaseModel)

_TIER_PATTERN = re.compile(r"\b(high|medium|low)\b", re.IGNORECASE)


def _clean_strings(values: list[str]) -> list[str]:
    return [" ".join(v.split()) for v in values if v and v.strip()]


def _coerce_tier(value: Any) -> Any:
    if isinstance(value, ConfidenceTier) or value is None:
        return value
    if isinstance(value, str):
        match = _TIER_PATTERN.search(value)
        if match:
            return match.group(1).lower()
    raise ValueError(f"unrecognized tier: {value!r}")


class PlanPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    main_topic: str = Field(default="", validation_alias=AliasChoices("main_topic", "mainTopic"))
    research_goal: str = Field(
        default="", validation_alias=AliasChoices("research_goal", "researchGoal")
    )
    search_queries: list[str] = Field(
        validation_alias=AliasChoices("search_queries", "searchQueries", "sub_queries")
    )
    key_aspects: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("key_aspects", "keyAspects", "focus_areas", "focusAreas"),
    )

    @field_validator("search_queries")
    @classmethod
    def require_queries(cls, value: list[str]) -> list[str]:
        cleaned = _clean_strings(value)
        if not cleaned:
            raise ValueError("plan contains no search queries")
        return cleaned

    @field_validator("key_aspects")
    @classmethod
    def clean_aspects(cls, value: list[str]) -> list[str]:
        return _clean_strings(value)


class AnalysisPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key_points: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("key_points", "keyPoints")
    )
    facts: list[str] = Field(default_factory=list)
    opinions: list[str] = Field(default_factory=list)
    credibility: ConfidenceTier = ConfidenceTier.MEDIUM
    relevance: ConfidenceTier = ConfidenceTier.MEDIUM
    summary: str = ""

    @field_validator("credibility", "relevance", mode="before")
    @classmethod
    def coerce_tiers(cls, value: Any) -> Any:
        # unrecognized ratings read as medium
        try:
            return _coerce_tier(value) or ConfidenceTier.MEDIUM
        except ValueError:
            return ConfidenceTier.MEDIUM

    @field_validator("key_points")
    @classmethod
    def require_key_points(cls, value: list[str]) -> list[str]:
        cleaned = _clean_strings(value)
        if not cleaned:
            raise ValueError("analysis contains no key points")
        return cleaned


class SynthesisPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    consensus: list[str] = Field(default_factory=list)
    key_insights: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("key_insights", "keyInsights")
    )
    controversies: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    confidence: ConfidenceTier
    summary: str = ""

    @field_validator("confidence", mode="before")
    @classmethod
    def coerce_confidence(cls, value: Any) -> Any:
        return _coerce_tier(value)


class StringListPayload(RootModel[list[str]]):
    @field_validator("root")
    @classmethod
    def clean_items(cls, value: list[str]) -> list[str]:
        return _clean_strings(value)


@dataclass(frozen=True)
class Parsed(Generic[T]):
    value: T
    raw_text: str = ""
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class ParseFailure:
    reason: str
    raw_text: str = ""
    ok: ClassVar[bool] = False


ParseResult = Union[Parsed[T], ParseFailure]


def strip_code_fences(raw_text: str) -> str:
    text = raw_text.strip()
    if text.startswith("```"):
        text = text[3:]
        if text.lower().startswith("json"):
            text = text[4:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        # Models sometimes wrap the payload in prose; retry on the outermost bracket span.
        starts = [i for i in (text.find("{"), text.find("[")) if i >= 0]
        if not starts:
            raise
        start = min(starts)
        closer = "}" if text[start] == "{" else "]"
        end = text.rfind(closer)
        if end <= start:
            raise
        return json.loads(text[start : end + 1])


def parse_payload(raw_text: str, schema: type[T]) -> ParseResult[T]:
    """Parse and validate model output against ``schema``."""
    text = strip_code_fences(raw_text or "")
    if not text:
        return ParseFailure(reason="empty response", raw_text=raw_text or "")
    try:
        data = _load_json(text)
    except json.JSONDecodeError as exc:
        return ParseFailure(reason=f"invalid JSON: {exc.msg}", raw_text=raw_text)
    try:
        value = schema.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or schema.__name__
        return ParseFailure(
            reason=f"{schema.__name__} mismatch at {location}: {first.get('msg', 'invalid')}",
            raw_text=raw_text,
        )
    return Parsed(value=value, raw_text=raw_text)
