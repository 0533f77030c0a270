"""Reliability classification and ranking weights.

Everything here is pure: the tables come from a JSON policy file (bundled by
default, overridable with ``RELIABILITY_POLICY_PATH``) and classification
never touches the network.
"""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

from deepresearch.config import settings
from deepresearch.models.research import ReliabilityTier, SourceResult
from deepresearch.tools.web_utils import normalize_domain

DEFAULT_POLICY_PATH = Path(__file__).resolve().parents[1] / "data" / "reliability_policy.json"


class ReliabilityPolicy(BaseModel):
    curated_adapters: list[str] = Field(default_factory=list)
    high_trust_domains: list[str] = Field(default_factory=list)
    medium_trust_domains: list[str] = Field(default_factory=list)
    reliability_weights: dict[ReliabilityTier, int] = Field(
        default_factory=lambda: {
            ReliabilityTier.HIGH: 3,
            ReliabilityTier.MEDIUM: 2,
            ReliabilityTier.BASELINE: 1,
        }
    )
    source_type_weights: dict[str, int] = Field(default_factory=dict)
    default_source_type_weight: int = 1


@lru_cache(maxsize=8)
def load_policy(path: str | None = None) -> ReliabilityPolicy:
    policy_path = Path(path) if path else DEFAULT_POLICY_PATH
    payload = json.loads(policy_path.read_text(encoding="utf-8"))
    return ReliabilityPolicy.model_validate(payload)


def get_policy() -> ReliabilityPolicy:
    return load_policy(settings.reliability_policy_path or None)


def domain_matches(domain: str, entry: str) -> bool:
    """``.gov``-style entries match as suffixes; others match the domain or a subdomain."""
    entry = entry.lower().strip()
    if not entry or not domain:
        return False
    if entry.startswith("."):
        return domain.endswith(entry)
    return domain == entry or domain.endswith("." + entry)


def classify(result: SourceResult, policy: ReliabilityPolicy) -> ReliabilityTier:
    if result.adapter in policy.curated_adapters:
        return ReliabilityTier.HIGH

    domain = normalize_domain(result.url)
    if any(domain_matches(domain, entry) for entry in policy.high_trust_domains):
        return ReliabilityTier.HIGH
    if any(domain_matches(domain, entry) for entry in policy.medium_trust_domains):
        return ReliabilityTier.MEDIUM
    return ReliabilityTier.BASELINE


def with_reliability(result: SourceResult, policy: ReliabilityPolicy) -> SourceResult:
    return result.model_copy(update={"reliability": classify(result, policy)})


def composite_score(result: SourceResult, policy: ReliabilityPolicy) -> int:
    reliability_weight = policy.reliability_weights.get(result.reliability, 1)
    type_weight = policy.source_type_weights.get(
        result.source_type.value, policy.default_source_type_weight
    )
    return reliability_weight + type_weight
