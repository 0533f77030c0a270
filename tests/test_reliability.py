from __future__ import annotations

import json

from conftest import make_result

from deepresearch.models.research import ReliabilityTier, SourceType
from deepresearch.services.reliability import (
    ReliabilityPolicy,
    classify,
    composite_score,
    domain_matches,
    load_policy,
    with_reliability,
)

POLICY = ReliabilityPolicy(
    curated_adapters=["wikipedia", "arxiv", "tavily"],
    high_trust_domains=[".gov", ".edu", "nature.com"],
    medium_trust_domains=["medium.com", "reddit.com"],
    source_type_weights={"academic": 3, "web": 1},
)


def test_suffix_entries_match_any_domain_ending():
    assert domain_matches("data.nasa.gov", ".gov")
    assert domain_matches("mit.edu", ".edu")
    assert not domain_matches("gov.example.com", ".gov")


def test_plain_entries_match_domain_or_subdomain_only():
    assert domain_matches("nature.com", "nature.com")
    assert domain_matches("www2.nature.com", "nature.com")
    assert not domain_matches("notnature.com", "nature.com")


def test_curated_adapter_is_high_regardless_of_domain():
    result = make_result("Attention", "https://random-blog.example/post", adapter="arxiv")
    assert classify(result, POLICY) == ReliabilityTier.HIGH


def test_domain_lists_checked_high_then_medium():
    assert classify(make_result("a", "https://www.nature.com/articles/1"), POLICY) == ReliabilityTier.HIGH
    assert classify(make_result("b", "https://medium.com/@x/post"), POLICY) == ReliabilityTier.MEDIUM
    assert classify(make_result("c", "https://unknown.io/"), POLICY) == ReliabilityTier.BASELINE


def test_with_reliability_returns_classified_copy():
    original = make_result("a", "https://cdc.gov/flu")
    classified = with_reliability(original, POLICY)
    assert classified.reliability == ReliabilityTier.HIGH
    assert original.reliability == ReliabilityTier.BASELINE


def test_composite_score_adds_reliability_and_type_weights():
    result = make_result(
        "a",
        "https://x.org",
        adapter="arxiv",
        source_type=SourceType.ACADEMIC,
        reliability=ReliabilityTier.HIGH,
    )
    assert composite_score(result, POLICY) == 6
    code = make_result("b", "https://y.org", source_type=SourceType.CODE)
    assert composite_score(code, POLICY) == 1 + POLICY.default_source_type_weight


def test_bundled_policy_loads():
    policy = load_policy()
    assert "wikipedia" in policy.curated_adapters
    assert policy.reliability_weights[ReliabilityTier.HIGH] > policy.reliability_weights[ReliabilityTier.BASELINE]


def test_policy_file_can_be_overridden(tmp_path):
    path = tmp_path / "policy.json"
    path.write_text(json.dumps({"curated_adapters": ["github"]}), encoding="utf-8")
    policy = load_policy(str(path))
    assert classify(make_result("repo", "https://github.com/a/b", adapter="github"), policy) == ReliabilityTier.HIGH
