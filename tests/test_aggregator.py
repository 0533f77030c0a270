from __future__ import annotations

from conftest import make_result

from deepresearch.models.research import ReliabilityTier, SourceType
from deepresearch.services.aggregator import ResultAggregator, aggregate, dedup_key
from deepresearch.services.reliability import ReliabilityPolicy

POLICY = ReliabilityPolicy(source_type_weights={"academic": 3, "web": 1, "discussion": 1})


def test_dedup_key_uses_normalized_domain_and_title_prefix():
    a = make_result("A" * 60, "https://www.example.com/one")
    b = make_result("A" * 50 + "different tail", "https://EXAMPLE.com/two?x=1")
    assert dedup_key(a) == dedup_key(b)


def test_first_seen_wins():
    aggregator = ResultAggregator(POLICY)
    first = make_result("Same title", "https://example.com/a", adapter="duckduckgo")
    second = make_result("Same title", "https://www.example.com/b", adapter="reddit")

    assert aggregator.add(first) is True
    assert aggregator.add(second) is False
    assert aggregator.discovered == [first]


def test_same_title_on_other_domain_is_kept():
    results = aggregate(
        [
            make_result("Same title", "https://example.com/a"),
            make_result("Same title", "https://other.org/a"),
        ],
        POLICY,
    )
    assert len(results) == 2


def test_ranking_is_descending_by_composite_score():
    low = make_result("low", "https://a.com")
    high = make_result(
        "high", "https://b.com", source_type=SourceType.ACADEMIC, reliability=ReliabilityTier.HIGH
    )
    medium = make_result("medium", "https://c.com", reliability=ReliabilityTier.MEDIUM)

    ranked = aggregate([low, high, medium], POLICY)
    assert [r.title for r in ranked] == ["high", "medium", "low"]


def test_ties_keep_discovery_order():
    results = [make_result(f"t{i}", f"https://site{i}.com") for i in range(6)]
    ranked = aggregate(results, POLICY)
    assert [r.title for r in ranked] == [f"t{i}" for i in range(6)]


def test_extend_returns_only_new_results():
    aggregator = ResultAggregator(POLICY)
    a = make_result("a", "https://a.com")
    b = make_result("b", "https://b.com")
    aggregator.add(a)
    assert aggregator.extend([a, b]) == [b]
    assert len(aggregator) == 2
