from __future__ import annotations

from typing import Iterable

from deepresearch.models.research import SourceResult
from deepresearch.services.reliability import ReliabilityPolicy, composite_score, get_policy
from deepresearch.tools.web_utils import normalize_domain

TITLE_KEY_CHARS = 50


def dedup_key(result: SourceResult) -> tuple[str, str]:
    """Same story under slightly different URLs collapses to one key."""
    return normalize_domain(result.url), (result.title or "")[:TITLE_KEY_CHARS]


class ResultAggregator:
    """Accumulates search results across adapters and sub-queries.

    First-seen wins on the dedup key. ``ranked`` sorts by composite score,
    descending, keeping discovery order between equal scores.
    """

    def __init__(self, policy: ReliabilityPolicy | None = None):
        self.policy = policy or get_policy()
        self._seen: set[tuple[str, str]] = set()
        self._results: list[SourceResult] = []

    def __len__(self) -> int:
        return len(self._results)

    def add(self, result: SourceResult) -> bool:
        key = dedup_key(result)
        if key in self._seen:
            return False
        self._seen.add(key)
        self._results.append(result)
        return True

    def extend(self, results: Iterable[SourceResult]) -> list[SourceResult]:
        return [result for result in results if self.add(result)]

    @property
    def discovered(self) -> list[SourceResult]:
        return list(self._results)

    def ranked(self) -> list[SourceResult]:
        # sorted() is stable, so ties keep discovery order
        return sorted(
            self._results,
            key=lambda result: composite_score(result, self.policy),
            reverse=True,
        )


def aggregate(
    results: Iterable[SourceResult], policy: ReliabilityPolicy | None = None
) -> list[SourceResult]:
    aggregator = ResultAggregator(policy)
    aggregator.extend(results)
    return aggregator.ranked()
