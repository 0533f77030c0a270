from __future__ import annotations

import pytest

from deepresearch.exceptions import InvalidPhaseTransition
from deepresearch.models.research import DepthTier, Phase, ResearchSession
from deepresearch.tools.web_utils import clean_content, normalize_domain


def test_session_walks_the_pipeline():
    session = ResearchSession(query="q", depth=DepthTier.QUICK)
    for phase in (
        Phase.PLANNING,
        Phase.SEARCHING,
        Phase.ANALYZING,
        Phase.SYNTHESIZING,
        Phase.REPORTING,
        Phase.COMPLETE,
    ):
        session.transition(phase)

    assert session.is_terminal
    assert session.finished_at is not None
    assert set(session.phase_durations_ms) == {"planning", "searching", "analyzing", "synthesizing", "reporting"}


def test_session_cannot_skip_phases():
    session = ResearchSession(query="q", depth=DepthTier.QUICK)
    with pytest.raises(InvalidPhaseTransition):
        session.transition(Phase.ANALYZING)


@pytest.mark.parametrize("terminal", [Phase.ERROR, Phase.ABORTED])
def test_error_and_abort_reachable_from_any_active_phase(terminal):
    session = ResearchSession(query="q", depth=DepthTier.DEEP)
    session.transition(Phase.PLANNING)
    session.transition(Phase.SEARCHING)
    session.transition(terminal)
    assert session.phase == terminal
    with pytest.raises(InvalidPhaseTransition):
        session.transition(Phase.ANALYZING)


def test_depth_tiers():
    assert [d.query_count for d in DepthTier] == [4, 6, 10]
    assert [d.analysis_budget for d in DepthTier] == [8, 10, 12]


def test_normalize_domain():
    assert normalize_domain("https://WWW.Example.com:8080/path") == "example.com"
    assert normalize_domain("not a url") == "not a url"


def test_clean_content_marks_truncation():
    assert clean_content("a  b\n\nc") == "a b c"
    assert clean_content("x" * 10, max_length=4) == "xxxx..."
