from __future__ import annotations

import json

import pytest

from deepresearch.services.prompt_store import PromptCatalog, clear_prompt_cache, prompt_keys, render_prompt


def test_render_prompt_substitutes_template_values():
    prompt = render_prompt("planner.plan", query="transformer architecture", query_count=4)
    assert "transformer architecture" in prompt
    assert "exactly 4 search queries" in prompt


def test_render_prompt_raises_for_unknown_key():
    with pytest.raises(KeyError):
        render_prompt("missing.prompt.key")


def test_render_prompt_raises_for_missing_value():
    with pytest.raises(KeyError, match="query_count"):
        render_prompt("planner.plan", query="q")


def test_catalog_lists_every_stage_prompt():
    assert set(prompt_keys()) == {
        "planner.plan",
        "analyzer.source",
        "synthesizer.synthesis",
        "reporter.narrative",
        "reporter.follow_ups",
        "reporter.gaps",
    }


def test_catalog_reloads_after_clear(tmp_path):
    path = tmp_path / "prompts.json"
    path.write_text(json.dumps({"greet": ["Hello", "$name"]}), encoding="utf-8")
    catalog = PromptCatalog(path)

    assert catalog.render("greet", name="Ada") == "Hello\nAda"
    path.write_text(json.dumps({"greet": "Bye $name"}), encoding="utf-8")
    catalog.clear()
    assert catalog.render("greet", name="Ada") == "Bye Ada"
    clear_prompt_cache()
