from __future__ import annotations

from unittest.mock import patch

import pytest

from deepresearch.tools.search_provider import ADAPTERS, build_adapters


def test_registry_covers_every_source():
    assert set(ADAPTERS) == {"duckduckgo", "tavily", "wikipedia", "arxiv", "hackernews", "reddit", "github"}


def test_build_adapters_keeps_configured_order():
    adapters = build_adapters(["arxiv", "duckduckgo", "arxiv"])
    assert [a.name for a in adapters] == ["arxiv", "duckduckgo"]


def test_build_adapters_rejects_unknown_sources():
    with pytest.raises(ValueError, match="bing"):
        build_adapters(["duckduckgo", "bing"])


def test_tavily_is_skipped_without_key():
    with patch("deepresearch.tools.search_provider.settings") as mock_settings:
        mock_settings.tavily_api_key = ""
        adapters = build_adapters(["tavily", "wikipedia"])
    assert [a.name for a in adapters] == ["wikipedia"]


def test_tavily_is_enabled_with_key():
    with patch("deepresearch.tools.search_provider.settings") as mock_settings:
        mock_settings.tavily_api_key = "tvly-test"
        adapters = build_adapters(["tavily"])
    assert [a.name for a in adapters] == ["tavily"]


def test_defaults_come_from_settings():
    with patch("deepresearch.tools.search_provider.settings") as mock_settings:
        mock_settings.search_sources = ["github", "reddit"]
        mock_settings.tavily_api_key = ""
        adapters = build_adapters()
    assert [a.name for a in adapters] == ["github", "reddit"]
