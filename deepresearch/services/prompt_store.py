from __future__ import annotations

import json
from pathlib import Path
from string import Template
from typing import Any, Iterator

PROMPTS_PATH = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"


class PromptCatalog:
    """Dotted-key catalog of ``string.Template`` prompts in one JSON file.

    A prompt is either a string or a list of lines. The file is re-read when
    its mtime changes.
    """

    def __init__(self, path: Path = PROMPTS_PATH):
        self.path = path
        self._entries: dict[str, Any] | None = None
        self._mtime_ns: int | None = None

    def _load(self) -> dict[str, Any]:
        mtime_ns = self.path.stat().st_mtime_ns
        if self._entries is not None and self._mtime_ns == mtime_ns:
            return self._entries

        payload = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError(f"Prompt catalog must be a JSON object: {self.path}")
        self._entries = payload
        self._mtime_ns = mtime_ns
        return payload

    def clear(self) -> None:
        self._entries = None
        self._mtime_ns = None

    def template(self, key: str) -> Template:
        node: Any = self._load()
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                raise KeyError(f"Prompt key not found: {key}")
            node = node[part]
        if isinstance(node, list):
            node = "\n".join(str(line) for line in node)
        if not isinstance(node, str):
            raise TypeError(f"Prompt key must map to a string or list of lines: {key}")
        return Template(node)

    def keys(self) -> Iterator[str]:
        def walk(node: dict[str, Any], prefix: str) -> Iterator[str]:
            for name, child in node.items():
                if isinstance(child, dict):
                    yield from walk(child, f"{prefix}{name}.")
                else:
                    yield f"{prefix}{name}"

        return walk(self._load(), "")

    def render(self, key: str, **values: Any) -> str:
        try:
            return self.template(key).substitute(**values)
        except KeyError as exc:
            if str(exc.args[0]).startswith("Prompt key not found"):
                raise
            raise KeyError(f"Missing template value '{exc.args[0]}' for prompt '{key}'") from exc


_catalog = PromptCatalog()


def render_prompt(key: str, **values: Any) -> str:
    return _catalog.render(key, **values)


def prompt_keys() -> list[str]:
    return list(_catalog.keys())


def clear_prompt_cache() -> None:
    _catalog.clear()
