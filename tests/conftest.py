"""
Pytest configuration and shared fixtures.
"""

import textwrap
from pathlib import Path

import pytest

from agents.llm.base import LLMResponse
from migration.config import PKFConfig


class FakeRouter:
    """Scripted stand-in for LLMRouter: returns the queued replies in order."""

    def __init__(self, replies=None, input_tokens: int = 10, output_tokens: int = 5) -> None:
        self.replies       = list(replies or [])
        self.input_tokens  = input_tokens
        self.output_tokens = output_tokens
        self.calls: list[dict] = []
        self.is_available  = True

    def complete(self, system, messages):
        self.calls.append({"system": system, "messages": list(messages)})
        text = self.replies.pop(0) if self.replies else ""
        return LLMResponse(
            text=text,
            model="fake-model",
            provider="fake",
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )


class FrontmatterRouter(FakeRouter):
    """Always answers with a valid frontmatter block built from the request."""

    def complete(self, system, messages):
        self.calls.append({"system": system, "messages": list(messages)})
        return LLMResponse(
            text="---\ntitle: Migrated\nstatus: active\n---\n",
            model="fake-model",
            provider="fake",
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """An empty project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def write_file(project_root: Path):
    """Create a file (and its parents) under the project root."""
    def _write(relative: str, content: str = "") -> Path:
        path = project_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def make_blueprint():
    """Build blueprint YAML text from (path, type, target) tuples."""
    def _make(*documents, key: str = "documents") -> str:
        lines = [f"{key}:"]
        for doc in documents:
            path, doc_type, *rest = doc
            lines.append(f"  - path: {path}")
            lines.append(f"    type: {doc_type}")
            if rest and rest[0]:
                lines.append(f"    target_path: {rest[0]}")
        return "\n".join(lines) + "\n"
    return _make


@pytest.fixture
def config() -> PKFConfig:
    return PKFConfig()


@pytest.fixture
def dedent():
    return lambda text: textwrap.dedent(text).lstrip("\n")
