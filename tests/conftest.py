"""Shared test fixtures and configuration."""

from __future__ import annotations

import asyncio
import contextlib
import io
import logging
from typing import TYPE_CHECKING

import pytest
from rich.console import Console

from commit_cli.config import PipelineConfig
from commit_cli.summarizer.models import Change, ChangeStatus

if TYPE_CHECKING:
    from collections.abc import Callable


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Set default timeout for all tests."""
    for item in items:
        with contextlib.suppress(AttributeError):
            item.add_marker(pytest.mark.timeout(3))


class FakeSummarizer:
    """Deterministic stand-in for the LLM summarizer.

    ``handler(prompt, model)`` returns the response, or an exception to raise.
    Without a handler every call returns ``default``.
    """

    def __init__(
        self,
        handler: Callable[[str, str | None], str | Exception] | None = None,
        *,
        default: str = "feat: update code",
    ) -> None:
        self.handler = handler
        self.default = default
        self.calls: list[tuple[str, str | None]] = []

    async def generate_summary(self, prompt: str, *, model: str | None = None) -> str:
        self.calls.append((prompt, model))
        if self.handler is None:
            return self.default
        result = self.handler(prompt, model)
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def prompts(self) -> list[str]:
        return [prompt for prompt, _ in self.calls]


@pytest.fixture
def fake_summarizer() -> type[FakeSummarizer]:
    """Provide the FakeSummarizer class for building test doubles."""
    return FakeSummarizer


@pytest.fixture
def mock_console() -> Console:
    """Provide a console that writes to a StringIO for testing."""
    return Console(file=io.StringIO(), width=120, force_terminal=False)


@pytest.fixture
def mock_logger() -> logging.Logger:
    """Provide a mock logger for testing."""
    logger = logging.getLogger("test")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def stop_event() -> asyncio.Event:
    """Provide an asyncio event for stopping operations."""
    return asyncio.Event()


@pytest.fixture
def make_change() -> Callable[..., Change]:
    """Build a Change with a small modification diff."""

    def _make(
        path: str,
        diff: str | None = None,
        status: ChangeStatus = ChangeStatus.modified,
    ) -> Change:
        if diff is None:
            diff = f"@@ -1,1 +1,1 @@\n-old line in {path}\n+new line in {path}\n"
        return Change(path=path, status=status, diff=diff, additions=1, deletions=1)

    return _make


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    """Pipeline config for a local provider with the smart filter disabled."""
    return PipelineConfig.from_mapping(
        {
            "llm": {"provider": "ollama", "model_name": "qwen2.5-coder"},
            "smart_filter": {"enabled": False},
        },
    )


@pytest.fixture(autouse=True)
def _wide_terminal(monkeypatch: pytest.MonkeyPatch) -> None:
    """Render help output wide enough that option names are not truncated."""
    monkeypatch.setenv("COLUMNS", "200")
