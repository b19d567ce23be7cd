"""Tests for splitting change sets into chunks."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from commit_cli.summarizer._utils import format_change, format_changes
from commit_cli.summarizer.models import SplitLevel
from commit_cli.summarizer.splitter import DiffSplitter, extract_function_name
from commit_cli.summarizer.tokens import TokenEstimator

if TYPE_CHECKING:
    from collections.abc import Callable

    from commit_cli.summarizer.models import Change


def _estimator(limit: int) -> TokenEstimator:
    return TokenEstimator(
        "test-model",
        custom_token_limit=limit,
        safety_margin_percent=100,
        reserved_prompt_tokens=0,
    )


def _hunk(start: int, lines: int, function: str = "") -> str:
    body = "".join(f"+added line {start + i} with some padding text\n" for i in range(lines))
    context = f" {function}" if function else ""
    return f"@@ -{start},0 +{start},{lines} @@{context}\n{body}"


class TestDiffSplitter:
    """Tests for DiffSplitter.split."""

    def test_small_changes_single_chunk(self, make_change: Callable[..., Change]) -> None:
        """Changes that fit together stay in one chunk."""
        changes = [make_change("a.py"), make_change("b.py"), make_change("c.py")]
        chunks = DiffSplitter(_estimator(10_000)).split(changes)

        assert len(chunks) == 1
        assert chunks[0].file_paths == ("a.py", "b.py", "c.py")
        assert chunks[0].split_level is SplitLevel.file
        assert chunks[0].total_chunks == 1
        assert chunks[0].label == "a.py (+2 more)"

    def test_empty_input(self) -> None:
        """No changes give no chunks."""
        assert DiffSplitter(_estimator(100)).split([]) == []

    def test_packs_files_greedily(self, make_change: Callable[..., Change]) -> None:
        """Files are grouped until the next one would overflow the budget."""
        changes = [make_change(f"file_{i}.py") for i in range(6)]
        per_file = TokenEstimator("x").estimate(format_change(changes[0]))
        chunks = DiffSplitter(_estimator(per_file * 2)).split(changes)

        assert [len(c.file_paths) for c in chunks] == [2, 2, 2]
        assert [c.chunk_index for c in chunks] == [0, 1, 2]
        assert all(c.total_chunks == 3 for c in chunks)

    def test_oversized_file_split_at_hunks(self, make_change: Callable[..., Change]) -> None:
        """A file too large for one chunk is cut at hunk boundaries."""
        diff = _hunk(1, 10) + _hunk(100, 10) + _hunk(200, 10)
        change = make_change("big.py", diff=diff)
        hunk_tokens = TokenEstimator("x").estimate(_hunk(1, 10))
        chunks = DiffSplitter(_estimator(hunk_tokens + 20)).split([change])

        assert len(chunks) == 3
        assert all(c.split_level is SplitLevel.hunk for c in chunks)
        assert [c.part_index for c in chunks] == [0, 1, 2]
        assert all(c.part_count == 3 for c in chunks)
        assert chunks[0].file_header.startswith("diff --git a/big.py b/big.py\n")
        assert chunks[1].content.startswith("@@ -100,0")

    def test_oversized_hunk_split_at_lines(self, make_change: Callable[..., Change]) -> None:
        """A hunk that is still too large is cut at line boundaries."""
        change = make_change("huge.py", diff=_hunk(1, 200))
        chunks = DiffSplitter(_estimator(200)).split([change])

        assert len(chunks) > 1
        assert all(c.split_level is SplitLevel.line for c in chunks)
        assert all(c.content.endswith("\n") for c in chunks)

    @pytest.mark.parametrize("limit", [50, 120, 400, 5000])
    def test_concatenation_reconstructs_input(
        self,
        make_change: Callable[..., Change],
        limit: int,
    ) -> None:
        """Joining chunk contents gives back the rendered change set."""
        changes = [
            make_change("small.py"),
            make_change("big.py", diff=_hunk(1, 30) + _hunk(50, 30)),
            make_change("other.py"),
            make_change("huge.py", diff=_hunk(1, 120)),
        ]
        chunks = DiffSplitter(_estimator(limit)).split(changes)

        assert "".join(c.content for c in chunks) == format_changes(changes)

    def test_chunks_fit_budget(self, make_change: Callable[..., Change]) -> None:
        """Every chunk fits the budget when no single line is oversized."""
        changes = [make_change(f"f{i}.py", diff=_hunk(1, 15)) for i in range(8)]
        estimator = _estimator(150)
        chunks = DiffSplitter(estimator).split(changes)

        assert len(chunks) > 1
        assert all(estimator.estimate(c.content) <= estimator.get_effective_limit() for c in chunks)

    def test_max_tokens_override(self, make_change: Callable[..., Change]) -> None:
        """An explicit max_tokens replaces the estimator budget."""
        splitter = DiffSplitter(_estimator(10_000), max_tokens=30)
        assert splitter.budget == 30
        changes = [make_change("a.py"), make_change("b.py")]
        assert len(splitter.split(changes)) == 2

    def test_function_name_from_hunk_header(self, make_change: Callable[..., Change]) -> None:
        """Hunk-level parts carry the function git names in the hunk header."""
        diff = _hunk(1, 10, "def load(path):") + _hunk(100, 10) + _hunk(200, 10, "class Store:")
        change = make_change("big.py", diff=diff)
        hunk_tokens = TokenEstimator("x").estimate(_hunk(200, 10, "class Store:"))
        chunks = DiffSplitter(_estimator(hunk_tokens + 20)).split([change])

        assert [c.function_name for c in chunks] == ["def load(path):", None, "class Store:"]

    def test_function_name_kept_for_line_parts(self, make_change: Callable[..., Change]) -> None:
        """Every line-level piece of a hunk names the hunk's function."""
        change = make_change("huge.py", diff=_hunk(1, 200, "async def sync_all():"))
        chunks = DiffSplitter(_estimator(200)).split([change])

        assert len(chunks) > 1
        assert {c.function_name for c in chunks} == {"async def sync_all():"}

    def test_whole_files_have_no_function_name(self, make_change: Callable[..., Change]) -> None:
        """Files that are not cut up do not get a function name."""
        change = make_change("a.py", diff=_hunk(1, 2, "def main():"))
        [chunk] = DiffSplitter(_estimator(10_000)).split([change])
        assert chunk.function_name is None


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("@@ -10,4 +10,6 @@ def load_config(path):", "def load_config(path):"),
        ("@@ -1 +1 @@", None),
        ("@@ -1,2 +1,3 @@   \n+line", None),
        ("not a hunk header", None),
    ],
)
def test_extract_function_name(header: str, expected: str | None) -> None:
    """The trailing context of a hunk header is the function name."""
    assert extract_function_name(header) == expected
