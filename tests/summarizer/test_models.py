"""Tests for summarizer data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from commit_cli.summarizer.models import (
    CommitCliError,
    ConfigurationError,
    DiffChunk,
    FatalAPIError,
    FilterResult,
    FilterStats,
    PipelineCancelledError,
    SummarizationError,
    TransientAPIError,
)


class TestErrors:
    """Tests for the error hierarchy."""

    def test_hierarchy(self) -> None:
        """All errors share one base; API errors are summarization errors."""
        assert issubclass(ConfigurationError, CommitCliError)
        assert issubclass(PipelineCancelledError, CommitCliError)
        assert issubclass(TransientAPIError, SummarizationError)
        assert issubclass(FatalAPIError, SummarizationError)
        assert not issubclass(ConfigurationError, SummarizationError)


class TestDiffChunk:
    """Tests for DiffChunk labels."""

    def test_label_single_file(self) -> None:
        """A single-file chunk is labelled with its path."""
        chunk = DiffChunk(content="x", file_paths=("a.py",), chunk_index=0, total_chunks=1)
        assert chunk.label == "a.py"

    def test_label_many_files(self) -> None:
        """Multi-file chunks name the first file and a count."""
        chunk = DiffChunk(
            content="x",
            file_paths=("a.py", "b.py", "c.py"),
            chunk_index=0,
            total_chunks=1,
        )
        assert chunk.label == "a.py (+2 more)"

    def test_label_without_files(self) -> None:
        """Chunks without paths fall back to their index."""
        chunk = DiffChunk(content="x", file_paths=(), chunk_index=3, total_chunks=4)
        assert chunk.label == "chunk-3"


class TestFilterStats:
    """Tests for FilterStats validation."""

    def test_valid(self) -> None:
        """Counts that add up are accepted."""
        stats = FilterStats(total_files=5, core_files=3, ignored_files=2, filtered=True)
        assert stats.core_files + stats.ignored_files <= stats.total_files

    def test_counts_exceed_total(self) -> None:
        """Core plus ignored may not exceed the total."""
        with pytest.raises(ValidationError):
            FilterStats(total_files=2, core_files=2, ignored_files=1)

    def test_negative_counts(self) -> None:
        """Counts are non-negative."""
        with pytest.raises(ValidationError):
            FilterStats(total_files=-1, core_files=0)

    def test_frozen(self) -> None:
        """Stats are immutable."""
        stats = FilterStats(total_files=1, core_files=1)
        with pytest.raises(ValidationError):
            stats.core_files = 0  # type: ignore[misc]

    def test_default_filter_result(self) -> None:
        """An empty result has zeroed stats."""
        result = FilterResult()
        assert result.changes == []
        assert result.stats.total_files == 0
