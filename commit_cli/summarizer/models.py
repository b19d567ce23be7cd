"""Data models and errors for large-diff commit message summarization."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class CommitCliError(Exception):
    """Base class for all errors raised by commit-cli."""


class ConfigurationError(CommitCliError):
    """Raised when model or provider settings are invalid or missing."""


class SummarizationError(CommitCliError):
    """Raised when the summarization service cannot produce a result."""


class TransientAPIError(SummarizationError):
    """A retryable service failure (rate limit, 5xx, connection problems)."""


class FatalAPIError(SummarizationError):
    """A non-retryable service failure (auth, not found, malformed request)."""


class PipelineCancelledError(CommitCliError):
    """Raised when the caller cancels a running pipeline."""


class ChangeStatus(str, Enum):
    """Status of a changed file."""

    added = "Added"
    modified = "Modified"
    deleted = "Deleted"
    renamed = "Renamed"
    copied = "Copied"


class SplitLevel(str, Enum):
    """Granularity at which a chunk was cut from the change set."""

    file = "file"
    hunk = "hunk"
    line = "line"


@dataclass(frozen=True)
class Change:
    """One modified file as produced by the VCS layer."""

    path: str
    status: ChangeStatus
    diff: str
    additions: int = 0
    deletions: int = 0


@dataclass(frozen=True)
class DiffChunk:
    """A budget-compliant slice of the rendered change set.

    Attributes:
        content: Verbatim slice of the rendered diff text.
        file_paths: Paths of every file that contributes to this chunk.
        chunk_index: Position of the chunk in the split output.
        total_chunks: Number of chunks in the split output.
        split_level: Whether the chunk holds whole files, hunks, or lines.
        part_index: Index of this piece when a single file was cut up.
        part_count: Number of pieces the file was cut into (1 if whole).
        file_header: Header lines of the file, repeated in prompts for parts.
        function_name: Enclosing function named in the first hunk header, if any.

    """

    content: str
    file_paths: tuple[str, ...]
    chunk_index: int
    total_chunks: int
    split_level: SplitLevel = SplitLevel.file
    part_index: int = 0
    part_count: int = 1
    file_header: str = ""
    function_name: str | None = None

    @property
    def label(self) -> str:
        """Human readable label used to group summaries."""
        if not self.file_paths:
            return f"chunk-{self.chunk_index}"
        if len(self.file_paths) == 1:
            return self.file_paths[0]
        return f"{self.file_paths[0]} (+{len(self.file_paths) - 1} more)"


@dataclass(frozen=True)
class ChunkSummary:
    """Result of summarizing one chunk or one merge group."""

    file_path: str
    summary: str
    chunk_index: int
    success: bool
    error: str | None = None


class FilterStats(BaseModel):
    """Statistics reported by the smart diff filter."""

    model_config = {"frozen": True}

    total_files: int = Field(..., ge=0)
    core_files: int = Field(..., ge=0)
    ignored_files: int = Field(default=0, ge=0)
    filtered: bool = False
    skip_reason: str | None = None

    @model_validator(mode="after")
    def _check_counts(self) -> FilterStats:
        if self.core_files + self.ignored_files > self.total_files:
            msg = (
                f"core_files ({self.core_files}) + ignored_files ({self.ignored_files}) "
                f"exceeds total_files ({self.total_files})"
            )
            raise ValueError(msg)
        return self


@dataclass(frozen=True)
class FilterResult:
    """Changes kept by the smart filter together with its statistics."""

    changes: list[Change] = field(default_factory=list)
    stats: FilterStats = field(
        default_factory=lambda: FilterStats(total_files=0, core_files=0),
    )
