"""Partition a change set into token-budget-compliant chunks.

Changes are packed greedily in their original order. A file whose rendered
diff alone exceeds the budget is cut at hunk boundaries, and any hunk that is
still too large is cut at line boundaries. Chunk contents are contiguous
slices of the rendered change set, so joining them gives back the input.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from commit_cli.summarizer._utils import format_change
from commit_cli.summarizer.models import DiffChunk, SplitLevel

if TYPE_CHECKING:
    from collections.abc import Sequence

    from commit_cli.summarizer.models import Change
    from commit_cli.summarizer.tokens import TokenEstimator

logger = logging.getLogger(__name__)

_HUNK_HEADER = re.compile(
    r"^@@\s+-\d+(?:,\d+)?\s+\+\d+(?:,\d+)?\s+@@[ \t]*(.*)$",
    re.MULTILINE,
)
_FILE_HEADER_LINES = 2  # "diff --git ..." and the status line


def extract_function_name(text: str) -> str | None:
    """Return the context git prints after the first ``@@ ... @@`` in ``text``.

    >>> extract_function_name("@@ -10,4 +10,6 @@ def load_config(path):")
    'def load_config(path):'
    """
    match = _HUNK_HEADER.search(text)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return None


@dataclass
class _Piece:
    content: str
    file_paths: list[str]
    split_level: SplitLevel = SplitLevel.file
    part_index: int = 0
    part_count: int = 1
    file_header: str = ""
    function_name: str | None = None


class DiffSplitter:
    """Splits changes into chunks that fit the estimator's effective limit."""

    def __init__(self, estimator: TokenEstimator, max_tokens: int | None = None) -> None:
        """Initialize the splitter; ``max_tokens`` overrides the estimator budget."""
        self.estimator = estimator
        self.max_tokens = max_tokens

    @property
    def budget(self) -> int:
        """Token budget for a single chunk."""
        return self.max_tokens or self.estimator.get_effective_limit()

    def split(self, changes: Sequence[Change]) -> list[DiffChunk]:
        """Split ``changes`` into ordered chunks.

        Always returns at least one chunk for a non-empty input.
        """
        budget = self.budget
        pieces: list[_Piece] = []
        current: list[str] = []
        current_paths: list[str] = []
        current_tokens = 0

        def flush() -> None:
            nonlocal current, current_paths, current_tokens
            if current:
                pieces.append(_Piece("".join(current), current_paths))
            current, current_paths, current_tokens = [], [], 0

        for change in changes:
            text = format_change(change)
            tokens = self.estimator.estimate(text)

            if tokens > budget:
                flush()
                pieces.extend(self._split_file(change.path, text, budget))
                continue

            if current and current_tokens + tokens > budget:
                flush()
            current.append(text)
            current_paths.append(change.path)
            current_tokens += tokens
        flush()

        chunks = [
            DiffChunk(
                content=piece.content,
                file_paths=tuple(piece.file_paths),
                chunk_index=index,
                total_chunks=len(pieces),
                split_level=piece.split_level,
                part_index=piece.part_index,
                part_count=piece.part_count,
                file_header=piece.file_header,
                function_name=piece.function_name,
            )
            for index, piece in enumerate(pieces)
        ]
        logger.info(
            "Split %d changes into %d chunks (budget %d tokens)",
            len(changes),
            len(chunks),
            budget,
        )
        return chunks

    def _split_file(self, path: str, text: str, budget: int) -> list[_Piece]:
        """Cut one oversized file into hunk- or line-level pieces."""
        starts = [m.start() for m in _HUNK_HEADER.finditer(text) if m.start() > 0]
        if starts:
            file_header = text[: starts[0]]
        else:
            file_header = "".join(text.splitlines(keepends=True)[:_FILE_HEADER_LINES])

        # Later parts get the header repeated in their prompt, so leave room for it
        part_budget = max(1, budget - self.estimator.estimate(file_header))

        # The header stays attached to the first hunk
        bounds = [0, *starts[1:], len(text)]
        segments = [text[a:b] for a, b in zip(bounds, bounds[1:]) if b > a]

        packed: list[tuple[str, SplitLevel, str | None]] = []
        current: list[str] = []
        current_function: str | None = None
        current_tokens = 0
        level = SplitLevel.hunk if starts else SplitLevel.line

        for segment in segments:
            tokens = self.estimator.estimate(segment)
            function_name = extract_function_name(segment)
            if tokens > part_budget:
                if current:
                    packed.append(("".join(current), level, current_function))
                    current, current_tokens = [], 0
                packed.extend(
                    (lines, SplitLevel.line, function_name)
                    for lines in self._split_lines(segment, part_budget)
                )
                continue
            if current and current_tokens + tokens > part_budget:
                packed.append(("".join(current), level, current_function))
                current, current_tokens = [], 0
            if not current:
                current_function = function_name
            current.append(segment)
            current_tokens += tokens
        if current:
            packed.append(("".join(current), level, current_function))

        logger.debug("File %s split into %d parts", path, len(packed))
        return [
            _Piece(
                content=content,
                file_paths=[path],
                split_level=split_level,
                part_index=index,
                part_count=len(packed),
                file_header=file_header,
                function_name=function_name,
            )
            for index, (content, split_level, function_name) in enumerate(packed)
        ]

    def _split_lines(self, text: str, budget: int) -> list[str]:
        """Pack whole lines greedily; a single overlong line becomes its own piece."""
        pieces: list[str] = []
        current: list[str] = []
        current_tokens = 0
        for line in text.splitlines(keepends=True):
            tokens = self.estimator.estimate(line)
            if current and current_tokens + tokens > budget:
                pieces.append("".join(current))
                current, current_tokens = [], 0
            current.append(line)
            current_tokens += tokens
        if current:
            pieces.append("".join(current))
        return pieces
