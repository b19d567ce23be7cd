"""Map-reduce summarization of large change sets.

1. Map: summarize every chunk independently, in parallel, with bounded
   concurrency. A failed chunk becomes a ``ChunkSummary(success=False)``.
2. Reduce: merge the chunk summaries into one commit message. If the merge
   prompt itself is over budget, summaries are merged in groups and the
   group results are merged again, up to a fixed depth. At the depth limit
   the remaining summaries are concatenated without another model call.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
from typing import TYPE_CHECKING, Any, TypeVar

from commit_cli import constants
from commit_cli.summarizer._prompts import (
    CHUNK_SUMMARY_PROMPT,
    MERGE_SUMMARY_PROMPT,
    format_instructions,
    format_summaries_for_merge,
)
from commit_cli.summarizer.feedback import NullFeedback
from commit_cli.summarizer.models import (
    ChunkSummary,
    ConfigurationError,
    PipelineCancelledError,
)

if TYPE_CHECKING:
    from collections.abc import Coroutine, Iterable, Sequence

    from commit_cli.config import CommitFormat
    from commit_cli.summarizer._utils import Summarizer
    from commit_cli.summarizer.feedback import Feedback
    from commit_cli.summarizer.models import DiffChunk
    from commit_cli.summarizer.tokens import TokenEstimator

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONVENTIONAL_COMMIT = re.compile(
    r"^(feat|fix|docs|style|refactor|test|chore|perf|ci|build|revert)(\(.+\))?!?:\s*\S",
)

# Checked in order; the first type with a keyword anywhere in the message wins
CHANGE_TYPE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("fix", ("fix", "bug")),
    ("feat", ("add", "new", "feat")),
    ("docs", ("doc",)),
    ("refactor", ("refactor",)),
    ("test", ("test",)),
    ("style", ("style",)),
)
DEFAULT_CHANGE_TYPE = "chore"


def is_conventional_format(message: str) -> bool:
    """Return True if ``message`` starts with ``type(scope)?: subject``."""
    return bool(_CONVENTIONAL_COMMIT.match(message))


def detect_change_type(message: str) -> str:
    """Infer a conventional commit type from keywords in ``message``."""
    lowered = message.lower()
    for change_type, keywords in CHANGE_TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return change_type
    return DEFAULT_CHANGE_TYPE


def format_commit_message(message: str, config: CommitFormat) -> str:
    """Prefix a conventional commit type when the format requires one."""
    formatted = message.strip()
    if config.commit_format == "conventional" and not is_conventional_format(formatted):
        formatted = f"{detect_change_type(formatted)}: {formatted}"
    return formatted


def _successful(summaries: Sequence[ChunkSummary]) -> list[ChunkSummary]:
    return [s for s in summaries if s.success and s.summary.strip()]


def check_cancelled(stop_event: asyncio.Event | None) -> None:
    """Raise ``PipelineCancelledError`` if ``stop_event`` is set."""
    if stop_event is not None and stop_event.is_set():
        msg = "Commit message generation was cancelled"
        raise PipelineCancelledError(msg)


async def _gather_or_cancel(coros: Iterable[Coroutine[Any, Any, T]]) -> list[T]:
    """Run ``coros`` concurrently; the first error cancels the rest before propagating."""
    tasks = [asyncio.create_task(coro) for coro in coros]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class ChunkProcessor:
    """Map phase: summarize each chunk independently."""

    def __init__(
        self,
        summarizer: Summarizer,
        *,
        max_concurrent: int = 5,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """Initialize the processor; a set ``stop_event`` keeps queued chunks from starting."""
        self.summarizer = summarizer
        self.max_concurrent = max_concurrent
        self.stop_event = stop_event

    async def process_chunks(
        self,
        chunks: Sequence[DiffChunk],
        *,
        model: str | None = None,
    ) -> list[ChunkSummary]:
        """Summarize ``chunks`` in parallel; output order matches input order."""
        if not chunks:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def summarize_chunk(chunk: DiffChunk) -> ChunkSummary:
            async with semaphore:
                check_cancelled(self.stop_event)
                return await self.process_chunk(chunk, model=model)

        logger.info(
            "Map phase: processing %d chunks (model=%s, concurrency=%d)",
            len(chunks),
            model,
            self.max_concurrent,
        )
        return await _gather_or_cancel(summarize_chunk(c) for c in chunks)

    async def process_chunk(self, chunk: DiffChunk, *, model: str | None = None) -> ChunkSummary:
        """Summarize one chunk, capturing failures as data."""
        prompt = self.build_chunk_prompt(chunk)
        try:
            summary = await self.summarizer.generate_summary(prompt, model=model)
        except (ConfigurationError, PipelineCancelledError):
            raise
        except Exception as e:
            logger.warning("Chunk %d (%s) failed: %s", chunk.chunk_index, chunk.label, e)
            return ChunkSummary(
                file_path=chunk.label,
                summary="",
                chunk_index=chunk.chunk_index,
                success=False,
                error=str(e) or type(e).__name__,
            )

        if not summary.strip():
            return ChunkSummary(
                file_path=chunk.label,
                summary="",
                chunk_index=chunk.chunk_index,
                success=False,
                error=f"Empty summary for chunk {chunk.chunk_index}",
            )
        return ChunkSummary(
            file_path=chunk.label,
            summary=summary.strip(),
            chunk_index=chunk.chunk_index,
            success=True,
        )

    def build_chunk_prompt(self, chunk: DiffChunk) -> str:
        """Build the map prompt, with file context for pieces of a split file."""
        part_info = ""
        header_context = ""
        if chunk.part_count > 1:
            part_info = f"\nPart {chunk.part_index + 1} of {chunk.part_count} of this file"
            if chunk.part_index > 0 and chunk.file_header:
                header_context = f"\nFile header:\n{chunk.file_header.rstrip()}\n"
        if chunk.function_name:
            part_info += f"\nFunction: {chunk.function_name}"
        return CHUNK_SUMMARY_PROMPT.format(
            label=chunk.label,
            chunk_index=chunk.chunk_index + 1,
            total_chunks=chunk.total_chunks,
            split_level=chunk.split_level.value,
            part_info=part_info,
            header_context=header_context,
            content=chunk.content,
        )


class SummaryMerger:
    """Reduce phase: merge chunk summaries into one commit message."""

    def __init__(
        self,
        estimator: TokenEstimator,
        summarizer: Summarizer,
        *,
        max_concurrent: int = 5,
        max_depth: int = constants.MAX_MERGE_DEPTH,
        prompt_overhead: int = constants.MERGE_PROMPT_OVERHEAD,
        model: str | None = None,
        feedback: Feedback | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """Initialize the merger.

        Args:
            estimator: Token estimator for the synthesis model.
            summarizer: Capability used for merge calls.
            max_concurrent: Maximum parallel group merges.
            max_depth: Recursion levels before falling back to concatenation.
            prompt_overhead: Tokens reserved for merge prompt scaffolding.
            model: Model for merge calls (primary model if None).
            feedback: Sink for merge progress messages.
            stop_event: Set by the caller to cancel between recursion levels.

        """
        self.estimator = estimator
        self.summarizer = summarizer
        self.max_concurrent = max_concurrent
        self.max_depth = max_depth
        self.prompt_overhead = prompt_overhead
        self.model = model
        self.feedback = feedback or NullFeedback()
        self.stop_event = stop_event

    async def merge(self, summaries: Sequence[ChunkSummary], config: CommitFormat) -> str:
        """Merge ``summaries`` into a commit message. Never raises on service failures."""
        successful = _successful(summaries)
        if not successful:
            return self.failure_message(summaries)

        if len(successful) == 1:
            return format_commit_message(successful[0].summary, config)

        prompt = self.build_merge_prompt(successful, config)
        if self.estimator.needs_split(prompt):
            logger.info(
                "Merge prompt for %d summaries exceeds budget, merging recursively",
                len(successful),
            )
            return await self.recursive_merge(summaries, config)

        self.feedback.report_progress(f"Merging {len(successful)} summaries")
        merged = await self._merge_call(prompt, successful)
        return format_commit_message(merged, config)

    async def recursive_merge(
        self,
        summaries: Sequence[ChunkSummary],
        config: CommitFormat,
        depth: int = 0,
    ) -> str:
        """Merge in groups sized to fit the budget, then merge the group results."""
        check_cancelled(self.stop_event)
        successful = _successful(summaries)
        if not successful:
            return self.failure_message(summaries)

        logger.info("Recursive merge depth %d: %d summaries", depth, len(successful))

        if depth >= self.max_depth:
            logger.warning(
                "Reached max merge depth %d, concatenating %d summaries",
                self.max_depth,
                len(successful),
            )
            return format_commit_message(self._concatenate(successful), config)

        group_size = self.calculate_group_size(successful)
        if group_size >= len(successful):
            prompt = self.build_merge_prompt(successful, config)
            merged = await self._merge_call(prompt, successful)
            return format_commit_message(merged, config)

        groups = [
            successful[i : i + group_size] for i in range(0, len(successful), group_size)
        ]
        if len(groups) == 1:
            prompt = self.build_merge_prompt(groups[0], config)
            merged = await self._merge_call(prompt, groups[0])
            return format_commit_message(merged, config)

        self.feedback.report_progress(
            f"Merging {len(successful)} summaries in {len(groups)} groups (level {depth + 1})",
        )
        group_summaries = await self._merge_groups(groups, config)
        return await self.recursive_merge(group_summaries, config, depth + 1)

    def calculate_group_size(self, summaries: Sequence[ChunkSummary]) -> int:
        """Number of summaries per group, from their average estimated size."""
        total_tokens = sum(self.estimator.estimate(s.summary) for s in summaries)
        avg_tokens = total_tokens / len(summaries)
        available = self.estimator.get_effective_limit() - self.prompt_overhead
        group_size = max(1, math.floor(available / avg_tokens)) if avg_tokens > 0 else 1
        return min(group_size, len(summaries))

    def build_merge_prompt(self, summaries: Sequence[ChunkSummary], config: CommitFormat) -> str:
        """Build a merge prompt with summaries grouped by file or group label."""
        grouped: dict[str, list[str]] = {}
        for summary in summaries:
            grouped.setdefault(summary.file_path, []).append(summary.summary)
        return MERGE_SUMMARY_PROMPT.format(
            summaries=format_summaries_for_merge(grouped),
            format_instructions=format_instructions(config.commit_format, config.language),
        )

    @staticmethod
    def failure_message(summaries: Sequence[ChunkSummary]) -> str:
        """Deterministic message listing every captured error."""
        errors = [s.error or "Unknown error" for s in summaries if not s.success]
        if not errors:
            return "Unable to generate commit message: no changes were summarized"
        return f"Unable to generate commit message: {'; '.join(errors)}"

    @staticmethod
    def _concatenate(summaries: Sequence[ChunkSummary]) -> str:
        return "\n".join(s.summary.strip() for s in summaries)

    async def _merge_call(self, prompt: str, summaries: Sequence[ChunkSummary]) -> str:
        """One merge call; falls back to concatenation if the service fails."""
        try:
            merged = await self.summarizer.generate_summary(prompt, model=self.model)
        except (ConfigurationError, PipelineCancelledError):
            raise
        except Exception as e:
            logger.warning("Merge call failed, concatenating summaries instead: %s", e)
            return self._concatenate(summaries)
        if not merged.strip():
            logger.warning("Merge call returned nothing, concatenating summaries instead")
            return self._concatenate(summaries)
        return merged

    async def _merge_groups(
        self,
        groups: Sequence[Sequence[ChunkSummary]],
        config: CommitFormat,
    ) -> list[ChunkSummary]:
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def merge_group(index: int, group: Sequence[ChunkSummary]) -> ChunkSummary:
            label = f"group-{index}"
            async with semaphore:
                check_cancelled(self.stop_event)
                try:
                    merged = await self.summarizer.generate_summary(
                        self.build_merge_prompt(group, config),
                        model=self.model,
                    )
                except (ConfigurationError, PipelineCancelledError):
                    raise
                except Exception as e:
                    logger.warning("Merge group %d failed: %s", index, e)
                    return ChunkSummary(
                        file_path=label,
                        summary="",
                        chunk_index=index,
                        success=False,
                        error=str(e) or type(e).__name__,
                    )
            if not merged.strip():
                return ChunkSummary(
                    file_path=label,
                    summary="",
                    chunk_index=index,
                    success=False,
                    error=f"Empty summary for merge group {index}",
                )
            return ChunkSummary(
                file_path=label,
                summary=merged.strip(),
                chunk_index=index,
                success=True,
            )

        return await _gather_or_cancel(merge_group(i, g) for i, g in enumerate(groups))
