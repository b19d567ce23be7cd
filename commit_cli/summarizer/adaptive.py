"""Adaptive commit message generation.

1. Drop low-signal files with the smart filter (optional).
2. If the rendered change set fits the model budget, ask for the commit
   message directly.
3. Otherwise split it into chunks, summarize each chunk with the map model
   and merge the summaries with the primary model, recursively if needed.

When map-reduce is disabled, an oversized change set is truncated instead
and the prompt says so.
"""

from __future__ import annotations

import logging
import math
import time
from typing import TYPE_CHECKING

from commit_cli import constants
from commit_cli.summarizer._prompts import COMMIT_MESSAGE_PROMPT, format_instructions
from commit_cli.summarizer._utils import LLMSummarizer, format_changes
from commit_cli.summarizer.feedback import NullFeedback
from commit_cli.summarizer.map_reduce import (
    ChunkProcessor,
    SummaryMerger,
    check_cancelled,
    format_commit_message,
)
from commit_cli.summarizer.model_selector import ModelSelector
from commit_cli.summarizer.models import ConfigurationError, FatalAPIError
from commit_cli.summarizer.smart_filter import SmartDiffFilter
from commit_cli.summarizer.splitter import DiffSplitter
from commit_cli.summarizer.tokens import TokenEstimator

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Sequence

    from commit_cli.config import PipelineConfig
    from commit_cli.summarizer._utils import Summarizer
    from commit_cli.summarizer.feedback import Feedback
    from commit_cli.summarizer.models import Change

logger = logging.getLogger(__name__)

__all__ = [
    "generate_commit_message",
    "needs_large_diff_handling",
]

NO_CHANGES_MESSAGE = "Unable to generate commit message: no changes to summarize"


def _validate_config(config: PipelineConfig) -> None:
    if not config.llm.provider or not config.llm.provider.strip():
        msg = "No LLM provider configured."
        raise ConfigurationError(msg)
    if not config.llm.model_name or not config.llm.model_name.strip():
        msg = f"No model configured for provider '{config.llm.provider}'."
        raise ConfigurationError(msg)


def needs_large_diff_handling(changes: Sequence[Change], config: PipelineConfig) -> bool:
    """Return True if the rendered changes exceed the primary model's budget."""
    estimator = TokenEstimator.from_config(config.llm.model_name, config.large_diff)
    return estimator.needs_split(format_changes(changes))


def truncate_to_budget(content: str, estimator: TokenEstimator) -> str:
    """Drop trailing lines until ``content`` plus a truncation notice fits.

    The notice is always appended so the model knows the diff is incomplete.
    """
    notice = f"\n\n{constants.TRUNCATION_NOTICE}"
    budget = estimator.get_effective_limit()
    lines = content.splitlines(keepends=True)
    truncated = content

    while lines and estimator.estimate(truncated + notice) > budget:
        keep = math.floor(len(lines) * constants.TRUNCATION_KEEP_RATIO)
        if keep >= 1 and keep < len(lines):
            lines = lines[:keep]
            truncated = "".join(lines)
            continue
        # A single remaining line: cut it by characters
        max_chars = max(0, (budget - estimator.estimate(notice)) * estimator.chars_per_token)
        truncated = truncated[:max_chars]
        break

    logger.warning(
        "Diff truncated from %d to %d characters to fit the model budget",
        len(content),
        len(truncated),
    )
    return truncated.rstrip("\n") + notice


async def _direct_message(
    content: str,
    summarizer: Summarizer,
    config: PipelineConfig,
) -> str:
    prompt = COMMIT_MESSAGE_PROMPT.format(
        format_instructions=format_instructions(
            config.format.commit_format,
            config.format.language,
        ),
        content=content,
    )
    message = await summarizer.generate_summary(prompt)
    if not message.strip():
        msg = f"Model {config.llm.model_name} returned an empty commit message"
        raise FatalAPIError(msg)
    return format_commit_message(message, config.format)


async def generate_commit_message(
    changes: Sequence[Change],
    config: PipelineConfig,
    *,
    summarizer: Summarizer | None = None,
    feedback: Feedback | None = None,
    stop_event: asyncio.Event | None = None,
) -> str:
    """Generate a commit message for ``changes``.

    Args:
        changes: The change set, in display order.
        config: Pipeline configuration.
        summarizer: Summarization capability; an ``LLMSummarizer`` is built
            from ``config.llm`` when omitted.
        feedback: Sink for filter statistics and progress messages.
        stop_event: Checked between phases; when set the run is abandoned.

    Returns:
        The commit message, or a message explaining why none could be made.
        Never an empty string.

    Raises:
        ConfigurationError: If the model or provider settings are unusable.
        SummarizationError: If the service is unavailable for a direct call.
        PipelineCancelledError: If ``stop_event`` was set during the run.

    """
    _validate_config(config)
    feedback = feedback or NullFeedback()
    if summarizer is None:
        summarizer = LLMSummarizer(config.llm)

    if not changes:
        return NO_CHANGES_MESSAGE

    map_model = ModelSelector().select_and_validate_map_model(config.llm)
    estimator = TokenEstimator.from_config(config.llm.model_name, config.large_diff)
    logger.debug("Token budget: %s", estimator.get_config_info())

    check_cancelled(stop_event)
    if config.smart_filter.enabled:
        smart_filter = SmartDiffFilter(summarizer, config.smart_filter, model=map_model)
        result = await smart_filter.filter(changes)
        feedback.show_filter_stats(result.stats)
        changes = result.changes

    check_cancelled(stop_event)
    content = format_changes(changes)
    tokens = estimator.estimate(content)
    limit = estimator.get_effective_limit()
    logger.info("Change set: %d files, ~%d tokens (limit %d)", len(changes), tokens, limit)

    if tokens <= limit:
        return await _direct_message(content, summarizer, config)

    if not config.large_diff.enable_map_reduce:
        logger.info("Map-reduce disabled, truncating the change set")
        feedback.report_progress("Diff too large, truncating to fit the model")
        return await _direct_message(truncate_to_budget(content, estimator), summarizer, config)

    chunks = DiffSplitter(estimator).split(changes)
    feedback.report_progress(f"Summarizing {len(chunks)} chunks with {map_model}")

    check_cancelled(stop_event)
    started = time.perf_counter()
    processor = ChunkProcessor(
        summarizer,
        max_concurrent=config.large_diff.max_concurrent_requests,
        stop_event=stop_event,
    )
    summaries = await processor.process_chunks(chunks, model=map_model)
    failed = sum(1 for s in summaries if not s.success)
    if failed:
        logger.warning("%d of %d chunks failed to summarize", failed, len(summaries))

    check_cancelled(stop_event)
    merger = SummaryMerger(
        estimator,
        summarizer,
        max_concurrent=config.large_diff.max_concurrent_requests,
        feedback=feedback,
        stop_event=stop_event,
    )
    message = await merger.merge(summaries, config.format)

    if map_model != config.llm.model_name:
        elapsed = time.perf_counter() - started
        logger.info(
            "Hybrid models: %s for %d chunks, %s for the merge (%.2fs)",
            map_model,
            len(chunks),
            config.llm.model_name,
            elapsed,
        )
        feedback.report_usage(map_model, config.llm.model_name, len(chunks), elapsed)
    return message
