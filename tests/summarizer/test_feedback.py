"""Tests for feedback sinks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from commit_cli.summarizer.feedback import (
    ConsoleFeedback,
    NullFeedback,
    filter_detailed_log,
    filter_status_message,
    usage_summary,
)
from commit_cli.summarizer.models import FilterStats

if TYPE_CHECKING:
    from rich.console import Console

FILTERED = FilterStats(total_files=10, core_files=6, ignored_files=4, filtered=True)
SKIPPED = FilterStats(
    total_files=2,
    core_files=2,
    skip_reason="Too few files (< 3), no filtering needed",
)


def test_status_message_filtered() -> None:
    """The status line reports core and ignored counts."""
    assert filter_status_message(FILTERED) == (
        "Smart Filter: Analyzed 10 files, focused on 6 core files (ignored 4 noise files)"
    )


def test_status_message_all_core() -> None:
    """No ignored files is reported as such."""
    stats = FilterStats(total_files=4, core_files=4, filtered=True)
    assert filter_status_message(stats) == "Smart Filter: Analyzed 4 files, all are core files"


def test_status_message_skipped() -> None:
    """Skipped runs explain why."""
    assert filter_status_message(SKIPPED) == "Smart Filter: Skipped (only 2 files)"
    failed = FilterStats(total_files=5, core_files=5, skip_reason="Filtering failed: boom")
    assert filter_status_message(failed) == "Smart Filter: Skipped (Filtering failed: boom)"


def test_detailed_log() -> None:
    """The detailed log includes the estimated saving."""
    lines = filter_detailed_log(FILTERED)
    assert "  Status: Completed" in lines
    assert "  Ignored files: 4" in lines
    assert "  Tokens saved: ~40.0%" in lines
    assert "  Reason: Too few files (< 3), no filtering needed" in filter_detailed_log(SKIPPED)


def test_console_feedback(mock_console: Console) -> None:
    """Statistics and progress are printed to the console."""
    feedback = ConsoleFeedback(mock_console, detailed_logging=True)
    feedback.show_filter_stats(FILTERED)
    feedback.report_progress("Merging [3] summaries")

    output = mock_console.file.getvalue()  # type: ignore[attr-defined]
    assert "focused on 6 core files" in output
    assert "Tokens saved" in output
    assert "Merging [3] summaries" in output


def test_console_feedback_quiet(mock_console: Console) -> None:
    """Quiet mode prints nothing."""
    feedback = ConsoleFeedback(mock_console, quiet=True)
    feedback.show_filter_stats(FILTERED)
    feedback.report_progress("Merging")
    assert mock_console.file.getvalue() == ""  # type: ignore[attr-defined]


def test_null_feedback() -> None:
    """The null sink accepts everything."""
    feedback = NullFeedback()
    feedback.show_filter_stats(FILTERED)
    feedback.report_progress("anything")
    feedback.report_usage("gpt-4o-mini", "gpt-4o", 3, 1.5)


def test_usage_summary() -> None:
    """The usage summary names both models and the timing."""
    assert usage_summary("gpt-4o-mini", "gpt-4o", 4, 2.0) == [
        "Map phase: gpt-4o-mini summarized 4 chunks",
        "Reduce phase: gpt-4o wrote the commit message",
        "Processing time: 2.00s",
        "Average per chunk: 500ms",
    ]


def test_console_feedback_usage(mock_console: Console) -> None:
    """The usage summary is printed unless statistics are turned off."""
    ConsoleFeedback(mock_console).report_usage("gemini-1.5-flash", "gemini-1.5-pro", 6, 3.0)
    output = mock_console.file.getvalue()  # type: ignore[attr-defined]
    assert "Map phase: gemini-1.5-flash summarized 6 chunks" in output
    assert "Reduce phase: gemini-1.5-pro" in output

    silent = ConsoleFeedback(mock_console, show_stats=False)
    silent.report_usage("a", "b", 1, 0.1)
    assert "Map phase: a" not in mock_console.file.getvalue()  # type: ignore[attr-defined]
