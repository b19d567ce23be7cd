"""Observational feedback sinks for filter statistics and merge progress."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from commit_cli.summarizer.models import FilterStats


class Feedback(Protocol):
    """Receives pipeline events for display. Never influences the pipeline."""

    def show_filter_stats(self, stats: FilterStats) -> None:
        """Display smart filter statistics."""
        ...

    def report_progress(self, message: str) -> None:
        """Display a progress message."""
        ...

    def report_usage(self, map_model: str, primary_model: str, chunks: int, elapsed: float) -> None:
        """Display which models handled the map and reduce phases, and how long it took."""
        ...


class NullFeedback:
    """Feedback sink that discards everything."""

    def show_filter_stats(self, stats: FilterStats) -> None:  # noqa: ARG002
        """Ignore filter statistics."""

    def report_progress(self, message: str) -> None:  # noqa: ARG002
        """Ignore progress messages."""

    def report_usage(
        self,
        map_model: str,  # noqa: ARG002
        primary_model: str,  # noqa: ARG002
        chunks: int,  # noqa: ARG002
        elapsed: float,  # noqa: ARG002
    ) -> None:
        """Ignore the model usage summary."""


def filter_status_message(stats: FilterStats) -> str:
    """One-line description of what the smart filter did."""
    if not stats.filtered:
        reason = stats.skip_reason or ""
        if reason.startswith("Too few files"):
            return f"Smart Filter: Skipped (only {stats.total_files} files)"
        if reason.startswith("Too many files"):
            return f"Smart Filter: Skipped ({stats.total_files} files, too large for filtering)"
        if reason.startswith("Empty"):
            return "Smart Filter: Skipped (empty file list)"
        if reason:
            return f"Smart Filter: Skipped ({reason})"
        return "Smart Filter: Skipped"

    if stats.ignored_files == 0:
        return f"Smart Filter: Analyzed {stats.total_files} files, all are core files"
    return (
        f"Smart Filter: Analyzed {stats.total_files} files, focused on "
        f"{stats.core_files} core files (ignored {stats.ignored_files} noise files)"
    )


def filter_detailed_log(stats: FilterStats) -> list[str]:
    """Multi-line report of the smart filter run."""
    timestamp = datetime.now(UTC).isoformat()
    lines = [f"[{timestamp}] Smart Filter"]
    if not stats.filtered:
        lines.append("  Status: Skipped")
        lines.append(f"  Reason: {stats.skip_reason or 'Unknown'}")
        lines.append(f"  Total files: {stats.total_files}")
        return lines

    lines.append("  Status: Completed")
    lines.append(f"  Total files: {stats.total_files}")
    lines.append(f"  Core files: {stats.core_files}")
    lines.append(f"  Ignored files: {stats.ignored_files}")
    if stats.ignored_files > 0 and stats.total_files > 0:
        saved = stats.ignored_files / stats.total_files * 100
        lines.append(f"  Tokens saved: ~{saved:.1f}%")
    return lines


def usage_summary(map_model: str, primary_model: str, chunks: int, elapsed: float) -> list[str]:
    """Describe the map and reduce models of a run."""
    lines = [
        f"Map phase: {map_model} summarized {chunks} chunks",
        f"Reduce phase: {primary_model} wrote the commit message",
        f"Processing time: {elapsed:.2f}s",
    ]
    if chunks > 0:
        lines.append(f"Average per chunk: {elapsed / chunks * 1000:.0f}ms")
    return lines


class ConsoleFeedback:
    """Feedback sink that prints to a Rich console."""

    def __init__(
        self,
        console: Console | None = None,
        *,
        show_stats: bool = True,
        detailed_logging: bool = False,
        quiet: bool = False,
    ) -> None:
        """Initialize the console feedback."""
        self.console = console or Console(stderr=True)
        self.show_stats = show_stats
        self.detailed_logging = detailed_logging
        self.quiet = quiet

    def show_filter_stats(self, stats: FilterStats) -> None:
        """Print the filter status line and, optionally, the detailed report."""
        if self.quiet or not self.show_stats:
            return
        self.console.print(f"[cyan]{escape(filter_status_message(stats))}[/cyan]")
        if self.detailed_logging:
            for line in filter_detailed_log(stats):
                self.console.print(f"[dim]{escape(line)}[/dim]")

    def report_progress(self, message: str) -> None:
        """Print a dimmed progress message."""
        if not self.quiet:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def report_usage(self, map_model: str, primary_model: str, chunks: int, elapsed: float) -> None:
        """Print the hybrid model summary after a map-reduce run."""
        if self.quiet or not self.show_stats:
            return
        for line in usage_summary(map_model, primary_model, chunks, elapsed):
            self.console.print(f"[cyan]{escape(line)}[/cyan]")
