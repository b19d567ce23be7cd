"""Pre-pass that drops low-signal files (lockfiles, build output, ...).

Only the file list is sent to the model, never the diff contents. Every
failure path is fail-open: all files are kept and the reason is recorded in
the returned :class:`FilterStats`.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import TYPE_CHECKING, Any

from commit_cli.summarizer._prompts import FILTER_SYSTEM_PROMPT, FILTER_USER_PROMPT
from commit_cli.summarizer.models import (
    ConfigurationError,
    FilterResult,
    FilterStats,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from commit_cli.config import SmartFilter
    from commit_cli.summarizer._utils import Summarizer
    from commit_cli.summarizer.models import Change

logger = logging.getLogger(__name__)

_FENCE_START = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_FENCE_END = re.compile(r"\n?```\s*$")
_MAX_LOGGED_PATHS = 5


def clean_json_output(text: str) -> str:
    """Strip surrounding markdown code fences from a model response."""
    cleaned = _FENCE_START.sub("", text.strip())
    cleaned = _FENCE_END.sub("", cleaned)
    return cleaned.strip()


def parse_filter_result(response: str) -> list[str]:
    """Parse the model's JSON array of paths.

    Raises:
        ValueError: If the response is not a JSON array of strings.

    """
    try:
        parsed: Any = json.loads(clean_json_output(response))
    except json.JSONDecodeError as e:
        msg = f"Could not parse filter response as JSON: {e}"
        raise ValueError(msg) from e
    if not isinstance(parsed, list):
        msg = "Filter response is not a JSON array"
        raise ValueError(msg)  # noqa: TRY004
    if not all(isinstance(item, str) for item in parsed):
        msg = "Filter response contains non-string items"
        raise ValueError(msg)
    return parsed


def build_file_list(changes: Sequence[Change]) -> list[dict[str, str]]:
    """List of ``{"path", "status"}`` entries sent to the model."""
    return [{"path": change.path, "status": change.status.value} for change in changes]


class SmartDiffFilter:
    """Classifies files as core or ignorable before the change set is split."""

    def __init__(
        self,
        summarizer: Summarizer,
        settings: SmartFilter,
        *,
        model: str | None = None,
    ) -> None:
        """Initialize the filter.

        Args:
            summarizer: Capability used for the classification call.
            settings: Thresholds and timeout.
            model: Model for the classification call (primary model if None).

        """
        self.summarizer = summarizer
        self.settings = settings
        self.model = model

    def should_skip_filtering(self, changes: Sequence[Change]) -> bool:
        """Too few files for filtering to be worth a call."""
        return len(changes) < self.settings.min_files_threshold

    def exceeds_max_file_list_size(self, changes: Sequence[Change]) -> bool:
        """Too many files: the classification prompt itself could overflow."""
        return len(changes) > self.settings.max_file_list_size

    async def filter(self, changes: Sequence[Change]) -> FilterResult:
        """Return the core changes and statistics about what was dropped."""
        total = len(changes)

        if total == 0:
            return self._skipped(changes, "Empty file list")
        if self.should_skip_filtering(changes):
            return self._skipped(
                changes,
                f"Too few files (< {self.settings.min_files_threshold}), no filtering needed",
            )
        if self.exceeds_max_file_list_size(changes):
            return self._skipped(
                changes,
                f"Too many files (> {self.settings.max_file_list_size}), "
                "skipping to prevent context overflow",
            )

        try:
            response = await asyncio.wait_for(
                self.summarizer.generate_summary(self._build_prompt(changes), model=self.model),
                timeout=self.settings.timeout,
            )
            keep = self._validate_paths(parse_filter_result(response), changes)
        except ConfigurationError:
            raise
        except TimeoutError:
            return self._skipped(
                changes,
                f"Filtering failed: timed out after {self.settings.timeout:g}s",
            )
        except Exception as e:
            return self._skipped(changes, f"Filtering failed: {e}")

        if not keep:
            return self._skipped(changes, "Model returned an empty list or only unknown paths")

        kept = [change for change in changes if change.path in keep]
        ignored = total - len(kept)
        logger.info(
            "Smart filter kept %d of %d files (ignored %d)",
            len(kept),
            total,
            ignored,
        )
        if ignored:
            logger.debug(
                "Ignored files: %s",
                ", ".join(c.path for c in changes if c.path not in keep),
            )
        return FilterResult(
            changes=kept,
            stats=FilterStats(
                total_files=total,
                core_files=len(kept),
                ignored_files=ignored,
                filtered=True,
            ),
        )

    def _build_prompt(self, changes: Sequence[Change]) -> str:
        file_list_json = json.dumps(build_file_list(changes), ensure_ascii=False)
        user_prompt = FILTER_USER_PROMPT.format(file_list_json=file_list_json)
        return f"{FILTER_SYSTEM_PROMPT}\n\n{user_prompt}"

    def _validate_paths(self, paths: list[str], changes: Sequence[Change]) -> set[str]:
        known = {change.path for change in changes}
        unknown = [path for path in paths if path not in known]
        if unknown:
            shown = ", ".join(unknown[:_MAX_LOGGED_PATHS])
            more = "..." if len(unknown) > _MAX_LOGGED_PATHS else ""
            logger.warning("Filter returned %d unknown paths: %s%s", len(unknown), shown, more)
        return {path for path in paths if path in known}

    def _skipped(self, changes: Sequence[Change], reason: str) -> FilterResult:
        logger.info("Smart filter skipped: %s", reason)
        return FilterResult(
            changes=list(changes),
            stats=FilterStats(
                total_files=len(changes),
                core_files=len(changes),
                ignored_files=0,
                filtered=False,
                skip_reason=reason,
            ),
        )
