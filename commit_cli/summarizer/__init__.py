"""Commit message generation for change sets of any size.

Small change sets are summarized in one call. Larger ones are split into
token-budgeted chunks that are summarized in parallel (map phase) and then
merged, recursively if needed, into a single message (reduce phase).

Example:
    from commit_cli.config import PipelineConfig
    from commit_cli.git import get_staged_changes
    from commit_cli.summarizer import generate_commit_message

    config = PipelineConfig.from_mapping(
        {"llm": {"provider": "ollama", "model_name": "qwen2.5-coder"}},
    )
    message = await generate_commit_message(get_staged_changes(), config)

"""

from commit_cli.summarizer.adaptive import generate_commit_message, needs_large_diff_handling
from commit_cli.summarizer.models import (
    Change,
    ChangeStatus,
    CommitCliError,
    ConfigurationError,
    FatalAPIError,
    PipelineCancelledError,
    SummarizationError,
    TransientAPIError,
)

__all__ = [
    "Change",
    "ChangeStatus",
    "CommitCliError",
    "ConfigurationError",
    "FatalAPIError",
    "PipelineCancelledError",
    "SummarizationError",
    "TransientAPIError",
    "generate_commit_message",
    "needs_large_diff_handling",
]
