"""Command line interface for commit-cli."""

from __future__ import annotations

import asyncio
import time
from typing import Any

import pyperclip
import typer

from commit_cli.config import load_pipeline_config
from commit_cli.core.utils import (
    console,
    err_console,
    print_error_message,
    print_output_panel,
    print_with_style,
    setup_logging,
)
from commit_cli.git import GitError, get_staged_changes
from commit_cli.summarizer import (
    CommitCliError,
    ConfigurationError,
    SummarizationError,
    generate_commit_message,
)
from commit_cli.summarizer.feedback import ConsoleFeedback

app = typer.Typer(
    name="commit-cli",
    help="Generate git commit messages from staged changes, however large the diff.",
    add_completion=True,
)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Generate commit messages with an LLM."""
    if ctx.invoked_subcommand is None:
        console.print("[bold red]No command specified.[/bold red]")
        console.print("[bold yellow]Running --help for your convenience.[/bold yellow]")
        console.print(ctx.get_help())
        raise typer.Exit
    import dotenv  # noqa: PLC0415

    dotenv.load_dotenv()


def _overrides(
    *,
    provider: str | None,
    model: str | None,
    chunk_model: str | None,
    api_key: str | None,
    base_url: str | None,
    commit_format: str | None,
    language: str | None,
    smart_filter: bool | None,
    max_concurrent: int | None,
    map_reduce: bool | None,
) -> dict[str, dict[str, Any]]:
    """Options given on the command line; ``None`` keeps the config file value."""
    return {
        "llm": {
            "provider": provider,
            "model_name": model,
            "chunk_model": chunk_model,
            "api_key": api_key,
            "base_url": base_url,
        },
        "format": {"commit_format": commit_format, "language": language},
        "large_diff": {
            "max_concurrent_requests": max_concurrent,
            "enable_map_reduce": map_reduce,
        },
        "smart_filter": {"enabled": smart_filter},
    }


@app.command("generate")
def generate(
    *,
    # --- LLM Options ---
    provider: str | None = typer.Option(
        None,
        "--provider",
        "-p",
        help='LLM provider ("openai", "gemini", "anthropic", "ollama", "lmstudio", ...).',
        rich_help_panel="LLM Options",
    ),
    model: str | None = typer.Option(
        None,
        "--model",
        "-m",
        help="Primary model, used for direct calls and the final merge.",
        rich_help_panel="LLM Options",
    ),
    chunk_model: str | None = typer.Option(
        None,
        "--chunk-model",
        help="Model for per-chunk summaries. Defaults to a cheaper sibling of --model.",
        rich_help_panel="LLM Options",
    ),
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        envvar="COMMIT_CLI_API_KEY",
        help="API key for the provider.",
        rich_help_panel="LLM Options",
    ),
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        help="Base URL of an OpenAI-compatible endpoint.",
        rich_help_panel="LLM Options",
    ),
    # --- Message Options ---
    commit_format: str | None = typer.Option(
        None,
        "--format",
        "-f",
        help='Commit message format ("conventional" or "free").',
        rich_help_panel="Message Options",
    ),
    language: str | None = typer.Option(
        None,
        "--language",
        help='Language of the commit message (e.g., "en", "de", "zh-CN").',
        rich_help_panel="Message Options",
    ),
    # --- Large Diff Options ---
    smart_filter: bool | None = typer.Option(
        None,
        "--smart-filter/--no-smart-filter",
        help="Drop lockfiles, build output and other noise before summarizing.",
        rich_help_panel="Large Diff Options",
    ),
    map_reduce: bool | None = typer.Option(
        None,
        "--map-reduce/--no-map-reduce",
        help="Summarize large diffs in chunks instead of truncating them.",
        rich_help_panel="Large Diff Options",
    ),
    max_concurrent: int | None = typer.Option(
        None,
        "--max-concurrent",
        min=1,
        help="Maximum number of parallel LLM requests for large diffs.",
        rich_help_panel="Large Diff Options",
    ),
    # --- General Options ---
    clipboard: bool = typer.Option(
        False,  # noqa: FBT003
        "--clipboard",
        "-c",
        help="Copy the commit message to the clipboard.",
        rich_help_panel="General Options",
    ),
    log_level: str = typer.Option(
        "warning",
        "--log-level",
        help="Set logging level.",
        rich_help_panel="General Options",
    ),
    log_file: str | None = typer.Option(
        None,
        "--log-file",
        help="Path to a file to write logs to.",
        rich_help_panel="General Options",
    ),
    quiet: bool = typer.Option(
        False,  # noqa: FBT003
        "--quiet",
        "-q",
        help="Print only the commit message.",
        rich_help_panel="General Options",
    ),
    config_file: str | None = typer.Option(
        None,
        "--config",
        help="Path to a TOML configuration file.",
        rich_help_panel="General Options",
    ),
) -> None:
    """Generate a commit message for the staged changes.

    Examples:
        # Use the settings from ~/.config/commit-cli/config.toml
        commit-cli generate

        # Local model, free-form message, copied to the clipboard
        commit-cli generate --provider ollama --model qwen2.5-coder --format free -c

    """
    setup_logging(log_level, log_file=log_file, quiet=quiet)

    try:
        cfg = load_pipeline_config(
            config_file,
            _overrides(
                provider=provider,
                model=model,
                chunk_model=chunk_model,
                api_key=api_key,
                base_url=base_url,
                commit_format=commit_format,
                language=language,
                smart_filter=smart_filter,
                max_concurrent=max_concurrent,
                map_reduce=map_reduce,
            ),
        )
    except ConfigurationError as e:
        print_error_message(str(e), "Check your configuration file and command line options.")
        raise typer.Exit(1) from e

    try:
        changes = get_staged_changes()
    except GitError as e:
        print_error_message(str(e), "Run commit-cli inside a git repository.")
        raise typer.Exit(1) from e

    if not changes:
        print_error_message("No staged changes found.", "Stage files with 'git add' first.")
        raise typer.Exit(1)

    feedback = ConsoleFeedback(
        err_console,
        show_stats=cfg.smart_filter.show_stats,
        detailed_logging=cfg.smart_filter.detailed_logging,
        quiet=quiet,
    )

    start = time.monotonic()
    try:
        message = asyncio.run(generate_commit_message(changes, cfg, feedback=feedback))
    except ConfigurationError as e:
        print_error_message(str(e), "Check the provider, model and API key settings.")
        raise typer.Exit(1) from e
    except SummarizationError as e:
        print_error_message(str(e), f"Check that the {cfg.llm.provider} API is reachable.")
        raise typer.Exit(1) from e
    except CommitCliError as e:
        print_error_message(str(e))
        raise typer.Exit(1) from e
    elapsed = time.monotonic() - start

    if quiet:
        print(message)
    else:
        print_output_panel(
            message,
            title="Commit Message",
            subtitle=f"[dim]{len(changes)} files, took {elapsed:.2f}s[/dim]",
        )

    if clipboard:
        pyperclip.copy(message)
        if not quiet:
            print_with_style("Copied to clipboard.")
