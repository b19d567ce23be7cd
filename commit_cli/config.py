"""Pydantic models for pipeline configuration and config file loading."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator
from rich.console import Console

from commit_cli import constants
from commit_cli.summarizer.models import ConfigurationError

console = Console()

# --- Config File Loading ---

CONFIG_PATH = Path.home() / ".config" / "commit-cli" / "config.toml"
CONFIG_PATH_2 = Path("commit-cli-config.toml")


def _replace_dashed_keys(cfg: dict[str, Any]) -> dict[str, Any]:
    """Replace dashed keys with underscores in the config options."""
    return {k.replace("-", "_"): v for k, v in cfg.items()}


def load_config(config_path_str: str | None = None) -> dict[str, Any]:
    """Load the TOML configuration file and process it for nested structures."""
    if config_path_str:
        config_path = Path(config_path_str)
    elif CONFIG_PATH.exists():
        config_path = CONFIG_PATH
    elif CONFIG_PATH_2.exists():
        config_path = CONFIG_PATH_2
    else:
        return {}

    if config_path.exists():
        with config_path.open("rb") as f:
            cfg = tomllib.load(f)
            return {
                k.replace("-", "_"): _replace_dashed_keys(v) if isinstance(v, dict) else v
                for k, v in cfg.items()
            }

    # Report error only if an explicit path was given
    if config_path_str:
        console.print(
            f"[bold red]Config file not found at {config_path_str}[/bold red]",
        )
    return {}


# --- Pydantic Models for Configuration ---

# --- Panel: LLM Configuration ---


class LLM(BaseModel):
    """Configuration for the model used to write commit messages."""

    provider: str = "openai"
    model_name: str = "gpt-4o-mini"
    chunk_model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    request_timeout: float = Field(default=constants.DEFAULT_REQUEST_TIMEOUT, gt=0)
    max_retries: int = Field(default=constants.DEFAULT_MAX_RETRIES, ge=1)
    initial_retry_delay: float = Field(default=constants.DEFAULT_INITIAL_RETRY_DELAY, ge=0)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=500, gt=0)

    @field_validator("provider", mode="before")
    @classmethod
    def _normalize_provider(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("chunk_model", mode="before")
    @classmethod
    def _blank_is_none(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, v: str | None) -> str | None:
        if v:
            return v.rstrip("/")
        return None


# --- Panel: Commit Format ---


class CommitFormat(BaseModel):
    """Formatting preferences for generated commit messages."""

    commit_format: Literal["conventional", "free"] = "conventional"
    language: str = "en"


# --- Panel: Large Diff Handling ---


class LargeDiff(BaseModel):
    """Budget and concurrency settings for large change sets."""

    enable_map_reduce: bool = True
    max_concurrent_requests: int = Field(
        default=constants.DEFAULT_MAX_CONCURRENT_REQUESTS,
        ge=1,
    )
    safety_margin_percent: int = Field(
        default=constants.DEFAULT_SAFETY_MARGIN_PERCENT,
        ge=1,
        le=100,
    )
    custom_token_limit: int | None = Field(default=None, ge=0)
    reserved_prompt_tokens: int = Field(
        default=constants.DEFAULT_RESERVED_PROMPT_TOKENS,
        ge=0,
    )


# --- Panel: Smart Filter ---


class SmartFilter(BaseModel):
    """Settings for the pre-pass that drops low-signal files."""

    enabled: bool = True
    min_files_threshold: int = Field(default=constants.DEFAULT_MIN_FILES_THRESHOLD, ge=0)
    max_file_list_size: int = Field(default=constants.DEFAULT_MAX_FILE_LIST_SIZE, ge=1)
    timeout: float = Field(default=constants.DEFAULT_FILTER_TIMEOUT, gt=0)
    show_stats: bool = True
    detailed_logging: bool = False


class PipelineConfig(BaseModel):
    """All settings consumed by the commit message pipeline."""

    llm: LLM = Field(default_factory=LLM)
    format: CommitFormat = Field(default_factory=CommitFormat)
    large_diff: LargeDiff = Field(default_factory=LargeDiff)
    smart_filter: SmartFilter = Field(default_factory=SmartFilter)

    @classmethod
    def from_mapping(cls, cfg: dict[str, Any]) -> PipelineConfig:
        """Build a config from a loaded TOML mapping.

        Raises:
            ConfigurationError: If any value fails validation.

        """
        try:
            return cls.model_validate(cfg)
        except ValidationError as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e


def load_pipeline_config(
    config_path_str: str | None = None,
    overrides: dict[str, dict[str, Any]] | None = None,
) -> PipelineConfig:
    """Load the pipeline config from TOML, applying per-section overrides."""
    cfg = load_config(config_path_str)
    sections = {name: dict(cfg.get(name, {})) for name in PipelineConfig.model_fields}
    for section, values in (overrides or {}).items():
        sections.setdefault(section, {}).update(
            {k: v for k, v in values.items() if v is not None},
        )
    return PipelineConfig.from_mapping(sections)
