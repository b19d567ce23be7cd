"""Test the config loading."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from commit_cli.config import (
    LLM,
    LargeDiff,
    PipelineConfig,
    load_config,
    load_pipeline_config,
)
from commit_cli.summarizer.models import ConfigurationError

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Provides a config file with dashed keys."""
    config_content = """
[llm]
provider = "OpenAI"
model-name = "gpt-4o"
chunk-model = "gpt-4o-mini"
api-key = "sk-from-file"
base-url = "https://example.com/v1/"

[format]
commit-format = "free"
language = "de"

[large-diff]
max-concurrent-requests = 2
custom-token-limit = 16000

[smart-filter]
enabled = false
min-files-threshold = 5
"""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_content)
    return config_path


def test_config_loader_key_replacement(config_file: Path) -> None:
    """Test that dashed keys are replaced with underscores."""
    config = load_config(str(config_file))
    assert config["llm"]["model_name"] == "gpt-4o"
    assert config["large_diff"]["max_concurrent_requests"] == 2
    assert config["smart_filter"]["min_files_threshold"] == 5


def test_load_pipeline_config(config_file: Path) -> None:
    """All sections are validated into the pipeline config."""
    cfg = load_pipeline_config(str(config_file))
    assert cfg.llm.provider == "openai"
    assert cfg.llm.model_name == "gpt-4o"
    assert cfg.llm.chunk_model == "gpt-4o-mini"
    assert cfg.llm.base_url == "https://example.com/v1"
    assert cfg.format.commit_format == "free"
    assert cfg.format.language == "de"
    assert cfg.large_diff.max_concurrent_requests == 2
    assert cfg.large_diff.custom_token_limit == 16000
    assert cfg.large_diff.enable_map_reduce is True
    assert cfg.smart_filter.enabled is False


def test_overrides_win_and_none_is_ignored(config_file: Path) -> None:
    """Command line values replace file values; None keeps them."""
    cfg = load_pipeline_config(
        str(config_file),
        {"llm": {"model_name": "gpt-4-turbo", "api_key": None}, "format": {"language": "fr"}},
    )
    assert cfg.llm.model_name == "gpt-4-turbo"
    assert cfg.llm.api_key == "sk-from-file"
    assert cfg.format.language == "fr"


def test_missing_explicit_file_uses_defaults(tmp_path: Path) -> None:
    """A missing file gives the default configuration."""
    cfg = load_pipeline_config(str(tmp_path / "missing.toml"))
    assert cfg == PipelineConfig()


def test_defaults() -> None:
    """Defaults follow the documented values."""
    cfg = PipelineConfig()
    assert cfg.llm.max_retries == 3
    assert cfg.llm.request_timeout == 30.0
    assert cfg.large_diff.safety_margin_percent == 85
    assert cfg.large_diff.max_concurrent_requests == 5
    assert cfg.smart_filter.min_files_threshold == 3
    assert cfg.smart_filter.max_file_list_size == 500
    assert cfg.smart_filter.timeout == 10.0
    assert cfg.format.commit_format == "conventional"


@pytest.mark.parametrize(
    "mapping",
    [
        {"large_diff": {"safety_margin_percent": 0}},
        {"large_diff": {"max_concurrent_requests": 0}},
        {"format": {"commit_format": "haiku"}},
        {"llm": {"max_retries": 0}},
    ],
)
def test_invalid_values_are_configuration_errors(mapping: dict) -> None:
    """Validation failures surface as ConfigurationError."""
    with pytest.raises(ConfigurationError):
        PipelineConfig.from_mapping(mapping)


def test_blank_values_normalized() -> None:
    """Blank chunk models and trailing slashes are cleaned up."""
    llm = LLM(chunk_model="", base_url="http://localhost:11434/v1/")
    assert llm.chunk_model is None
    assert llm.base_url == "http://localhost:11434/v1"
    assert LargeDiff().custom_token_limit is None
