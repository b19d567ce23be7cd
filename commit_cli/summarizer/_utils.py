"""Utility functions and the LLM-backed summarizer capability."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Protocol

import httpx
import openai
from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from commit_cli import constants
from commit_cli.summarizer._prompts import SYSTEM_PROMPT
from commit_cli.summarizer.model_selector import is_local_provider
from commit_cli.summarizer.models import (
    ChangeStatus,
    ConfigurationError,
    FatalAPIError,
    SummarizationError,
    TransientAPIError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from commit_cli.config import LLM
    from commit_cli.summarizer.models import Change

logger = logging.getLogger(__name__)

# OpenAI-compatible endpoints for providers that don't need an explicit base URL
DEFAULT_BASE_URLS = {
    "gemini": "https://generativelanguage.googleapis.com/v1beta/openai",
    "anthropic": "https://api.anthropic.com/v1",
    "ollama": "http://localhost:11434/v1",
    "lmstudio": "http://localhost:1234/v1",
    "lm-studio": "http://localhost:1234/v1",
    "localai": "http://localhost:8080/v1",
    "local-ai": "http://localhost:8080/v1",
}

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)
_THINK_TAG = re.compile(r"</?think>", re.IGNORECASE)
_EXTRA_BLANK_LINES = re.compile(r"\n\s*\n\s*\n")


class Summarizer(Protocol):
    """Anything that turns a prompt into text."""

    async def generate_summary(self, prompt: str, *, model: str | None = None) -> str:
        """Return the model's answer to ``prompt``; ``model=None`` is the primary model."""
        ...


def format_change(change: Change) -> str:
    """Render a change as a git-style diff section ending in a newline."""
    status = "new file" if change.status is ChangeStatus.added else change.status.value
    body = change.diff
    if body and not body.endswith("\n"):
        body += "\n"
    return f"diff --git a/{change.path} b/{change.path}\n{status}\n{body}"


def format_changes(changes: Iterable[Change]) -> str:
    """Render a whole change set; the inverse of concatenating chunk contents."""
    return "".join(format_change(change) for change in changes)


def remove_think_tags(text: str) -> str:
    """Strip ``<think>`` reasoning blocks some models emit before the answer."""
    if "<think>" not in text.lower():
        return text.strip()
    cleaned = _THINK_BLOCK.sub("", text)
    cleaned = _THINK_TAG.sub("", cleaned)
    cleaned = _EXTRA_BLANK_LINES.sub("\n\n", cleaned)
    return cleaned.strip()


def _is_connection_error(exc: BaseException) -> bool:
    """Check the exception chain for timeouts, refused connections and DNS errors."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(
            current,
            openai.APIConnectionError | httpx.TransportError | TimeoutError | ConnectionError,
        ):
            return True
        current = current.__cause__ or current.__context__
    return False


def classify_error(exc: Exception) -> SummarizationError:
    """Map a raw client exception onto the transient/fatal taxonomy."""
    if isinstance(exc, SummarizationError):
        return exc
    if isinstance(exc, ModelHTTPError):
        msg = f"API request failed with status {exc.status_code}: {exc.body or exc.message}"
        if exc.status_code in constants.RETRYABLE_STATUS_CODES:
            return TransientAPIError(msg)
        return FatalAPIError(msg)
    if _is_connection_error(exc):
        return TransientAPIError(f"Connection to the API failed: {exc}")
    if isinstance(exc, UnexpectedModelBehavior):
        return FatalAPIError(f"Unexpected response from the model: {exc}")
    # Unknown failures are treated like flaky infrastructure and retried
    return TransientAPIError(f"Summarization failed: {exc}")


class LLMSummarizer:
    """Summarizer backed by an OpenAI-compatible chat endpoint via PydanticAI.

    Transient failures are retried with exponential back-off; fatal ones are
    raised straight away.
    """

    def __init__(self, llm: LLM) -> None:
        """Initialize the summarizer from the LLM settings."""
        self.llm = llm
        self.base_url = llm.base_url or DEFAULT_BASE_URLS.get(llm.provider)
        if is_local_provider(llm.provider):
            self.api_key = llm.api_key or "not-needed"
        elif llm.api_key:
            self.api_key = llm.api_key
        else:
            msg = f"No API key configured for provider '{llm.provider}'."
            raise ConfigurationError(msg)
        self._models: dict[str, OpenAIChatModel] = {}

    def _get_model(self, model_name: str) -> OpenAIChatModel:
        if model_name not in self._models:
            provider = OpenAIProvider(api_key=self.api_key, base_url=self.base_url)
            self._models[model_name] = OpenAIChatModel(
                model_name=model_name,
                provider=provider,
                settings=ModelSettings(
                    temperature=self.llm.temperature,
                    max_tokens=self.llm.max_tokens,
                    timeout=self.llm.request_timeout,
                ),
            )
        return self._models[model_name]

    async def _call(self, prompt: str, model_name: str) -> str:
        agent = Agent(model=self._get_model(model_name), system_prompt=SYSTEM_PROMPT)
        try:
            result = await agent.run(prompt)
        except Exception as e:
            raise classify_error(e) from e
        text = remove_think_tags(result.output or "")
        if not text:
            msg = f"Model {model_name} returned an empty response"
            raise FatalAPIError(msg)
        return text

    async def generate_summary(self, prompt: str, *, model: str | None = None) -> str:
        """Send ``prompt`` to ``model`` (primary model by default).

        Raises:
            TransientAPIError: If every attempt hit a retryable failure.
            FatalAPIError: On the first non-retryable failure.

        """
        model_name = model or self.llm.model_name
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TransientAPIError),
            stop=stop_after_attempt(self.llm.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.llm.initial_retry_delay,
                max=constants.DEFAULT_MAX_RETRY_DELAY,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return await retrying(self._call, prompt, model_name)
