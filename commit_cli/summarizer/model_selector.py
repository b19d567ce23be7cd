"""Model selection for the map (per-chunk) phase of large-diff processing.

The primary model is reserved for the final synthesis. Map calls are
high-volume, so remote providers get a cheaper sibling model when one is
known. Local providers are never downgraded: their models are usually free
and often the only one installed.
"""

from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from commit_cli.config import LLM

logger = logging.getLogger(__name__)

LOCAL_PROVIDERS = frozenset({"ollama", "lmstudio", "lm-studio", "localai", "local-ai", "custom"})

# Exact primary -> map model substitutions per provider
MODEL_DOWNGRADE_MAP: MappingProxyType[str, MappingProxyType[str, str]] = MappingProxyType(
    {
        "openai": MappingProxyType(
            {
                "gpt-4": "gpt-4o-mini",
                "gpt-4-turbo": "gpt-4o-mini",
                "gpt-4o": "gpt-4o-mini",
                "gpt-4-32k": "gpt-4o-mini",
            },
        ),
        "gemini": MappingProxyType(
            {
                "gemini-pro": "gemini-1.5-flash",
                "gemini-1.5-pro": "gemini-1.5-flash",
            },
        ),
        "anthropic": MappingProxyType(
            {
                "claude-3-opus": "claude-3-haiku",
                "claude-3-sonnet": "claude-3-haiku",
                "claude-3.5-sonnet": "claude-3.5-haiku",
            },
        ),
    },
)

# Family-wide rules: (prefix, excluded markers, target)
_FAMILY_DOWNGRADES: MappingProxyType[str, tuple[tuple[str, tuple[str, ...], str], ...]] = (
    MappingProxyType(
        {
            "openai": (("gpt-4", ("mini", "nano"), "gpt-4o-mini"),),
        },
    )
)

_VALID_MODEL_NAME = re.compile(r"^[a-zA-Z0-9._-]+$")
_MIN_MODEL_NAME_LENGTH = 3
_MAX_MODEL_NAME_LENGTH = 100

_PROVIDER_NAME_PATTERNS: MappingProxyType[str, re.Pattern[str]] = MappingProxyType(
    {
        "openai": re.compile(r"^(gpt-|text-|davinci|curie|babbage|ada|o\d)", re.IGNORECASE),
        "gemini": re.compile(r"^gemini-", re.IGNORECASE),
        "anthropic": re.compile(r"^claude-", re.IGNORECASE),
    },
)


def is_local_provider(provider: str) -> bool:
    """Return True for self-hosted/offline providers."""
    return provider.strip().lower() in LOCAL_PROVIDERS


def smart_downgrade(primary_model: str, provider: str) -> str:
    """Pick a cheaper sibling of ``primary_model`` for map-phase calls.

    Unknown providers and unmapped models pass through unchanged.
    """
    if is_local_provider(provider):
        logger.info("Local provider %s detected, skipping model downgrade", provider)
        return primary_model

    provider_key = provider.strip().lower()
    exact = MODEL_DOWNGRADE_MAP.get(provider_key, {})
    if primary_model in exact:
        return exact[primary_model]

    for prefix, excluded, target in _FAMILY_DOWNGRADES.get(provider_key, ()):
        if primary_model.startswith(prefix) and not any(m in primary_model for m in excluded):
            return target

    return primary_model


class ModelSelector:
    """Chooses and validates the model used for chunk-level summaries."""

    def select_map_model(self, llm: LLM) -> str:
        """Return the configured override, or a downgrade of the primary model."""
        if llm.chunk_model and llm.chunk_model.strip():
            logger.info("Using configured chunk model: %s", llm.chunk_model)
            return llm.chunk_model

        downgraded = smart_downgrade(llm.model_name, llm.provider)
        if downgraded != llm.model_name:
            logger.info("Downgraded map model: %s -> %s", llm.model_name, downgraded)
        else:
            logger.info("Using primary model for map phase: %s", llm.model_name)
        return downgraded

    def smart_downgrade(self, primary_model: str, provider: str) -> str:
        """See :func:`smart_downgrade`."""
        return smart_downgrade(primary_model, provider)

    def is_local_provider(self, provider: str) -> bool:
        """See :func:`is_local_provider`."""
        return is_local_provider(provider)

    def validate_model(self, model_id: str | None, provider: str | None = None) -> bool:
        """Check that ``model_id`` looks like a usable model name.

        Rejects empty names, names outside 3-100 characters, names with
        characters other than ``[a-zA-Z0-9._-]`` and, when ``provider`` is
        given, names that do not follow that provider's naming scheme. Local
        and generic providers accept any well-formed name.
        """
        if not isinstance(model_id, str) or not model_id.strip():
            logger.warning("Model ID is empty or not a string: %r", model_id)
            return False

        name = model_id.strip()
        if not _MIN_MODEL_NAME_LENGTH <= len(name) <= _MAX_MODEL_NAME_LENGTH:
            logger.warning(
                "Model ID length %d is outside %d-%d characters",
                len(name),
                _MIN_MODEL_NAME_LENGTH,
                _MAX_MODEL_NAME_LENGTH,
            )
            return False

        if not _VALID_MODEL_NAME.match(name):
            logger.warning(
                "Model ID %s may only contain letters, digits, '.', '_' and '-'",
                name,
            )
            return False

        if provider and not self._matches_provider(name, provider):
            logger.warning("Model %s does not match provider %s", name, provider)
            return False

        logger.debug("Model validated: %s (provider=%s)", name, provider)
        return True

    def _matches_provider(self, model_id: str, provider: str) -> bool:
        if is_local_provider(provider):
            return True
        pattern = _PROVIDER_NAME_PATTERNS.get(provider.strip().lower())
        if pattern is None:
            return True
        return bool(pattern.match(model_id))

    def select_and_validate_map_model(self, llm: LLM) -> str:
        """Select the map model, falling back to the primary model if invalid.

        Never raises; problems are logged.
        """
        selected = self.select_map_model(llm)
        if self.validate_model(selected, llm.provider):
            return selected

        logger.warning(
            "Map model %s failed validation, falling back to primary model %s",
            selected,
            llm.model_name,
        )
        if not self.validate_model(llm.model_name, llm.provider):
            logger.error("Primary model %s also failed validation", llm.model_name)
        return llm.model_name
