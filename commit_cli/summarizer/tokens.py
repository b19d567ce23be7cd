"""Token estimation and budget checks for the configured model."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from commit_cli import constants

if TYPE_CHECKING:
    from commit_cli.config import LargeDiff


def estimate_tokens(text: str, chars_per_token: int = constants.CHARS_PER_TOKEN) -> int:
    """Estimate token count from character length (rounded up).

    Depends only on ``len(text)``, so longer text never estimates lower.
    """
    if not text:
        return 0
    return math.ceil(len(text) / chars_per_token)


def get_model_limit(model_name: str) -> int:
    """Return the context window for a model, falling back to a safe default.

    Exact names win; otherwise the longest table key that is contained in the
    model name (or contains it) is used.
    """
    if model_name in constants.MODEL_TOKEN_LIMITS:
        return constants.MODEL_TOKEN_LIMITS[model_name]

    normalized = model_name.lower()
    if normalized:
        matches = [
            key
            for key in constants.MODEL_TOKEN_LIMITS
            if key.lower() in normalized or normalized in key.lower()
        ]
        if matches:
            best = max(matches, key=len)
            return constants.MODEL_TOKEN_LIMITS[best]

    return constants.DEFAULT_TOKEN_LIMIT


@dataclass(frozen=True)
class TokenInfo:
    """Snapshot of the estimator settings, for debugging and display."""

    model_name: str
    raw_limit: int
    effective_limit: int
    safety_margin_percent: int
    reserved_prompt_tokens: int
    is_custom_limit: bool


class TokenEstimator:
    """Estimates token usage and the usable budget for one model."""

    def __init__(
        self,
        model_name: str,
        *,
        safety_margin_percent: int = constants.DEFAULT_SAFETY_MARGIN_PERCENT,
        custom_token_limit: int | None = None,
        reserved_prompt_tokens: int = constants.DEFAULT_RESERVED_PROMPT_TOKENS,
        chars_per_token: int = constants.CHARS_PER_TOKEN,
    ) -> None:
        """Initialize the estimator."""
        self.model_name = model_name
        self.safety_margin_percent = safety_margin_percent
        self.custom_token_limit = custom_token_limit
        self.reserved_prompt_tokens = reserved_prompt_tokens
        self.chars_per_token = chars_per_token

    @classmethod
    def from_config(cls, model_name: str, large_diff: LargeDiff) -> TokenEstimator:
        """Create an estimator from the large-diff settings."""
        return cls(
            model_name,
            safety_margin_percent=large_diff.safety_margin_percent,
            custom_token_limit=large_diff.custom_token_limit,
            reserved_prompt_tokens=large_diff.reserved_prompt_tokens,
        )

    def estimate(self, text: str) -> int:
        """Estimate the token count of ``text``."""
        return estimate_tokens(text, self.chars_per_token)

    def get_raw_limit(self) -> int:
        """Context window before safety margin, honouring a custom limit."""
        if self.custom_token_limit and self.custom_token_limit > 0:
            return self.custom_token_limit
        return get_model_limit(self.model_name)

    def get_effective_limit(self) -> int:
        """Usable budget: window scaled by the safety margin minus reserved overhead."""
        scaled = math.floor(self.get_raw_limit() * self.safety_margin_percent / 100)
        return max(1, scaled - self.reserved_prompt_tokens)

    def needs_split(self, text: str) -> bool:
        """Return True when ``text`` does not fit the effective budget."""
        return self.estimate(text) > self.get_effective_limit()

    def get_config_info(self) -> TokenInfo:
        """Return the current settings and derived limits."""
        return TokenInfo(
            model_name=self.model_name,
            raw_limit=self.get_raw_limit(),
            effective_limit=self.get_effective_limit(),
            safety_margin_percent=self.safety_margin_percent,
            reserved_prompt_tokens=self.reserved_prompt_tokens,
            is_custom_limit=bool(self.custom_token_limit and self.custom_token_limit > 0),
        )
