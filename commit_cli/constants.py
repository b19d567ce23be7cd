"""Default configuration settings for the commit-cli package."""

from __future__ import annotations

from types import MappingProxyType

# --- Token Estimation ---
CHARS_PER_TOKEN = 4
DEFAULT_TOKEN_LIMIT = 4096  # Conservative window for unknown models
DEFAULT_SAFETY_MARGIN_PERCENT = 85
DEFAULT_RESERVED_PROMPT_TOKENS = 256

# --- Map-Reduce ---
DEFAULT_MAX_CONCURRENT_REQUESTS = 5
MAX_MERGE_DEPTH = 5
MERGE_PROMPT_OVERHEAD = 500  # Estimated tokens used by merge prompt scaffolding

# --- LLM Requests ---
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_RETRY_DELAY = 1.0
DEFAULT_MAX_RETRY_DELAY = 30.0
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

# --- Smart Filter ---
DEFAULT_MIN_FILES_THRESHOLD = 3
DEFAULT_MAX_FILE_LIST_SIZE = 500
DEFAULT_FILTER_TIMEOUT = 10.0

# --- Truncation fallback ---
TRUNCATION_KEEP_RATIO = 0.9
TRUNCATION_NOTICE = "[Note: diff content was truncated to fit the model context window]"

# Context window sizes of common models
MODEL_TOKEN_LIMITS: MappingProxyType[str, int] = MappingProxyType(
    {
        # OpenAI
        "gpt-3.5-turbo": 4096,
        "gpt-3.5-turbo-16k": 16385,
        "gpt-4": 8192,
        "gpt-4-32k": 32768,
        "gpt-4-turbo": 128000,
        "gpt-4-turbo-preview": 128000,
        "gpt-4o": 128000,
        "gpt-4o-mini": 128000,
        "gpt-4.1": 1000000,
        "gpt-4.1-mini": 1000000,
        "gpt-4.1-nano": 1000000,
        # Anthropic
        "claude-3-opus": 200000,
        "claude-3-sonnet": 200000,
        "claude-3-haiku": 200000,
        "claude-3.5-sonnet": 200000,
        "claude-3.5-haiku": 200000,
        # Google
        "gemini-pro": 32000,
        "gemini-1.0-pro": 32000,
        "gemini-1.5-pro": 1000000,
        "gemini-1.5-flash": 1000000,
        "gemini-2.0-flash": 1000000,
        # Qwen
        "qwen-turbo": 8000,
        "qwen-plus": 32000,
        "qwen-max": 32000,
        "qwen2.5-72b-instruct": 32000,
        # DeepSeek
        "deepseek-chat": 64000,
        "deepseek-coder": 64000,
        # Open models
        "llama-3-70b": 8192,
        "llama-3.1-70b": 128000,
        "llama-3.1-405b": 128000,
        "mistral-large": 32000,
        "mixtral-8x7b": 32000,
    },
)
