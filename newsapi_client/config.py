from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from newsapi_client import __version__
from newsapi_client.errors import ConfigurationError
from newsapi_client.utils.retry import RetryPolicy, RetryStrategy

NEWS_API_KEY_ENV = "NEWS_API_KEY"
NEWS_API_URI = "https://newsapi.org"
TOP_HEADLINES_ENDPOINT = "/v2/top-headlines"
EVERYTHING_ENDPOINT = "/v2/everything"
SOURCES_ENDPOINT = "/v2/top-headlines/sources"
USER_AGENT = f"newsapi-client/{__version__}"
DEFAULT_TIMEOUT = 15.0
DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _env_log_level(name: str, default: str) -> str:
    raw = os.environ.get(name, "").strip().upper()
    if not raw:
        return default
    if raw not in LOG_LEVELS:
        raise ConfigurationError(
            f"{name} must be one of {', '.join(LOG_LEVELS)}, got {raw!r}"
        )
    return raw


@dataclass(frozen=True)
class Settings:
    api_key: str = field(repr=False, default="")
    base_url: str = NEWS_API_URI
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = USER_AGENT

    # Retry behaviour for transient failures (network errors, 5xx)
    retry_strategy: RetryStrategy = RetryStrategy.NONE
    retry_delay: float = 1.0
    max_retries: int = 0

    log_level: str = DEFAULT_LOG_LEVEL

    def retry_policy(self) -> RetryPolicy:
        try:
            return RetryPolicy(self.retry_strategy, self.retry_delay, self.max_retries)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    @classmethod
    def from_env(cls, dotenv_path: str | Path | None = None) -> Settings:
        """Read settings from ``NEWS_API_*`` environment variables.

        When ``dotenv_path`` is given the file is loaded first; variables
        already present in the environment win.
        """
        if dotenv_path is not None:
            load_dotenv(dotenv_path)

        strategy_raw = os.environ.get("NEWS_API_RETRY_STRATEGY", "none").strip().lower()
        try:
            strategy = RetryStrategy(strategy_raw or "none")
        except ValueError as exc:
            choices = ", ".join(s.value for s in RetryStrategy)
            raise ConfigurationError(
                f"NEWS_API_RETRY_STRATEGY must be one of {choices}, got {strategy_raw!r}"
            ) from exc

        return cls(
            api_key=os.environ.get(NEWS_API_KEY_ENV, ""),
            base_url=os.environ.get("NEWS_API_BASE_URL", "") or NEWS_API_URI,
            timeout=_env_float("NEWS_API_TIMEOUT", DEFAULT_TIMEOUT),
            retry_strategy=strategy,
            retry_delay=_env_float("NEWS_API_RETRY_DELAY", 1.0),
            max_retries=_env_int("NEWS_API_MAX_RETRIES", 0),
            log_level=_env_log_level("NEWS_API_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )
