from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from dotenv import load_dotenv

from .retry import RetryPolicy

DEFAULT_BATCH_SIZE = 100
DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_CONTENT_SIZE = 2 * 1024 * 1024  # 2 MiB
DEFAULT_TIMEOUT_SECONDS = 30.0


def default_retry_policy() -> RetryPolicy:
    return RetryPolicy(max_retries=1, min_wait=5.0, max_wait=15.0)


@dataclass(frozen=True)
class ClientConfig:
    batch_size: int = DEFAULT_BATCH_SIZE  # max work items per create request
    page_size: int = DEFAULT_PAGE_SIZE
    max_content_size: int = DEFAULT_MAX_CONTENT_SIZE  # max request body bytes
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retry: RetryPolicy = field(default_factory=default_retry_policy)

    def __post_init__(self) -> None:
        for name in ("batch_size", "page_size", "max_content_size"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.timeout_seconds < 0:
            raise ValueError(
                f"timeout_seconds must be non-negative, got {self.timeout_seconds}"
            )

    def with_retry(self, retry: RetryPolicy) -> "ClientConfig":
        return replace(self, retry=retry)


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def load_env_config(*, use_dotenv: bool = True) -> Tuple[str, str]:
    """Load Polarion REST base URL and bearer token from environment (optional .env)."""
    if use_dotenv:
        load_dotenv()
    base_url = os.getenv("POLARION_URL", "").strip()
    token = os.getenv("POLARION_TOKEN", "").strip()
    return base_url, token


def client_config_from_env(*, use_dotenv: bool = True) -> ClientConfig:
    """ClientConfig with any POLARION_* overrides found in the environment."""
    if use_dotenv:
        load_dotenv()
    overrides = {
        "batch_size": _env_int("POLARION_BATCH_SIZE"),
        "page_size": _env_int("POLARION_PAGE_SIZE"),
        "max_content_size": _env_int("POLARION_MAX_CONTENT_SIZE"),
        "timeout_seconds": _env_float("POLARION_TIMEOUT"),
    }
    return ClientConfig(**{k: v for k, v in overrides.items() if v is not None})


__all__ = [
    "ClientConfig",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_MAX_CONTENT_SIZE",
    "DEFAULT_TIMEOUT_SECONDS",
    "client_config_from_env",
    "default_retry_policy",
    "load_env_config",
]
