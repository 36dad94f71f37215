"""
Runtime Configuration for HealthGuard.

Provides a RuntimeConfig dataclass whose values default from environment
variables. The application reads the module-level instance; tests build
their own instances.

Usage:
    from config import runtime_config
    interval = runtime_config.queue_min_interval
"""

import logging
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


def _first_env(*keys: str, default: str) -> str:
    """Return the first non-empty environment value from keys, else default."""
    for key in keys:
        value = os.environ.get(key, "").strip()
        if value:
            return value
    return default


def _ms_env(key: str, default_ms: int) -> float:
    """Read a millisecond env var and return seconds."""
    return int(os.environ.get(key, str(default_ms))) / 1000.0


def _jwt_secret_default() -> str:
    secret = os.environ.get("JWT_SECRET", "").strip()
    if secret:
        return secret
    logger.warning("JWT_SECRET not set; generated a per-process secret (tokens will not survive restarts)")
    return secrets.token_hex(32)


@dataclass
class RuntimeConfig:
    """
    Configuration for the HealthGuard backend.

    All values have defaults from environment variables.
    """

    # Remote LLM providers
    openai_api_key: str = field(default_factory=lambda: os.environ.get("OPENAI_API_KEY", ""), repr=False)
    openai_model: str = field(default_factory=lambda: _first_env("OPENAI_MODEL", default="gpt-3.5-turbo"))
    openai_base_url: str = field(default_factory=lambda: os.environ.get("OPENAI_BASE_URL", ""))
    gemini_api_key: str = field(default_factory=lambda: os.environ.get("GEMINI_API_KEY", ""), repr=False)
    gemini_model: str = field(default_factory=lambda: _first_env("GEMINI_MODEL", default="gemini-1.5-flash-latest"))
    gemini_base_url: str = field(
        default_factory=lambda: _first_env(
            "GEMINI_BASE_URL",
            default="https://generativelanguage.googleapis.com/v1beta",
        )
    )
    llm_timeout: float = field(default_factory=lambda: float(os.environ.get("LLM_TIMEOUT", "30")))

    # Which provider each orchestrator talks to ("openai" or "gemini")
    chat_provider: str = field(default_factory=lambda: _first_env("CHAT_PROVIDER", default="gemini"))
    triage_provider: str = field(
        default_factory=lambda: _first_env("TRIAGE_PROVIDER", "CHAT_PROVIDER", default="gemini")
    )

    # Generation parameters
    chat_max_tokens: int = field(default_factory=lambda: int(os.environ.get("CHAT_MAX_TOKENS", "300")))
    chat_temperature: float = field(default_factory=lambda: float(os.environ.get("CHAT_TEMPERATURE", "0.7")))
    triage_max_tokens: int = field(default_factory=lambda: int(os.environ.get("TRIAGE_MAX_TOKENS", "400")))
    triage_temperature: float = field(default_factory=lambda: float(os.environ.get("TRIAGE_TEMPERATURE", "0.3")))

    # Outbound request queue (seconds; env vars are milliseconds)
    queue_min_interval: float = field(default_factory=lambda: _ms_env("QUEUE_MIN_INTERVAL_MS", 2000))
    queue_max_retries: int = field(default_factory=lambda: int(os.environ.get("QUEUE_MAX_RETRIES", "3")))
    queue_base_delay: float = field(default_factory=lambda: _ms_env("QUEUE_BASE_DELAY_MS", 1000))
    queue_max_delay: float = field(default_factory=lambda: _ms_env("QUEUE_MAX_DELAY_MS", 10000))

    # Auth
    jwt_secret: str = field(default_factory=_jwt_secret_default, repr=False)
    jwt_expiry_days: int = field(default_factory=lambda: int(os.environ.get("JWT_EXPIRY_DAYS", "7")))

    # Storage (empty URL = in-memory user store)
    database_url: str = field(default_factory=lambda: os.environ.get("DATABASE_URL", "").strip(), repr=False)

    # Server
    frontend_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("FRONTEND_DIR", str(Path(__file__).parent.parent / "frontend")))
    )
    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"))
    port: int = field(default_factory=lambda: int(os.environ.get("PORT", "4000")))

    def provider_settings(self, name: str) -> Dict[str, Any]:
        """Settings dict for the provider factory."""
        if name == "openai":
            return {
                "api_key": self.openai_api_key,
                "model": self.openai_model,
                "base_url": self.openai_base_url,
                "timeout": self.llm_timeout,
            }
        return {
            "api_key": self.gemini_api_key,
            "model": self.gemini_model,
            "base_url": self.gemini_base_url,
            "timeout": self.llm_timeout,
        }


runtime_config = RuntimeConfig()
