"""
Settings
========

Environment-driven configuration, loaded from the process environment and
an optional .env file.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """
    Process-wide configuration.

    Example:
        >>> settings = Settings.from_env()
        >>> settings.default_provider
        'mock'
    """
    default_provider: str = Field(default="mock", description="Provider used by the stages")
    mock_model: str = "mock-reasoner-1"

    openrouter_api_key: Optional[str] = None
    openrouter_model: str = "xiaomi/mimo-v2-flash:free"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"

    ollama_base_url: Optional[str] = None
    ollama_model: str = "gemma3:1b"

    gateway_retry_attempts: int = Field(default=3, ge=0)
    gateway_timeout_ms: int = Field(default=30000, gt=0)
    gateway_cache_minutes: float = Field(default=30.0, gt=0)

    thought_concurrency: int = Field(default=5, ge=1)
    weight_learning_rate: float = Field(default=0.05, gt=0)
    weight_perturbation: bool = True

    log_level: str = "INFO"
    log_file: Optional[str] = "logs/cognitive_cycle.log"

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            dotenv_path: Optional .env file; the default lookup is used when omitted

        Returns:
            Validated Settings
        """
        load_dotenv(dotenv_path)
        values = {
            "default_provider": os.getenv("COGNITIVE_PROVIDER"),
            "mock_model": os.getenv("MOCK_MODEL"),
            "openrouter_api_key": os.getenv("OPENROUTER_API_KEY"),
            "openrouter_model": os.getenv("OPENROUTER_MODEL"),
            "openrouter_base_url": os.getenv("OPENROUTER_BASE_URL"),
            "ollama_base_url": os.getenv("OLLAMA_BASE_URL"),
            "ollama_model": os.getenv("OLLAMA_MODEL"),
            "gateway_retry_attempts": os.getenv("GATEWAY_RETRY_ATTEMPTS"),
            "gateway_timeout_ms": os.getenv("GATEWAY_TIMEOUT_MS"),
            "gateway_cache_minutes": os.getenv("GATEWAY_CACHE_MINUTES"),
            "thought_concurrency": os.getenv("THOUGHT_CONCURRENCY"),
            "weight_learning_rate": os.getenv("WEIGHT_LEARNING_RATE"),
            "log_level": os.getenv("LOG_LEVEL"),
            "log_file": os.getenv("LOG_FILE"),
        }
        # Unset variables fall back to field defaults
        values = {key: value for key, value in values.items() if value is not None}
        values["weight_perturbation"] = _env_bool("WEIGHT_PERTURBATION", True)
        return cls(**values)
