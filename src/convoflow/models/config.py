"""Configuration settings for the dialogue engine."""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ConfigDict
from pydantic_settings import BaseSettings

from ..errors import ConfigurationError


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = ConfigDict(
        env_prefix="CONVOFLOW_",
        env_file=".env",
        extra="ignore",
    )

    env: str = "development"
    log_level: str = "INFO"

    # Worker pool
    max_workers: int = 16
    action_timeout_seconds: float | None = 30.0
    shutdown_timeout_seconds: float = 10.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load a recognition configuration mapping from a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        The top-level mapping of the file (empty if the file is empty).

    Raises:
        ConfigurationError: If the file is missing or is not a mapping.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file {path} must contain a mapping, got {type(data).__name__}"
        )
    return data
