"""Configuration management for the agent host and demo."""
from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    """Settings loaded from environment variables."""

    host: str = "localhost:8000"
    log_level: str = "INFO"
    log_format: str = "console"
    environment: str = "development"

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        return cls(
            host=os.getenv("AGENTLINK_HOST", "localhost:8000"),
            log_level=os.getenv("AGENTLINK_LOG_LEVEL", "INFO"),
            log_format=os.getenv("AGENTLINK_LOG_FORMAT", "console"),
            environment=os.getenv("ENVIRONMENT", "development"),
        )


# Global settings instance
settings = Settings.from_env()
