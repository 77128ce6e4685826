"""
Server configuration for RiskVanguard.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Set

from ..config import PolicyConfig


@dataclass
class ServerConfig:
    """Configuration for the RiskVanguard server."""

    host: str = "0.0.0.0"
    port: int = 8000

    database_url: Optional[str] = None

    api_keys: Set[str] = field(
        default_factory=lambda: {
            "dev-analyst-key",
            "dev-reviewer-key",
        }
    )

    cors_origins: list = field(default_factory=lambda: ["*"])

    debug: bool = False

    log_level: str = "info"

    api_version: str = "1.0"

    policy: PolicyConfig = field(default_factory=PolicyConfig)

    def __post_init__(self):
        if self.database_url is None:
            self.database_url = os.environ.get("DATABASE_URL", "sqlite:///./riskvanguard.db")

        env_keys = os.environ.get("RISKVANGUARD_API_KEYS")
        if env_keys:
            self.api_keys = set(env_keys.split(","))

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Create configuration from environment variables."""
        return cls(
            host=os.environ.get("RISKVANGUARD_HOST", "0.0.0.0"),
            port=int(os.environ.get("RISKVANGUARD_PORT", "8000")),
            database_url=os.environ.get("DATABASE_URL"),
            debug=os.environ.get("RISKVANGUARD_DEBUG", "").lower() == "true",
            log_level=os.environ.get("RISKVANGUARD_LOG_LEVEL", "info"),
            policy=PolicyConfig.from_env(),
        )
