"""
Configuration management.
"""

import os
from dataclasses import dataclass, field


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # Data
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "./data"))
    reports_dir: str = field(default_factory=lambda: os.getenv("REPORTS_DIR", "./reports"))
    cache_ttl_seconds: int = field(
        default_factory=lambda: int(os.getenv("CACHE_TTL_SECONDS", "60"))
    )

    # Valuation
    min_alpha_percent: float = field(
        default_factory=lambda: float(os.getenv("MIN_ALPHA_PERCENT", "20.0"))
    )
    default_buyer_nationality: str = field(
        default_factory=lambda: os.getenv("DEFAULT_BUYER_NATIONALITY", "UNKNOWN").upper()
    )

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    @property
    def properties_path(self) -> str:
        """JSON file backing the property repository."""
        return os.path.join(self.data_dir, "properties.json")

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "data_dir": self.data_dir,
            "reports_dir": self.reports_dir,
            "cache_ttl_seconds": self.cache_ttl_seconds,
            "min_alpha_percent": self.min_alpha_percent,
            "default_buyer_nationality": self.default_buyer_nationality,
        }
