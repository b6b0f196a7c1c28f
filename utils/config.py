"""
Configuration management.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_format: str = field(default_factory=lambda: os.getenv("LOG_FORMAT", "standard"))

    # Valuation
    asset_class: str = field(default_factory=lambda: os.getenv("ASSET_CLASS", "residential"))
    currency: str = field(default_factory=lambda: os.getenv("CURRENCY", "AUD"))

    # Output
    reports_dir: Path = field(
        default_factory=lambda: Path(os.getenv("REPORTS_DIR", "./reports"))
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.log_format not in ("standard", "json"):
            raise ValueError("log_format must be 'standard' or 'json'")
        self.reports_dir = Path(self.reports_dir)

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "log_level": self.log_level,
            "log_format": self.log_format,
            "asset_class": self.asset_class,
            "currency": self.currency,
            "reports_dir": str(self.reports_dir),
        }
