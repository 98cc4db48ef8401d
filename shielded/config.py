"""
Shielded Parameters Configuration
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field, asdict
from typing import List, Optional

from shielded.constants import (
    DEFAULT_HASH_ALGORITHM,
    SUPPORTED_HASH_ALGORITHMS,
)

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_size_mb: int = 100
    backup_count: int = 5


@dataclass
class BuilderConfig:
    """
    Parameter builder configuration.

    hash_algorithm selects the message digest. strict_burn_balance
    rejects a burn whose spent note value differs from the withdrawal
    amount; by default that check is left to the backend and ledger.
    """
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    strict_burn_balance: bool = False
    log: LogConfig = field(default_factory=LogConfig)

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.hash_algorithm not in SUPPORTED_HASH_ALGORITHMS:
            errors.append(f"Unsupported hash algorithm: {self.hash_algorithm}")

        if self.log.level.upper() not in LOG_LEVELS:
            errors.append(f"Invalid log level: {self.log.level}")

        if self.log.max_size_mb < 1:
            errors.append("log max_size_mb must be at least 1")

        return errors

    def to_dict(self) -> dict:
        """Export configuration as dictionary."""
        return {
            "hash_algorithm": self.hash_algorithm,
            "strict_burn_balance": self.strict_burn_balance,
            "log": asdict(self.log),
        }

    def save(self, path: str) -> None:
        """Save configuration to file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.info(f"Configuration saved to {path}")

    @classmethod
    def from_dict(cls, data: dict) -> "BuilderConfig":
        config = cls(
            hash_algorithm=data.get("hash_algorithm", DEFAULT_HASH_ALGORITHM),
            strict_burn_balance=data.get("strict_burn_balance", False),
        )

        if "log" in data:
            config.log = LogConfig(**data["log"])

        return config

    @classmethod
    def load(cls, path: str) -> "BuilderConfig":
        """Load configuration from file."""
        with open(path, 'r') as f:
            data = json.load(f)

        config = cls.from_dict(data)
        logger.info(f"Configuration loaded from {path}")
        return config


def setup_logging(config: LogConfig) -> None:
    """Configure logging based on config."""
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers = [logging.StreamHandler()]

    if config.file:
        from logging.handlers import RotatingFileHandler
        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.max_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format=config.format,
        handlers=handlers,
    )
