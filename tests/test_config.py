"""
Configuration tests.
"""

import json
import logging
from logging.handlers import RotatingFileHandler
from unittest.mock import patch

from shielded.config import BuilderConfig, LogConfig, setup_logging


class TestBuilderConfig:
    """Validation and persistence."""

    def test_defaults_valid(self):
        config = BuilderConfig()
        assert config.hash_algorithm == "sha256"
        assert config.strict_burn_balance is False
        assert config.validate() == []

    def test_invalid_values(self):
        config = BuilderConfig(hash_algorithm="md5", log=LogConfig(level="LOUD", max_size_mb=0))
        errors = config.validate()
        assert len(errors) == 3
        assert any("md5" in e for e in errors)

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "builder.json"
        config = BuilderConfig(
            hash_algorithm="sha3_256",
            strict_burn_balance=True,
            log=LogConfig(level="DEBUG", file="builder.log"),
        )
        config.save(str(path))

        data = json.loads(path.read_text())
        assert data["hash_algorithm"] == "sha3_256"
        assert data["log"]["file"] == "builder.log"

        loaded = BuilderConfig.load(str(path))
        assert loaded == config

    def test_from_dict_defaults(self):
        config = BuilderConfig.from_dict({"strict_burn_balance": True})
        assert config.hash_algorithm == "sha256"
        assert config.strict_burn_balance is True
        assert config.log == LogConfig()


class TestSetupLogging:
    """Handler wiring."""

    def test_stream_only(self):
        with patch("logging.basicConfig") as basic:
            setup_logging(LogConfig(level="warning"))
        kwargs = basic.call_args.kwargs
        assert kwargs["level"] == logging.WARNING
        assert len(kwargs["handlers"]) == 1

    def test_rotating_file(self, tmp_path):
        log_file = tmp_path / "shielded.log"
        with patch("logging.basicConfig") as basic:
            setup_logging(LogConfig(level="DEBUG", file=str(log_file), max_size_mb=2, backup_count=3))
        handlers = basic.call_args.kwargs["handlers"]
        file_handler = handlers[-1]
        try:
            assert isinstance(file_handler, RotatingFileHandler)
            assert file_handler.maxBytes == 2 * 1024 * 1024
            assert file_handler.backupCount == 3
        finally:
            file_handler.close()
