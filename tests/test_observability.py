"""
Tests for logging setup.
"""

import logging
from pathlib import Path

import pytest

from owl.core.observability.logging_config import (
    _parse_level,
    resolve_console_level,
    setup_from_env,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


class TestSetupLogging:

    def test_console_level(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_file_handler_lowers_root_level(self, tmp_path: Path):
        log_file = tmp_path / "owl.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2

        logging.getLogger("owl.test").debug("hello from debug")
        for handler in root.handlers:
            handler.flush()
        assert "hello from debug" in log_file.read_text()

    @pytest.mark.parametrize("raw,expected", [
        ("debug", logging.DEBUG),
        ("ERROR", logging.ERROR),
        ("bogus", logging.WARNING),
        (None, logging.WARNING),
    ])
    def test_parse_level(self, raw, expected):
        assert _parse_level(raw) == expected


class TestLevelResolution:

    def test_flags_beat_env(self):
        env = {"OWL_LOG_LEVEL": "ERROR"}
        assert resolve_console_level(debug=True, verbose=True, environ=env) == "DEBUG"
        assert resolve_console_level(verbose=True, quiet=True, environ=env) == "INFO"
        assert resolve_console_level(quiet=True, environ=env) == "ERROR"

    def test_env_then_default(self):
        assert resolve_console_level(environ={"OWL_LOG_LEVEL": "INFO"}) == "INFO"
        assert resolve_console_level(environ={}) == "WARNING"

    def test_setup_from_env_file(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "owl.log"
        setup_from_env(environ={"OWL_LOG_FILE": str(log_file), "OWL_LOG_FILE_LEVEL": "INFO"})

        logging.getLogger("owl.test").info("applied 3 steps")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "applied 3 steps" in log_file.read_text()
