"""Tests for logging_utils.py - build log configuration."""

import logging

import pytest

from chroot_imager.logging_utils import FALLBACK_LOG_NAME, configure_logging


@pytest.fixture
def clean_root_logger():
    """Run with no handlers on the root logger, restoring it afterwards."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = []
    yield root
    for h in root.handlers:
        h.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)


class TestConfigureLogging:
    def test_file_gets_debug_console_gets_info(self, clean_root_logger, tmp_path):
        log_file = tmp_path / "logs/build.log"

        assert configure_logging(str(log_file)) == str(log_file)
        logging.getLogger("chroot_imager.lib.command").debug("STDOUT hidden-from-console")

        levels = {type(h): h.level for h in clean_root_logger.handlers}
        assert levels[logging.FileHandler] == logging.DEBUG
        assert levels[logging.StreamHandler] == logging.INFO
        assert "hidden-from-console" in log_file.read_text(encoding="utf-8")

    def test_second_call_keeps_first_file(self, clean_root_logger, tmp_path):
        first = configure_logging(str(tmp_path / "a.log"))

        assert configure_logging(str(tmp_path / "b.log")) == first
        assert len(clean_root_logger.handlers) == 2

    def test_unwritable_path_falls_back_to_cwd(self, clean_root_logger, tmp_path, monkeypatch):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        monkeypatch.chdir(tmp_path)

        actual = configure_logging(str(blocker / "build.log"))

        assert actual == str(tmp_path / FALLBACK_LOG_NAME)
