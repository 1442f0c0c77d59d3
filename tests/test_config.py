"""
Settings and logging setup tests.
"""

import logging

import pytest

from coms import log
from coms.config import DEFAULT_PAGE_SIZE, Settings


def test_defaults():
    s = Settings.from_env({})
    assert s == Settings()
    assert s.page_size == DEFAULT_PAGE_SIZE == 50


def test_env_values():
    s = Settings.from_env({"COMS_PAGE_SIZE": "25", "COMS_SEED": "9", "COMS_LOG_LEVEL": "debug",
                           "COMS_DATA": "org.xlsx"})
    assert (s.page_size, s.seed, s.log_level, s.data_path) == (25, 9, "DEBUG", "org.xlsx")


def test_overrides_skip_none():
    s = Settings(seed=9).with_overrides(seed=None, page_size=10)
    assert (s.seed, s.page_size) == (9, 10)


@pytest.mark.parametrize("bad", ["0", "-3", "ten"])
def test_bad_page_size(bad):
    with pytest.raises(ValueError):
        Settings.from_env({"COMS_PAGE_SIZE": bad})


def test_configure_file_handler(tmp_path):
    path = tmp_path / "logs" / "coms.log"
    logger = log.configure("INFO", str(path))
    try:
        log.get_logger("coms.repository").info("hello from the test")
        for h in logger.handlers:
            h.flush()
        assert "hello from the test" in path.read_text(encoding="utf-8")
        assert logger.level == logging.INFO
    finally:
        log.configure("WARNING")


def test_child_logger_names():
    assert log.get_logger("coms.engine").name == "coms.engine"
    assert log.get_logger("coms") is log.get_logger()
