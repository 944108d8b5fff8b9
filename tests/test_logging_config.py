from __future__ import annotations

import json
import logging

import pytest

from zpm.logging_config import LOGGER_NAME, setup_logging


@pytest.fixture(autouse=True)
def clean_logger():
    logger = logging.getLogger(LOGGER_NAME)
    before = list(logger.handlers)
    level = logger.level
    yield
    for handler in logger.handlers[:]:
        if handler not in before:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)


def test_verbosity_lowers_the_level(monkeypatch):
    monkeypatch.delenv("ZPM_LOG_LEVEL", raising=False)

    assert setup_logging().level == logging.WARNING
    assert setup_logging(1).level == logging.INFO
    assert setup_logging(3).level == logging.DEBUG


def test_repeated_setup_replaces_only_its_own_handler():
    logger = logging.getLogger(LOGGER_NAME)
    foreign = logging.NullHandler()
    logger.addHandler(foreign)

    setup_logging()
    setup_logging(2)

    ours = [h for h in logger.handlers if getattr(h, "_zpm_handler", False)]
    assert len(ours) == 1
    assert foreign in logger.handlers
    logger.removeHandler(foreign)


def test_json_lines_to_a_file(monkeypatch, tmp_path):
    log_file = tmp_path / "zpm.log"
    monkeypatch.setenv("ZPM_LOG_FORMAT", "json")
    monkeypatch.setenv("ZPM_LOG_FILE", str(log_file))
    monkeypatch.setenv("ZPM_LOG_LEVEL", "info")

    setup_logging()
    logging.getLogger("zpm.cli.main").info("started %s", "zpm")
    for handler in logging.getLogger(LOGGER_NAME).handlers:
        handler.flush()

    entry = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
    assert entry["level"] == "INFO"
    assert entry["logger"] == "zpm.cli.main"
    assert entry["msg"] == "started zpm"
