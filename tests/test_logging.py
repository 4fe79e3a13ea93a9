from __future__ import annotations

import logging

import pytest

import logging_config
from logging_config import CONSOLE_HANDLER, FILE_HANDLER, setup_logging


@pytest.fixture()
def root_logger():
    root = logging.getLogger()
    level = root.level
    ours = (CONSOLE_HANDLER, FILE_HANDLER)
    saved = [h for h in root.handlers if h.name in ours]
    for handler in saved:
        root.removeHandler(handler)
    yield root
    for handler in [h for h in root.handlers if h.name in ours]:
        root.removeHandler(handler)
        handler.close()
    for handler in saved:
        root.addHandler(handler)
    root.setLevel(level)


def test_defaults_come_from_settings(root_logger, monkeypatch, tmp_path):
    logfile = tmp_path / "inventory.log"
    monkeypatch.setattr(logging_config.settings, "log_level", "debug")
    monkeypatch.setattr(logging_config.settings, "log_file", str(logfile))

    setup_logging()
    logging.getLogger("medicine_service").info("Medicine 42 created (Dolo)")

    assert root_logger.level == logging.DEBUG
    names = [h.name for h in root_logger.handlers]
    assert CONSOLE_HANDLER in names and FILE_HANDLER in names
    assert "INFO     medicine_service: Medicine 42 created (Dolo)" in logfile.read_text(encoding="utf-8")


def test_repeated_setup_adds_handlers_once(root_logger, monkeypatch):
    monkeypatch.setattr(logging_config.settings, "log_file", "")
    setup_logging("INFO")
    setup_logging("WARNING")

    names = [h.name for h in root_logger.handlers]
    assert names.count(CONSOLE_HANDLER) == 1
    assert FILE_HANDLER not in names
    assert root_logger.level == logging.WARNING


def test_unknown_level_and_quiet_loggers(root_logger):
    setup_logging("chatty", logfile="")
    assert root_logger.level == logging.INFO
    assert logging.getLogger("pymongo").level == logging.WARNING
    assert logging.getLogger("uvicorn.access").level == logging.WARNING
