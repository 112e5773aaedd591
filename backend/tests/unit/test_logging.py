# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for structured logging
"""

import json
import logging

import pytest

from aether.core.config import Config
from aether.core.logging import get_logger, get_service_logger, log_event


def close_handlers(logger: logging.Logger):
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []


def read_lines(path):
    return [json.loads(line) for line in path.read_text().splitlines()]


def test_log_file_gets_json_lines(tmp_path):
    log_file = tmp_path / "logs" / "aether.log"
    logger = get_logger("aether.test.file", log_file=log_file)

    log_event(logger, "Webhook registered", path="/hook/x", workflow_id="wf-1")
    close_handlers(logger)

    [entry] = read_lines(log_file)
    assert entry["message"] == "Webhook registered"
    assert entry["level"] == "INFO"
    assert entry["path"] == "/hook/x"
    assert entry["workflow_id"] == "wf-1"


def test_console_only_without_log_file():
    logger = get_logger("aether.test.console")

    assert [type(h) for h in logger.handlers] == [logging.StreamHandler]
    close_handlers(logger)


def test_service_logger_uses_configured_logs_path(tmp_path, monkeypatch):
    monkeypatch.setattr("aether.core.config.get_config", lambda: Config(logs_path=str(tmp_path)))

    logger = get_service_logger("logging-test")
    log_event(logger, "Execution finished", level="ERROR", execution_id="exec_1")
    close_handlers(logger)

    [entry] = read_lines(tmp_path / "aether.log")
    assert entry["logger"] == "aether.service.logging-test"
    assert entry["level"] == "ERROR"


@pytest.mark.parametrize("log_format", ["json", "text"])
def test_level_from_config(log_format):
    logger = get_logger("aether.test.level", log_level="warning", log_format=log_format)

    assert logger.level == logging.WARNING
    close_handlers(logger)
