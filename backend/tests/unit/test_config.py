# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for configuration loading
"""

import dataclasses

import pytest

from aether.core.config import Config, DEFAULT_CONFIG_PATH, load_config
from aether.core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("AETHER_WEBHOOK_HASH_KEY", "OPENROUTER_API_KEY", "RESEND_API_KEY",
                 "EMAIL_FROM", "PORT", "LOG_LEVEL", "AETHER_LOGS_PATH"):
        monkeypatch.delenv(name, raising=False)


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(str(tmp_path / "absent.yaml"))

    assert config == Config()


def test_yaml_values(tmp_path):
    path = tmp_path / "aether.yaml"
    path.write_text(
        "server:\n"
        "  port: 9000\n"
        "execution:\n"
        "  max_executed_nodes: 25\n"
        "  run_timeout: 12.5\n"
        "  reject_cyclic_workflows: false\n"
        "  merge_separator: ' | '\n"
        "webhooks:\n"
        "  path_prefix: /hooks\n"
    )

    config = load_config(str(path))

    assert config.port == 9000
    assert config.max_executed_nodes == 25
    assert config.run_timeout == 12.5
    assert config.reject_cyclic_workflows is False
    assert config.merge_separator == " | "
    assert config.webhook_path_prefix == "/hooks"
    assert config.http_timeout == Config.http_timeout
    assert config.logs_path is None


def test_secrets_come_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("AETHER_WEBHOOK_HASH_KEY", "from-env")
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    monkeypatch.setenv("PORT", "7000")

    config = load_config(str(tmp_path / "absent.yaml"))

    assert config.webhook_hash_key == "from-env"
    assert config.llm_api_key == "sk-test"
    assert config.resend_api_key is None

    path = tmp_path / "aether.yaml"
    path.write_text("server:\n  port: 9000\n")
    assert load_config(str(path)).port == 7000


def test_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("execution: [unclosed\n")

    with pytest.raises(ConfigurationError) as exc_info:
        load_config(str(path))

    assert exc_info.value.config_file == str(path)


def test_root_must_be_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_shipped_config_loads():
    config = load_config(DEFAULT_CONFIG_PATH)

    assert config.merge_separator == "\n---\n"
    assert config.reject_cyclic_workflows is True


def test_config_is_immutable():
    config = Config()

    with pytest.raises(dataclasses.FrozenInstanceError):
        config.port = 1

    changed = config.with_overrides(port=1)
    assert changed.port == 1
    assert config.port == 8080


def test_logs_path(tmp_path, monkeypatch):
    path = tmp_path / "aether.yaml"
    path.write_text("paths:\n  logs: /var/log/aether\n")

    assert load_config(str(path)).logs_path == "/var/log/aether"

    monkeypatch.setenv("AETHER_LOGS_PATH", str(tmp_path / "logs"))
    assert load_config(str(path)).logs_path == str(tmp_path / "logs")
