# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Aether Configuration - Single source of truth.
YAML is king. Env vars ONLY for secrets.

- ALL configuration in plain text (YAML)
- NO hidden state - everything inspectable via `cat`, `grep`
"""

import os
import yaml
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from aether.core.errors import ConfigurationError


DEFAULT_CONFIG_PATH = str(Path(__file__).resolve().parents[3] / "configs" / "aether.yaml")


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable application configuration.
    All values from YAML. No hidden state.
    """

    # -- Server --
    host: str = "0.0.0.0"
    port: int = 8080

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"
    logs_path: Optional[str] = None  # directory for aether.log; console only when unset

    # -- Execution --
    executions_path: str = "volumes/executions"
    max_executed_nodes: int = 100
    run_timeout: float = 300.0
    reject_cyclic_workflows: bool = True
    merge_separator: str = "\n---\n"

    # -- HTTP --
    http_timeout: float = 30.0

    # -- Webhooks --
    webhook_path_prefix: str = "/webhook"

    # -- LLM --
    llm_base_url: str = "https://openrouter.ai/api/v1"
    llm_model: str = "xiaomi/mimo-v2-flash:free"

    # -- Secrets (environment only) --
    webhook_hash_key: str = "aether-dev-webhook-key"
    llm_api_key: Optional[str] = None
    resend_api_key: Optional[str] = None
    email_from: str = "onboarding@resend.dev"

    def with_overrides(self, **changes) -> "Config":
        """Return a copy with the given fields replaced (tests, CLI flags)."""
        return replace(self, **changes)


# =============================================================================
# SECRETS - The ONLY thing from environment variables
# =============================================================================

def get_webhook_hash_key() -> str:
    """Key for hashing webhook credentials. Cannot be in version control."""
    return os.getenv("AETHER_WEBHOOK_HASH_KEY", Config.webhook_hash_key)


def get_llm_api_key() -> Optional[str]:
    return os.getenv("OPENROUTER_API_KEY")


def get_resend_api_key() -> Optional[str]:
    return os.getenv("RESEND_API_KEY")


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = DEFAULT_CONFIG_PATH) -> Config:
    """
    Load configuration from YAML.
    Returns defaults (plus environment secrets) if the file doesn't exist.
    """
    secrets = dict(
        webhook_hash_key=get_webhook_hash_key(),
        llm_api_key=get_llm_api_key(),
        resend_api_key=get_resend_api_key(),
        email_from=os.getenv("EMAIL_FROM", Config.email_from),
    )

    if not Path(path).exists():
        return Config(**secrets)

    try:
        with open(path) as f:
            y = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config: {e}", config_file=path)

    if not isinstance(y, dict):
        raise ConfigurationError("Config root must be a mapping", config_file=path)

    # Helper to safely navigate nested dicts
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict):
                return default
            d = d.get(k, {})
        return d if d != {} else default

    defaults = Config()
    reject_cycles = get(y, "execution", "reject_cyclic_workflows")

    return Config(
        # Server
        host=get(y, "server", "host") or defaults.host,
        port=int(os.getenv("PORT", get(y, "server", "port") or defaults.port)),

        # Logging
        log_level=os.getenv("LOG_LEVEL", get(y, "logging", "level") or defaults.log_level),
        log_format=get(y, "logging", "format") or defaults.log_format,
        logs_path=os.getenv("AETHER_LOGS_PATH", get(y, "paths", "logs") or defaults.logs_path),

        # Execution
        executions_path=get(y, "paths", "executions") or defaults.executions_path,
        max_executed_nodes=int(get(y, "execution", "max_executed_nodes") or defaults.max_executed_nodes),
        run_timeout=float(get(y, "execution", "run_timeout") or defaults.run_timeout),
        reject_cyclic_workflows=defaults.reject_cyclic_workflows if reject_cycles is None else bool(reject_cycles),
        merge_separator=get(y, "execution", "merge_separator") or defaults.merge_separator,

        # HTTP
        http_timeout=float(get(y, "http", "timeout") or defaults.http_timeout),

        # Webhooks
        webhook_path_prefix=get(y, "webhooks", "path_prefix") or defaults.webhook_path_prefix,

        # LLM
        llm_base_url=get(y, "llm", "base_url") or defaults.llm_base_url,
        llm_model=get(y, "llm", "model") or defaults.llm_model,

        **secrets,
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        config_path = os.getenv("AETHER_CONFIG_PATH", DEFAULT_CONFIG_PATH)
        _config = load_config(config_path)
    return _config


def reload_config() -> Config:
    """Force reload configuration."""
    global _config
    _config = None
    return get_config()
