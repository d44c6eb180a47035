"""Configuration loading for netcheck services.

Settings come from an optional JSON file merged over defaults, then
environment variables override individual keys.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger("netcheck.config")

PROBER_DEFAULTS: dict[str, Any] = {
    "server_url": "http://netcheck-observer:8080",
    "heartbeat_interval_seconds": 5,
    "test_interval_seconds": 60,
    "host_port": 22,
    "pod_port": 6100,
    "service_name": "",
    "service_port": 80,
    "max_concurrency": 10,
    "log_level": "info",
}

PROBER_ENV = {
    "server_url": "SERVER_URL",
    "heartbeat_interval_seconds": "HEARTBEAT_INTERVAL",
    "test_interval_seconds": "TEST_INTERVAL",
    "host_port": "TEST_PORT",
    "pod_port": "CLIENT_PORT",
    "service_name": "CUSTOM_SERVICE_NAME",
    "service_port": "CUSTOM_SERVICE_PORT",
    "max_concurrency": "MAX_CONCURRENCY",
    "log_level": "LOG_LEVEL",
}

OBSERVER_DEFAULTS: dict[str, Any] = {
    "http_port": 8080,
    "cache_ttl_seconds": 15,
    "cache_sweep_seconds": 30,
    "report_interval_seconds": 300,
    "redis_url": None,
    "log_level": "info",
}

OBSERVER_ENV = {
    "http_port": "HTTP_PORT",
    "cache_ttl_seconds": "CACHE_KEY_SECOND",
    "report_interval_seconds": "REPORT_INTERVAL",
    "redis_url": "REDIS_URL",
    "log_level": "LOG_LEVEL",
}


def load_config(config_path: str | None = None, defaults: dict[str, Any] | None = None) -> dict[str, Any]:
    """Load configuration from a JSON file, merging with optional defaults.

    Args:
        config_path: Path to the JSON configuration file. ``None`` returns the defaults.
        defaults: Optional dictionary of default values. File values override defaults.

    Returns:
        Merged configuration dictionary.

    Raises:
        FileNotFoundError: If the config file does not exist.
    """
    merged = dict(defaults or {})
    if config_path is None:
        return merged

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        merged.update(json.load(f))
    return merged


def apply_env_overrides(
    config: dict[str, Any],
    mapping: dict[str, str],
    environ: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Override config keys from environment variables.

    Integer-valued keys must parse as positive integers; anything else is
    logged and the existing value is kept.
    """
    env = os.environ if environ is None else environ
    result = dict(config)
    for key, var in mapping.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        current = result.get(key)
        if isinstance(current, int) and not isinstance(current, bool):
            try:
                value = int(raw)
            except ValueError:
                logger.warning(f"Cannot parse {var}={raw!r}, keeping {current}")
                continue
            if value <= 0:
                logger.warning(f"Invalid {var}={value}, keeping {current}")
                continue
            result[key] = value
        else:
            result[key] = raw
    return result


def load_prober_config(config_path: str | None = None, environ: dict[str, str] | None = None) -> dict[str, Any]:
    config = load_config(config_path, defaults=PROBER_DEFAULTS)
    return apply_env_overrides(config, PROBER_ENV, environ)


def load_observer_config(config_path: str | None = None, environ: dict[str, str] | None = None) -> dict[str, Any]:
    config = load_config(config_path, defaults=OBSERVER_DEFAULTS)
    return apply_env_overrides(config, OBSERVER_ENV, environ)
