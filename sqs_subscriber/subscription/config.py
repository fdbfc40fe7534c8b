"""Subscriber configuration and validation helpers."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml  # type: ignore[import-untyped]

DEFAULT_POLL_BACKOFF_SECONDS = 10.0
SQS_MAX_MESSAGES = 10
SQS_MAX_WAIT_TIME_SECONDS = 20
SQS_MAX_VISIBILITY_TIMEOUT = 43200


@dataclass(slots=True)
class SubscriberConfig:
    """Subscriber runtime configuration."""

    queue_name: str
    poll_backoff_seconds: float = DEFAULT_POLL_BACKOFF_SECONDS
    max_messages: int = SQS_MAX_MESSAGES
    wait_time_seconds: int = SQS_MAX_WAIT_TIME_SECONDS
    visibility_timeout: int | None = None
    region_name: str | None = None
    endpoint_url: str | None = None


def validate_config(config: SubscriberConfig) -> list[str]:
    """Validate subscriber configuration and return error messages."""
    errors: list[str] = []

    if not config.queue_name.strip():
        errors.append("queue_name is required")
    if config.poll_backoff_seconds < 0:
        errors.append("poll_backoff_seconds must be non-negative")
    if not 1 <= config.max_messages <= SQS_MAX_MESSAGES:
        errors.append(f"max_messages must be between 1 and {SQS_MAX_MESSAGES}")
    if not 0 <= config.wait_time_seconds <= SQS_MAX_WAIT_TIME_SECONDS:
        errors.append(f"wait_time_seconds must be between 0 and {SQS_MAX_WAIT_TIME_SECONDS}")
    if config.visibility_timeout is not None and not 0 <= config.visibility_timeout <= SQS_MAX_VISIBILITY_TIMEOUT:
        errors.append(f"visibility_timeout must be between 0 and {SQS_MAX_VISIBILITY_TIMEOUT}")

    return errors


_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def _replace_env_vars(value: Any) -> Any:
    """Recursively replace ${ENV_VAR} placeholders using process env."""
    if isinstance(value, dict):
        return {k: _replace_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_replace_env_vars(v) for v in value]
    if not isinstance(value, str):
        return value
    return _ENV_PATTERN.sub(lambda match: os.environ.get(match.group(1), ""), value)


def _optional_str(config_map: dict[str, Any], key: str) -> str | None:
    value = config_map.get(key)
    if value is None or str(value).strip() == "":
        return None
    return str(value)


def _require_int(config_map: dict[str, Any], key: str, default: int) -> int:
    value = config_map.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be an integer") from exc


def _optional_int(config_map: dict[str, Any], key: str) -> int | None:
    if _optional_str(config_map, key) is None:
        return None
    return _require_int(config_map, key, 0)


def _require_float(config_map: dict[str, Any], key: str, default: float) -> float:
    value = config_map.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be a number") from exc


def load_subscriber_config(config_path: str) -> SubscriberConfig:
    """Load subscriber config from a YAML file and validate it."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError("Subscriber config root must be a mapping")

    config_map = _replace_env_vars(raw.get("subscriber", raw))
    if not isinstance(config_map, dict):
        raise ValueError("subscriber section must be a mapping")
    config_dict = cast(dict[str, Any], config_map)

    config = SubscriberConfig(
        queue_name=str(config_dict.get("queue_name") or ""),
        poll_backoff_seconds=_require_float(config_dict, "poll_backoff_seconds", DEFAULT_POLL_BACKOFF_SECONDS),
        max_messages=_require_int(config_dict, "max_messages", SQS_MAX_MESSAGES),
        wait_time_seconds=_require_int(config_dict, "wait_time_seconds", SQS_MAX_WAIT_TIME_SECONDS),
        visibility_timeout=_optional_int(config_dict, "visibility_timeout"),
        region_name=_optional_str(config_dict, "region_name"),
        endpoint_url=_optional_str(config_dict, "endpoint_url"),
    )

    errors = validate_config(config)
    if errors:
        raise ValueError(f"Invalid subscriber config: {'; '.join(errors)}")
    return config
