"""Assemble a ``TaskLaneConfig`` from YAML, the environment and explicit overrides."""

from __future__ import annotations

from typing import Any

from pydantic_settings import EnvSettingsSource

from tasklane.config.loader import YAMLConfigLoader
from tasklane.config.models import TaskLaneConfig


def _deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = dict(base)
    for key, value in updates.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def env_overrides() -> dict[str, Any]:
    """``TASKLANE_*`` variables as nested sections, parsed by pydantic-settings."""
    return EnvSettingsSource(TaskLaneConfig)()


def load_config(
    config_path: str | None = None,
    overrides: dict[str, Any] | None = None,
) -> TaskLaneConfig:
    """Load the effective configuration.

    Later layers win: ``tasklane.yaml`` (resolved by ``YAMLConfigLoader``),
    then ``TASKLANE_<SECTION>__<KEY>`` environment variables, then
    ``overrides``.

    Raises:
        ConfigLoadError: the YAML file is malformed.
        pydantic.ValidationError: the merged values do not validate.
    """
    data = YAMLConfigLoader.load_dict(YAMLConfigLoader.resolve_path(config_path))
    data = _deep_merge(data, env_overrides())
    data = _deep_merge(data, overrides or {})
    return TaskLaneConfig.model_validate(data)
