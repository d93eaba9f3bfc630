"""Merge configuration layers into a validated ``TabstateConfig``."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import TabstateConfig

ENV_PREFIX = "TABSTATE__"


def resolve_with_precedence(
    *,
    defaults: TabstateConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> TabstateConfig:
    """Layer file, environment and CLI overrides on top of ``defaults``.

    Later layers win. Keys may be nested mappings or dotted paths such as
    ``autosave.debounce_ms``.

    Raises:
        ConfigError: If a layer is malformed or the merged values fail validation.
    """
    merged = defaults.model_dump(mode="python")
    layers = (("file", file_overrides), ("environment", env_overrides), ("cli", cli_overrides))
    for label, layer in layers:
        if layer is None:
            continue
        merged = merge_mappings(merged, expand_dotted(layer, label=label))

    try:
        return TabstateConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: TabstateConfig) -> Dict[str, str]:
    """Render ``config`` as ``TABSTATE__SECTION__KEY`` environment assignments."""
    flat: Dict[str, str] = {}
    pending: list[tuple[list[str], Any]] = [
        ([key], value) for key, value in config.model_dump(mode="python").items()
    ]
    while pending:
        path, value = pending.pop(0)
        if isinstance(value, dict):
            pending.extend((path + [str(key)], child) for key, child in value.items())
            continue
        name = ENV_PREFIX + "__".join(part.upper() for part in path)
        if isinstance(value, list):
            flat[name] = yaml.safe_dump(value, default_flow_style=True).strip()
        elif value is None:
            flat[name] = "null"
        elif isinstance(value, bool):
            flat[name] = "true" if value else "false"
        else:
            flat[name] = str(value)
    return flat


def overrides_from_env(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect nested overrides from ``TABSTATE__`` prefixed variables."""
    overrides: dict[str, Any] = {}
    for key, raw in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        segments = [part.lower() for part in key[len(ENV_PREFIX) :].split("__") if part]
        if not segments:
            continue
        try:
            value: Any = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        assign_path(overrides, segments, value, label="environment")
    return overrides


def expand_dotted(source: Mapping[str, Any], *, label: str) -> dict[str, Any]:
    """Expand dotted keys of ``source`` into nested dictionaries."""
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{label.capitalize()} overrides must be a mapping.")

    result: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{label.capitalize()} override keys must be strings.")
        if isinstance(value, MappingABC):
            value = expand_dotted(value, label=label)
        assign_path(result, key.split("."), value, label=label)
    return result


def assign_path(target: dict[str, Any], path: list[str], value: Any, *, label: str) -> None:
    """Set ``value`` at ``path`` inside ``target``, creating mappings on the way."""
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(
                f"{label.capitalize()} override for {'.'.join(path)} conflicts with existing value."
            )
        node = child
    leaf = path[-1]
    if isinstance(value, dict) and isinstance(node.get(leaf), dict):
        node[leaf] = merge_mappings(node[leaf], value)
    else:
        node[leaf] = value


def merge_mappings(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Return a deep copy of ``base`` with ``overrides`` merged recursively."""
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = merge_mappings(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = [
    "ENV_PREFIX",
    "resolve_with_precedence",
    "flatten_for_env",
    "overrides_from_env",
    "expand_dotted",
    "assign_path",
    "merge_mappings",
]
