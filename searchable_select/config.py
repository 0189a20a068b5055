"""Per-variant policy profiles for the selection core."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

from searchable_select.errors import ConfigurationError
from searchable_select.logging_utils import get_logger

_LOGGER = get_logger("Config")

DEBOUNCE_ENV_VAR = "SEARCHABLE_SELECT_DEBOUNCE_MS"
DEFAULT_DEBOUNCE_MS = 350


class GatePolicy(str, Enum):
    """What to do with a query shorter than the minimum length."""

    SUPPRESS = "suppress"
    EMPTY = "empty"


@dataclass(frozen=True)
class SelectConfig:
    variant: str = "select"
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    min_length: int = 0
    gate: GatePolicy = GatePolicy.EMPTY
    cycle_when_closed: bool = True
    editable: bool = False
    filter_on_open: bool = False
    close_when_empty: bool = False
    remote: bool = False


PRESETS: Mapping[str, SelectConfig] = {
    "select": SelectConfig(),
    "typeahead": SelectConfig(
        variant="typeahead",
        min_length=2,
        gate=GatePolicy.EMPTY,
        cycle_when_closed=False,
        editable=True,
        filter_on_open=True,
        close_when_empty=True,
    ),
    "dynamic_typeahead": SelectConfig(
        variant="dynamic_typeahead",
        min_length=3,
        gate=GatePolicy.SUPPRESS,
        cycle_when_closed=False,
        editable=True,
        filter_on_open=True,
        close_when_empty=True,
        remote=True,
    ),
}

_BOOL_FIELDS = ("cycle_when_closed", "editable", "filter_on_open", "close_when_empty")


def _coerce_int(raw: object, fallback: int, *, minimum: int) -> int:
    try:
        value = int(raw)  # type: ignore[call-overload]
    except Exception:
        value = fallback
    return max(minimum, value)


def _coerce_bool(raw: object, fallback: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return bool(raw)
    if isinstance(raw, str):
        token = raw.strip().lower()
        if token in {"1", "true", "yes", "on"}:
            return True
        if token in {"0", "false", "no", "off"}:
            return False
    return fallback


def coerce_gate(raw: object) -> GatePolicy:
    if isinstance(raw, GatePolicy):
        return raw
    try:
        return GatePolicy(str(raw).strip().lower())
    except ValueError as exc:
        raise ConfigurationError(f"Unknown gate policy {raw!r}") from exc


def resolve_config(variant: str = "select", overrides: Optional[Mapping[str, object]] = None) -> SelectConfig:
    """Return the preset for ``variant`` with ``overrides`` applied.

    Numeric overrides that fail to parse fall back to the preset value. An unknown
    variant or gate policy is a configuration error.
    """
    try:
        base = PRESETS[variant]
    except KeyError as exc:
        raise ConfigurationError(f"Unknown select variant {variant!r}; expected one of {sorted(PRESETS)}") from exc

    env_debounce = os.environ.get(DEBOUNCE_ENV_VAR)
    if env_debounce:
        base = replace(base, debounce_ms=_coerce_int(env_debounce, base.debounce_ms, minimum=0))

    if not overrides:
        return base
    changes: dict[str, Any] = {}
    if "debounce_ms" in overrides:
        changes["debounce_ms"] = _coerce_int(overrides.get("debounce_ms"), base.debounce_ms, minimum=0)
    if "min_length" in overrides:
        changes["min_length"] = _coerce_int(overrides.get("min_length"), base.min_length, minimum=0)
    if "gate" in overrides:
        changes["gate"] = coerce_gate(overrides.get("gate"))
    for name in _BOOL_FIELDS:
        if name in overrides:
            changes[name] = _coerce_bool(overrides.get(name), getattr(base, name))
    ignored = sorted(set(overrides) - set(changes))
    if ignored:
        _LOGGER.debug("Ignoring unsupported config overrides for %s: %s", variant, ", ".join(ignored))
    return replace(base, **changes)


def load_config(path: Path, variant: str = "select") -> SelectConfig:
    """Read JSON overrides from ``path``; a missing or malformed file yields the preset."""
    try:
        raw_text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return resolve_config(variant)
    except OSError as exc:
        _LOGGER.warning("Failed to read select config %s: %s; using defaults", path, exc)
        return resolve_config(variant)
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        _LOGGER.warning("Failed to parse %s; using default select config (%s)", path, exc)
        return resolve_config(variant)
    if not isinstance(data, dict):
        _LOGGER.warning("Select config at %s is not a JSON object; using defaults", path)
        return resolve_config(variant)
    section = data.get(variant)
    overrides = section if isinstance(section, dict) else data
    return resolve_config(variant, overrides)


__all__ = [
    "DEBOUNCE_ENV_VAR",
    "DEFAULT_DEBOUNCE_MS",
    "GatePolicy",
    "PRESETS",
    "SelectConfig",
    "coerce_gate",
    "load_config",
    "resolve_config",
]
