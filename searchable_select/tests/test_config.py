from __future__ import annotations

import json

import pytest

from searchable_select.config import (
    DEBOUNCE_ENV_VAR,
    GatePolicy,
    PRESETS,
    load_config,
    resolve_config,
)
from searchable_select.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    monkeypatch.delenv(DEBOUNCE_ENV_VAR, raising=False)


def test_presets_encode_variant_policies():
    select = PRESETS["select"]
    typeahead = PRESETS["typeahead"]
    dynamic = PRESETS["dynamic_typeahead"]

    assert select.cycle_when_closed is True and select.editable is False
    assert (typeahead.min_length, typeahead.gate, typeahead.cycle_when_closed) == (2, GatePolicy.EMPTY, False)
    assert (dynamic.min_length, dynamic.gate, dynamic.remote) == (3, GatePolicy.SUPPRESS, True)
    assert {cfg.debounce_ms for cfg in PRESETS.values()} == {350}


def test_resolve_config_applies_and_coerces_overrides():
    config = resolve_config(
        "typeahead",
        {"debounce_ms": "120", "min_length": -4, "gate": "Suppress", "cycle_when_closed": "yes", "bogus": 1},
    )

    assert config.debounce_ms == 120
    assert config.min_length == 0
    assert config.gate is GatePolicy.SUPPRESS
    assert config.cycle_when_closed is True
    assert config.variant == "typeahead"


def test_bad_numeric_override_falls_back_to_preset():
    config = resolve_config("select", {"debounce_ms": "soon"})

    assert config.debounce_ms == 350


def test_unknown_variant_or_gate_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        resolve_config("combobox")
    with pytest.raises(ConfigurationError):
        resolve_config("select", {"gate": "sometimes"})


def test_env_overrides_debounce(monkeypatch):
    monkeypatch.setenv(DEBOUNCE_ENV_VAR, "90")

    assert resolve_config("dynamic_typeahead").debounce_ms == 90


def test_load_config_reads_variant_section(tmp_path):
    path = tmp_path / "select.json"
    path.write_text(json.dumps({"typeahead": {"min_length": 4}, "select": {"min_length": 1}}), encoding="utf-8")

    assert load_config(path, "typeahead").min_length == 4
    assert load_config(path, "select").min_length == 1


def test_load_config_tolerates_missing_and_malformed_files(tmp_path):
    missing = tmp_path / "missing.json"
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    listing = tmp_path / "list.json"
    listing.write_text("[1, 2]", encoding="utf-8")

    assert load_config(missing, "typeahead") == PRESETS["typeahead"]
    assert load_config(broken, "typeahead") == PRESETS["typeahead"]
    assert load_config(listing, "select") == PRESETS["select"]
