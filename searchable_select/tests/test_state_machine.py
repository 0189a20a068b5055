from __future__ import annotations

import pytest

from searchable_select.catalog import build
from searchable_select.config import PRESETS, GatePolicy, SelectConfig
from searchable_select.filtering import FilterEngine, LocalFilter
from searchable_select.state import KeyAction, KeyEvent, SelectionStateMachine


def _machine(harness, labels=("A", "B", "C"), variant="select", config: SelectConfig | None = None):
    config = config or PRESETS[variant]
    engine = FilterEngine(
        LocalFilter(),
        after=harness.after,
        after_cancel=harness.cancel,
        debounce_ms=config.debounce_ms,
        min_length=config.min_length,
        gate=config.gate,
    )
    notifications: list = []
    select_text: list = []
    machine = SelectionStateMachine(
        engine,
        config,
        on_selection_changed=notifications.append,
        on_select_text=lambda: select_text.append(True),
    )
    catalog = build(list(labels), str)
    machine.replace_catalog(catalog)
    return machine, catalog, notifications, select_text


def _key(name: str, **mods) -> KeyEvent:
    return KeyEvent(name, **mods)


def test_open_navigate_wraps_and_commit_notifies_once(harness):
    machine, catalog, notifications, _ = _machine(harness)
    a, b, c = catalog.entries
    machine.select_index(len(catalog))

    assert machine.handle_key(_key("Enter")).action is KeyAction.OPEN
    assert machine.state.open and machine.state.active is None

    actives = []
    for _ in range(4):
        machine.handle_key(_key("ArrowDown"))
        actives.append(machine.state.active)
    assert actives == [a, b, c, a]

    outcome = machine.handle_key(_key("Enter"))
    assert outcome.action is KeyAction.COMMIT and outcome.prevent_default
    assert machine.state.selected is a
    assert machine.state.open is False
    assert notifications == [a]


def test_arrow_up_with_nothing_active_starts_at_last(harness):
    machine, catalog, _, _ = _machine(harness)
    machine.select_index(len(catalog))
    machine.activate()

    machine.handle_key(_key("ArrowUp"))

    assert machine.state.active is catalog[2]
    assert machine.state.input_text == "C"


def test_reopen_restores_active_to_selection(harness):
    machine, catalog, _, _ = _machine(harness)
    machine.select_index(1)

    machine.activate()

    assert machine.state.active is catalog[1]


def test_committing_current_selection_is_silent(harness):
    machine, catalog, notifications, _ = _machine(harness)
    machine.activate()

    assert machine.commit(catalog[0]) is True
    assert machine.state.selected is catalog[0]
    assert notifications == []


def test_close_resets_active_and_dismiss_keeps_selection(harness):
    machine, catalog, notifications, _ = _machine(harness)
    machine.select_index(1)
    machine.activate()
    machine.navigate(1)
    assert machine.state.active is catalog[2]

    outcome = machine.handle_key(_key("Escape"))

    assert outcome.action is KeyAction.DISMISS
    assert machine.state.open is False
    assert machine.state.active is None
    assert machine.state.selected is catalog[1]
    assert machine.state.input_text == "B"
    assert notifications == []


def test_enter_without_active_commits_first_visible(harness):
    machine, catalog, notifications, _ = _machine(harness)
    machine.select_index(len(catalog))
    machine.activate()

    machine.handle_key(_key("Enter"))

    assert machine.state.selected is catalog[0]
    assert notifications == [catalog[0]]


def test_closed_arrows_cycle_the_selection_for_plain_select(harness):
    machine, catalog, notifications, _ = _machine(harness)

    outcome = machine.handle_key(_key("ArrowUp"))

    assert outcome.action is KeyAction.CYCLE
    assert machine.state.selected is catalog[2]
    assert machine.state.open is False
    machine.handle_key(_key("ArrowDown"))
    assert machine.state.selected is catalog[0]
    assert notifications == [catalog[2], catalog[0]]


def test_closed_cycling_follows_last_filtered_order(harness):
    machine, catalog, _, _ = _machine(harness, labels=("alpha", "beta", "alphabet"))
    machine.activate()
    machine.engine.issue("alp")
    machine.commit(catalog[0])

    machine.navigate(1)

    assert machine.state.selected is catalog[2]


def test_closed_arrows_do_nothing_for_typeahead(harness):
    machine, catalog, notifications, _ = _machine(harness, variant="typeahead")

    outcome = machine.handle_key(_key("ArrowDown"))

    assert outcome.action is KeyAction.NONE
    assert outcome.prevent_default is True
    assert machine.state.selected is catalog[0]
    assert notifications == []


def test_pointer_press_commits_only_primary_button(harness):
    machine, catalog, notifications, _ = _machine(harness)
    machine.activate()

    assert machine.press_entry(catalog[1], button=3) is False
    assert machine.state.open is True
    assert machine.press_entry(catalog[1]) is True
    assert notifications == [catalog[1]]


def test_commit_rejects_entries_outside_visible_set(harness):
    machine, catalog, _, _ = _machine(harness, labels=("Ottawa", "Toronto"))
    machine.activate()
    machine.engine.issue("tor")

    assert machine.commit(catalog[0]) is False
    assert machine.state.open is True


def test_select_index_bounds(harness):
    machine, catalog, _, _ = _machine(harness)

    assert machine.select_index(3) is None
    assert machine.state.selected is None
    with pytest.raises(IndexError):
        machine.select_index(4)
    assert machine.select(lambda record, _i: record == "B") is catalog[1]


def test_shift_arrow_up_requests_text_selection(harness):
    machine, _, _, _ = _machine(harness, variant="typeahead")

    outcome = machine.handle_key(_key("ArrowUp", shift=True))

    assert outcome.action is KeyAction.SELECT_TEXT


def test_unhandled_keys_do_not_prevent_default(harness):
    machine, _, _, _ = _machine(harness)

    outcome = machine.handle_key(_key("Tab"))

    assert (outcome.action, outcome.prevent_default) == (KeyAction.NONE, False)


def test_typing_filters_after_debounce_without_active(harness):
    machine, catalog, _, select_text = _machine(harness, labels=("Ottawa", "Toronto", "Oshawa"), variant="typeahead")

    assert machine.input_changed("aw") is True
    assert machine.state.open is False
    harness.run_latest()

    assert machine.state.open is True
    assert machine.state.active is None
    assert list(machine.state.visible) == [catalog[0], catalog[2]]
    assert machine.state.input_text == "aw"
    assert select_text == []


def test_typeahead_short_input_shows_everything(harness):
    machine, catalog, _, _ = _machine(harness, labels=("Ottawa", "Toronto"), variant="typeahead")

    machine.input_changed("t")
    harness.run_latest()

    assert list(machine.state.visible) == list(catalog)


def test_typeahead_closes_when_nothing_matches(harness):
    machine, _, _, _ = _machine(harness, labels=("Ottawa", "Toronto"), variant="typeahead")
    machine.input_changed("ott")
    harness.run_latest()
    assert machine.state.open is True

    machine.input_changed("ottx")
    harness.run_latest()

    assert machine.state.open is False
    assert len(machine.state.visible) == 0


def test_suppress_gate_leaves_visible_unchanged(harness):
    config = SelectConfig(variant="typeahead", min_length=2, gate=GatePolicy.SUPPRESS, editable=True)
    machine, catalog, _, _ = _machine(harness, labels=("Ottawa", "Toronto"), config=config)
    machine.input_changed("to")
    harness.run_latest()
    before = machine.state.visible

    assert machine.input_changed("t") is False

    assert machine.engine.debounce_pending is False
    assert len(harness.scheduled) == 1
    assert machine.state.visible == before
    assert list(before) == [catalog[1]]


def test_typeahead_commit_restores_label_and_selects_text(harness):
    machine, catalog, notifications, select_text = _machine(
        harness, labels=("Ottawa", "Toronto"), variant="typeahead"
    )
    machine.input_changed("tor")
    harness.run_latest()

    machine.handle_key(_key("ArrowDown"))
    machine.handle_key(_key("Enter"))

    assert machine.state.selected is catalog[1]
    assert machine.state.input_text == "Toronto"
    assert notifications == [catalog[1]]
    assert select_text == [True]


def test_typeahead_open_without_selection_uses_input_text(harness):
    machine, catalog, _, _ = _machine(harness, labels=("Ottawa", "Toronto"), variant="typeahead")
    machine.select_index(len(catalog))
    machine.input_changed("tor")

    machine.activate()

    assert list(machine.state.visible) == [catalog[1]]
    assert harness.live() == []


def test_plain_select_ignores_typed_text(harness):
    machine, _, _, _ = _machine(harness)

    assert machine.input_changed("b") is False
    assert harness.scheduled == []


def test_replace_catalog_closes_and_selects_first(harness):
    machine, _, notifications, _ = _machine(harness)
    machine.activate()
    fresh = build(["X", "Y"], str)

    machine.replace_catalog(fresh)

    assert machine.state.open is False
    assert machine.state.selected is fresh[0]
    assert machine.catalog is fresh
    assert notifications == []


def test_on_change_sees_previous_and_current(harness):
    machine, catalog, _, _ = _machine(harness)
    seen = []
    machine.on_change = lambda prev, cur: seen.append((prev.open, cur.open))

    machine.activate()
    machine.dismiss()
    machine.dismiss()

    assert seen == [(False, True), (True, False)]


def test_refresh_resets_highlight_onto_the_new_ring(harness):
    machine, catalog, _, _ = _machine(harness, labels=("Ottawa", "Toronto", "Oshawa", "Orleans"), variant="typeahead")
    ottawa, toronto, oshawa, _orleans = catalog.entries

    machine.input_changed("o")
    harness.run_latest()
    machine.handle_key(_key("ArrowDown"))
    machine.handle_key(_key("ArrowDown"))
    assert machine.state.active is toronto

    machine.input_changed("aw")
    harness.run_latest()
    assert machine.state.open is True
    assert machine.state.active is None
    assert machine.state.visible.entries == (ottawa, oshawa)
    assert machine.last_ring is machine.state.visible

    machine.handle_key(_key("ArrowDown"))
    assert machine.state.active is ottawa
    assert machine.state.input_text == "Ottawa"
