import pytest

from rankingtools.ui.select import Option, Select


def _select(on_change=None, value=None) -> Select:
    return Select(
        options=[Option("baseline", "Baseline"), Option("new", "New ranking")],
        value=value,
        on_change=on_change,
        placeholder="Pick a ranking",
    )


def test_choose_calls_on_change_with_value() -> None:
    chosen = []
    select = _select(on_change=chosen.append)

    assert select.choose("new") is True

    assert chosen == ["new"]
    assert select.value == "new"
    assert select.label == "New ranking"


def test_choosing_current_value_does_not_fire() -> None:
    chosen = []
    select = _select(on_change=chosen.append, value="baseline")

    assert select.choose("baseline") is False
    assert chosen == []


def test_unknown_value_is_rejected() -> None:
    select = _select()

    with pytest.raises(ValueError):
        select.choose("missing")

    assert select.value is None
    assert select.label == "Pick a ranking"


def test_initial_value_must_be_an_option() -> None:
    with pytest.raises(ValueError):
        _select(value="missing")


def test_choose_sees_options_added_later() -> None:
    chosen = []
    select = _select(on_change=chosen.append)

    select.options.append(Option("experimental", "Experimental"))

    assert select.choose("experimental") is True
    assert chosen == ["experimental"]
    assert select.label == "Experimental"


def test_choose_rejects_options_removed_later() -> None:
    select = _select()

    select.options.pop()

    with pytest.raises(ValueError):
        select.choose("new")
