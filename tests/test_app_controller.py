"""Tests for the calendar controller driven with stand-in widgets."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any

import pytest
from conftest import FakeStoreSession

from timekeeper.app import WEEKDAY_LABELS, WEEKS_SHOWN, CalendarController
from timekeeper.day_identity import DayIdentity, utc_midnight
from timekeeper.remote import DayRecordClient
from timekeeper.sync import DayRecordSynchronizer
from timekeeper.visible_range import MONTHS_SHOWN

MARCH_10 = date(2024, 3, 10)
MARCH_12 = date(2024, 3, 12)


class _Input:
    """Mimics a Kivy TextInput: ``text`` bindings fire as soon as it changes."""

    def __init__(self) -> None:
        self._text = ""
        self.disabled = False
        self._callbacks: list[Callable[..., Any]] = []

    def bind(self, text: Callable[..., Any]) -> None:
        self._callbacks.append(text)

    @property
    def text(self) -> str:
        return self._text

    @text.setter
    def text(self, value: str) -> None:
        if value == self._text:
            return
        self._text = value
        for callback in self._callbacks:
            callback(self, value)


class _Widget:
    def __init__(self, text: str = "") -> None:
        self.text = text
        self.disabled = False


class _Grid:
    def __init__(self) -> None:
        self.children: list[Any] = []

    def clear_widgets(self) -> None:
        self.children = []

    def add_widget(self, widget: Any) -> None:
        self.children.append(widget)


@dataclass
class _Cell:
    day: date | None
    style: str | None
    selected: bool
    today: bool
    on_press: Callable[[], None]


class _Queue:
    """Background work that the test runs by hand, in any order."""

    def __init__(self) -> None:
        self.jobs: list[Callable[[], None]] = []

    def spawn(self, work: Callable[[], None]) -> None:
        self.jobs.append(work)

    def run(self, index: int = 0) -> None:
        self.jobs.pop(index)()


def _controller(
    sync: DayRecordSynchronizer,
    spawn: Callable[[Callable[[], None]], None] = lambda work: work(),
) -> CalendarController:
    return CalendarController(
        sync,
        hours_input=_Input(),
        miles_input=_Input(),
        submit_btn=_Widget(),
        status=_Widget(),
        range_label=_Widget(),
        month_grids=[_Grid() for _ in range(MONTHS_SHOWN)],
        make_label=_Widget,
        make_cell=_Cell,
        spawn=spawn,
        schedule=lambda callback: callback(),
        today=lambda: MARCH_10,
    )


@pytest.fixture
def sync(client: DayRecordClient, identity: DayIdentity) -> DayRecordSynchronizer:
    return DayRecordSynchronizer(client, identity, today=MARCH_10)


def _type(ctrl: CalendarController, hours: str, miles: str) -> None:
    ctrl.hours_input.text = hours
    ctrl.miles_input.text = miles


def _fields(ctrl: CalendarController) -> tuple[str, str]:
    return ctrl.hours_input.text, ctrl.miles_input.text


def _cell(ctrl: CalendarController, day: date) -> _Cell:
    for grid in ctrl.month_grids:
        for child in grid.children:
            if isinstance(child, _Cell) and child.day == day:
                return child
    raise AssertionError(f"no cell for {day}")


def test_render_draws_both_months_with_styles(
    sync: DayRecordSynchronizer, store: FakeStoreSession
) -> None:
    x = utc_midnight(MARCH_10)
    store.rows[x] = {"date": x, "hours": 8, "miles": 60}
    ctrl = _controller(sync)
    ctrl.start()

    assert ctrl.range_label.text == "febrero 2024 - marzo 2024"
    for grid in ctrl.month_grids:
        assert len(grid.children) == len(WEEKDAY_LABELS) + WEEKS_SHOWN * 7
    cell = _cell(ctrl, MARCH_10)
    assert cell.style == "both"
    assert cell.selected and cell.today
    assert _cell(ctrl, MARCH_12).style is None


def test_selecting_days_overwrites_both_fields(
    sync: DayRecordSynchronizer, store: FakeStoreSession
) -> None:
    x = utc_midnight(MARCH_10)
    store.rows[x] = {"date": x, "hours": 8, "miles": 60}
    ctrl = _controller(sync)
    ctrl.start()
    ctrl.select(MARCH_12)
    _type(ctrl, "1", "99")
    assert (sync.form.hours_text, sync.form.miles_text) == ("1", "99")

    _cell(ctrl, MARCH_10).on_press()
    assert _fields(ctrl) == ("8.00", "60.00")
    assert (sync.form.hours_text, sync.form.miles_text) == ("8.00", "60.00")

    _cell(ctrl, MARCH_12).on_press()
    assert _fields(ctrl) == ("", "")
    assert (sync.form.hours_text, sync.form.miles_text) == ("", "")
    assert ctrl.submit_btn.disabled


def test_submit_sends_values_typed_for_the_selected_day(
    sync: DayRecordSynchronizer, store: FakeStoreSession
) -> None:
    x = utc_midnight(MARCH_10)
    store.rows[x] = {"date": x, "hours": 8, "miles": 60}
    ctrl = _controller(sync)
    ctrl.start()
    ctrl.select(MARCH_12)
    _type(ctrl, "2", "3")
    assert not ctrl.submit_btn.disabled

    ctrl.submit()
    y = utc_midnight(MARCH_12)
    assert store.rows[y] == {"date": y, "hours": 2.0, "miles": 3.0}
    assert store.rows[x]["miles"] == 60
    assert _fields(ctrl) == ("2.00", "3.00")
    assert _cell(ctrl, MARCH_12).style == "both"
    assert not ctrl.busy


def test_unexpected_failure_releases_submit(
    sync: DayRecordSynchronizer, store: FakeStoreSession
) -> None:
    ctrl = _controller(sync)
    ctrl.start()
    _type(ctrl, "2", "3")
    store.fail_with = RuntimeError("boom")

    ctrl.submit()
    assert not ctrl.busy
    assert not ctrl.submit_btn.disabled
    assert "RuntimeError" in ctrl.status.text
    assert store.rows == {}


def test_navigation_fetch_keeps_pending_mutation_busy(
    sync: DayRecordSynchronizer, store: FakeStoreSession
) -> None:
    queue = _Queue()
    ctrl = _controller(sync, spawn=queue.spawn)
    ctrl.start()
    queue.run()
    _type(ctrl, "2", "3")

    ctrl.submit()
    assert ctrl.busy and ctrl.submit_btn.disabled
    ctrl.shift_month(1)
    assert len(queue.jobs) == 2

    queue.run(1)
    assert ctrl.busy
    queue.run(0)
    assert ctrl.busy
    assert store.methods()[-1] == "POST"
    queue.run()
    assert not ctrl.busy
    assert sync.cache.month == date(2024, 3, 1)


def test_replace_client_keeps_selection_and_drops_old_results(
    sync: DayRecordSynchronizer, store: FakeStoreSession
) -> None:
    march_5 = utc_midnight(date(2024, 3, 5))
    store.rows[march_5] = {"date": march_5, "hours": 1, "miles": 0}
    other = FakeStoreSession()
    march_7 = utc_midnight(date(2024, 3, 7))
    other.rows[march_7] = {"date": march_7, "hours": 0, "miles": 5}

    queue = _Queue()
    ctrl = _controller(sync, spawn=queue.spawn)
    ctrl.select(MARCH_12)
    ctrl.start()
    ctrl.replace_client(
        DayRecordClient("http://other.test", session=other)  # type: ignore[arg-type]
    )
    queue.run()
    assert sync.cache.records == {}
    queue.run()

    assert list(sync.cache.records) == [march_7]
    assert sync.form.selected_date == MARCH_12
    assert _cell(ctrl, date(2024, 3, 7)).style == "miles"
    assert _cell(ctrl, date(2024, 3, 5)).style is None
