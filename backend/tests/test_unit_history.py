# backend/tests/test_unit_history.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from rentfolio.domain.clock import parse_instant
from rentfolio.domain.unit_history import history_for, open_interval, roll_history, start_interval, values_as_of

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _base():
    return [start_interval(history_id="h1", record_id="r1", values={"rent": "1000"}, effective_from=T0)]


def _assert_no_negative_duration(history):
    for h in history:
        if h.effective_to is not None:
            assert parse_instant(h.effective_to) >= parse_instant(h.effective_from)


def test_update_closes_open_interval_one_second_before_new_start():
    d = T0 + timedelta(days=31)
    out = roll_history(_base(), record_id="r1", values={"rent": "1100"}, effective_from=d, new_history_id="h2")

    rows = history_for(out, "r1")
    assert len(rows) == 2
    assert parse_instant(rows[0].effective_to) == d - timedelta(seconds=1)
    assert rows[1].is_open
    assert rows[1].values == {"rent": "1100"}
    assert open_interval(out, "r1").id == "h2"


def test_update_at_or_before_open_start_supersedes_in_place():
    before = T0 - timedelta(days=3)
    out = roll_history(_base(), record_id="r1", values={"rent": "900"}, effective_from=before, new_history_id="h2")

    assert len(out) == 1
    assert out[0].id == "h1"
    assert out[0].is_open
    assert out[0].values == {"rent": "900"}
    assert parse_instant(out[0].effective_from) == before
    _assert_no_negative_duration(out)


def test_update_within_a_second_of_open_start_supersedes_in_place():
    soon = T0 + timedelta(milliseconds=400)
    out = roll_history(_base(), record_id="r1", values={"rent": "1050"}, effective_from=soon, new_history_id="h2")

    _assert_no_negative_duration(out)
    assert [h.id for h in out] == ["h1"]
    assert out[0].is_open
    assert parse_instant(out[0].effective_from) == T0
    assert values_as_of(out, "r1", soon) == {"rent": "1050"}


def test_backdated_update_never_overlaps_closed_interval():
    d1 = T0 + timedelta(days=10)
    out = roll_history(_base(), record_id="r1", values={"rent": "1100"}, effective_from=d1, new_history_id="h2")
    out = roll_history(out, record_id="r1", values={"rent": "1200"}, effective_from=T0, new_history_id="h3")

    _assert_no_negative_duration(out)
    rows = history_for(out, "r1")
    assert [h.id for h in rows] == ["h1", "h2"]
    closed, current = rows
    assert parse_instant(current.effective_from) > parse_instant(closed.effective_to)
    assert current.values == {"rent": "1200"}


def test_exactly_one_open_interval_after_many_updates():
    out = _base()
    for i in range(1, 6):
        out = roll_history(
            out, record_id="r1", values={"rent": str(1000 + i)}, effective_from=T0 + timedelta(days=i), new_history_id=f"h{i + 1}"
        )
    assert sum(1 for h in out if h.is_open) == 1
    _assert_no_negative_duration(out)


def test_values_as_of():
    d = T0 + timedelta(days=31)
    out = roll_history(_base(), record_id="r1", values={"rent": "1100"}, effective_from=d, new_history_id="h2")

    assert values_as_of(out, "r1", T0 + timedelta(days=5)) == {"rent": "1000"}
    assert values_as_of(out, "r1", d) == {"rent": "1100"}
    assert values_as_of(out, "r1", d + timedelta(days=400)) == {"rent": "1100"}
    assert values_as_of(out, "r1", T0 - timedelta(days=1)) is None


def test_roll_does_not_touch_other_units():
    hist = _base() + [start_interval(history_id="x1", record_id="r2", values={"rent": "5"}, effective_from=T0)]
    out = roll_history(hist, record_id="r1", values={"rent": "1"}, effective_from=T0 + timedelta(days=1), new_history_id="h2")
    assert open_interval(out, "r2").id == "x1"
    assert hist[0].is_open  # input list untouched
