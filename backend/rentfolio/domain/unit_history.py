from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from ..schemas import UnitHistory
from .clock import parse_instant, to_iso

CLOSE_GAP = timedelta(seconds=1)
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def history_for(history: list[UnitHistory], record_id: str) -> list[UnitHistory]:
    rows = [h for h in history if h.record_id == record_id]
    return sorted(rows, key=lambda h: parse_instant(h.effective_from) or _EPOCH)


def open_interval(history: list[UnitHistory], record_id: str) -> Optional[UnitHistory]:
    """The current snapshot for a unit (effective_to is None)."""
    opened = [h for h in history_for(history, record_id) if h.is_open]
    return opened[-1] if opened else None


def start_interval(*, history_id: str, record_id: str, values: dict[str, str], effective_from: datetime) -> UnitHistory:
    return UnitHistory(
        id=history_id,
        record_id=record_id,
        values=dict(values),
        effective_from=to_iso(effective_from),
        effective_to=None,
    )


def roll_history(
    history: list[UnitHistory],
    *,
    record_id: str,
    values: dict[str, str],
    effective_from: datetime,
    new_history_id: str,
) -> list[UnitHistory]:
    """
    Close the unit's open interval and open a new one at effective_from.

    The closed interval ends one second before the new one starts. When the
    new start is less than one second after the open interval's own start (or
    before it), the open interval is superseded in place instead, so no
    interval ever ends before it begins.
    Returns a new list; the input is not modified.
    """
    out = list(history)
    current = open_interval(out, record_id)

    if current is None:
        out.append(start_interval(history_id=new_history_id, record_id=record_id, values=values, effective_from=effective_from))
        return out

    current_start = parse_instant(current.effective_from)
    idx = next(i for i, h in enumerate(out) if h.id == current.id)

    if current_start is not None and effective_from - CLOSE_GAP < current_start:
        # never slide back over an interval that is already closed
        closed_ends = [parse_instant(h.effective_to) for h in history_for(out, record_id) if not h.is_open]
        floor = max((e + CLOSE_GAP for e in closed_ends if e is not None), default=effective_from)
        start = max(min(effective_from, current_start), floor)
        out[idx] = current.model_copy(update={"values": dict(values), "effective_from": to_iso(start)})
        return out

    out[idx] = current.model_copy(update={"effective_to": to_iso(effective_from - CLOSE_GAP)})
    out.append(start_interval(history_id=new_history_id, record_id=record_id, values=values, effective_from=effective_from))
    return out


def values_as_of(history: list[UnitHistory], record_id: str, instant: datetime) -> Optional[dict[str, str]]:
    for h in reversed(history_for(history, record_id)):
        start = parse_instant(h.effective_from)
        end = parse_instant(h.effective_to)
        if start is None or start > instant:
            continue
        if end is None or instant <= end:
            return dict(h.values)
    return None
