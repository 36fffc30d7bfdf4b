from __future__ import annotations

from collections.abc import Iterable

from .state import RentalState


def record_cascade_ids(state: RentalState, record_id: str) -> set[str]:
    """The record plus every row that hangs off it."""
    ids = {record_id}
    ids.update(v.id for v in state.record_values if v.record_id == record_id)
    ids.update(p.id for p in state.payments if p.record_id == record_id)
    ids.update(h.id for h in state.unit_history if h.record_id == record_id)
    return ids


def property_cascade_ids(state: RentalState, property_id: str) -> set[str]:
    ids = {property_id}
    for r in state.records_for(property_id):
        ids |= record_cascade_ids(state, r.id)
    return ids


def apply_tombstones(state: RentalState, tombstones: Iterable[str]) -> tuple[RentalState, int]:
    """
    Drop every row whose id, or owning property/record id, was deleted.

    Child rows of a record that is dropped because its property is tombstoned
    are dropped too, even when their own ids never made it into the set.
    Returns (filtered state, number of rows removed).
    """
    dead = set(tombstones)
    if not dead:
        return state, 0

    out = RentalState(config=state.config)
    out.users = [u for u in state.users if u.id not in dead]
    out.property_types = [t for t in state.property_types if t.id not in dead]
    out.properties = [p for p in state.properties if p.id not in dead]

    dropped_records = {r.id for r in state.records if r.id in dead or r.property_id in dead}
    out.records = [r for r in state.records if r.id not in dropped_records]

    def keep(row_id: str, record_id: str) -> bool:
        return row_id not in dead and record_id not in dead and record_id not in dropped_records

    out.record_values = [v for v in state.record_values if keep(v.id, v.record_id)]
    out.unit_history = [h for h in state.unit_history if keep(h.id, h.record_id)]
    out.payments = [p for p in state.payments if keep(p.id, p.record_id)]

    before = _row_count(state)
    return out, before - _row_count(out)


def _row_count(state: RentalState) -> int:
    return (
        len(state.users)
        + len(state.property_types)
        + len(state.properties)
        + len(state.records)
        + len(state.record_values)
        + len(state.unit_history)
        + len(state.payments)
    )
