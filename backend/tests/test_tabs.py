# backend/tests/test_tabs.py
from __future__ import annotations

from rentfolio.domain.fingerprint import state_hash
from rentfolio.domain.tabs import TAB_NAMES, TABS, decode_state, decode_tab, encode_state
from rentfolio.schemas import Payment, PaymentType
from rentfolio.seed.demo import demo_state

from conftest import fast_hash


def _spec(name):
    return next(t for t in TABS if t.name == name)


def test_every_tab_starts_with_its_header():
    tabs = encode_state(demo_state(fast_hash))
    assert set(tabs) == set(TAB_NAMES)
    for spec in TABS:
        assert tabs[spec.name][0] == list(spec.header)
    assert tabs["Config"][0] == ["key", "value"]


def test_nested_structures_are_json_cells():
    tabs = encode_state(demo_state(fast_hash))
    columns_cell = tabs["PropertyTypes"][1][3]
    assert columns_cell.startswith("[")
    assert '"isRentCalculatable":true' in columns_cell
    assert tabs["UnitHistory"][1][4].startswith("{")


def test_decode_restores_the_same_content():
    state = demo_state(fast_hash)
    state.payments = [
        Payment(id="pay1", record_id="r1", month="ONE_TIME", amount=2400, type=PaymentType.DEPOSIT, paid_to="Petty Cash")
    ]
    state.config.paid_to_options = ["Vault"]

    decoded = decode_state(encode_state(state))
    assert state_hash(decoded) == state_hash(state)
    assert decoded.config.paid_to_options == ["Vault"]


def test_short_rows_are_padded_and_blank_ids_skipped():
    spec = _spec("Payments")
    rows = [list(spec.header), ["pay1", "r1", "2026-03", 1200], ["", "r1"], []]
    out = decode_tab(spec, rows)

    assert len(out) == 1
    assert out[0].status.value == "PAID"
    assert out[0].type == PaymentType.RENT
    assert out[0].paid_at is None
    assert out[0].is_refunded is False


def test_unparseable_rows_are_dropped():
    spec = _spec("Payments")
    rows = [list(spec.header), ["pay1", "r1", "2026-03", "not-a-number"], ["pay2", "r1", "2026-04", 10]]
    out = decode_tab(spec, rows)
    assert [p.id for p in out] == ["pay2"]


def test_sheet_booleans_and_numbers():
    spec = _spec("Properties")
    rows = [list(spec.header), ["p9", "Annex", "pt_res", "", "2026-01-01", "FALSE", 150000]]
    prop = decode_tab(spec, rows)[0]
    assert prop.is_visible_to_manager is False
    assert prop.total_investment == 150000.0


def test_missing_tabs_decode_as_empty():
    state = decode_state({})
    assert state.is_empty()
    assert state.config.payment_mode_options[0] == "Bank Transfer"
