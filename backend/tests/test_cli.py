# backend/tests/test_cli.py
from __future__ import annotations

import json

import pytest

import rentfolio.cli.__main__ as cli
from rentfolio.services.store import RentalStore

from conftest import fast_hash


@pytest.fixture
def unbooted_store(make_sync, monkeypatch) -> RentalStore:
    """Store over an empty spreadsheet and cache, handed to the CLI commands."""
    s = RentalStore(make_sync(), hasher=fast_hash)
    monkeypatch.setattr(cli, "build_store", lambda cfg: s)
    monkeypatch.setattr(cli, "init_db", lambda: None)
    monkeypatch.setattr(cli, "configure_logging", lambda: None)
    return s


def test_pull_pushes_bootstrapped_admin_before_exit(unbooted_store, timers, fake_sheets, capsys):
    assert cli.main(["pull"]) == 0

    assert timers.live == []
    assert fake_sheets.writes > 0
    assert [u.username for u in unbooted_store.state.users] == ["admin"]
    out = json.loads(capsys.readouterr().out)
    assert out["source"] == "empty"


def test_push_writes_bootstrapped_admin(unbooted_store, timers, fake_sheets, capsys):
    assert cli.main(["push"]) == 0

    assert timers.live == []
    assert fake_sheets.writes > 0
    assert json.loads(capsys.readouterr().out)["wrote"] is True
