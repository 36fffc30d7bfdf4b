# backend/tests/test_sheets_client.py
from __future__ import annotations

import httpx
import pytest

from rentfolio.clients.google_oauth import GoogleTokenProvider
from rentfolio.clients.sheets import SheetsAuthError, SheetsClient, SheetsError

from conftest import make_settings


def test_replace_tab_clears_then_writes(sheets_client, fake_sheets):
    fake_sheets.tabs["Users"] = [["id"], ["old-1"], ["old-2"]]
    sheets_client.replace_tab("Users", [["id"], ["u1"]])
    assert fake_sheets.tabs["Users"] == [["id"], ["u1"]]
    assert fake_sheets.clears == 1
    assert fake_sheets.writes == 1


def test_ensure_tabs_only_adds_missing(sheets_client, fake_sheets):
    fake_sheets.tabs["Users"] = []
    added = sheets_client.ensure_tabs(["Users", "Unit Notes"])
    assert added == ["Unit Notes"]
    assert set(fake_sheets.tabs) == {"Users", "Unit Notes"}


def test_batch_get_maps_empty_tabs_to_empty_lists(sheets_client, fake_sheets):
    fake_sheets.tabs = {"Users": [["id"], ["u1"]], "Payments": []}
    out = sheets_client.batch_get(["Users", "Payments"])
    assert out == {"Users": [["id"], ["u1"]], "Payments": []}


def test_401_is_an_auth_error(sheets_client, fake_sheets):
    fake_sheets.fail_status = 401
    with pytest.raises(SheetsAuthError):
        sheets_client.tab_titles()


def test_other_http_errors(sheets_client, fake_sheets):
    fake_sheets.fail_status = 500
    with pytest.raises(SheetsError) as ei:
        sheets_client.tab_titles()
    assert not isinstance(ei.value, SheetsAuthError)
    assert ei.value.status_code == 500


def test_network_failure_is_a_sheets_error():
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    client = SheetsClient(make_settings(), transport=httpx.MockTransport(boom))
    with pytest.raises(SheetsError):
        client.tab_titles()


def test_missing_token_without_refresh_is_auth_error():
    cfg = make_settings(google_access_token=None, google_refresh_token=None)
    client = SheetsClient(cfg, transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
    with pytest.raises(SheetsAuthError):
        client.tab_titles()


def test_missing_token_is_fetched_with_refresh_grant(fake_sheets):
    cfg = make_settings(google_access_token=None)
    client = SheetsClient(cfg, transport=httpx.MockTransport(fake_sheets.handler))
    assert client.tab_titles() == []
    assert fake_sheets.refreshes == 1


def test_refresh_failure_returns_false():
    provider = GoogleTokenProvider(
        make_settings(), transport=httpx.MockTransport(lambda r: httpx.Response(400, json={"error": "invalid_grant"}))
    )
    assert provider.refresh() is False
    assert provider.access_token() == "tok-1"


def test_refresh_needs_client_config():
    provider = GoogleTokenProvider(make_settings(google_client_secret=None))
    assert provider.can_refresh() is False
    assert provider.refresh() is False
