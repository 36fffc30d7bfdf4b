# backend/tests/conftest.py
from __future__ import annotations

import json
from typing import Any, Callable, Optional
from urllib.parse import unquote

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rentfolio import models  # noqa: F401  (registers tables on Base.metadata)
from rentfolio.clients.sheets import SheetsClient
from rentfolio.config import Settings
from rentfolio.db import Base
from rentfolio.services.auth_service import hash_password
from rentfolio.services.local_cache import LocalCache
from rentfolio.services.store import RentalStore
from rentfolio.services.sync_manager import SyncManager

SHEETS_BASE = "https://sheets.test/v4/spreadsheets"
SPREADSHEET_ID = "sheet-1"


def make_settings(**overrides: Any) -> Settings:
    base: dict[str, Any] = dict(
        sheets_spreadsheet_id=SPREADSHEET_ID,
        sheets_base_url=SHEETS_BASE,
        google_client_id="client-id",
        google_client_secret="client-secret",
        google_refresh_token="refresh-token",
        google_access_token="tok-1",
        google_token_url="https://oauth.test/token",
        sync_debounce_seconds=2.5,
    )
    base.update(overrides)
    return Settings(_env_file=None, **base)


def fast_hash(password: str) -> str:
    return hash_password(password, iterations=1000)


# ---------------- timers ----------------

class FakeTimer:
    def __init__(self, interval: float, fn: Callable[[], Any]) -> None:
        self.interval = interval
        self.fn = fn
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.fn()


class TimerRecorder:
    """timer_factory stand-in: records timers, fires them on demand."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, fn: Callable[[], Any]) -> FakeTimer:
        t = FakeTimer(interval, fn)
        self.timers.append(t)
        return t

    @property
    def live(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled]

    def fire_pending(self) -> None:
        for t in self.live:
            t.cancelled = True
            t.fire()


# ---------------- spreadsheet backend ----------------

class FakeSheets:
    """In-memory Sheets v4 values API + OAuth token endpoint behind httpx.MockTransport."""

    def __init__(self) -> None:
        self.tabs: dict[str, list[list[Any]]] = {}
        self.fail_status: Optional[int] = None
        self.refreshes = 0
        self.writes = 0
        self.clears = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth.test":
            self.refreshes += 1
            return httpx.Response(200, json={"access_token": f"tok-{self.refreshes + 1}", "expires_in": 3600})

        if self.fail_status:
            return httpx.Response(self.fail_status, json={"error": {"code": self.fail_status}})

        path = unquote(request.url.path)
        rest = path[len(f"/v4/spreadsheets/{SPREADSHEET_ID}"):]

        if request.method == "GET" and rest == "":
            return httpx.Response(200, json={"sheets": [{"properties": {"title": t}} for t in self.tabs]})

        if request.method == "POST" and rest == ":batchUpdate":
            body = json.loads(request.content)
            for r in body["requests"]:
                self.tabs.setdefault(r["addSheet"]["properties"]["title"], [])
            return httpx.Response(200, json={"replies": []})

        if request.method == "GET" and rest == "/values:batchGet":
            names = [r.strip("'") for r in request.url.params.get_list("ranges")]
            ranges = []
            for n in names:
                vr: dict[str, Any] = {"range": f"'{n}'!A1:Z1000"}
                if self.tabs.get(n):
                    vr["values"] = self.tabs[n]
                ranges.append(vr)
            return httpx.Response(200, json={"spreadsheetId": SPREADSHEET_ID, "valueRanges": ranges})

        if rest.startswith("/values/"):
            rng = rest[len("/values/"):]
            if request.method == "POST" and rng.endswith(":clear"):
                self.tabs[rng[: -len(":clear")].strip("'")] = []
                self.clears += 1
                return httpx.Response(200, json={})
            if request.method == "PUT":
                body = json.loads(request.content)
                self.tabs[rng.strip("'")] = body["values"]
                self.writes += 1
                return httpx.Response(200, json={"updatedRows": len(body["values"])})

        return httpx.Response(404, json={"error": "unknown route"})


# ---------------- fixtures ----------------

@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    engine.dispose()


@pytest.fixture
def cache(session_factory) -> LocalCache:
    return LocalCache(session_factory, cfg=make_settings())


@pytest.fixture
def timers() -> TimerRecorder:
    return TimerRecorder()


@pytest.fixture
def fake_sheets() -> FakeSheets:
    return FakeSheets()


@pytest.fixture
def sheets_client(fake_sheets) -> SheetsClient:
    return SheetsClient(make_settings(), transport=httpx.MockTransport(fake_sheets.handler))


@pytest.fixture
def make_sync(cache, sheets_client, timers):
    def _make(*, sheets: Any = "default") -> SyncManager:
        client = sheets_client if sheets == "default" else sheets
        return SyncManager(cache, client, debounce_seconds=2.5, timer_factory=timers)

    return _make


@pytest.fixture
def store(make_sync) -> RentalStore:
    """Demo-seeded store wired to the fake spreadsheet. Nothing pushed yet."""
    s = RentalStore(make_sync(), hasher=fast_hash)
    s.boot(seed_demo=True)
    return s


@pytest.fixture
def offline_store(make_sync) -> RentalStore:
    s = RentalStore(make_sync(sheets=None), hasher=fast_hash)
    s.boot(seed_demo=True)
    return s
