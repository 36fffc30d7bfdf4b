from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from ..config import Settings, settings as default_settings
from .google_oauth import GoogleTokenProvider

log = logging.getLogger("rentfolio.sheets")


class SheetsError(RuntimeError):
    """Any failure talking to the spreadsheet other than an authorization failure."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SheetsAuthError(SheetsError):
    """HTTP 401 from the spreadsheet API: the access token is missing, expired or revoked."""


def _a1(tab: str) -> str:
    # whole-tab range; quotes keep names with spaces valid
    return quote(f"'{tab}'", safe="")


class SheetsClient:
    """
    Minimal Sheets v4 values API client.

    Row 1 of every tab is the header. Values are read unformatted and written
    RAW, so strings round-trip without locale parsing.
    """

    def __init__(
        self,
        cfg: Optional[Settings] = None,
        *,
        tokens: Optional[GoogleTokenProvider] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.cfg = cfg or default_settings
        self.base = self.cfg.sheets_base_url.rstrip("/")
        self.spreadsheet_id = self.cfg.sheets_spreadsheet_id
        self.tokens = tokens or GoogleTokenProvider(self.cfg, transport=transport)
        self._transport = transport

    def enabled(self) -> bool:
        return bool(self.spreadsheet_id)

    # ---------------- plumbing ----------------

    def _url(self, suffix: str) -> str:
        return f"{self.base}/{self.spreadsheet_id}{suffix}"

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        if not self.enabled():
            raise SheetsError("spreadsheet id not configured")

        token = self.tokens.access_token()
        if not token:
            raise SheetsAuthError("no google access token", status_code=401)

        headers = {"Authorization": f"Bearer {token}"}
        try:
            with httpx.Client(timeout=self.cfg.sync_http_timeout_seconds, transport=self._transport) as client:
                r = client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise SheetsError(f"{method} {url} failed: {e}") from e

        if r.status_code == 401:
            raise SheetsAuthError("spreadsheet rejected the access token", status_code=401)
        if r.status_code >= 400:
            raise SheetsError(f"{method} {url} -> HTTP {r.status_code}: {r.text[:300]}", status_code=r.status_code)

        if not r.content:
            return {}
        try:
            return r.json()
        except ValueError as e:
            raise SheetsError(f"{method} {url} returned non-JSON body") from e

    # ---------------- operations ----------------

    def tab_titles(self) -> list[str]:
        body = self._request("GET", self._url(""), params={"fields": "sheets.properties.title"})
        return [s.get("properties", {}).get("title", "") for s in body.get("sheets", [])]

    def ensure_tabs(self, names: list[str] | tuple[str, ...]) -> list[str]:
        """Create any missing tabs. Returns the names that were added."""
        existing = set(self.tab_titles())
        missing = [n for n in names if n not in existing]
        if missing:
            requests = [{"addSheet": {"properties": {"title": n}}} for n in missing]
            self._request("POST", self._url(":batchUpdate"), json={"requests": requests})
            log.info("created spreadsheet tabs", extra={"tab": ",".join(missing)})
        return missing

    def batch_get(self, tabs: list[str] | tuple[str, ...]) -> dict[str, list[list[Any]]]:
        """All rows of every named tab, keyed by tab name. Missing/empty tabs map to []."""
        params: list[tuple[str, str]] = [("valueRenderOption", "UNFORMATTED_VALUE")]
        params += [("ranges", f"'{t}'") for t in tabs]
        body = self._request("GET", self._url("/values:batchGet"), params=params)

        out: dict[str, list[list[Any]]] = {t: [] for t in tabs}
        for t, vr in zip(tabs, body.get("valueRanges", [])):
            out[t] = vr.get("values", []) or []
        return out

    def clear_tab(self, tab: str) -> None:
        self._request("POST", self._url(f"/values/{_a1(tab)}:clear"), json={})

    def write_tab(self, tab: str, rows: list[list[Any]]) -> None:
        self._request(
            "PUT",
            self._url(f"/values/{_a1(tab)}"),
            params={"valueInputOption": "RAW"},
            json={"range": f"'{tab}'", "majorDimension": "ROWS", "values": rows},
        )

    def replace_tab(self, tab: str, rows: list[list[Any]]) -> None:
        """Full replace: clear the whole tab, then write header + rows from A1."""
        self.clear_tab(tab)
        self.write_tab(tab, rows)
        log.debug("replaced tab", extra={"tab": tab, "rows": max(0, len(rows) - 1)})
