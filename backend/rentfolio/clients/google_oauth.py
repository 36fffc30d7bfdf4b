from __future__ import annotations

import logging
import threading
import time
from typing import Optional

import httpx

from ..config import Settings, settings as default_settings

log = logging.getLogger("rentfolio.google_oauth")


class GoogleTokenProvider:
    """
    Holds the current access token and performs the silent refresh-token grant.
    No consent flow: a refresh token must already be configured.
    """

    def __init__(self, cfg: Optional[Settings] = None, *, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.cfg = cfg or default_settings
        self.token_url = self.cfg.google_token_url
        self._transport = transport
        self._lock = threading.Lock()
        self._access_token: Optional[str] = self.cfg.google_access_token
        self._expires_at: Optional[float] = None

    def can_refresh(self) -> bool:
        return bool(self.cfg.google_client_id and self.cfg.google_client_secret and self.cfg.google_refresh_token)

    def access_token(self) -> Optional[str]:
        with self._lock:
            expired = self._expires_at is not None and time.time() >= self._expires_at
        if (self._access_token is None or expired) and self.can_refresh():
            self.refresh()
        return self._access_token

    def refresh(self) -> bool:
        """Exchange the refresh token for a new access token. Returns False on any failure."""
        if not self.can_refresh():
            log.warning("token refresh skipped: google oauth client not configured")
            return False

        data = {
            "grant_type": "refresh_token",
            "client_id": self.cfg.google_client_id,
            "client_secret": self.cfg.google_client_secret,
            "refresh_token": self.cfg.google_refresh_token,
        }
        try:
            with httpx.Client(timeout=self.cfg.sync_http_timeout_seconds, transport=self._transport) as client:
                r = client.post(self.token_url, data=data)
                r.raise_for_status()
                body = r.json()
        except (httpx.HTTPError, ValueError) as e:
            log.warning("token refresh failed: %s", e)
            return False

        token = body.get("access_token")
        if not token:
            log.warning("token refresh response had no access_token")
            return False

        expires_in = body.get("expires_in")
        with self._lock:
            self._access_token = str(token)
            # renew a minute early
            self._expires_at = time.time() + float(expires_in) - 60 if expires_in else None
        log.info("google access token refreshed")
        return True
