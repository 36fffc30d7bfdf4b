# backend/rentfolio/services/sync_manager.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from ..clients.sheets import SheetsAuthError, SheetsClient, SheetsError
from ..domain.clock import utc_now_iso
from ..domain.fingerprint import state_hash
from ..domain.state import RentalState
from ..domain.tabs import TAB_NAMES, decode_state, encode_state
from ..domain.tombstones import apply_tombstones
from .local_cache import LocalCache

log = logging.getLogger("rentfolio.sync")


class SyncStatus(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"
    REAUTH = "reauth"
    OFFLINE = "offline"


@dataclass(frozen=True)
class LoadResult:
    state: RentalState
    source: str  # remote | cache | empty
    removed: int = 0


TimerFactory = Callable[[float, Callable[[], Any]], Any]


class SyncManager:
    """
    Keeps in-memory state, the local cache and the remote spreadsheet roughly consistent.

    - persist(): writes the snapshot locally, but only once load() has completed
    - schedule_push(): debounced; every call restarts the timer
    - push(): full replace of every tab, skipped when the content hash is unchanged
    - tombstones only grow

    Local state is authoritative. Remote failures only change status.
    """

    def __init__(
        self,
        cache: LocalCache,
        sheets: Optional[SheetsClient] = None,
        *,
        debounce_seconds: float = 2.5,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self.cache = cache
        self.sheets = sheets if sheets is not None and sheets.enabled() else None
        self.debounce_seconds = float(debounce_seconds)
        self._timer_factory = timer_factory

        self._lock = threading.Lock()
        self._timer: Any = None
        self._state_getter: Optional[Callable[[], RentalState]] = None

        self.hydrated = False
        self.in_flight = False
        self.status = SyncStatus.IDLE if self.sheets else SyncStatus.OFFLINE
        self.last_error: Optional[str] = None
        self.last_synced_at: Optional[str] = None
        self.last_pushed_hash: Optional[str] = None
        self.tombstones: set[str] = cache.load_tombstones()

    @property
    def configured(self) -> bool:
        return self.sheets is not None

    def attach(self, state_getter: Callable[[], RentalState]) -> None:
        """Register the callable that returns the state to push when the timer fires."""
        self._state_getter = state_getter

    def _set_status(self, status: SyncStatus, error: Optional[str] = None) -> None:
        self.status = status
        self.last_error = error
        log.info("sync status changed", extra={"sync_status": status.value})

    # ---------------- load ----------------

    def load(self) -> LoadResult:
        """
        Boot-time load: remote first, local cache as fallback, tombstones filtered from either.
        Marks the manager hydrated, which enables persist().
        """
        result: Optional[LoadResult] = None

        if self.sheets is not None:
            try:
                self._set_status(SyncStatus.SYNCING)
                tabs = self.sheets.batch_get(TAB_NAMES)
                remote, removed = apply_tombstones(decode_state(tabs), self.tombstones)
                if not remote.is_empty():
                    # remote content is already "pushed"
                    self.last_pushed_hash = state_hash(remote)
                    self.last_synced_at = utc_now_iso()
                    result = LoadResult(remote, "remote", removed)
                self._set_status(SyncStatus.SYNCED)
            except SheetsAuthError as e:
                self._handle_auth_failure(e)
            except SheetsError as e:
                log.warning("remote load failed, using local cache: %s", e)
                self._set_status(SyncStatus.ERROR, str(e))

        if result is None:
            cached = self.cache.load_snapshot()
            if cached is not None and not cached.is_empty():
                state, removed = apply_tombstones(cached, self.tombstones)
                result = LoadResult(state, "cache", removed)
            else:
                result = LoadResult(RentalState(), "empty", 0)

        self.hydrated = True
        log.info("state loaded from %s", result.source, extra={"sync_status": self.status.value, "rows": result.removed})
        return result

    # ---------------- local persistence ----------------

    def persist(self, state: RentalState) -> bool:
        """Write the snapshot to local storage. No-op before the first load has completed."""
        if not self.hydrated:
            return False
        self.cache.save_snapshot(state)
        return True

    def add_tombstones(self, ids: Iterable[str]) -> None:
        new = {str(i) for i in ids} - self.tombstones
        if not new:
            return
        self.tombstones |= new
        self.cache.save_tombstones(self.tombstones)

    # ---------------- debounced push ----------------

    def schedule_push(self) -> bool:
        """(Re)start the debounce timer. Returns False when nothing was scheduled."""
        if self.sheets is None or not self.hydrated:
            return False
        with self._lock:
            if self.in_flight:
                return False
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self.debounce_seconds, self._on_timer)
            if hasattr(timer, "daemon"):
                timer.daemon = True
            self._timer = timer
        timer.start()
        return True

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    def _on_timer(self) -> None:
        with self._lock:
            self._timer = None
        if self._state_getter is None:
            log.warning("push timer fired with no state attached")
            return
        self.push(self._state_getter())

    def cancel_timer(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def push(self, state: Optional[RentalState] = None, *, force: bool = False) -> bool:
        """
        Full-replace every tab with the given state.
        Returns True when a remote write happened.
        """
        if self.sheets is None:
            return False
        if state is None:
            if self._state_getter is None:
                return False
            state = self._state_getter()

        digest = state_hash(state)
        with self._lock:
            if self.in_flight:
                log.info("push skipped, another push is in flight")
                return False
            if not force and digest == self.last_pushed_hash:
                log.debug("push skipped, content unchanged")
                return False
            self.in_flight = True

        self._set_status(SyncStatus.SYNCING)
        try:
            tabs = encode_state(state)
            self.sheets.ensure_tabs(TAB_NAMES)
            for name in TAB_NAMES:
                self.sheets.replace_tab(name, tabs[name])
            self.last_pushed_hash = digest
            self.last_synced_at = utc_now_iso()
            self._set_status(SyncStatus.SYNCED)
            return True
        except SheetsAuthError as e:
            self._handle_auth_failure(e)
            return False
        except SheetsError as e:
            log.error("push failed: %s", e)
            self._set_status(SyncStatus.ERROR, str(e))
            return False
        except Exception as e:
            log.exception("push failed unexpectedly")
            self._set_status(SyncStatus.ERROR, str(e))
            return False
        finally:
            with self._lock:
                self.in_flight = False

    def _handle_auth_failure(self, e: SheetsAuthError) -> None:
        self._set_status(SyncStatus.REAUTH, str(e))
        refreshed = self.sheets.tokens.refresh() if self.sheets is not None else False
        log.warning("spreadsheet auth rejected, silent refresh %s", "succeeded" if refreshed else "failed")

    # ---------------- manual controls ----------------

    def flush(self) -> bool:
        """Cancel a pending timer and push now (hash check still applies)."""
        pending = self.timer_pending
        self.cancel_timer()
        if not pending:
            return False
        return self.push()

    def reload(self) -> LoadResult:
        self.cancel_timer()
        return self.load()

    def shutdown(self) -> None:
        self.flush()

    def snapshot(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "configured": self.configured,
            "hydrated": self.hydrated,
            "in_flight": self.in_flight,
            "timer_pending": self.timer_pending,
            "last_error": self.last_error,
            "last_synced_at": self.last_synced_at,
            "last_pushed_hash": self.last_pushed_hash,
            "tombstones": len(self.tombstones),
        }
