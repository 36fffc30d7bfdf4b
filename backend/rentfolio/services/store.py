# backend/rentfolio/services/store.py
from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime
from typing import Callable, Iterable, Optional

from ..clients.sheets import SheetsClient
from ..config import Settings, settings as default_settings
from ..domain.clock import as_utc, to_iso, utc_now
from ..domain.errors import NotFoundError, PermissionDenied, ValidationError
from ..domain.schema_rules import (
    normalize_columns,
    validate_property_type,
    validate_record_values,
    validate_user_name,
)
from ..domain.state import RentalState
from ..domain.tombstones import property_cascade_ids, record_cascade_ids
from ..domain.unit_history import roll_history, start_interval
from ..schemas import (
    ONE_TIME_MONTH,
    AppConfig,
    ColumnDefinitionIn,
    Payment,
    PaymentStatus,
    PaymentType,
    Property,
    PropertyRecord,
    PropertyType,
    RecordValue,
    User,
    UserRole,
)
from ..seed.demo import bootstrap_admin, demo_state
from .auth_service import hash_password, verify_password
from .local_cache import LocalCache
from .sync_manager import LoadResult, SyncManager

log = logging.getLogger("rentfolio.store")

CONFIG_OPTION_FIELDS = {"paid_to": "paid_to_options", "payment_mode": "payment_mode_options"}


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _dedupe(options: Iterable[str]) -> list[str]:
    out: list[str] = []
    for o in options:
        s = (o or "").strip()
        if s and s not in out:
            out.append(s)
    return out


class RentalStore:
    """
    The live application state and every mutation on it.

    Mutations run under one re-entrant lock and replace collections rather
    than editing them in place, so readers always see whole lists. Each
    mutation ends in _commit(): tombstones, local persist, debounced push.
    """

    def __init__(
        self,
        sync: SyncManager,
        *,
        hasher: Callable[[str], str] = hash_password,
        verifier: Callable[[str, str], bool] = verify_password,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.sync = sync
        self._hasher = hasher
        self._verifier = verifier
        self._clock = clock
        self._lock = threading.RLock()
        self._state = RentalState()
        sync.attach(self.snapshot)

    # ---------------- state access ----------------

    @property
    def state(self) -> RentalState:
        return self._state

    def snapshot(self) -> RentalState:
        with self._lock:
            return self._state.copy()

    def _now_iso(self) -> str:
        return to_iso(self._clock())

    def _commit(self, tombstones: Iterable[str] = ()) -> None:
        ids = list(tombstones)
        if ids:
            self.sync.add_tombstones(ids)
        self.sync.persist(self._state)
        self.sync.schedule_push()

    # ---------------- boot / reload ----------------

    def boot(self, *, seed_demo: bool = True, admin_password: str = "admin123") -> LoadResult:
        result = self.sync.load()
        with self._lock:
            self._state = result.state
            if self._state.is_empty() and seed_demo:
                self._state = demo_state(self._hasher)
                log.info("seeded demo data")
                self._commit()
            elif not self._state.users:
                self._state.users = [bootstrap_admin(self._hasher, admin_password)]
                log.warning("no users found, bootstrapped admin account")
                self._commit()
            else:
                self.sync.persist(self._state)
        return result

    def reload(self) -> LoadResult:
        result = self.sync.reload()
        with self._lock:
            if result.source != "empty":
                self._state = result.state
                self.sync.persist(self._state)
        return result

    # ---------------- lookups ----------------

    def must_get_property(self, property_id: str) -> Property:
        prop = self._state.find_property(property_id)
        if prop is None:
            raise NotFoundError("property not found")
        return prop

    def must_get_record(self, record_id: str) -> PropertyRecord:
        rec = self._state.find_record(record_id)
        if rec is None:
            raise NotFoundError("unit not found")
        return rec

    def must_get_property_type(self, type_id: str) -> PropertyType:
        pt = self._state.find_property_type(type_id)
        if pt is None:
            raise NotFoundError("property type not found")
        return pt

    # ---------------- property types ----------------

    def add_property_type(self, name: str, columns: list[ColumnDefinitionIn], default_due_day: int = 5) -> PropertyType:
        cols = normalize_columns(columns, lambda: new_id("col"))
        validate_property_type(name, cols)
        pt = PropertyType(id=new_id("pt"), name=name.strip(), columns=cols, default_due_date_day=default_due_day)
        with self._lock:
            self._state.property_types = self._state.property_types + [pt]
            self._commit()
        log.info("property type added", extra={"property_id": pt.id})
        return pt

    def update_property_type(
        self, type_id: str, name: str, columns: list[ColumnDefinitionIn], default_due_day: int = 5
    ) -> PropertyType:
        cols = normalize_columns(columns, lambda: new_id("col"))
        validate_property_type(name, cols)
        with self._lock:
            self.must_get_property_type(type_id)
            pt = PropertyType(id=type_id, name=name.strip(), columns=cols, default_due_date_day=default_due_day)
            self._state.property_types = [pt if t.id == type_id else t for t in self._state.property_types]
            self._commit()
        return pt

    def delete_property_type(self, type_id: str) -> None:
        with self._lock:
            self.must_get_property_type(type_id)
            self._state.property_types = [t for t in self._state.property_types if t.id != type_id]
            self._commit([type_id])

    # ---------------- properties ----------------

    def add_property(self, name: str, property_type_id: str, address: str = "") -> Property:
        if not (name or "").strip():
            raise ValidationError("Property name is required.", {"name": "required"})
        with self._lock:
            self.must_get_property_type(property_type_id)
            prop = Property(
                id=new_id("p"),
                name=name.strip(),
                property_type_id=property_type_id,
                address=(address or "").strip(),
                created_at=self._now_iso(),
                is_visible_to_manager=True,
            )
            self._state.properties = self._state.properties + [prop]
            self._commit()
        log.info("property added", extra={"property_id": prop.id})
        return prop

    def update_property(
        self,
        property_id: str,
        *,
        name: Optional[str] = None,
        address: Optional[str] = None,
        total_investment: Optional[float] = None,
    ) -> Property:
        changes: dict[str, object] = {}
        if name is not None:
            if not name.strip():
                raise ValidationError("Property name is required.", {"name": "required"})
            changes["name"] = name.strip()
        if address is not None:
            changes["address"] = address.strip()
        if total_investment is not None:
            if total_investment < 0:
                raise ValidationError("Investment cannot be negative.", {"totalInvestment": "negative"})
            changes["total_investment"] = float(total_investment)
        with self._lock:
            prop = self.must_get_property(property_id).model_copy(update=changes)
            self._state.properties = [prop if p.id == property_id else p for p in self._state.properties]
            self._commit()
        return prop

    def toggle_property_visibility(self, property_id: str) -> Property:
        with self._lock:
            cur = self.must_get_property(property_id)
            prop = cur.model_copy(update={"is_visible_to_manager": not cur.is_visible_to_manager})
            self._state.properties = [prop if p.id == property_id else p for p in self._state.properties]
            self._commit()
        return prop

    def delete_property(self, property_id: str) -> set[str]:
        """Remove the property and everything under it. Returns the tombstoned ids."""
        with self._lock:
            self.must_get_property(property_id)
            s = self._state
            dead = property_cascade_ids(s, property_id)
            s.properties = [p for p in s.properties if p.id != property_id]
            s.records = [r for r in s.records if r.id not in dead]
            s.record_values = [v for v in s.record_values if v.id not in dead]
            s.payments = [p for p in s.payments if p.id not in dead]
            s.unit_history = [h for h in s.unit_history if h.id not in dead]
            self._commit(dead)
        log.info("property deleted", extra={"property_id": property_id, "rows": len(dead)})
        return dead

    # ---------------- units ----------------

    def _value_rows(self, record_id: str, values: dict[str, str]) -> list[RecordValue]:
        return [
            RecordValue(id=new_id("v"), record_id=record_id, column_id=col_id, value=val)
            for col_id, val in values.items()
        ]

    def add_record(
        self, property_id: str, values: dict[str, str], effective_from: Optional[datetime] = None
    ) -> PropertyRecord:
        with self._lock:
            self.must_get_property(property_id)
            pt = self._state.type_for_property(property_id)
            if pt is None:
                raise NotFoundError("property type not found")
            clean = validate_record_values(pt, values)

            now = self._now_iso()
            rec = PropertyRecord(id=new_id("r"), property_id=property_id, created_at=now, updated_at=now)
            start = as_utc(effective_from) or self._clock()
            s = self._state
            s.records = s.records + [rec]
            s.record_values = s.record_values + self._value_rows(rec.id, clean)
            s.unit_history = s.unit_history + [
                start_interval(history_id=new_id("h"), record_id=rec.id, values=clean, effective_from=start)
            ]
            self._commit()
        log.info("unit added", extra={"property_id": property_id, "record_id": rec.id})
        return rec

    def update_record(
        self, record_id: str, values: dict[str, str], effective_from: Optional[datetime] = None
    ) -> PropertyRecord:
        """Replace every value of the unit and roll its history at effective_from (default now)."""
        with self._lock:
            rec = self.must_get_record(record_id)
            pt = self._state.type_for_property(rec.property_id)
            if pt is None:
                raise NotFoundError("property type not found")
            clean = validate_record_values(pt, values)

            s = self._state
            replaced = [v.id for v in s.record_values if v.record_id == record_id]
            s.record_values = [v for v in s.record_values if v.record_id != record_id] + self._value_rows(
                record_id, clean
            )
            s.unit_history = roll_history(
                s.unit_history,
                record_id=record_id,
                values=clean,
                effective_from=as_utc(effective_from) or self._clock(),
                new_history_id=new_id("h"),
            )
            rec = rec.model_copy(update={"updated_at": self._now_iso()})
            s.records = [rec if r.id == record_id else r for r in s.records]
            self._commit(replaced)
        log.info("unit updated", extra={"record_id": record_id})
        return rec

    def delete_record(self, record_id: str) -> set[str]:
        with self._lock:
            self.must_get_record(record_id)
            s = self._state
            dead = record_cascade_ids(s, record_id)
            s.records = [r for r in s.records if r.id != record_id]
            s.record_values = [v for v in s.record_values if v.id not in dead]
            s.payments = [p for p in s.payments if p.id not in dead]
            s.unit_history = [h for h in s.unit_history if h.id not in dead]
            self._commit(dead)
        log.info("unit deleted", extra={"record_id": record_id, "rows": len(dead)})
        return dead

    # ---------------- payments ----------------

    def toggle_payment(
        self,
        record_id: str,
        month: str,
        amount: float,
        *,
        due_date: str = "N/A",
        payment_type: PaymentType = PaymentType.RENT,
        paid_to: Optional[str] = None,
        payment_mode: Optional[str] = None,
    ) -> Optional[Payment]:
        """
        Remove the payment for (record, month, type) if there is one, else record a PAID one.
        Returns the new payment, or None when one was removed.
        """
        if payment_type == PaymentType.DEPOSIT:
            month = ONE_TIME_MONTH
        if amount < 0:
            raise ValidationError("Amount cannot be negative", {"amount": "negative"})

        with self._lock:
            self.must_get_record(record_id)
            s = self._state
            existing = next(
                (p for p in s.payments if p.record_id == record_id and p.month == month and p.type == payment_type), None
            )
            if existing is not None:
                s.payments = [p for p in s.payments if p.id != existing.id]
                self._commit([existing.id])
                log.info("payment removed", extra={"record_id": record_id})
                return None

            pay = Payment(
                id=new_id("pay"),
                record_id=record_id,
                month=month,
                amount=float(amount),
                status=PaymentStatus.PAID,
                type=payment_type,
                due_date=due_date or "N/A",
                paid_at=self._now_iso(),
                paid_to=paid_to,
                payment_mode=payment_mode,
            )
            s.payments = s.payments + [pay]
            self._commit()
        log.info("payment recorded", extra={"record_id": record_id})
        return pay

    def refund_deposit(self, record_id: str) -> Payment:
        with self._lock:
            self.must_get_record(record_id)
            s = self._state
            deposit = next(
                (
                    p
                    for p in s.payments
                    if p.record_id == record_id and p.type == PaymentType.DEPOSIT and p.status == PaymentStatus.PAID
                ),
                None,
            )
            if deposit is None:
                raise NotFoundError("no paid deposit for this unit")
            if deposit.is_refunded:
                return deposit
            refunded = deposit.model_copy(update={"is_refunded": True, "refunded_at": self._now_iso()})
            s.payments = [refunded if p.id == deposit.id else p for p in s.payments]
            self._commit()
        log.info("deposit refunded", extra={"record_id": record_id})
        return refunded

    # ---------------- config ----------------

    def update_config(
        self, *, paid_to_options: Optional[list[str]] = None, payment_mode_options: Optional[list[str]] = None
    ) -> AppConfig:
        with self._lock:
            changes: dict[str, list[str]] = {}
            if paid_to_options is not None:
                changes["paid_to_options"] = _dedupe(paid_to_options)
            if payment_mode_options is not None:
                changes["payment_mode_options"] = _dedupe(payment_mode_options)
            self._state.config = self._state.config.model_copy(update=changes)
            self._commit()
            return self._state.config

    def add_config_option(self, kind: str, option: str) -> AppConfig:
        field = CONFIG_OPTION_FIELDS.get(kind)
        if field is None:
            raise NotFoundError(f"unknown option list '{kind}'")
        if not (option or "").strip():
            raise ValidationError("Option cannot be empty", {"option": "required"})
        with self._lock:
            current = getattr(self._state.config, field)
            return self.update_config(**{field: current + [option]})

    def remove_config_option(self, kind: str, option: str) -> AppConfig:
        field = CONFIG_OPTION_FIELDS.get(kind)
        if field is None:
            raise NotFoundError(f"unknown option list '{kind}'")
        with self._lock:
            current = getattr(self._state.config, field)
            return self.update_config(**{field: [o for o in current if o != option]})

    # ---------------- users ----------------

    def find_user_by_username(self, username: str) -> Optional[User]:
        key = (username or "").strip().lower()
        return next((u for u in self._state.users if u.username == key), None)

    def authenticate(self, username: str, password: str) -> Optional[User]:
        user = self.find_user_by_username(username)
        if user is None or not self._verifier(password, user.password_hash):
            return None
        return user

    def add_user(self, name: str, username: str, password: str, role: UserRole = UserRole.MANAGER) -> User:
        name = (name or "").strip()
        username = (username or "").strip().lower()
        validate_user_name(name)
        if not username:
            raise ValidationError("Username is required", {"username": "required"})
        if not password:
            raise ValidationError("Password is required", {"password": "required"})
        with self._lock:
            if self.find_user_by_username(username) is not None:
                raise ValidationError("Username already exists", {"username": "taken"})
            user = User(
                id=new_id("u"),
                username=username,
                name=name,
                role=role,
                password_hash=self._hasher(password),
                created_at=self._now_iso(),
            )
            self._state.users = self._state.users + [user]
            self._commit()
        log.info("user added", extra={"user_id": user.id, "role": role.value})
        return user

    def delete_user(self, user_id: str, *, acting_user_id: str) -> None:
        with self._lock:
            user = self._state.find_user(user_id)
            if user is None:
                raise NotFoundError("user not found")
            if user_id == acting_user_id:
                raise PermissionDenied("You cannot delete your own account")
            admins = [u for u in self._state.users if u.role == UserRole.ADMIN]
            if user.role == UserRole.ADMIN and len(admins) <= 1:
                raise PermissionDenied("Cannot delete the last administrator")
            self._state.users = [u for u in self._state.users if u.id != user_id]
            self._commit([user_id])
        log.info("user deleted", extra={"user_id": user_id})


def build_store(
    cfg: Optional[Settings] = None,
    *,
    cache=None,
    sheets=None,
    timer_factory=None,
) -> RentalStore:
    """Wire cache + spreadsheet client + sync manager into a store. Does not boot it."""
    cfg = cfg or default_settings
    cache = cache or LocalCache(cfg=cfg)
    if sheets is None and cfg.sheets_configured():
        sheets = SheetsClient(cfg)

    kwargs = {"debounce_seconds": cfg.sync_debounce_seconds}
    if timer_factory is not None:
        kwargs["timer_factory"] = timer_factory
    sync = SyncManager(cache, sheets, **kwargs)
    return RentalStore(sync, hasher=lambda pw: hash_password(pw, iterations=cfg.pbkdf2_iterations))
