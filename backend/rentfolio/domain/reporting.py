# backend/rentfolio/domain/reporting.py
from __future__ import annotations

import calendar
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Optional

from ..schemas import (
    ColumnDefinition,
    ColumnType,
    Payment,
    PaymentStatus,
    PaymentType,
    Property,
    PropertyRecord,
    PropertyType,
    UserRole,
)
from .clock import month_key, parse_instant
from .errors import ValidationError
from .state import RentalState

PERIOD_KINDS = ("monthly", "annual", "custom")
DEFAULT_DUE_DAY = 5
ACTIVE_STATUSES = ("active", "occupied")


def _num(v: Any) -> float:
    try:
        return float(str(v).strip())
    except (TypeError, ValueError):
        return 0.0


def _round(v: float) -> float:
    return round(float(v), 2)


@dataclass(frozen=True)
class Period:
    """
    Report window.
    monthly -> month "YYYY-MM"; annual -> year "YYYY"; custom -> start/end dates, end inclusive.
    """

    kind: str = "monthly"
    month: Optional[str] = None
    year: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None

    @classmethod
    def build(
        cls,
        kind: str,
        *,
        month: Optional[str] = None,
        year: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        today: Optional[date] = None,
    ) -> "Period":
        today = today or date.today()
        kind = (kind or "monthly").lower()
        if kind not in PERIOD_KINDS:
            raise ValidationError(f"Unknown period '{kind}'", {"period": "must be monthly, annual or custom"})
        if kind == "monthly":
            m = month or month_key(today)
            try:
                if len(m) != 7:
                    raise ValueError(m)
                datetime.strptime(m, "%Y-%m")
            except ValueError:
                raise ValidationError("month must be YYYY-MM", {"month": m}) from None
            return cls(kind=kind, month=m)
        if kind == "annual":
            y = year or str(today.year)
            if len(y) != 4 or not y.isdigit():
                raise ValidationError("year must be YYYY", {"year": y})
            return cls(kind=kind, year=y)
        if start is None or end is None:
            raise ValidationError("custom period needs start and end", {"start": "required", "end": "required"})
        if end < start:
            raise ValidationError("end must not be before start", {"end": "before start"})
        return cls(kind=kind, start=start, end=end)

    def range_multiplier(self, today: Optional[date] = None) -> int:
        """How many months of rent the window is expected to cover."""
        today = today or date.today()
        if self.kind == "annual":
            return today.month if self.year == str(today.year) else 12
        if self.kind == "custom":
            days = abs((self.end - self.start).days)
            return max(1, math.ceil(days / 30))
        return 1

    def _in_custom_window(self, paid_at: Optional[str]) -> bool:
        pd = parse_instant(paid_at)
        if pd is None:
            return False
        lo = datetime.combine(self.start, time.min, tzinfo=timezone.utc)
        hi = datetime.combine(self.end, time.max, tzinfo=timezone.utc)
        return lo <= pd <= hi

    def covers_rent(self, p: Payment) -> bool:
        """RENT / ELECTRICITY are scoped by ledger month, except in custom windows (paid date)."""
        if self.kind == "monthly":
            return p.month == self.month
        if self.kind == "annual":
            return p.month.startswith(self.year)
        return self._in_custom_window(p.paid_at)

    def covers_paid_date(self, p: Payment) -> bool:
        if self.kind == "monthly":
            return (p.paid_at or "").startswith(self.month)
        if self.kind == "annual":
            return (p.paid_at or "").startswith(self.year)
        return self._in_custom_window(p.paid_at)

    def covers(self, p: Payment) -> bool:
        if p.type == PaymentType.DEPOSIT:
            return self.covers_paid_date(p)
        return self.covers_rent(p)

    def as_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "month": self.month,
            "year": self.year,
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }


# ---------------- column helpers ----------------

def rent_column(pt: Optional[PropertyType]) -> Optional[ColumnDefinition]:
    if pt is None:
        return None
    return next((c for c in pt.ordered_columns() if c.is_rent_calculatable), None)


def column_of_type(pt: Optional[PropertyType], ctype: ColumnType) -> Optional[ColumnDefinition]:
    if pt is None:
        return None
    return next((c for c in pt.ordered_columns() if c.type == ctype), None)


def tenant_column(pt: Optional[PropertyType]) -> Optional[ColumnDefinition]:
    if pt is None:
        return None
    cols = pt.ordered_columns()
    return next((c for c in cols if "name" in c.name.lower()), cols[0] if cols else None)


def occupancy_column(pt: Optional[PropertyType]) -> Optional[ColumnDefinition]:
    if pt is None:
        return None
    for c in pt.ordered_columns():
        if c.type == ColumnType.OCCUPANCY_STATUS:
            return c
        if c.type == ColumnType.DROPDOWN and ("status" in c.name.lower() or "occupancy" in c.name.lower()):
            return c
    return None


def tenant_name(pt: Optional[PropertyType], record: PropertyRecord, values: dict[str, str]) -> str:
    col = tenant_column(pt)
    name = values.get(col.id, "") if col else ""
    return name or f"Unit {record.id[-3:]}"


def due_day(pt: Optional[PropertyType], values: dict[str, str]) -> int:
    col = column_of_type(pt, ColumnType.RENT_DUE_DAY)
    raw = values.get(col.id, "") if col else ""
    try:
        day = int(float(raw))
    except ValueError:
        day = 0
    if day:
        return day
    return (pt.default_due_date_day if pt else 0) or DEFAULT_DUE_DAY


def is_active(pt: Optional[PropertyType], values: dict[str, str]) -> Optional[bool]:
    """True active, False vacant, None for any other status value."""
    col = occupancy_column(pt)
    status = (values.get(col.id, "") if col else "").strip().lower() or "active"
    if status in ACTIVE_STATUSES:
        return True
    if status == "vacant":
        return False
    return None


# ---------------- scoping ----------------

def visible_properties(state: RentalState, role: UserRole) -> list[Property]:
    if role == UserRole.MANAGER:
        return [p for p in state.properties if p.is_visible_to_manager]
    return list(state.properties)


def _visible_records(state: RentalState, role: UserRole) -> tuple[dict[str, Property], list[PropertyRecord]]:
    props = {p.id: p for p in visible_properties(state, role)}
    return props, [r for r in state.records if r.property_id in props]


def _paid(state: RentalState, record_ids: set[str]) -> list[Payment]:
    return [p for p in state.payments if p.record_id in record_ids and p.status == PaymentStatus.PAID]


def _deadline(month: str, day: int) -> date:
    y, m = (int(x) for x in month.split("-"))
    last = calendar.monthrange(y, m)[1]
    return date(y, m, min(max(day, 1), last))


# ---------------- rent roll ----------------

def rent_roll(
    state: RentalState,
    role: UserRole,
    period: Period,
    *,
    search: str = "",
    property_id: Optional[str] = None,
    today: Optional[date] = None,
) -> list[dict[str, Any]]:
    today = today or date.today()
    props, records = _visible_records(state, role)
    paid = _paid(state, {r.id for r in records})
    needle = (search or "").strip().lower()

    rows: list[dict[str, Any]] = []
    for record in records:
        prop = props[record.property_id]
        pt = state.find_property_type(prop.property_type_id)
        values = state.values_for(record.id)

        rent_col = rent_column(pt)
        deposit_col = column_of_type(pt, ColumnType.SECURITY_DEPOSIT)
        rent = _num(values.get(rent_col.id, "0")) if rent_col else 0.0
        deposit = _num(values.get(deposit_col.id, "0")) if deposit_col else 0.0
        day = due_day(pt, values)
        name = tenant_name(pt, record, values)

        mine = [p for p in paid if p.record_id == record.id]
        rent_paid = any(p.type == PaymentType.RENT and period.covers_rent(p) for p in mine)
        deposit_payment = next((p for p in mine if p.type == PaymentType.DEPOSIT), None)

        if rent_paid:
            status = PaymentStatus.PAID
        elif period.kind == "monthly" and today > _deadline(period.month, day):
            status = PaymentStatus.OVERDUE
        else:
            status = PaymentStatus.PENDING

        if needle and needle not in name.lower() and needle not in prop.name.lower():
            continue
        if property_id and record.property_id != property_id:
            continue

        rows.append(
            {
                "recordId": record.id,
                "propertyId": prop.id,
                "propertyName": prop.name,
                "tenantName": name,
                "rentAmount": rent,
                "depositAmount": deposit,
                "dueDay": day,
                "isRentPaid": rent_paid,
                "isDepositPaid": deposit_payment is not None,
                "isDepositRefunded": bool(deposit_payment and deposit_payment.is_refunded),
                "hasDepositOwed": deposit > 0,
                "status": status.value,
                "values": values,
            }
        )
    return rows


# ---------------- collection stats ----------------

def collection_stats(
    state: RentalState,
    role: UserRole,
    period: Period,
    *,
    today: Optional[date] = None,
    roll: Optional[list[dict[str, Any]]] = None,
) -> dict[str, Any]:
    today = today or date.today()
    roll = roll if roll is not None else rent_roll(state, role, period, today=today)
    multiplier = period.range_multiplier(today)

    props, records = _visible_records(state, role)
    paid = _paid(state, {r.id for r in records})

    expected = sum(r["rentAmount"] * multiplier for r in roll)
    collected = sum(p.amount for p in paid if p.type == PaymentType.RENT and period.covers_rent(p))
    held = sum(p.amount for p in paid if p.type == PaymentType.DEPOSIT and not p.is_refunded)

    pending_by: dict[str, dict[str, Any]] = {}
    for r in roll:
        if r["isRentPaid"]:
            continue
        slot = pending_by.setdefault(r["propertyId"], {"propertyId": r["propertyId"], "name": r["propertyName"], "amount": 0.0})
        slot["amount"] += r["rentAmount"] * multiplier

    return {
        "period": period.as_dict(),
        "rangeMultiplier": multiplier,
        "expected": _round(expected),
        "collected": _round(collected),
        "pending": _round(max(0.0, expected - collected)),
        "progress": _round((collected / expected) * 100 if expected > 0 else 0.0),
        "heldDeposits": _round(held),
        "pendingByProperty": sorted(pending_by.values(), key=lambda x: x["amount"], reverse=True),
    }


# ---------------- dashboard ----------------

def dashboard_summary(state: RentalState, role: UserRole, *, today: Optional[date] = None) -> dict[str, Any]:
    today = today or date.today()
    current = month_key(today)
    props, records = _visible_records(state, role)
    record_ids = {r.id for r in records}
    paid = _paid(state, record_ids)

    expected = 0.0
    active = 0
    vacant = 0
    unpaid: list[dict[str, Any]] = []

    for record in records:
        prop = props[record.property_id]
        pt = state.find_property_type(prop.property_type_id)
        values = state.values_for(record.id)
        rent_col = rent_column(pt)
        amount = _num(values.get(rent_col.id, "0")) if rent_col else 0.0

        flag = is_active(pt, values)
        if flag is True:
            active += 1
            expected += amount
            settled = any(
                p.record_id == record.id and p.month == current and p.type == PaymentType.RENT for p in paid
            )
            if not settled:
                unpaid.append(
                    {
                        "recordId": record.id,
                        "amount": amount,
                        "propertyName": prop.name,
                        "tenant": tenant_name(pt, record, values),
                    }
                )
        elif flag is False:
            vacant += 1

    collected = sum(p.amount for p in paid if p.type == PaymentType.RENT and p.month == current)
    deposits = sum(
        p.amount
        for p in paid
        if p.type == PaymentType.DEPOSIT and not p.is_refunded and (p.paid_at or "").startswith(current)
    )

    return {
        "month": current,
        "totalProperties": len(props),
        "activeUnits": active,
        "vacantUnits": vacant,
        "monthlyRentExpected": _round(expected),
        "collectedThisMonth": _round(collected),
        "monthlyTotalCollected": _round(collected + deposits),
        "topUnpaid": sorted(unpaid, key=lambda u: u["amount"], reverse=True)[:5],
        "collectionRate": _round((collected / expected) * 100 if expected > 0 else 0.0),
        "occupancyRate": _round((active / (active + vacant)) * 100 if (active + vacant) > 0 else 0.0),
    }


def property_summary(state: RentalState, role: UserRole, *, today: Optional[date] = None) -> list[dict[str, Any]]:
    """Per visible property: this month's rent target vs collected."""
    current = month_key(today or date.today())
    out: list[dict[str, Any]] = []
    for prop in visible_properties(state, role):
        pt = state.find_property_type(prop.property_type_id)
        rent_ids = {c.id for c in pt.columns if c.is_rent_calculatable} if pt else set()
        record_ids = {r.id for r in state.records_for(prop.id)}
        target = sum(
            _num(v.value) for v in state.record_values if v.record_id in record_ids and v.column_id in rent_ids
        )
        collected = sum(
            p.amount
            for p in _paid(state, record_ids)
            if p.month == current and p.type == PaymentType.RENT
        )
        out.append({"propertyId": prop.id, "name": prop.name, "target": _round(target), "collected": _round(collected)})
    return out


# ---------------- payment analytics ----------------

def payment_analytics(
    state: RentalState,
    role: UserRole,
    period: Period,
    modality: PaymentType = PaymentType.RENT,
) -> dict[str, Any]:
    props, records = _visible_records(state, role)
    prop_of = {r.id: props[r.property_id].name for r in records}
    payments = [p for p in _paid(state, set(prop_of)) if period.covers(p)]

    by_date: dict[str, dict[str, Any]] = {}
    by_property: dict[str, float] = defaultdict(float)
    by_mode: dict[str, float] = defaultdict(float)
    by_recipient: dict[str, float] = defaultdict(float)
    matrix: dict[str, dict[str, float]] = defaultdict(lambda: defaultdict(float))
    totals = {"rent": 0.0, "deposits": 0.0, "electricity": 0.0, "refunds": 0.0}

    for p in payments:
        day = (p.paid_at or "").split("T")[0] or "Unknown"
        prop = prop_of.get(p.record_id, "Unknown")
        recipient = p.paid_to or "Unassigned"
        mode = p.payment_mode or "Cash"
        bucket = by_date.setdefault(day, {"date": day, "rent": 0.0, "deposit": 0.0, "electricity": 0.0, "refund": 0.0})
        focus = p.type == modality

        if p.type == PaymentType.DEPOSIT and p.is_refunded:
            totals["refunds"] += p.amount
            bucket["refund"] += p.amount
            if focus:
                by_property[prop] -= p.amount
                by_recipient[recipient] -= p.amount
            continue

        if p.type == PaymentType.RENT:
            totals["rent"] += p.amount
            bucket["rent"] += p.amount
        elif p.type == PaymentType.ELECTRICITY:
            totals["electricity"] += p.amount
            bucket["electricity"] += p.amount
        else:
            totals["deposits"] += p.amount
            bucket["deposit"] += p.amount

        if focus:
            by_property[prop] += p.amount
            by_mode[mode] += p.amount
            by_recipient[recipient] += p.amount
            matrix[recipient][mode] += p.amount

    def ranked(d: dict[str, float]) -> list[dict[str, Any]]:
        return sorted(({"name": k, "value": _round(v)} for k, v in d.items()), key=lambda x: x["value"], reverse=True)

    return {
        "period": period.as_dict(),
        "modality": modality.value,
        "totalRent": _round(totals["rent"]),
        "totalDeposits": _round(totals["deposits"]),
        "totalElectricity": _round(totals["electricity"]),
        "totalRefunds": _round(totals["refunds"]),
        "netFlow": _round(totals["rent"] + totals["deposits"] + totals["electricity"] - totals["refunds"]),
        "timeSeries": sorted(by_date.values(), key=lambda x: x["date"]),
        "byProperty": ranked(by_property),
        "byMode": ranked(by_mode),
        "byRecipient": ranked(by_recipient),
        "attributionMatrix": {r: {m: _round(v) for m, v in modes.items()} for r, modes in matrix.items()},
    }


# ---------------- capital insights ----------------

def capital_insights(state: RentalState) -> dict[str, Any]:
    """Lifetime revenue vs total investment per property. Admin-only data."""
    rows: list[dict[str, Any]] = []
    for prop in state.properties:
        record_ids = {r.id for r in state.records_for(prop.id)}
        revenue = sum(
            p.amount for p in _paid(state, record_ids) if p.type in (PaymentType.RENT, PaymentType.ELECTRICITY)
        )
        investment = prop.total_investment or 0.0
        rows.append(
            {
                "propertyId": prop.id,
                "name": prop.name,
                "lifetimeRevenue": _round(revenue),
                "investment": _round(investment),
                "profit": _round(revenue - investment),
                "roi": _round((revenue / investment) * 100 if investment > 0 else 0.0),
                "isBreakeven": investment > 0 and revenue >= investment,
            }
        )
    rows.sort(key=lambda r: r["lifetimeRevenue"], reverse=True)

    total_rev = sum(r["lifetimeRevenue"] for r in rows)
    total_inv = sum(r["investment"] for r in rows)
    return {
        "properties": rows,
        "portfolio": {
            "totalRevenue": _round(total_rev),
            "totalInvestment": _round(total_inv),
            "totalProfit": _round(total_rev - total_inv),
            "avgRoi": _round((total_rev / total_inv) * 100 if total_inv > 0 else 0.0),
        },
    }
