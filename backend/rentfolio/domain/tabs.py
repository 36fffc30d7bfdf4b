from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import ValidationError as PydanticValidationError

from ..schemas import (
    AppConfig,
    ColumnDefinition,
    Payment,
    Property,
    PropertyRecord,
    PropertyType,
    RecordValue,
    UnitHistory,
    User,
)
from .state import RentalState

log = logging.getLogger("rentfolio.tabs")

Row = list[Any]


def _s(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v)


def _opt(v: Any) -> str | None:
    s = _s(v).strip()
    return s or None


def _bool(v: Any, default: bool = False) -> bool:
    if isinstance(v, bool):
        return v
    s = _s(v).strip().lower()
    if not s:
        return default
    return s in ("true", "1", "yes", "y")


def _num(v: Any, default: float = 0.0) -> float:
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return float(v)
    s = _s(v).strip().replace(",", "")
    if not s:
        return default
    return float(s)


def _json(v: Any, default: Any) -> Any:
    s = _s(v).strip()
    if not s:
        return default
    return json.loads(s)


def _dumps(v: Any) -> str:
    return json.dumps(v, ensure_ascii=False, separators=(",", ":"))


def _bool_cell(v: bool) -> str:
    return "TRUE" if v else "FALSE"


@dataclass(frozen=True)
class TabSpec:
    """One spreadsheet tab: fixed positional header plus row <-> entity mapping."""

    name: str
    attr: str
    header: tuple[str, ...]
    to_row: Callable[[Any], Row]
    from_row: Callable[[dict[str, Any]], Any]


# ---------------- per-entity row mapping ----------------

def _user_row(u: User) -> Row:
    return [u.id, u.username, u.name, u.role.value, u.password_hash, u.created_at]


def _user_from(c: dict[str, Any]) -> User:
    return User(
        id=_s(c["id"]),
        username=_s(c["username"]).lower(),
        name=_s(c["name"]),
        role=_s(c["role"]).upper() or "VIEWER",
        password_hash=_s(c["passwordHash"]),
        created_at=_s(c["createdAt"]),
    )


def _type_row(t: PropertyType) -> Row:
    return [t.id, t.name, t.default_due_date_day, _dumps([col.dump() for col in t.columns])]


def _type_from(c: dict[str, Any]) -> PropertyType:
    cols = _json(c["columns"], [])
    return PropertyType(
        id=_s(c["id"]),
        name=_s(c["name"]),
        default_due_date_day=int(_num(c["defaultDueDateDay"], 5)),
        columns=[ColumnDefinition.model_validate(x) for x in cols],
    )


def _property_row(p: Property) -> Row:
    return [
        p.id,
        p.name,
        p.property_type_id,
        p.address,
        p.created_at,
        _bool_cell(p.is_visible_to_manager),
        p.total_investment,
    ]


def _property_from(c: dict[str, Any]) -> Property:
    return Property(
        id=_s(c["id"]),
        name=_s(c["name"]),
        property_type_id=_s(c["propertyTypeId"]),
        address=_s(c["address"]),
        created_at=_s(c["createdAt"]),
        is_visible_to_manager=_bool(c["isVisibleToManager"], default=True),
        total_investment=_num(c["totalInvestment"]),
    )


def _record_row(r: PropertyRecord) -> Row:
    return [r.id, r.property_id, r.created_at, r.updated_at]


def _record_from(c: dict[str, Any]) -> PropertyRecord:
    return PropertyRecord(
        id=_s(c["id"]),
        property_id=_s(c["propertyId"]),
        created_at=_s(c["createdAt"]),
        updated_at=_s(c["updatedAt"]) or _s(c["createdAt"]),
    )


def _value_row(v: RecordValue) -> Row:
    return [v.id, v.record_id, v.column_id, v.value]


def _value_from(c: dict[str, Any]) -> RecordValue:
    return RecordValue(id=_s(c["id"]), record_id=_s(c["recordId"]), column_id=_s(c["columnId"]), value=_s(c["value"]))


def _history_row(h: UnitHistory) -> Row:
    return [h.id, h.record_id, h.effective_from, h.effective_to or "", _dumps(h.values)]


def _history_from(c: dict[str, Any]) -> UnitHistory:
    values = _json(c["values"], {})
    return UnitHistory(
        id=_s(c["id"]),
        record_id=_s(c["recordId"]),
        effective_from=_s(c["effectiveFrom"]),
        effective_to=_opt(c["effectiveTo"]),
        values={str(k): _s(v) for k, v in values.items()},
    )


def _payment_row(p: Payment) -> Row:
    return [
        p.id,
        p.record_id,
        p.month,
        p.amount,
        p.status.value,
        p.type.value,
        p.due_date,
        p.paid_at or "",
        p.paid_to or "",
        p.payment_mode or "",
        _bool_cell(p.is_refunded),
        p.refunded_at or "",
    ]


def _payment_from(c: dict[str, Any]) -> Payment:
    return Payment(
        id=_s(c["id"]),
        record_id=_s(c["recordId"]),
        month=_s(c["month"]),
        amount=_num(c["amount"]),
        status=_s(c["status"]).upper() or "PAID",
        type=_s(c["type"]).upper() or "RENT",
        due_date=_s(c["dueDate"]) or "N/A",
        paid_at=_opt(c["paidAt"]),
        paid_to=_opt(c["paidTo"]),
        payment_mode=_opt(c["paymentMode"]),
        is_refunded=_bool(c["isRefunded"]),
        refunded_at=_opt(c["refundedAt"]),
    )


TABS: tuple[TabSpec, ...] = (
    TabSpec("Users", "users", ("id", "username", "name", "role", "passwordHash", "createdAt"), _user_row, _user_from),
    TabSpec("PropertyTypes", "property_types", ("id", "name", "defaultDueDateDay", "columns"), _type_row, _type_from),
    TabSpec(
        "Properties",
        "properties",
        ("id", "name", "propertyTypeId", "address", "createdAt", "isVisibleToManager", "totalInvestment"),
        _property_row,
        _property_from,
    ),
    TabSpec("Records", "records", ("id", "propertyId", "createdAt", "updatedAt"), _record_row, _record_from),
    TabSpec("RecordValues", "record_values", ("id", "recordId", "columnId", "value"), _value_row, _value_from),
    TabSpec(
        "UnitHistory",
        "unit_history",
        ("id", "recordId", "effectiveFrom", "effectiveTo", "values"),
        _history_row,
        _history_from,
    ),
    TabSpec(
        "Payments",
        "payments",
        (
            "id",
            "recordId",
            "month",
            "amount",
            "status",
            "type",
            "dueDate",
            "paidAt",
            "paidTo",
            "paymentMode",
            "isRefunded",
            "refundedAt",
        ),
        _payment_row,
        _payment_from,
    ),
)

CONFIG_TAB = "Config"
CONFIG_HEADER = ("key", "value")

TAB_NAMES: tuple[str, ...] = tuple(t.name for t in TABS) + (CONFIG_TAB,)


# ---------------- state <-> tab rows ----------------

def encode_state(state: RentalState) -> dict[str, list[Row]]:
    """Header row + one row per entity, for every tab."""
    out: dict[str, list[Row]] = {}
    for spec in TABS:
        out[spec.name] = [list(spec.header)] + [spec.to_row(e) for e in getattr(state, spec.attr)]
    out[CONFIG_TAB] = [
        list(CONFIG_HEADER),
        ["paidToOptions", _dumps(state.config.paid_to_options)],
        ["paymentModeOptions", _dumps(state.config.payment_mode_options)],
    ]
    return out


def _cells(header: tuple[str, ...], row: Row) -> dict[str, Any]:
    # the API drops trailing empty cells
    padded = list(row) + [""] * (len(header) - len(row))
    return dict(zip(header, padded))


def decode_tab(spec: TabSpec, rows: list[Row]) -> list[Any]:
    """
    Parse data rows (row 1 is the header and is skipped).
    Rows without an id, or that fail to parse, are logged and dropped.
    """
    out: list[Any] = []
    for idx, row in enumerate(rows[1:], start=2):
        if not row or not _s(row[0]).strip():
            continue
        try:
            out.append(spec.from_row(_cells(spec.header, row)))
        except (ValueError, KeyError, TypeError, PydanticValidationError) as e:
            log.warning("skipping unparseable row", extra={"tab": spec.name, "rows": idx})
            log.debug("row parse error in %s row %s: %s", spec.name, idx, e)
    return out


def decode_config(rows: list[Row]) -> AppConfig:
    cfg = AppConfig()
    for row in rows[1:]:
        cells = _cells(CONFIG_HEADER, row)
        key = _s(cells["key"]).strip()
        try:
            value = _json(cells["value"], None)
        except ValueError:
            log.warning("skipping unparseable config row", extra={"tab": CONFIG_TAB})
            continue
        if key == "paidToOptions" and isinstance(value, list):
            cfg.paid_to_options = [_s(x) for x in value]
        elif key == "paymentModeOptions" and isinstance(value, list):
            cfg.payment_mode_options = [_s(x) for x in value]
    return cfg


def decode_state(tabs: dict[str, list[Row]]) -> RentalState:
    state = RentalState()
    for spec in TABS:
        setattr(state, spec.attr, decode_tab(spec, tabs.get(spec.name) or []))
    config_rows = tabs.get(CONFIG_TAB) or []
    if len(config_rows) > 1:
        state.config = decode_config(config_rows)
    return state
