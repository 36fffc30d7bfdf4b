from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterable

from ..schemas import ColumnDefinition, ColumnDefinitionIn, ColumnType, PropertyType
from .errors import ValidationError

SYSTEM_COLUMN_TYPES = frozenset({ColumnType.SECURITY_DEPOSIT, ColumnType.OCCUPANCY_STATUS, ColumnType.RENT_DUE_DAY})
NUMERIC_COLUMN_TYPES = frozenset(
    {ColumnType.NUMBER, ColumnType.CURRENCY, ColumnType.RENT_DUE_DAY, ColumnType.SECURITY_DEPOSIT}
)
OPTION_COLUMN_TYPES = frozenset({ColumnType.DROPDOWN, ColumnType.OCCUPANCY_STATUS})

TENANT_NAME = "tenant name"
USER_NAME_RE = re.compile(r"^[A-Za-z\s]+$")


def normalize_columns(columns: Iterable[ColumnDefinitionIn], new_id: Callable[[], str]) -> list[ColumnDefinition]:
    """
    Apply the column rules a schema editor enforces:
    - system types and "Tenant Name" are always required and never rent-calculatable
    - option columns get a default option list when none is given
    - order is renumbered 0..n-1 in the given sequence
    """
    out: list[ColumnDefinition] = []
    for order, c in enumerate(columns):
        name = (c.name or "").strip()
        required = bool(c.required)
        rent_calc = bool(c.is_rent_calculatable)
        options = [o.strip() for o in c.options] if c.options is not None else None

        if c.type in SYSTEM_COLUMN_TYPES or name.lower() == TENANT_NAME:
            required = True
            rent_calc = False

        if c.type == ColumnType.OCCUPANCY_STATUS and not options:
            options = ["Active", "Vacant"]
        elif c.type == ColumnType.DROPDOWN and not options:
            options = ["Option 1"]
        elif c.type not in OPTION_COLUMN_TYPES:
            options = None

        out.append(
            ColumnDefinition(
                id=c.id or new_id(),
                name=name,
                type=c.type,
                required=required,
                is_rent_calculatable=rent_calc,
                is_security_deposit=c.type == ColumnType.SECURITY_DEPOSIT,
                options=options,
                order=order,
            )
        )
    return out


def validate_property_type(name: str, columns: list[ColumnDefinition]) -> None:
    if not (name or "").strip():
        raise ValidationError("Property Type name is required.")
    if not columns:
        raise ValidationError("At least one field is required.")
    if any(not c.name.strip() for c in columns):
        raise ValidationError("All fields must have names.")

    errors: dict[str, str] = {}
    for c in columns:
        if c.type in OPTION_COLUMN_TYPES:
            if not c.options:
                errors[c.id] = "At least one option is required."
            elif any(o.strip() == "" for o in c.options):
                errors[c.id] = "Empty values are not allowed."
    if errors:
        raise ValidationError("Invalid dropdown options.", errors)


def validate_record_values(ptype: PropertyType, values: dict[str, str]) -> dict[str, str]:
    """
    Check unit values against the property type's columns.
    Returns trimmed values restricted to known columns; raises ValidationError with per-column messages.
    """
    errors: dict[str, str] = {}
    clean: dict[str, str] = {}

    for col in ptype.ordered_columns():
        val = (values.get(col.id) or "").strip()

        if col.required and val == "":
            errors[col.id] = f"{col.name} is required"
            continue

        if val != "" and col.type in NUMERIC_COLUMN_TYPES:
            try:
                num = float(val)
            except ValueError:
                errors[col.id] = "Please enter a valid number"
                continue
            if not math.isfinite(num):
                errors[col.id] = "Please enter a valid number"
                continue
            if num < 0:
                errors[col.id] = "Amount cannot be negative"
                continue
            if col.type == ColumnType.RENT_DUE_DAY and not (1 <= num <= 31 and num.is_integer()):
                errors[col.id] = "Due day must be a whole number between 1 and 31"
                continue

        if val != "" and col.type in OPTION_COLUMN_TYPES and col.options and val not in col.options:
            errors[col.id] = f"{col.name} must be one of: {', '.join(col.options)}"
            continue

        if val != "" or col.id in values:
            clean[col.id] = val

    if errors:
        raise ValidationError("Unit values are invalid.", errors)
    return clean


def validate_user_name(name: str) -> None:
    if not USER_NAME_RE.match(name or ""):
        raise ValidationError("Team member name must contain only alphabets and spaces", {"name": "invalid"})
